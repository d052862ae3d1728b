"""Domain models for score sheet templates."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID


class TemplateMode(StrEnum):
    """Informational play style of a template."""

    ROUNDS = "rounds"
    CATEGORIES = "categories"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class TemplateDraft:
    """Author-supplied template attributes for a create or update."""

    name: str
    json_definition: str
    description: str = ""
    mode: str = TemplateMode.CATEGORIES.value
    min_players: int = 1
    max_players: int = 10
    version: str | None = None
    game_id: int | None = None
    is_public: bool = False


@dataclass(frozen=True)
class ScoreSheetTemplate:
    """Represents a persisted score sheet template."""

    id: UUID
    name: str
    description: str
    mode: str
    min_players: int
    max_players: int
    version: str
    json_definition: str
    game_id: int | None
    is_public: bool
    created_by_user_id: str
    created_at: datetime
    updated_at: datetime
