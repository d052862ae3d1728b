"""Services for authoring score sheet templates."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from scoresheets.domain.definitions import parse_definition
from scoresheets.domain.errors import (
    MissingReferenceError,
    ValidationError,
    Violation,
)
from scoresheets.domain.templates import ScoreSheetTemplate, TemplateDraft, TemplateMode
from scoresheets.services.validation import validate_definition

_logger = logging.getLogger(__name__)


class TemplateRepository(Protocol):
    """Persistence interface for score sheet templates."""

    def create_template(
        self, user_id: str, payload: dict[str, object]
    ) -> ScoreSheetTemplate:
        """Create a template row and return it."""

    def update_template(
        self, template_id: UUID, payload: dict[str, object]
    ) -> ScoreSheetTemplate:
        """Update a template row and return it."""

    def get_template(self, template_id: UUID) -> ScoreSheetTemplate | None:
        """Return a template by id, if present."""

    def delete_template(self, template_id: UUID) -> None:
        """Delete a template row."""

    def list_templates(self, limit: int) -> list[ScoreSheetTemplate]:
        """Return the most recently updated templates."""

    def list_templates_by_game(self, game_id: int) -> list[ScoreSheetTemplate]:
        """Return templates attached to a game."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class TemplateService:
    """Application service for template authoring."""

    repository: TemplateRepository
    default_version: str = "1.0"
    clock: Callable[[], datetime] = field(default=_utcnow)

    def check_draft(self, draft: TemplateDraft) -> list[Violation]:
        """Return every violation in a draft without writing anything."""
        violations: list[Violation] = []
        if not draft.name.strip():
            violations.append(Violation("name", "is required"))
        if draft.mode not in {mode.value for mode in TemplateMode}:
            violations.append(Violation("mode", f"unknown mode {draft.mode!r}"))
        if not draft.json_definition.strip():
            violations.append(Violation("jsonDefinition", "is required"))
            return violations
        try:
            definition = parse_definition(draft.json_definition)
        except ValidationError as exc:
            violations.extend(exc.violations)
            return violations
        violations.extend(
            validate_definition(definition, draft.min_players, draft.max_players)
        )
        return violations

    def create_template(self, user_id: str, draft: TemplateDraft) -> ScoreSheetTemplate:
        """Validate and persist a new template."""
        self._ensure_valid(draft)
        now = self.clock()
        payload = _draft_payload(draft)
        payload["version"] = draft.version or self.default_version
        payload["created_at"] = now.isoformat()
        payload["updated_at"] = now.isoformat()
        template = self.repository.create_template(user_id, payload)
        _logger.info(
            "Template created: id=%s version=%s", template.id, template.version
        )
        return template

    def update_template(
        self, template_id: UUID, draft: TemplateDraft
    ) -> ScoreSheetTemplate:
        """Validate and persist changes to an existing template.

        Sessions created earlier keep their own snapshot and are not touched.
        """
        existing = self.get_template(template_id)
        self._ensure_valid(draft)
        payload = _draft_payload(draft)
        payload["version"] = draft.version or existing.version
        payload["updated_at"] = self.clock().isoformat()
        template = self.repository.update_template(template_id, payload)
        _logger.info(
            "Template updated: id=%s version=%s", template.id, template.version
        )
        return template

    def get_template(self, template_id: UUID) -> ScoreSheetTemplate:
        """Return a template or raise ``MissingReferenceError``."""
        template = self.repository.get_template(template_id)
        if template is None:
            raise MissingReferenceError(f"Template {template_id} not found")
        return template

    def delete_template(self, template_id: UUID) -> None:
        """Delete a template; sessions keep their snapshots."""
        self.get_template(template_id)
        self.repository.delete_template(template_id)
        _logger.info("Template deleted: id=%s", template_id)

    def list_templates(self, limit: int = 50) -> list[ScoreSheetTemplate]:
        """Return recent templates."""
        return self.repository.list_templates(limit)

    def list_templates_by_game(self, game_id: int) -> list[ScoreSheetTemplate]:
        """Return templates for a game."""
        return self.repository.list_templates_by_game(game_id)

    def _ensure_valid(self, draft: TemplateDraft) -> None:
        violations = self.check_draft(draft)
        if violations:
            _logger.info("Template rejected: %s violation(s)", len(violations))
            raise ValidationError(violations)


def _draft_payload(draft: TemplateDraft) -> dict[str, object]:
    return {
        "name": draft.name.strip(),
        "description": draft.description,
        "mode": draft.mode,
        "min_players": draft.min_players,
        "max_players": draft.max_players,
        "json_definition": draft.json_definition,
        "game_id": draft.game_id,
        "is_public": draft.is_public,
    }
