"""Pydantic request models and response serializers for the HTTP API."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from scoresheets.domain.errors import Violation
from scoresheets.domain.sessions import ScorePlayer, ScoreSession, session_data_to_dict
from scoresheets.domain.templates import ScoreSheetTemplate, TemplateDraft
from scoresheets.services.totals import TotalsResult


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TemplateRequest(_CamelModel):
    """Template create or update payload."""

    name: str
    json_definition: str = Field(alias="jsonDefinition")
    description: str = ""
    mode: str = "categories"
    min_players: int = Field(default=1, alias="minPlayers")
    max_players: int = Field(default=10, alias="maxPlayers")
    version: str | None = None
    game_id: int | None = Field(default=None, alias="gameId")
    is_public: bool = Field(default=False, alias="isPublic")

    def to_draft(self) -> TemplateDraft:
        """Convert the payload into a service-level draft."""
        return TemplateDraft(
            name=self.name,
            json_definition=self.json_definition,
            description=self.description,
            mode=self.mode,
            min_players=self.min_players,
            max_players=self.max_players,
            version=self.version,
            game_id=self.game_id,
            is_public=self.is_public,
        )


class PlayerRequest(_CamelModel):
    """Player entry in a session create payload."""

    id: str
    name: str
    order: int | None = None


class SessionCreateRequest(_CamelModel):
    """Session create payload."""

    name: str
    template_id: UUID = Field(alias="scoreSheetTemplateId")
    players: list[PlayerRequest]
    game_id: int | None = Field(default=None, alias="gameId")
    location_id: int | None = Field(default=None, alias="locationId")
    notes: str = ""

    def to_players(self) -> list[ScorePlayer]:
        """Return players, numbering any without an explicit order."""
        return [
            ScorePlayer(
                id=player.id,
                name=player.name,
                order=player.order if player.order is not None else index,
            )
            for index, player in enumerate(self.players)
        ]


class SessionUpdateRequest(_CamelModel):
    """Session rename or notes payload."""

    name: str | None = None
    notes: str | None = None


class FieldEditRequest(_CamelModel):
    """Single field value edit."""

    player_id: str = Field(alias="playerId")
    field_id: str = Field(alias="fieldId")
    value: bool | float | str | None = None


class RoundCreateRequest(_CamelModel):
    """New round payload."""

    name: str | None = None


def serialize_template(template: ScoreSheetTemplate) -> dict[str, object]:
    return {
        "id": str(template.id),
        "name": template.name,
        "description": template.description,
        "mode": template.mode,
        "minPlayers": template.min_players,
        "maxPlayers": template.max_players,
        "version": template.version,
        "jsonDefinition": template.json_definition,
        "gameId": template.game_id,
        "isPublic": template.is_public,
        "createdByUserId": template.created_by_user_id,
        "createdAt": template.created_at.isoformat(),
        "updatedAt": template.updated_at.isoformat(),
    }


def serialize_session(session: ScoreSession) -> dict[str, object]:
    return {
        "id": str(session.id),
        "name": session.name,
        "scoreSheetTemplateId": str(session.template_id),
        "templateVersionSnapshot": session.template_version_snapshot,
        "definitionSnapshot": session.definition_snapshot,
        "data": session_data_to_dict(session.data),
        "gameId": session.game_id,
        "locationId": session.location_id,
        "createdByUserId": session.created_by_user_id,
        "createdAt": session.created_at.isoformat(),
        "updatedAt": session.updated_at.isoformat(),
        "finishedAt": session.finished_at.isoformat() if session.finished_at else None,
        "notes": session.notes,
        "isCompleted": session.is_completed,
    }


def serialize_totals(result: TotalsResult) -> dict[str, object]:
    return {
        "totals": result.totals,
        "derived": result.derived,
        "failures": [
            {
                "playerId": failure.player_id,
                "ruleId": failure.rule_id,
                "message": failure.message,
            }
            for failure in result.failures
        ],
    }


def serialize_violations(violations: list[Violation]) -> list[dict[str, str]]:
    return [
        {"path": violation.path, "message": violation.message}
        for violation in violations
    ]
