"""Domain models for score sessions."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from scoresheets.domain.definitions import FieldValue

FieldValues = dict[str, dict[str, FieldValue]]


@dataclass(frozen=True)
class ScorePlayer:
    """A player taking part in a session."""

    id: str
    name: str
    order: int = 0


@dataclass(frozen=True)
class ScoreRound:
    """A round holding its own per-player field values."""

    id: str
    name: str
    order: int = 0
    field_values: FieldValues = field(default_factory=dict)


@dataclass(frozen=True)
class ScoreSessionData:
    """Players, entered values and derived totals of a session."""

    players: tuple[ScorePlayer, ...] = ()
    rounds: tuple[ScoreRound, ...] = ()
    field_values: FieldValues = field(default_factory=dict)
    totals: dict[str, float] = field(default_factory=dict)

    def has_player(self, player_id: str) -> bool:
        """Return whether a player id belongs to this session."""
        return any(player.id == player_id for player in self.players)


@dataclass(frozen=True)
class SessionSnapshot:
    """Template definition and version frozen at session creation."""

    definition_json: str
    version: str


@dataclass(frozen=True)
class ScoreSession:
    """Represents a persisted score session."""

    id: UUID
    name: str
    template_id: UUID
    template_version_snapshot: str
    definition_snapshot: str
    data: ScoreSessionData
    game_id: int | None
    location_id: int | None
    created_by_user_id: str
    created_at: datetime
    updated_at: datetime
    finished_at: datetime | None = None
    notes: str = ""
    is_completed: bool = False


def session_data_to_dict(data: ScoreSessionData) -> dict[str, object]:
    """Return the wire representation of session data."""
    payload: dict[str, object] = {
        "players": [
            {"id": player.id, "name": player.name, "order": player.order}
            for player in data.players
        ],
        "fieldValues": _copy_values(data.field_values),
        "totals": dict(data.totals),
    }
    if data.rounds:
        payload["rounds"] = [
            {
                "id": item.id,
                "name": item.name,
                "order": item.order,
                "fieldValues": _copy_values(item.field_values),
            }
            for item in data.rounds
        ]
    return payload


def parse_session_data(payload: dict[str, object] | None) -> ScoreSessionData:
    """Parse session data from its decoded JSON object."""
    if not payload:
        return ScoreSessionData()
    players = tuple(
        ScorePlayer(
            id=str(item["id"]),
            name=str(item.get("name", "")),
            order=int(item.get("order", 0)),
        )
        for item in payload.get("players") or []
    )
    rounds = tuple(
        ScoreRound(
            id=str(item["id"]),
            name=str(item.get("name", "")),
            order=int(item.get("order", 0)),
            field_values=_copy_values(item.get("fieldValues") or {}),
        )
        for item in payload.get("rounds") or []
    )
    totals = {
        str(player_id): float(value)
        for player_id, value in (payload.get("totals") or {}).items()
    }
    return ScoreSessionData(
        players=players,
        rounds=rounds,
        field_values=_copy_values(payload.get("fieldValues") or {}),
        totals=totals,
    )


def _copy_values(values: dict[str, dict[str, FieldValue]]) -> FieldValues:
    return {
        str(player_id): dict(player_values)
        for player_id, player_values in values.items()
    }
