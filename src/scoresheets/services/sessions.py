"""Score session lifecycle with snapshotted scoring rules.

A session copies its template's definition and version when it is created
and scores against that copy for the rest of its life. Later edits to the
template, or its deletion, never change how the session is scored.
Completion is one-way: a completed session accepts no further scoring edits.
"""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from scoresheets.domain.definitions import (
    FieldType,
    FieldValue,
    ScoreField,
    TemplateDefinition,
    parse_definition,
)
from scoresheets.domain.errors import (
    MissingReferenceError,
    StateError,
    ValidationError,
    Violation,
)
from scoresheets.domain.sessions import (
    FieldValues,
    ScorePlayer,
    ScoreRound,
    ScoreSession,
    ScoreSessionData,
    SessionSnapshot,
    session_data_to_dict,
)
from scoresheets.domain.templates import ScoreSheetTemplate
from scoresheets.services.templates import TemplateRepository
from scoresheets.services.totals import (
    TotalsResult,
    compute_totals,
    effective_field_values,
)
from scoresheets.services.validation import matches_type, within_bounds

_logger = logging.getLogger(__name__)


class SessionRepository(Protocol):
    """Persistence interface for score sessions."""

    def create_session(self, user_id: str, payload: dict[str, object]) -> ScoreSession:
        """Create a session row and return it."""

    def update_session(
        self, session_id: UUID, payload: dict[str, object]
    ) -> ScoreSession:
        """Update a session row and return it."""

    def get_session(self, session_id: UUID) -> ScoreSession | None:
        """Return a session by id, if present."""

    def delete_session(self, session_id: UUID) -> None:
        """Delete a session row."""

    def list_sessions(self, limit: int) -> list[ScoreSession]:
        """Return the most recently updated sessions."""

    def list_sessions_by_game(self, game_id: int) -> list[ScoreSession]:
        """Return sessions played for a game."""

    def list_sessions_by_user(self, user_id: str) -> list[ScoreSession]:
        """Return sessions created by a user."""


def create_snapshot(template: ScoreSheetTemplate) -> SessionSnapshot:
    """Capture a template's current definition and version."""
    # Parsing rejects a stored definition that could not be scored.
    parse_definition(template.json_definition)
    return SessionSnapshot(
        definition_json=template.json_definition, version=template.version
    )


def snapshot_definition(session: ScoreSession) -> TemplateDefinition:
    """Return the definition a session scores against."""
    return parse_definition(session.definition_snapshot)


def recalculate(session: ScoreSession) -> TotalsResult:
    """Compute totals for a session from its own snapshot."""
    return compute_totals(
        snapshot_definition(session), effective_field_values(session.data)
    )


def seed_session_data(
    definition: TemplateDefinition, players: list[ScorePlayer]
) -> ScoreSessionData:
    """Build initial session data with every field at its default value."""
    defaults = {
        item.id: item.default_value
        for item in definition.fields
        if item.default_value is not None
    }
    field_values: FieldValues = {player.id: dict(defaults) for player in players}
    totals = compute_totals(definition, field_values).totals
    return ScoreSessionData(
        players=tuple(players), field_values=field_values, totals=totals
    )


def apply_field_edit(
    session: ScoreSession,
    player_id: str,
    field_id: str,
    value: FieldValue | None,
    now: datetime,
) -> ScoreSession:
    """Return the session with one value changed and totals recomputed.

    ``None`` clears the value.
    """
    definition = _editable_definition(session, player_id)
    coerced = coerce_field_value(definition, player_id, field_id, value)
    field_values = _with_value(session.data.field_values, player_id, field_id, coerced)
    data = replace(session.data, field_values=field_values)
    return _rescored(session, definition, data, now)


def apply_round_field_edit(  # noqa: PLR0913
    session: ScoreSession,
    round_id: str,
    player_id: str,
    field_id: str,
    value: FieldValue | None,
    now: datetime,
) -> ScoreSession:
    """Return the session with one round-scoped value changed."""
    definition = _editable_definition(session, player_id)
    coerced = coerce_field_value(definition, player_id, field_id, value)
    rounds = []
    found = False
    for item in session.data.rounds:
        if item.id == round_id:
            found = True
            values = _with_value(item.field_values, player_id, field_id, coerced)
            item = replace(item, field_values=values)  # noqa: PLW2901
        rounds.append(item)
    if not found:
        raise MissingReferenceError(f"Round {round_id!r} not found")
    data = replace(session.data, rounds=tuple(rounds))
    return _rescored(session, definition, data, now)


def add_round(session: ScoreSession, name: str | None, now: datetime) -> ScoreSession:
    """Return the session with a new empty round appended."""
    _ensure_open(session)
    existing = session.data.rounds
    order = max((item.order for item in existing), default=0) + 1
    round_id = f"round_{order}"
    new_round = ScoreRound(id=round_id, name=name or f"Round {order}", order=order)
    data = replace(session.data, rounds=(*existing, new_round))
    return replace(session, data=data, updated_at=now)


def complete_session(session: ScoreSession, now: datetime) -> ScoreSession:
    """Return the session marked completed."""
    _ensure_open(session)
    return replace(session, is_completed=True, finished_at=now, updated_at=now)


def coerce_field_value(
    definition: TemplateDefinition,
    player_id: str,
    field_id: str,
    value: FieldValue | None,
) -> FieldValue | None:
    """Check a value against its field's declared type and bounds."""
    item = definition.get_field(field_id)
    if item is None:
        raise MissingReferenceError(f"Field {field_id!r} is not declared")
    if value is None:
        return None
    path = f"fieldValues.{player_id}.{field_id}"
    if not matches_type(item.type, value):
        raise ValidationError([Violation(path, f"must be a {item.type.value}")])
    if item.type is FieldType.NUMBER:
        return _checked_number(item, path, float(value))
    return value


def _checked_number(item: ScoreField, path: str, value: float) -> float:
    if not math.isfinite(value):
        raise ValidationError([Violation(path, "must be a finite number")])
    if within_bounds(item, value):
        return value
    if item.max_value is None:
        message = f"must be at least {item.min_value:g}"
    elif item.min_value is None:
        message = f"must be at most {item.max_value:g}"
    else:
        message = f"must be between {item.min_value:g} and {item.max_value:g}"
    raise ValidationError([Violation(path, message)])


def _ensure_open(session: ScoreSession) -> None:
    if session.is_completed:
        raise StateError(f"Session {session.id} is completed")


def _editable_definition(session: ScoreSession, player_id: str) -> TemplateDefinition:
    _ensure_open(session)
    if not session.data.has_player(player_id):
        raise MissingReferenceError(f"Player {player_id!r} is not in the session")
    return snapshot_definition(session)


def _with_value(
    values: FieldValues, player_id: str, field_id: str, value: FieldValue | None
) -> FieldValues:
    updated = {key: dict(player_values) for key, player_values in values.items()}
    player_values = updated.setdefault(player_id, {})
    if value is None:
        player_values.pop(field_id, None)
    else:
        player_values[field_id] = value
    return updated


def _rescored(
    session: ScoreSession,
    definition: TemplateDefinition,
    data: ScoreSessionData,
    now: datetime,
) -> ScoreSession:
    totals = compute_totals(definition, effective_field_values(data)).totals
    return replace(session, data=replace(data, totals=totals), updated_at=now)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SessionService:
    """Application service for running score sessions."""

    session_repository: SessionRepository
    template_repository: TemplateRepository
    clock: Callable[[], datetime] = field(default=_utcnow)

    def create_session(  # noqa: PLR0913
        self,
        user_id: str,
        template_id: UUID,
        name: str,
        players: list[ScorePlayer],
        game_id: int | None = None,
        location_id: int | None = None,
        notes: str = "",
    ) -> ScoreSession:
        """Create a session scored against a snapshot of the template."""
        template = self.template_repository.get_template(template_id)
        if template is None:
            raise MissingReferenceError(f"Template {template_id} not found")
        violations = _check_new_session(template, name, players)
        if violations:
            raise ValidationError(violations)

        snapshot = create_snapshot(template)
        data = seed_session_data(parse_definition(snapshot.definition_json), players)
        now = self.clock()
        payload: dict[str, object] = {
            "name": name.strip(),
            "template_id": str(template.id),
            "template_version_snapshot": snapshot.version,
            "definition_snapshot": snapshot.definition_json,
            "json_data": session_data_to_dict(data),
            "game_id": game_id if game_id is not None else template.game_id,
            "location_id": location_id,
            "notes": notes,
            "is_completed": False,
            "created_at": now.isoformat(),
            "updated_at": now.isoformat(),
        }
        session = self.session_repository.create_session(user_id, payload)
        _logger.info(
            "Session created: id=%s template=%s version=%s players=%s",
            session.id,
            template.id,
            snapshot.version,
            len(players),
        )
        return session

    def get_session(self, session_id: UUID) -> ScoreSession:
        """Return a session or raise ``MissingReferenceError``."""
        session = self.session_repository.get_session(session_id)
        if session is None:
            raise MissingReferenceError(f"Session {session_id} not found")
        return session

    def edit_field(
        self,
        session_id: UUID,
        player_id: str,
        field_id: str,
        value: FieldValue | None,
    ) -> ScoreSession:
        """Record a field value and persist the recomputed totals."""
        session = self.get_session(session_id)
        updated = apply_field_edit(session, player_id, field_id, value, self.clock())
        return self._save_data(updated)

    def edit_round_field(  # noqa: PLR0913
        self,
        session_id: UUID,
        round_id: str,
        player_id: str,
        field_id: str,
        value: FieldValue | None,
    ) -> ScoreSession:
        """Record a round-scoped field value and persist the recomputed totals."""
        session = self.get_session(session_id)
        updated = apply_round_field_edit(
            session, round_id, player_id, field_id, value, self.clock()
        )
        return self._save_data(updated)

    def start_round(self, session_id: UUID, name: str | None = None) -> ScoreSession:
        """Append a new round to a session."""
        session = self.get_session(session_id)
        return self._save_data(add_round(session, name, self.clock()))

    def recalculate(self, session_id: UUID) -> TotalsResult:
        """Return totals and rule failures for a session."""
        return recalculate(self.get_session(session_id))

    def complete(self, session_id: UUID) -> ScoreSession:
        """Mark a session completed; this cannot be undone."""
        session = complete_session(self.get_session(session_id), self.clock())
        updated = self.session_repository.update_session(
            session.id,
            {
                "is_completed": True,
                "finished_at": session.finished_at.isoformat(),
                "updated_at": session.updated_at.isoformat(),
            },
        )
        _logger.info("Session completed: id=%s", session.id)
        return updated

    def update_details(
        self, session_id: UUID, name: str | None = None, notes: str | None = None
    ) -> ScoreSession:
        """Rename a session or change its notes."""
        session = self.get_session(session_id)
        payload: dict[str, object] = {"updated_at": self.clock().isoformat()}
        if name is not None:
            if not name.strip():
                raise ValidationError([Violation("name", "is required")])
            payload["name"] = name.strip()
        if notes is not None:
            payload["notes"] = notes
        return self.session_repository.update_session(session.id, payload)

    def delete_session(self, session_id: UUID) -> None:
        """Delete a session."""
        self.get_session(session_id)
        self.session_repository.delete_session(session_id)
        _logger.info("Session deleted: id=%s", session_id)

    def list_sessions(self, limit: int = 50) -> list[ScoreSession]:
        """Return recent sessions."""
        return self.session_repository.list_sessions(limit)

    def list_sessions_by_game(self, game_id: int) -> list[ScoreSession]:
        """Return sessions for a game."""
        return self.session_repository.list_sessions_by_game(game_id)

    def list_sessions_by_user(self, user_id: str) -> list[ScoreSession]:
        """Return sessions created by a user."""
        return self.session_repository.list_sessions_by_user(user_id)

    def _save_data(self, session: ScoreSession) -> ScoreSession:
        return self.session_repository.update_session(
            session.id,
            {
                "json_data": session_data_to_dict(session.data),
                "updated_at": session.updated_at.isoformat(),
            },
        )


def _check_new_session(
    template: ScoreSheetTemplate, name: str, players: list[ScorePlayer]
) -> list[Violation]:
    violations = []
    if not name.strip():
        violations.append(Violation("name", "is required"))
    if not template.min_players <= len(players) <= template.max_players:
        violations.append(
            Violation(
                "players",
                f"expected {template.min_players} to {template.max_players} players,"
                f" got {len(players)}",
            )
        )
    player_ids = [player.id for player in players]
    if len(set(player_ids)) != len(player_ids):
        violations.append(Violation("players", "player ids must be unique"))
    return violations
