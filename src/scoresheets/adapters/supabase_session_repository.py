"""Supabase-backed score session repository."""

import json
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from scoresheets.domain.sessions import ScoreSession, parse_session_data
from scoresheets.services.sessions import SessionRepository


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for score sessions."""

    client: Client
    table: str = "score_sessions"

    def create_session(self, user_id: str, payload: dict[str, object]) -> ScoreSession:
        """Create a session row and return it."""
        response = (
            self.client.table(self.table)
            .insert({"created_by_user_id": user_id, **payload})
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create session")
        return _parse_session(response.data[0])

    def update_session(
        self, session_id: UUID, payload: dict[str, object]
    ) -> ScoreSession:
        """Update a session row and return it."""
        response = (
            self.client.table(self.table)
            .update(payload)
            .eq("id", str(session_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to update session")
        return _parse_session(response.data[0])

    def get_session(self, session_id: UUID) -> ScoreSession | None:
        """Return a session by id, if present."""
        response = (
            self.client.table(self.table)
            .select("*")
            .eq("id", str(session_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_session(response.data[0])

    def delete_session(self, session_id: UUID) -> None:
        """Delete a session row."""
        self.client.table(self.table).delete().eq("id", str(session_id)).execute()

    def list_sessions(self, limit: int) -> list[ScoreSession]:
        """Return the most recently updated sessions."""
        response = (
            self.client.table(self.table)
            .select("*")
            .order("updated_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [_parse_session(row) for row in response.data or []]

    def list_sessions_by_game(self, game_id: int) -> list[ScoreSession]:
        """Return sessions played for a game."""
        response = (
            self.client.table(self.table)
            .select("*")
            .eq("game_id", game_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_session(row) for row in response.data or []]

    def list_sessions_by_user(self, user_id: str) -> list[ScoreSession]:
        """Return sessions created by a user."""
        response = (
            self.client.table(self.table)
            .select("*")
            .eq("created_by_user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_session(row) for row in response.data or []]


def _parse_optional_datetime(value: object) -> datetime | None:
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None


def _parse_optional_int(value: object) -> int | None:
    return int(value) if value is not None else None


def _parse_json(value: object) -> dict[str, object] | None:
    # Older rows store the session data as JSON text.
    if isinstance(value, str):
        return json.loads(value) if value else None
    return value if isinstance(value, dict) else None


def _parse_session(row: dict[str, object]) -> ScoreSession:
    """Parse a session row into a domain model."""
    return ScoreSession(
        id=UUID(str(row["id"])),
        name=str(row.get("name", "")),
        template_id=UUID(str(row["template_id"])),
        template_version_snapshot=str(row.get("template_version_snapshot", "")),
        definition_snapshot=str(row.get("definition_snapshot", "")),
        data=parse_session_data(_parse_json(row.get("json_data"))),
        game_id=_parse_optional_int(row.get("game_id")),
        location_id=_parse_optional_int(row.get("location_id")),
        created_by_user_id=str(row.get("created_by_user_id", "")),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        updated_at=datetime.fromisoformat(str(row["updated_at"])),
        finished_at=_parse_optional_datetime(row.get("finished_at")),
        notes=str(row.get("notes") or ""),
        is_completed=bool(row.get("is_completed", False)),
    )
