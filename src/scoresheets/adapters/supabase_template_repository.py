"""Supabase-backed score sheet template repository."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from scoresheets.domain.templates import ScoreSheetTemplate
from scoresheets.services.templates import TemplateRepository


@dataclass
class SupabaseTemplateRepository(TemplateRepository):
    """Supabase implementation for score sheet templates."""

    client: Client
    table: str = "score_sheet_templates"

    def create_template(
        self, user_id: str, payload: dict[str, object]
    ) -> ScoreSheetTemplate:
        """Create a template row and return it."""
        response = (
            self.client.table(self.table)
            .insert({"created_by_user_id": user_id, **payload})
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create template")
        return _parse_template(response.data[0])

    def update_template(
        self, template_id: UUID, payload: dict[str, object]
    ) -> ScoreSheetTemplate:
        """Update a template row and return it."""
        response = (
            self.client.table(self.table)
            .update(payload)
            .eq("id", str(template_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to update template")
        return _parse_template(response.data[0])

    def get_template(self, template_id: UUID) -> ScoreSheetTemplate | None:
        """Return a template by id, if present."""
        response = (
            self.client.table(self.table)
            .select("*")
            .eq("id", str(template_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_template(response.data[0])

    def delete_template(self, template_id: UUID) -> None:
        """Delete a template row."""
        self.client.table(self.table).delete().eq("id", str(template_id)).execute()

    def list_templates(self, limit: int) -> list[ScoreSheetTemplate]:
        """Return the most recently updated templates."""
        response = (
            self.client.table(self.table)
            .select("*")
            .order("updated_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [_parse_template(row) for row in response.data or []]

    def list_templates_by_game(self, game_id: int) -> list[ScoreSheetTemplate]:
        """Return templates attached to a game."""
        response = (
            self.client.table(self.table)
            .select("*")
            .eq("game_id", game_id)
            .order("name")
            .execute()
        )
        return [_parse_template(row) for row in response.data or []]


def _parse_template(row: dict[str, object]) -> ScoreSheetTemplate:
    """Parse a template row into a domain model."""
    game_id = row.get("game_id")
    return ScoreSheetTemplate(
        id=UUID(str(row["id"])),
        name=str(row.get("name", "")),
        description=str(row.get("description") or ""),
        mode=str(row.get("mode", "")),
        min_players=int(row.get("min_players", 1)),
        max_players=int(row.get("max_players", 10)),
        version=str(row.get("version", "")),
        json_definition=str(row.get("json_definition", "")),
        game_id=int(game_id) if game_id is not None else None,
        is_public=bool(row.get("is_public", False)),
        created_by_user_id=str(row.get("created_by_user_id", "")),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        updated_at=datetime.fromisoformat(str(row["updated_at"])),
    )
