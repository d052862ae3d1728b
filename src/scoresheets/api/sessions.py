"""Score session endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Request

from scoresheets.api.dependencies import current_user_id
from scoresheets.api.models import (
    FieldEditRequest,
    RoundCreateRequest,
    SessionCreateRequest,
    SessionUpdateRequest,
    serialize_session,
    serialize_totals,
)

if TYPE_CHECKING:
    from scoresheets.containers import AppContainer

router = APIRouter(prefix="/api/score-session", tags=["sessions"])


@router.get("")
async def list_sessions(request: Request, limit: int = 50) -> list[dict[str, object]]:
    """Return recent sessions."""
    container: AppContainer = request.app.state.container
    return [
        serialize_session(session)
        for session in container.session_service.list_sessions(limit)
    ]


@router.get("/by-game/{game_id}")
async def sessions_by_game(game_id: int, request: Request) -> list[dict[str, object]]:
    """Return sessions played for a game."""
    container: AppContainer = request.app.state.container
    return [
        serialize_session(session)
        for session in container.session_service.list_sessions_by_game(game_id)
    ]


@router.get("/by-user/{user_id}")
async def sessions_by_user(user_id: str, request: Request) -> list[dict[str, object]]:
    """Return sessions created by a user."""
    container: AppContainer = request.app.state.container
    return [
        serialize_session(session)
        for session in container.session_service.list_sessions_by_user(user_id)
    ]


@router.get("/{session_id}")
async def get_session(session_id: UUID, request: Request) -> dict[str, object]:
    """Return a session by id."""
    container: AppContainer = request.app.state.container
    return serialize_session(container.session_service.get_session(session_id))


@router.post("")
async def create_session(
    body: SessionCreateRequest,
    request: Request,
    user_id: str = Depends(current_user_id),
) -> dict[str, object]:
    """Create a session from a template snapshot."""
    container: AppContainer = request.app.state.container
    session = container.session_service.create_session(
        user_id=user_id,
        template_id=body.template_id,
        name=body.name,
        players=body.to_players(),
        game_id=body.game_id,
        location_id=body.location_id,
        notes=body.notes,
    )
    return serialize_session(session)


@router.put("/{session_id}")
async def update_session(
    session_id: UUID, body: SessionUpdateRequest, request: Request
) -> dict[str, object]:
    """Rename a session or change its notes."""
    container: AppContainer = request.app.state.container
    session = container.session_service.update_details(
        session_id, name=body.name, notes=body.notes
    )
    return serialize_session(session)


@router.delete("/{session_id}")
async def delete_session(session_id: UUID, request: Request) -> dict[str, str]:
    """Delete a session."""
    container: AppContainer = request.app.state.container
    container.session_service.delete_session(session_id)
    return {"status": "ok"}


@router.put("/{session_id}/field-values")
async def edit_field(
    session_id: UUID, body: FieldEditRequest, request: Request
) -> dict[str, object]:
    """Record one field value and return the rescored session."""
    container: AppContainer = request.app.state.container
    session = container.session_service.edit_field(
        session_id, body.player_id, body.field_id, body.value
    )
    return serialize_session(session)


@router.post("/{session_id}/rounds")
async def start_round(
    session_id: UUID, body: RoundCreateRequest, request: Request
) -> dict[str, object]:
    """Append a round to a session."""
    container: AppContainer = request.app.state.container
    session = container.session_service.start_round(session_id, body.name)
    return serialize_session(session)


@router.put("/{session_id}/rounds/{round_id}/field-values")
async def edit_round_field(
    session_id: UUID, round_id: str, body: FieldEditRequest, request: Request
) -> dict[str, object]:
    """Record one round-scoped field value."""
    container: AppContainer = request.app.state.container
    session = container.session_service.edit_round_field(
        session_id, round_id, body.player_id, body.field_id, body.value
    )
    return serialize_session(session)


@router.get("/{session_id}/totals")
async def session_totals(session_id: UUID, request: Request) -> dict[str, object]:
    """Return totals and any rule evaluation failures."""
    container: AppContainer = request.app.state.container
    return serialize_totals(container.session_service.recalculate(session_id))


@router.post("/{session_id}/complete")
async def complete_session(session_id: UUID, request: Request) -> dict[str, object]:
    """Complete a session; later scoring edits are rejected."""
    container: AppContainer = request.app.state.container
    return serialize_session(container.session_service.complete(session_id))
