"""Score sheet template endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Request

from scoresheets.api.dependencies import current_user_id
from scoresheets.api.models import (
    TemplateRequest,
    serialize_template,
    serialize_violations,
)
from scoresheets.domain.definitions import definition_to_dict
from scoresheets.domain.presets import PRESETS

if TYPE_CHECKING:
    from scoresheets.containers import AppContainer

router = APIRouter(prefix="/api/score-sheet-template", tags=["templates"])


@router.get("")
async def list_templates(request: Request, limit: int = 50) -> list[dict[str, object]]:
    """Return recent templates."""
    container: AppContainer = request.app.state.container
    return [
        serialize_template(template)
        for template in container.template_service.list_templates(limit)
    ]


@router.get("/presets")
async def list_presets() -> dict[str, object]:
    """Return the built-in starter definitions."""
    return {name: definition_to_dict(factory()) for name, factory in PRESETS.items()}


@router.post("/validate")
async def validate_template(
    body: TemplateRequest, request: Request
) -> dict[str, object]:
    """Report every violation in a template without saving it."""
    container: AppContainer = request.app.state.container
    violations = container.template_service.check_draft(body.to_draft())
    return {"valid": not violations, "violations": serialize_violations(violations)}


@router.get("/by-game/{game_id}")
async def templates_by_game(game_id: int, request: Request) -> list[dict[str, object]]:
    """Return templates attached to a game."""
    container: AppContainer = request.app.state.container
    return [
        serialize_template(template)
        for template in container.template_service.list_templates_by_game(game_id)
    ]


@router.get("/{template_id}")
async def get_template(template_id: UUID, request: Request) -> dict[str, object]:
    """Return a template by id."""
    container: AppContainer = request.app.state.container
    return serialize_template(container.template_service.get_template(template_id))


@router.post("")
async def create_template(
    body: TemplateRequest,
    request: Request,
    user_id: str = Depends(current_user_id),
) -> dict[str, object]:
    """Create a template."""
    container: AppContainer = request.app.state.container
    template = container.template_service.create_template(user_id, body.to_draft())
    return serialize_template(template)


@router.put("/{template_id}")
async def update_template(
    template_id: UUID, body: TemplateRequest, request: Request
) -> dict[str, object]:
    """Update a template; existing sessions keep their snapshots."""
    container: AppContainer = request.app.state.container
    template = container.template_service.update_template(
        template_id, body.to_draft()
    )
    return serialize_template(template)


@router.delete("/{template_id}")
async def delete_template(template_id: UUID, request: Request) -> dict[str, str]:
    """Delete a template."""
    container: AppContainer = request.app.state.container
    container.template_service.delete_template(template_id)
    return {"status": "ok"}
