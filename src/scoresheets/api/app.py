"""FastAPI application factory."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from scoresheets.api.models import serialize_violations
from scoresheets.api.sessions import router as sessions_router
from scoresheets.api.templates import router as templates_router
from scoresheets.app_logging import configure_logging
from scoresheets.containers import AppContainer
from scoresheets.domain.errors import (
    MissingReferenceError,
    StateError,
    ValidationError,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    app = FastAPI(title="Score Sheets")
    app.state.container = container

    app.include_router(templates_router)
    app.include_router(sessions_router)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "error": "validation",
                "violations": serialize_violations(exc.violations),
            },
        )

    @app.exception_handler(MissingReferenceError)
    async def missing_reference_handler(
        request: Request, exc: MissingReferenceError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND, content={"error": str(exc)}
        )

    @app.exception_handler(StateError)
    async def state_error_handler(request: Request, exc: StateError) -> JSONResponse:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT, content={"error": str(exc)}
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
