"""Dependency container wiring for the application."""

from dataclasses import dataclass

from supabase import create_client

from scoresheets.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from scoresheets.adapters.supabase_template_repository import (
    SupabaseTemplateRepository,
)
from scoresheets.config import Settings
from scoresheets.services.sessions import SessionService
from scoresheets.services.templates import TemplateService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    template_service: TemplateService
    session_service: SessionService


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    template_repository = SupabaseTemplateRepository(
        supabase_client, table=resolved_settings.templates_table
    )
    session_repository = SupabaseSessionRepository(
        supabase_client, table=resolved_settings.sessions_table
    )
    template_service = TemplateService(
        template_repository,
        default_version=resolved_settings.default_template_version,
    )
    session_service = SessionService(
        session_repository=session_repository,
        template_repository=template_repository,
    )
    return AppContainer(
        settings=resolved_settings,
        template_service=template_service,
        session_service=session_service,
    )
