"""ASGI entrypoint for the score sheets API."""

from scoresheets.api.app import create_app
from scoresheets.containers import build_container

app = create_app(build_container())
