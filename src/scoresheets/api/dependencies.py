"""Shared request dependencies."""

from fastapi import Header

ANONYMOUS_USER = "anonymous"


async def current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Return the acting user id supplied by the fronting identity layer."""
    return x_user_id.strip() if x_user_id and x_user_id.strip() else ANONYMOUS_USER
