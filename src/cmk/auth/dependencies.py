"""FastAPI dependencies guarding administrative routes."""

from __future__ import annotations

import secrets

from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader

from cmk.config import get_settings

_admin_key_header = APIKeyHeader(name="X-Admin-Key", auto_error=False)


async def require_admin(api_key: str | None = Security(_admin_key_header)) -> None:
    """
    Check the X-Admin-Key header against the configured admin key.

    Raises 403 when no admin key is configured and 401 when the header is
    missing or wrong.
    """
    expected = get_settings().admin_api_key
    if not expected:
        raise HTTPException(status_code=403, detail="Admin API is disabled")
    if not api_key or not secrets.compare_digest(api_key.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Invalid admin key")
