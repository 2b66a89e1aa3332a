# studio_booking/api/auth.py
"""
API key guard for administrative endpoints.

The key is read from ADMIN_API_KEY. When it is unset the guard is open, which
keeps local development and the public booking flow frictionless.
"""
from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Header, Query, Request

from studio_booking.core.errors import AdminAuthError


def require_admin_key(
    request: Request,
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    api_key: Optional[str] = Query(None, description="API key (fallback for the X-API-Key header)"),
) -> Optional[str]:
    """
    Checks, in order:
    1. X-API-Key header (preferred)
    2. api_key query parameter
    """
    expected = request.app.state.settings.ADMIN_API_KEY
    if not expected:
        return None

    provided = x_api_key or api_key
    if not provided:
        raise AdminAuthError("Clé API requise", details={"header": "X-API-Key"})
    if not secrets.compare_digest(provided, expected):
        raise AdminAuthError("Clé API invalide")
    return provided
