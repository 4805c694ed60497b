"""
Authentication dependencies for FastAPI.

Staff endpoints (front-of-house board, settings, admin) are guarded by a
shared API key. User sessions are validated upstream by the dashboard's
identity provider; this service only checks the key it forwards.
"""

import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

from tablequeue.config import get_settings


async def verify_staff_access(
    x_staff_api_key: Optional[str] = Header(None, alias="X-Staff-API-Key"),
) -> None:
    """
    Verify the X-Staff-API-Key header.

    When no staff_api_key is configured (local development) every request
    is let through.
    """
    settings = get_settings()

    if not settings.staff_api_key:
        return None

    if x_staff_api_key and secrets.compare_digest(x_staff_api_key, settings.staff_api_key):
        return None

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Staff access required. Provide a valid X-Staff-API-Key header.",
    )
