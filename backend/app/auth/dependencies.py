"""
Admin access dependency for FastAPI.

User accounts live in the upstream recruitment platform; this service only
guards its own control endpoints with a shared API key.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

from app.config import get_settings


async def verify_admin_access(
    x_admin_api_key: Optional[str] = Header(None, alias="X-Admin-API-Key"),
) -> None:
    """
    Verify admin access via the X-Admin-API-Key header.

    Without a configured key, access is open outside production so the
    service can be run locally. Raises 403 otherwise.
    """
    settings = get_settings()

    if not settings.admin_api_key:
        if settings.is_production:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Admin API key not configured",
            )
        return None

    if x_admin_api_key and x_admin_api_key == settings.admin_api_key:
        return None

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Admin access required. Provide a valid X-Admin-API-Key header.",
    )
