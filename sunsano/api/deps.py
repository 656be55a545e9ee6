"""API dependencies for database sessions and admin access."""

from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from sunsano.config import settings
from sunsano.core.exceptions import AuthorizationError
from sunsano.core.security import verify_admin_key
from sunsano.database import get_db

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def require_admin(
    x_admin_key: Annotated[str | None, Header(alias="X-Admin-Key")] = None,
) -> None:
    """Allow the request only with the configured admin API key."""
    if not verify_admin_key(x_admin_key, settings.admin_api_key):
        raise AuthorizationError("Admin access required")


AdminAccess = Depends(require_admin)
