"""
Authentication dependencies for dependency injection.
"""

import logging
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import set_request_context
from app.core.database import get_db
from app.core.exceptions import TokenError, forbidden, unauthorized
from app.core.security import TokenService
from app.core.services import get_token_service
from app.models.role import RoleName
from app.models.user import User

logger = logging.getLogger(__name__)

# Security schemes
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> User:
    """
    Resolve the caller from a Bearer access token.

    Rejects expired, malformed and revoked tokens, then records the
    caller's id and role in the request context.
    """
    if not credentials:
        raise unauthorized("Authentication required")

    try:
        claims = tokens.parse_access_token(credentials.credentials)
    except TokenError as e:
        logger.warning(f"Access token rejected: {e.message}")
        raise unauthorized(e.message)

    if await tokens.is_token_revoked(claims.user_id, claims.issued_at_us):
        logger.warning(f"Revoked token used by user {claims.user_id}")
        raise unauthorized("Token has been revoked")

    result = await db.execute(
        select(User).where(User.id == claims.user_id, User.deleted_at.is_(None))
    )
    user = result.scalar_one_or_none()

    if not user:
        logger.warning(f"Token valid but user not found: {claims.user_id}")
        raise unauthorized("User not found")

    if not user.is_verified:
        raise forbidden("Email address has not been verified")

    request.state.user_id = user.id
    set_request_context(user_id=user.id, role=user.role_name)

    return user


def require_role(*role_names: str):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/tenants")
        async def list_tenants(
            user: User = Depends(require_role(RoleName.SUPERADMIN))
        ):
            ...
    """
    async def role_checker(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if current_user.role_name not in role_names:
            raise forbidden(f"Role required: {' or '.join(role_names)}")
        return current_user

    return role_checker


# Type aliases for cleaner code
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentSuperadmin = Annotated[User, Depends(require_role(RoleName.SUPERADMIN))]
CurrentTenantAdmin = Annotated[User, Depends(require_role(RoleName.SUPERADMIN, RoleName.ADMIN))]
