"""
User management endpoints (superadmin only).
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.services import get_identity_service
from app.features.auth.dependencies import CurrentSuperadmin
from app.features.auth.service import UserIdentityService
from app.schemas.common import PaginatedResponse
from app.schemas.user import (
    AdminUserCreate,
    ChangeRoleRequest,
    UserDataUpdate,
    UserRead,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

Identity = Annotated[UserIdentityService, Depends(get_identity_service)]
DB = Annotated[AsyncSession, Depends(get_db)]


@router.get("", response_model=PaginatedResponse[UserRead])
async def list_users(
    superadmin: CurrentSuperadmin,
    db: DB,
    identity: Identity,
    search: str | None = Query(None, description="Match email, username or name"),
    role_id: str | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
) -> PaginatedResponse[UserRead]:
    users, total = await identity.list_users(db, search, role_id, skip, limit)
    return PaginatedResponse[UserRead](
        items=[UserRead.model_validate(u) for u in users],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: AdminUserCreate, superadmin: CurrentSuperadmin, db: DB, identity: Identity
) -> UserRead:
    user = await identity.create_user_by_admin(db, data, actor_id=superadmin.id)
    return UserRead.model_validate(user)


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: str, superadmin: CurrentSuperadmin, db: DB, identity: Identity
) -> UserRead:
    user = await identity.get_user_by_id(db, user_id)
    return UserRead.model_validate(user)


@router.patch("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: str,
    data: UserDataUpdate,
    superadmin: CurrentSuperadmin,
    db: DB,
    identity: Identity,
) -> UserRead:
    user = await identity.update_user_data(db, superadmin.id, user_id, data)
    return UserRead.model_validate(user)


@router.put("/{user_id}/role", response_model=UserRead)
async def change_role(
    user_id: str,
    data: ChangeRoleRequest,
    superadmin: CurrentSuperadmin,
    db: DB,
    identity: Identity,
) -> UserRead:
    """Assign a role; a new SUPERADMIN leaves every tenant."""
    user = await identity.change_user_role(db, user_id, data.role_id, actor_id=superadmin.id)
    return UserRead.model_validate(user)


@router.post("/{user_id}/verify", response_model=UserRead)
async def verify_user(
    user_id: str, superadmin: CurrentSuperadmin, db: DB, identity: Identity
) -> UserRead:
    user = await identity.verify_email_by_id(db, user_id)
    return UserRead.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str, superadmin: CurrentSuperadmin, db: DB, identity: Identity
) -> None:
    """Soft delete."""
    await identity.delete_user(db, user_id, actor_id=superadmin.id)


@router.delete("/{user_id}/hard", status_code=status.HTTP_204_NO_CONTENT)
async def hard_delete_user(
    user_id: str, superadmin: CurrentSuperadmin, db: DB, identity: Identity
) -> None:
    """Permanently remove the user and their memberships."""
    await identity.hard_delete_user(db, user_id, actor_id=superadmin.id)
