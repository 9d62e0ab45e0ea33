"""
Role management endpoints (superadmin only).
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import ConflictError
from app.core.services import get_role_registry
from app.features.auth.dependencies import CurrentSuperadmin
from app.features.roles.service import RoleRegistry
from app.schemas.role import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    RoleCreate,
    RoleRead,
    RoleUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/roles", tags=["Roles"])

Roles = Annotated[RoleRegistry, Depends(get_role_registry)]
DB = Annotated[AsyncSession, Depends(get_db)]


@router.get("", response_model=list[RoleRead])
async def list_roles(superadmin: CurrentSuperadmin, db: DB, roles: Roles) -> list[RoleRead]:
    return [RoleRead.model_validate(r) for r in await roles.list_roles(db)]


@router.post("", response_model=RoleRead, status_code=status.HTTP_201_CREATED)
async def create_role(
    data: RoleCreate, superadmin: CurrentSuperadmin, db: DB, roles: Roles
) -> RoleRead:
    if await roles.exists_by_name(db, data.name):
        raise ConflictError(f"Role already exists: {data.name}")
    role = await roles.create(db, data.name, data.description)
    return RoleRead.model_validate(role)


@router.patch("/{role_id}", response_model=RoleRead)
async def update_role(
    role_id: str, data: RoleUpdate, superadmin: CurrentSuperadmin, db: DB, roles: Roles
) -> RoleRead:
    role = await roles.update(db, role_id, name=data.name, description=data.description)
    return RoleRead.model_validate(role)


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(role_id: str, superadmin: CurrentSuperadmin, db: DB, roles: Roles) -> None:
    await roles.delete_by_id(db, role_id)


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete_roles(
    data: BulkDeleteRequest, superadmin: CurrentSuperadmin, db: DB, roles: Roles
) -> BulkDeleteResponse:
    """Delete several custom roles; a batch naming any system role deletes nothing."""
    return BulkDeleteResponse(deleted=await roles.bulk_delete(db, data.role_ids))
