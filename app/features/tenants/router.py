"""
Tenant endpoints.

/tenants/current/* act on the caller's own tenant; /tenants/{tenant_id}/*
are open to superadmins for any tenant and to admins for their own.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.services import get_file_store_instance, get_tenant_service
from app.features.auth.dependencies import CurrentSuperadmin, CurrentTenantAdmin, CurrentUser
from app.features.notifications.storage import FileStore
from app.features.tenants.service import TenantService
from app.models.role import RoleName
from app.schemas.common import MessageResponse, PaginatedResponse
from app.schemas.tenant import (
    InviteByEmail,
    InviteByUserId,
    SubscriptionUpdate,
    TenantContactUpdate,
    TenantCreate,
    TenantRead,
    TenantReadWithStats,
    TenantUpdate,
)
from app.schemas.user import UserRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants", tags=["Tenants"])

Tenants = Annotated[TenantService, Depends(get_tenant_service)]
DB = Annotated[AsyncSession, Depends(get_db)]
Store = Annotated[FileStore, Depends(get_file_store_instance)]


def _user_page(users, total: int, skip: int, limit: int) -> PaginatedResponse[UserRead]:
    return PaginatedResponse[UserRead](
        items=[UserRead.model_validate(u) for u in users],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.post("", response_model=TenantRead, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    data: TenantCreate, superadmin: CurrentSuperadmin, db: DB, tenants: Tenants
) -> TenantRead:
    """
    Create a tenant.

    New tenants start with no plan and the default user ceiling.
    """
    tenant = await tenants.create_tenant(db, superadmin.id, data)
    return TenantRead.model_validate(tenant)


@router.get("", response_model=PaginatedResponse[TenantRead])
async def list_tenants(
    superadmin: CurrentSuperadmin,
    db: DB,
    tenants: Tenants,
    search: str | None = Query(None, description="Case-insensitive name match"),
    is_active: bool | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
) -> PaginatedResponse[TenantRead]:
    items, total = await tenants.list_tenants(db, search, is_active, skip, limit)
    return PaginatedResponse[TenantRead](
        items=[TenantRead.model_validate(t) for t in items],
        total=total,
        skip=skip,
        limit=limit,
    )


# Current tenant

@router.get("/current", response_model=TenantRead)
async def get_current_tenant(current_user: CurrentUser, db: DB, tenants: Tenants) -> TenantRead:
    tenant = await tenants.get_current_tenant(db, current_user.id)
    return TenantRead.model_validate(tenant)


@router.get("/current/users", response_model=PaginatedResponse[UserRead])
async def get_current_tenant_users(
    current_user: CurrentUser,
    db: DB,
    tenants: Tenants,
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
) -> PaginatedResponse[UserRead]:
    users, total = await tenants.get_current_tenant_users(db, current_user.id, skip, limit)
    return _user_page(users, total, skip, limit)


@router.patch("/current", response_model=TenantRead)
async def update_current_tenant(
    data: TenantUpdate, admin: CurrentTenantAdmin, db: DB, tenants: Tenants
) -> TenantRead:
    tenant = await tenants.update_current_tenant(db, admin.id, data)
    return TenantRead.model_validate(tenant)


@router.put("/current/contact", response_model=TenantRead)
async def update_current_tenant_contact(
    data: TenantContactUpdate, admin: CurrentTenantAdmin, db: DB, tenants: Tenants
) -> TenantRead:
    tenant = await tenants.update_current_tenant_contact(db, admin.id, data)
    return TenantRead.model_validate(tenant)


@router.post("/current/logo", response_model=TenantRead)
async def upload_current_tenant_logo(
    admin: CurrentTenantAdmin,
    db: DB,
    tenants: Tenants,
    store: Store,
    file: UploadFile = File(...),
) -> TenantRead:
    content = await file.read()
    tenant = await tenants.update_current_tenant_logo(
        db, admin.id, content, file.filename or "", store
    )
    return TenantRead.model_validate(tenant)


@router.post("/current/invite", response_model=MessageResponse)
async def invite_to_current_tenant(
    data: InviteByEmail, admin: CurrentTenantAdmin, db: DB, tenants: Tenants
) -> MessageResponse:
    await tenants.invite_user_to_current_tenant(db, admin.id, data.email)
    return MessageResponse(message="User added to tenant")


@router.put("/current/subscription", response_model=TenantRead)
async def update_current_subscription(
    data: SubscriptionUpdate, admin: CurrentTenantAdmin, db: DB, tenants: Tenants
) -> TenantRead:
    tenant = await tenants.update_current_subscription(db, admin.id, data)
    return TenantRead.model_validate(tenant)


@router.delete("/current/users/{user_id}", response_model=MessageResponse)
async def remove_user_from_current_tenant(
    user_id: str, admin: CurrentTenantAdmin, db: DB, tenants: Tenants
) -> MessageResponse:
    await tenants.remove_user_from_current_tenant(db, user_id, admin.id)
    return MessageResponse(message="User removed from tenant")


# Maintenance

@router.delete("/memberships/{user_id}", response_model=MessageResponse)
async def remove_user_from_all_tenants(
    user_id: str, superadmin: CurrentSuperadmin, db: DB, tenants: Tenants
) -> MessageResponse:
    changed = await tenants.remove_user_from_all_tenants(db, user_id, actor_id=superadmin.id)
    return MessageResponse(message=f"User removed from {changed} tenants")


@router.post("/memberships/remove-superadmins", response_model=MessageResponse)
async def remove_superadmins_from_tenants(
    superadmin: CurrentSuperadmin, db: DB, tenants: Tenants
) -> MessageResponse:
    changed = await tenants.remove_superadmin_from_all_tenants(db)
    return MessageResponse(message=f"Deactivated {changed} superadmin memberships")


# Tenant by id

@router.get("/{tenant_id}", response_model=TenantRead)
async def get_tenant(
    tenant_id: str, superadmin: CurrentSuperadmin, db: DB, tenants: Tenants
) -> TenantRead:
    tenant = await tenants.get_tenant(db, tenant_id)
    return TenantRead.model_validate(tenant)


@router.get("/{tenant_id}/details", response_model=TenantReadWithStats)
async def get_tenant_details(
    tenant_id: str, admin: CurrentTenantAdmin, db: DB, tenants: Tenants
) -> TenantReadWithStats:
    tenant, user_count = await tenants.get_tenant_details(db, tenant_id, admin.id)
    details = TenantReadWithStats.model_validate(tenant)
    details.user_count = user_count
    return details


@router.patch("/{tenant_id}", response_model=TenantRead)
async def update_tenant(
    tenant_id: str, data: TenantUpdate, admin: CurrentTenantAdmin, db: DB, tenants: Tenants
) -> TenantRead:
    tenant = await tenants.update_tenant(db, tenant_id, admin.id, data)
    return TenantRead.model_validate(tenant)


@router.put("/{tenant_id}/contact", response_model=TenantRead)
async def update_tenant_contact(
    tenant_id: str,
    data: TenantContactUpdate,
    admin: CurrentTenantAdmin,
    db: DB,
    tenants: Tenants,
) -> TenantRead:
    tenant = await tenants.update_tenant_contact(db, tenant_id, admin.id, data)
    return TenantRead.model_validate(tenant)


@router.post("/{tenant_id}/logo", response_model=TenantRead)
async def upload_tenant_logo(
    tenant_id: str,
    admin: CurrentTenantAdmin,
    db: DB,
    tenants: Tenants,
    store: Store,
    file: UploadFile = File(...),
) -> TenantRead:
    content = await file.read()
    tenant = await tenants.update_tenant_logo(
        db, tenant_id, admin.id, content, file.filename or "", store
    )
    return TenantRead.model_validate(tenant)


@router.put("/{tenant_id}/subscription", response_model=TenantRead)
async def update_subscription(
    tenant_id: str,
    data: SubscriptionUpdate,
    current_user: CurrentUser,
    db: DB,
    tenants: Tenants,
) -> TenantRead:
    """
    Change the plan.

    The service itself checks that the caller is a superadmin.
    """
    tenant = await tenants.update_subscription(db, tenant_id, data)
    return TenantRead.model_validate(tenant)


@router.delete("/{tenant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tenant(
    tenant_id: str, superadmin: CurrentSuperadmin, db: DB, tenants: Tenants
) -> None:
    """Soft delete."""
    await tenants.delete_tenant(db, tenant_id, actor_id=superadmin.id)


@router.get("/{tenant_id}/users", response_model=PaginatedResponse[UserRead])
async def get_tenant_users(
    tenant_id: str,
    admin: CurrentTenantAdmin,
    db: DB,
    tenants: Tenants,
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
) -> PaginatedResponse[UserRead]:
    users, total = await tenants.get_tenant_users(db, tenant_id, skip, limit, actor_id=admin.id)
    return _user_page(users, total, skip, limit)


@router.post("/{tenant_id}/invite", response_model=MessageResponse)
async def superadmin_invite(
    tenant_id: str, data: InviteByUserId, superadmin: CurrentSuperadmin, db: DB, tenants: Tenants
) -> MessageResponse:
    """Add a user by id."""
    await tenants.superadmin_invite_user(db, tenant_id, data.user_id, superadmin.id)
    return MessageResponse(message="User added to tenant")


@router.post("/{tenant_id}/invite-by-email", response_model=MessageResponse)
async def invite_by_email(
    tenant_id: str, data: InviteByEmail, admin: CurrentTenantAdmin, db: DB, tenants: Tenants
) -> MessageResponse:
    if admin.has_role(RoleName.SUPERADMIN):
        await tenants.invite_user_to_tenant(db, tenant_id, data.email, actor_id=admin.id)
    else:
        await tenants.admin_invite_user(db, admin.id, tenant_id, data.email)
    return MessageResponse(message="User added to tenant")


@router.post("/{tenant_id}/users/{user_id}/promote", response_model=UserRead)
async def promote_user(
    tenant_id: str, user_id: str, admin: CurrentTenantAdmin, db: DB, tenants: Tenants
) -> UserRead:
    user = await tenants.promote_to_admin(db, tenant_id, user_id, admin.id)
    return UserRead.model_validate(user)


@router.post("/{tenant_id}/users/{user_id}/demote", response_model=UserRead)
async def demote_user(
    tenant_id: str, user_id: str, admin: CurrentTenantAdmin, db: DB, tenants: Tenants
) -> UserRead:
    user = await tenants.demote_from_admin(db, tenant_id, user_id, admin.id)
    return UserRead.model_validate(user)


@router.delete("/{tenant_id}/users/{user_id}", response_model=MessageResponse)
async def remove_user(
    tenant_id: str, user_id: str, admin: CurrentTenantAdmin, db: DB, tenants: Tenants
) -> MessageResponse:
    await tenants.remove_user_from_tenant(db, tenant_id, user_id, admin.id)
    return MessageResponse(message="User removed from tenant")
