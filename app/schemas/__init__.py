"""
Pydantic schemas package.
"""

from app.schemas.common import (
    BaseSchema,
    ErrorResponse,
    MessageResponse,
    PaginatedResponse,
)
from app.schemas.role import RoleCreate, RoleRead, RoleUpdate
from app.schemas.tenant import TenantCreate, TenantRead, TenantUpdate
from app.schemas.user import UserCreate, UserProfile, UserRead

__all__ = [
    # Common
    "BaseSchema",
    "MessageResponse",
    "ErrorResponse",
    "PaginatedResponse",
    # Role
    "RoleCreate",
    "RoleRead",
    "RoleUpdate",
    # Tenant
    "TenantCreate",
    "TenantRead",
    "TenantUpdate",
    # User
    "UserCreate",
    "UserProfile",
    "UserRead",
]
