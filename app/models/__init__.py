"""
Database models package.
"""

from app.core.database import Base
from app.models.base import BaseModel
from app.models.role import Role, RoleName
from app.models.tenant import Tenant
from app.models.user import User, UserStatus
from app.models.user_tenant import UserTenant
from app.models.audit_log import AuditLog

__all__ = [
    "Base",
    "BaseModel",
    "Role",
    "RoleName",
    "Tenant",
    "User",
    "UserStatus",
    "UserTenant",
    "AuditLog",
]
