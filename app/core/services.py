"""
Application-wide service instances.

Each getter builds its object once; FastAPI routes depend on the getters
so tests can swap any of them through app.dependency_overrides.
"""

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.background import background_queue
from app.core.cache import cache_manager
from app.core.database import db_manager
from app.core.security import TokenConfig, TokenService
from app.features.audit.sink import AuditSink
from app.features.auth.service import UserIdentityService
from app.features.notifications.email import EmailDispatcher, get_email_sender
from app.features.notifications.storage import FileStore, get_file_store
from app.features.roles.service import RoleRegistry, role_registry
from app.features.tenants.membership import membership_store
from app.features.tenants.service import TenantService


def _audit_session() -> AsyncSession:
    return db_manager.session_factory()


@lru_cache
def get_token_service() -> TokenService:
    """Token service backed by the Redis cache for revocation."""
    return TokenService(TokenConfig.from_settings(settings), cache_manager)


@lru_cache
def get_email_dispatcher() -> EmailDispatcher:
    return EmailDispatcher(get_email_sender(), background_queue)


@lru_cache
def get_audit_sink() -> AuditSink:
    return AuditSink(background_queue, _audit_session)


@lru_cache
def get_file_store_instance() -> FileStore:
    return get_file_store()


def get_role_registry() -> RoleRegistry:
    return role_registry


@lru_cache
def get_tenant_service() -> TenantService:
    return TenantService(
        memberships=membership_store,
        roles=role_registry,
        email=get_email_dispatcher(),
        audit=get_audit_sink(),
    )


@lru_cache
def get_identity_service() -> UserIdentityService:
    return UserIdentityService(
        tokens=get_token_service(),
        roles=role_registry,
        memberships=membership_store,
        email=get_email_dispatcher(),
        audit=get_audit_sink(),
        config=settings,
    )
