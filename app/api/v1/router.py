"""
API v1 router aggregator.

All v1 routes are registered here.
"""

from fastapi import APIRouter

from app.features.auth.router import router as auth_router
from app.features.roles.router import router as roles_router
from app.features.tenants.router import router as tenants_router
from app.features.users.router import router as users_router
from app.schemas.common import ErrorResponse

# Error bodies shared by every v1 route
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    401: {"model": ErrorResponse, "description": "Not authenticated"},
    403: {"model": ErrorResponse, "description": "Not allowed"},
    404: {"model": ErrorResponse, "description": "Not found"},
    409: {"model": ErrorResponse, "description": "Conflicts with existing data"},
    429: {"model": ErrorResponse, "description": "Too many attempts"},
}

v1_router = APIRouter(prefix="/v1", responses=ERROR_RESPONSES)

v1_router.include_router(auth_router)
v1_router.include_router(users_router)
v1_router.include_router(roles_router)
v1_router.include_router(tenants_router)
