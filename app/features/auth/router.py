"""
Authentication endpoints.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import UserNotVerifiedError
from app.core.services import get_file_store_instance, get_identity_service
from app.features.auth.dependencies import CurrentUser
from app.features.auth.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    RegisterResponse,
    ResendVerificationRequest,
    ResetPasswordRequest,
    TokenResponse,
    VerifyEmailRequest,
)
from app.features.auth.service import UserIdentityService
from app.features.notifications.storage import FileStore
from app.schemas.common import MessageResponse
from app.schemas.tenant import TenantRead
from app.schemas.user import (
    EmailUpdateRequest,
    EmailUpdateVerifyRequest,
    ProfileUpdate,
    UserCreate,
    UserProfile,
    UserRead,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

Identity = Annotated[UserIdentityService, Depends(get_identity_service)]
DB = Annotated[AsyncSession, Depends(get_db)]


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: DB, identity: Identity) -> RegisterResponse:
    """
    Register a new user.

    Requirements:
    - Valid email format
    - Unique email and username
    - Strong password (8+ chars, upper, lower, digit)

    A verification code and link are emailed to the new address.
    """
    user = await identity.register(db, user_data)
    return RegisterResponse(user=UserRead.model_validate(user))


@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: LoginRequest,
    request: Request,
    db: DB,
    identity: Identity,
) -> LoginResponse:
    """
    Login with email or username.

    An unverified account is not an error here: the response carries
    is_verified=false and no tokens.
    """
    try:
        user, tokens = await identity.login(
            db,
            login_data.identifier,
            login_data.password,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )
    except UserNotVerifiedError as e:
        return LoginResponse(is_verified=False, message=e.message)

    return LoginResponse(
        is_verified=True,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        expires_in=tokens.expires_in,
        user=UserRead.model_validate(user),
    )


@router.post("/verify-email", response_model=UserRead)
async def verify_email(data: VerifyEmailRequest, db: DB, identity: Identity) -> UserRead:
    """Verify an email address with the emailed OTP code."""
    user = await identity.verify_email(db, data.email, data.otp)
    return UserRead.model_validate(user)


@router.get("/verify-email/link", response_model=UserRead)
async def verify_email_link(email: str, token: str, db: DB, identity: Identity) -> UserRead:
    """Target of the verification link."""
    user = await identity.verify_email_by_link(db, email, token)
    return UserRead.model_validate(user)


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(
    data: ResendVerificationRequest, db: DB, identity: Identity
) -> MessageResponse:
    await identity.resend_verification(db, data.email)
    return MessageResponse(message="Verification email sent")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    data: ForgotPasswordRequest, db: DB, identity: Identity
) -> MessageResponse:
    await identity.forgot_password(db, data.email)
    return MessageResponse(message="Password reset email sent")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    data: ResetPasswordRequest, db: DB, identity: Identity
) -> MessageResponse:
    await identity.reset_password(db, data.token, data.new_password)
    return MessageResponse(message="Password has been reset")


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    refresh_data: RefreshTokenRequest, db: DB, identity: Identity
) -> TokenResponse:
    """
    Refresh access token using refresh token.

    The refresh token must be the one stored at the last login.
    """
    return await identity.refresh_token(db, refresh_data.refresh_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(current_user: CurrentUser, db: DB, identity: Identity) -> MessageResponse:
    await identity.logout(db, current_user.id)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserProfile)
async def get_current_user_info(
    current_user: CurrentUser, db: DB, identity: Identity
) -> UserProfile:
    """Current user with their tenant, if any."""
    user, tenant = await identity.get_profile(db, current_user.id)
    profile = UserProfile.model_validate(user)
    profile.tenant = TenantRead.model_validate(tenant) if tenant else None
    return profile


@router.patch("/me", response_model=UserRead)
async def update_profile(
    data: ProfileUpdate, current_user: CurrentUser, db: DB, identity: Identity
) -> UserRead:
    user = await identity.update_user_profile(db, current_user.id, data)
    return UserRead.model_validate(user)


@router.post("/me/email", response_model=UserRead)
async def request_email_update(
    data: EmailUpdateRequest, current_user: CurrentUser, db: DB, identity: Identity
) -> UserRead:
    """Change email; a USER confirms the new address with an OTP first."""
    user = await identity.update_user_email(db, current_user.id, data.new_email)
    return UserRead.model_validate(user)


@router.post("/me/email/verify", response_model=UserRead)
async def verify_email_update(
    data: EmailUpdateVerifyRequest, current_user: CurrentUser, db: DB, identity: Identity
) -> UserRead:
    user = await identity.verify_email_update(db, current_user.id, data.otp)
    return UserRead.model_validate(user)


@router.post("/me/profile-image", response_model=UserRead)
async def upload_profile_image(
    current_user: CurrentUser,
    db: DB,
    identity: Identity,
    store: Annotated[FileStore, Depends(get_file_store_instance)],
    file: UploadFile = File(...),
) -> UserRead:
    content = await file.read()
    user = await identity.update_profile_image(
        db, current_user.id, content, file.filename or "", store
    )
    return UserRead.model_validate(user)
