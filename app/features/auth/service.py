"""
User identity business logic.

Registration, login, email verification (OTP and link), password reset,
session refresh and logout, profile changes and the superadmin user
management operations.
"""

import logging
from datetime import timedelta

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.core.exceptions import (
    EmailAlreadyInUseError,
    InCooldownPeriodError,
    InvalidEmailError,
    NoPendingEmailError,
    NotAuthorizedError,
    OTPExpiredError,
    OTPNotMatchError,
    PasswordNotMatchError,
    SameEmailError,
    SamePasswordError,
    TokenInvalidError,
    TooManyAttemptsError,
    TooManyResendAttemptsError,
    UpdateUserFailedError,
    UserAlreadyExistError,
    UserAlreadyVerifiedError,
    UsernameAlreadyInUseError,
    UserNotFoundError,
    UserNotVerifiedError,
    VerificationTokenExpiredError,
    VerificationTokenInvalidError,
)
from app.core.metrics import login_attempts_total, otp_verifications_total
from app.core.query_helpers import paginate
from app.core.security import TokenService, hash_password, token_expiry, verify_password
from app.core.timeutils import ensure_utc, utc_now
from app.core.verification import (
    build_password_reset_link,
    build_verification_link,
    generate_otp,
    generate_verification_token,
    is_expired,
    is_valid_email,
)
from app.features.audit.sink import AuditAction, AuditSink
from app.features.auth.schemas import TokenResponse
from app.features.notifications.email import EmailDispatcher
from app.features.notifications.storage import FileStore
from app.features.notifications.templates import (
    email_change_otp_email,
    password_reset_email,
    verification_email,
)
from app.features.roles.service import RoleRegistry
from app.features.tenants.membership import TenantMembershipStore
from app.models.role import RoleName
from app.models.tenant import Tenant
from app.models.user import User, UserStatus
from app.schemas.user import AdminUserCreate, ProfileUpdate, UserCreate, UserDataUpdate

logger = logging.getLogger(__name__)

ENTITY_USER = "user"


class UserIdentityService:
    """Identity operations; every dependency is passed in."""

    def __init__(
        self,
        tokens: TokenService,
        roles: RoleRegistry,
        memberships: TenantMembershipStore,
        email: EmailDispatcher,
        audit: AuditSink,
        config: Settings,
    ):
        self.tokens = tokens
        self.roles = roles
        self.memberships = memberships
        self.email = email
        self.audit = audit
        self.config = config

    # Configured lifetimes

    @property
    def access_ttl(self) -> timedelta:
        return timedelta(hours=self.config.access_token_expire_hours)

    @property
    def refresh_ttl(self) -> timedelta:
        return timedelta(days=self.config.refresh_token_expire_days)

    @property
    def otp_ttl(self) -> timedelta:
        return timedelta(minutes=self.config.otp_expiry_minutes)

    @property
    def link_ttl(self) -> timedelta:
        return timedelta(hours=self.config.verification_token_expiry_hours)

    # Lookups

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: str, for_update: bool = False) -> User:
        """
        Load a user that has not been soft-deleted.

        Raises:
            UserNotFoundError: no such user
        """
        query = select(User).where(User.id == user_id, User.deleted_at.is_(None))
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        user = result.scalar_one_or_none()
        if not user:
            raise UserNotFoundError(details={"user_id": user_id})
        return user

    @staticmethod
    async def get_user_by_email(db: AsyncSession, email: str, for_update: bool = False) -> User:
        query = select(User).where(User.email == email, User.deleted_at.is_(None))
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        user = result.scalar_one_or_none()
        if not user:
            raise UserNotFoundError(details={"email": email})
        return user

    @staticmethod
    async def _identity_taken(
        db: AsyncSession, email: str, username: str | None = None, exclude_id: str | None = None
    ) -> bool:
        conditions = [User.email == email]
        if username:
            conditions.append(User.username == username)
        query = select(User.id).where(or_(*conditions))
        if exclude_id:
            query = query.where(User.id != exclude_id)
        result = await db.execute(query)
        return result.first() is not None

    def _issue_verification(self, user: User) -> None:
        """Replace any outstanding OTP and link token with a fresh pair."""
        now = utc_now()
        user.otp_code = generate_otp()
        user.otp_created_at = now
        user.otp_attempt_count = 0
        user.verification_token = generate_verification_token()
        user.verification_token_created_at = now

    def _send_verification(self, user: User) -> None:
        link = build_verification_link(
            self.config.frontend_url, user.verification_token, user.email
        )
        self.email.dispatch(
            user.email,
            "Verify your email",
            verification_email(user.full_name, user.otp_code, link),
        )

    @staticmethod
    def _mark_verified(user: User) -> None:
        user.is_verified = True
        user.status = UserStatus.ACTIVE
        user.otp_code = None
        user.otp_created_at = None
        user.otp_attempt_count = 0
        user.verification_token = None
        user.verification_token_created_at = None

    # Registration and login

    async def register(self, db: AsyncSession, data: UserCreate) -> User:
        """
        Register a pending user and send the verification code.

        Email delivery is queued; a failed send does not undo registration.

        Raises:
            InvalidEmailError: address does not match the email pattern
            UserAlreadyExistError: email or username taken
        """
        if not is_valid_email(data.email):
            raise InvalidEmailError(details={"email": data.email})

        if await self._identity_taken(db, data.email, data.username):
            raise UserAlreadyExistError(details={"email": data.email, "username": data.username})

        role = await self.roles.get_by_name(db, RoleName.USER)
        user = User(
            email=data.email,
            username=data.username,
            full_name=data.full_name,
            hashed_password=hash_password(data.password),
            role=role,
            status=UserStatus.PENDING,
            is_verified=False,
        )
        self._issue_verification(user)
        db.add(user)
        await db.commit()

        logger.info(f"User registered: {user.email} (ID: {user.id})")
        self._send_verification(user)
        self.audit.log_activity(
            user.id, None, ENTITY_USER, user.id, AuditAction.CREATE,
            new_value={"email": user.email, "username": user.username},
        )
        return user

    def generate_tokens(self, user: User) -> TokenResponse:
        """Mint an access/refresh pair for a user."""
        return TokenResponse(
            access_token=self.tokens.create_access_token(
                user.id, user.role_id, user.role_name, self.access_ttl
            ),
            refresh_token=self.tokens.create_refresh_token(user.id, self.refresh_ttl),
            token_type="bearer",
            expires_in=int(self.access_ttl.total_seconds()),
        )

    async def login(
        self,
        db: AsyncSession,
        identifier: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> tuple[User, TokenResponse]:
        """
        Authenticate by email or username and persist a new session.

        Raises:
            UserNotFoundError: no user with that email or username
            PasswordNotMatchError: wrong password
            UserNotVerifiedError: email not verified yet
        """
        result = await db.execute(
            select(User).where(
                or_(User.email == identifier, User.username == identifier),
                User.deleted_at.is_(None),
            )
        )
        user = result.scalar_one_or_none()

        if not user:
            logger.warning(f"Login attempt for non-existent user: {identifier}")
            login_attempts_total.labels(outcome="not_found").inc()
            raise UserNotFoundError()

        if not verify_password(password, user.hashed_password):
            logger.warning(f"Failed login attempt for user: {user.email}")
            login_attempts_total.labels(outcome="bad_password").inc()
            raise PasswordNotMatchError()

        if not user.is_verified:
            logger.info(f"Login attempt for unverified user: {user.email}")
            login_attempts_total.labels(outcome="unverified").inc()
            raise UserNotVerifiedError(details={"email": user.email})

        tokens = self.generate_tokens(user)
        user.access_token = tokens.access_token
        user.refresh_token = tokens.refresh_token
        user.token_created_at = utc_now()
        user.token_expiry = token_expiry(self.access_ttl)
        await db.commit()

        login_attempts_total.labels(outcome="success").inc()
        logger.info(f"User authenticated successfully: {user.email}")
        self.audit.log_activity(
            user.id, None, ENTITY_USER, user.id, AuditAction.LOGIN,
            ip_address=ip_address, user_agent=user_agent,
        )
        return user, tokens

    async def refresh_token(self, db: AsyncSession, refresh_token: str) -> TokenResponse:
        """
        Exchange a refresh token for a new access token.

        Raises:
            TokenInvalidError: token malformed, revoked or no longer on record
            TokenExpiredError: token expired
            UserNotFoundError: user no longer exists
        """
        claims = self.tokens.parse_refresh_token(refresh_token)
        user = await self.get_user_by_id(db, claims.user_id)

        if user.refresh_token != refresh_token:
            raise TokenInvalidError("Refresh token is no longer valid")
        if await self.tokens.is_token_revoked(user.id, claims.issued_at_us):
            raise TokenInvalidError("Refresh token has been revoked")

        access_token = self.tokens.create_access_token(
            user.id, user.role_id, user.role_name, self.access_ttl
        )
        user.access_token = access_token
        user.token_created_at = utc_now()
        user.token_expiry = token_expiry(self.access_ttl)
        await db.commit()

        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
            expires_in=int(self.access_ttl.total_seconds()),
        )

    async def logout(self, db: AsyncSession, user_id: str) -> None:
        """Revoke outstanding tokens and forget the stored session."""
        user = await self.get_user_by_id(db, user_id)
        await self.tokens.blacklist_user_tokens(user.id, self.refresh_ttl)

        user.access_token = None
        user.refresh_token = None
        user.token_expiry = None
        user.token_created_at = None
        await db.commit()

        logger.info(f"User logged out: {user.email}")
        self.audit.log_activity(user.id, None, ENTITY_USER, user.id, AuditAction.LOGOUT)

    # Email verification

    async def verify_email(self, db: AsyncSession, email: str, otp: str) -> User:
        """
        Verify an email address with the OTP code.

        The attempt counter is checked before the code is compared and is
        persisted even when the comparison then fails.

        Raises:
            TooManyAttemptsError: attempt limit reached; a new code is needed
            OTPExpiredError: code older than the OTP lifetime
            OTPNotMatchError: wrong code
        """
        user = await self.get_user_by_email(db, email, for_update=True)
        if user.is_verified:
            return user

        if user.otp_attempt_count >= self.config.max_otp_attempts:
            otp_verifications_total.labels(outcome="too_many_attempts").inc()
            raise TooManyAttemptsError(details={"attempts": user.otp_attempt_count})

        user.otp_attempt_count += 1
        await db.commit()

        if is_expired(user.otp_created_at, self.otp_ttl):
            otp_verifications_total.labels(outcome="expired").inc()
            raise OTPExpiredError()

        if not user.otp_code or user.otp_code != otp.strip().upper():
            otp_verifications_total.labels(outcome="mismatch").inc()
            raise OTPNotMatchError(
                details={"attempts_left": self.config.max_otp_attempts - user.otp_attempt_count}
            )

        self._mark_verified(user)
        await db.commit()

        otp_verifications_total.labels(outcome="success").inc()
        logger.info(f"Email verified by OTP: {user.email}")
        return user

    async def verify_email_by_link(self, db: AsyncSession, email: str, token: str) -> User:
        """
        Verify an email address from the link token.

        Raises:
            VerificationTokenInvalidError: token does not match the outstanding one
            VerificationTokenExpiredError: token older than the link lifetime
        """
        user = await self.get_user_by_email(db, email, for_update=True)
        if user.is_verified:
            return user

        if not user.verification_token or user.verification_token != token:
            raise VerificationTokenInvalidError()
        if is_expired(user.verification_token_created_at, self.link_ttl):
            raise VerificationTokenExpiredError()

        self._mark_verified(user)
        await db.commit()

        logger.info(f"Email verified by link: {user.email}")
        return user

    async def resend_verification(self, db: AsyncSession, email: str) -> None:
        """
        Send a fresh OTP and link.

        After max_resend_attempts sends the account enters a cooldown and
        the counter starts over once it has passed.

        Raises:
            UserAlreadyVerifiedError: nothing to verify
            InCooldownPeriodError: cooldown still running
            TooManyResendAttemptsError: limit reached, cooldown started now
        """
        user = await self.get_user_by_email(db, email, for_update=True)
        if user.is_verified:
            raise UserAlreadyVerifiedError()

        now = utc_now()
        cooldown = timedelta(minutes=self.config.resend_cooldown_minutes)
        cooldown_started_at = ensure_utc(user.cooldown_started_at)
        if cooldown_started_at is not None:
            remaining = cooldown_started_at + cooldown - now
            if remaining > timedelta(0):
                minutes = int(remaining.total_seconds() // 60) + 1
                raise InCooldownPeriodError(
                    f"Too many resend attempts, try again in {minutes} minutes",
                    details={"remaining_minutes": minutes},
                )
            user.cooldown_started_at = None

        if user.resend_count >= self.config.max_resend_attempts:
            user.cooldown_started_at = now
            user.resend_count = 0
            await db.commit()
            logger.warning(f"Verification resend cooldown started for {user.email}")
            raise TooManyResendAttemptsError(
                details={"cooldown_minutes": self.config.resend_cooldown_minutes}
            )

        self._issue_verification(user)
        user.resend_count += 1
        user.last_resend_at = now
        await db.commit()

        self._send_verification(user)
        logger.info(f"Verification resent to {user.email} ({user.resend_count} sends)")

    async def verify_email_by_id(self, db: AsyncSession, user_id: str) -> User:
        """Mark a user verified without a code (superadmin action)."""
        user = await self.get_user_by_id(db, user_id, for_update=True)
        if user.is_verified:
            raise UserAlreadyVerifiedError()
        self._mark_verified(user)
        await db.commit()
        return user

    # Password reset

    async def forgot_password(self, db: AsyncSession, email: str) -> None:
        """Email a one-hour password reset link."""
        user = await self.get_user_by_email(db, email)
        token = self.tokens.create_password_reset_token(
            user.email, timedelta(hours=self.config.password_reset_token_expire_hours)
        )
        link = build_password_reset_link(self.config.frontend_url, token)
        self.email.dispatch(
            user.email, "Reset your password", password_reset_email(user.full_name, link)
        )
        logger.info(f"Password reset requested for {user.email}")

    async def reset_password(self, db: AsyncSession, token: str, new_password: str) -> None:
        """
        Set a new password from a reset token.

        Raises:
            TokenInvalidError: token malformed or of another kind
            TokenExpiredError: token expired
            SamePasswordError: new password equals the current one
        """
        email = self.tokens.parse_password_reset_token(token)
        user = await self.get_user_by_email(db, email, for_update=True)

        if verify_password(new_password, user.hashed_password):
            raise SamePasswordError()

        user.hashed_password = hash_password(new_password)
        await db.commit()
        await self.tokens.blacklist_user_tokens(user.id, self.refresh_ttl)
        logger.info(f"Password reset for {user.email}")

    # Profile

    async def get_profile(self, db: AsyncSession, user_id: str) -> tuple[User, Tenant | None]:
        """The user and their current tenant, if they have one."""
        user = await self.get_user_by_id(db, user_id)
        tenants = await self.memberships.get_active_tenants_for_user(db, user.id)
        return user, tenants[0] if tenants else None

    async def update_user_profile(
        self, db: AsyncSession, user_id: str, data: ProfileUpdate
    ) -> User:
        """Update the caller's own full name under a row lock."""
        user = await self.get_user_by_id(db, user_id, for_update=True)
        old_name = user.full_name
        user.full_name = data.full_name
        await db.commit()

        logger.info(f"Profile updated for user {user.id}")
        self.audit.log_activity(
            user.id, None, ENTITY_USER, user.id, AuditAction.UPDATE,
            old_value={"full_name": old_name}, new_value={"full_name": user.full_name},
        )
        return user

    async def update_user_email(self, db: AsyncSession, user_id: str, new_email: str) -> User:
        """
        Change the user's email address.

        ADMIN and SUPERADMIN addresses change immediately. A USER gets an
        OTP at the new address and the change waits in pending_email.

        Raises:
            InvalidEmailError: bad address
            SameEmailError: new address equals the current one
            UserAlreadyExistError: address used by another account
        """
        if not is_valid_email(new_email):
            raise InvalidEmailError(details={"email": new_email})

        user = await self.get_user_by_id(db, user_id, for_update=True)
        if new_email == user.email:
            raise SameEmailError()
        if await self._identity_taken(db, new_email, exclude_id=user.id):
            raise UserAlreadyExistError(details={"email": new_email})

        old_email = user.email
        if not user.has_role(RoleName.USER):
            user.email = new_email
            user.pending_email = None
            await db.commit()
            logger.info(f"Email changed for user {user.id}")
            self.audit.log_activity(
                user.id, None, ENTITY_USER, user.id, AuditAction.UPDATE,
                old_value={"email": old_email}, new_value={"email": new_email},
            )
            return user

        user.pending_email = new_email
        user.otp_code = generate_otp()
        user.otp_created_at = utc_now()
        user.otp_attempt_count = 0
        await db.commit()

        self.email.dispatch(
            new_email,
            "Confirm your new email",
            email_change_otp_email(user.full_name, user.otp_code),
        )
        logger.info(f"Email change pending for user {user.id}")
        return user

    async def verify_email_update(self, db: AsyncSession, user_id: str, otp: str) -> User:
        """
        Confirm a pending email change with its OTP.

        Raises:
            NoPendingEmailError: no change waiting
            TooManyAttemptsError, OTPExpiredError, OTPNotMatchError: as for verify_email
            UserAlreadyExistError: address taken while the change was pending
        """
        user = await self.get_user_by_id(db, user_id, for_update=True)
        if not user.pending_email:
            raise NoPendingEmailError()

        if user.otp_attempt_count >= self.config.max_otp_attempts:
            raise TooManyAttemptsError(details={"attempts": user.otp_attempt_count})

        user.otp_attempt_count += 1
        await db.commit()

        if is_expired(user.otp_created_at, self.otp_ttl):
            raise OTPExpiredError()
        if not user.otp_code or user.otp_code != otp.strip().upper():
            raise OTPNotMatchError(
                details={"attempts_left": self.config.max_otp_attempts - user.otp_attempt_count}
            )
        if await self._identity_taken(db, user.pending_email, exclude_id=user.id):
            raise UserAlreadyExistError(details={"email": user.pending_email})

        old_email = user.email
        user.email = user.pending_email
        user.pending_email = None
        user.otp_code = None
        user.otp_created_at = None
        user.otp_attempt_count = 0
        await db.commit()

        logger.info(f"Email change confirmed for user {user.id}")
        self.audit.log_activity(
            user.id, None, ENTITY_USER, user.id, AuditAction.UPDATE,
            old_value={"email": old_email}, new_value={"email": user.email},
        )
        return user

    async def update_profile_image(
        self,
        db: AsyncSession,
        user_id: str,
        content: bytes,
        filename: str,
        store: FileStore,
    ) -> User:
        user = await self.get_user_by_id(db, user_id)
        previous = user.profile_image_url
        user.profile_image_url = await store.upload(content, "profiles", filename)
        await db.commit()

        if previous:
            try:
                await store.delete(previous)
            except OSError as e:
                logger.warning(f"Could not delete previous profile image {previous}: {e}")
        return user

    # User management (superadmin)

    async def list_users(
        self,
        db: AsyncSession,
        search: str | None = None,
        role_id: str | None = None,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[list[User], int]:
        query = select(User).where(User.deleted_at.is_(None))
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    User.email.ilike(pattern),
                    User.username.ilike(pattern),
                    User.full_name.ilike(pattern),
                )
            )
        if role_id:
            query = query.where(User.role_id == role_id)
        return await paginate(db, query.order_by(User.created_at.desc()), skip, limit)

    async def create_user_by_admin(
        self, db: AsyncSession, data: AdminUserCreate, actor_id: str | None = None
    ) -> User:
        """
        Create a user directly.

        Raises:
            InvalidEmailError, UserAlreadyExistError: as for register
            RoleNotFoundError: unknown role_id
        """
        if not is_valid_email(data.email):
            raise InvalidEmailError(details={"email": data.email})
        if await self._identity_taken(db, data.email, data.username):
            raise UserAlreadyExistError(details={"email": data.email, "username": data.username})

        if data.role_id:
            role = await self.roles.get_by_id(db, data.role_id)
        else:
            role = await self.roles.get_by_name(db, RoleName.USER)

        user = User(
            email=data.email,
            username=data.username,
            full_name=data.full_name,
            hashed_password=hash_password(data.password),
            role=role,
            is_verified=data.is_verified,
            status=UserStatus.ACTIVE if data.is_verified else UserStatus.PENDING,
        )
        if not data.is_verified:
            self._issue_verification(user)
        db.add(user)
        await db.commit()

        if not data.is_verified:
            self._send_verification(user)

        logger.info(f"User created by admin: {user.email} (ID: {user.id})")
        self.audit.log_activity(
            actor_id, None, ENTITY_USER, user.id, AuditAction.CREATE,
            new_value={"email": user.email, "role": role.name},
        )
        return user

    async def update_user_data(
        self, db: AsyncSession, actor_id: str, user_id: str, data: UserDataUpdate
    ) -> User:
        """
        Edit another user's data.

        Raises:
            NotAuthorizedError: actor is not SUPERADMIN
            InvalidEmailError: bad address
            EmailAlreadyInUseError: email used by another account
            UsernameAlreadyInUseError: username used by another account
        """
        actor = await self.get_user_by_id(db, actor_id)
        if not actor.has_role(RoleName.SUPERADMIN):
            raise NotAuthorizedError("Only a superadmin can edit user data")

        user = await self.get_user_by_id(db, user_id, for_update=True)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        if "email" in changes and changes["email"] != user.email:
            if not is_valid_email(changes["email"]):
                raise InvalidEmailError(details={"email": changes["email"]})
            result = await db.execute(
                select(User.id).where(User.email == changes["email"], User.id != user.id)
            )
            if result.first() is not None:
                raise EmailAlreadyInUseError(details={"email": changes["email"]})

        if "username" in changes and changes["username"] != user.username:
            result = await db.execute(
                select(User.id).where(User.username == changes["username"], User.id != user.id)
            )
            if result.first() is not None:
                raise UsernameAlreadyInUseError(details={"username": changes["username"]})

        old = {field: getattr(user, field) for field in changes}
        for field, value in changes.items():
            setattr(user, field, value)
        await db.commit()

        self.audit.log_activity(
            actor.id, None, ENTITY_USER, user.id, AuditAction.UPDATE,
            old_value=old, new_value=changes,
        )
        return user

    async def change_user_role(
        self, db: AsyncSession, user_id: str, role_id: str, actor_id: str | None = None
    ) -> User:
        """
        Assign a new role.

        The user row is locked, updated with a direct UPDATE and re-read
        after commit to confirm the change. A user promoted to SUPERADMIN
        leaves every tenant in the same transaction.

        Raises:
            RoleNotFoundError: unknown role
            UpdateUserFailedError: the re-read row does not carry the new role
        """
        user = await self.get_user_by_id(db, user_id, for_update=True)
        role = await self.roles.get_by_id(db, role_id)
        old_role = user.role_name

        await db.execute(
            update(User)
            .where(User.id == user.id)
            .values(role_id=role.id, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if role.name == RoleName.SUPERADMIN:
            await self.memberships.deactivate_all_for_user(db, user.id)
        await db.commit()

        result = await db.execute(
            select(User).where(User.id == user.id).execution_options(populate_existing=True)
        )
        user = result.scalar_one()
        if user.role_id != role.id:
            logger.error(f"Role change for user {user.id} did not persist")
            raise UpdateUserFailedError(details={"user_id": user.id, "role_id": role.id})

        logger.info(f"User {user.id} role changed {old_role} -> {role.name}")
        self.audit.log_activity(
            actor_id, None, ENTITY_USER, user.id, AuditAction.ROLE_CHANGE,
            old_value={"role": old_role}, new_value={"role": role.name},
        )
        return user

    async def delete_user(self, db: AsyncSession, user_id: str, actor_id: str | None = None) -> None:
        """Soft delete: set deleted_at, leave every tenant, revoke tokens."""
        user = await self.get_user_by_id(db, user_id)
        user.deleted_at = utc_now()
        user.access_token = None
        user.refresh_token = None
        await self.memberships.deactivate_all_for_user(db, user.id)
        await db.commit()

        await self.tokens.blacklist_user_tokens(user.id, self.refresh_ttl)
        logger.info(f"User soft-deleted: {user.id}")
        self.audit.log_activity(
            actor_id, None, ENTITY_USER, user.id, AuditAction.DELETE,
            new_value={"deleted_at": user.deleted_at},
        )

    async def hard_delete_user(self, db: AsyncSession, user_id: str, actor_id: str | None = None) -> None:
        """Remove the user row; memberships go with it."""
        result = await db.execute(select(User.id).where(User.id == user_id))
        if result.first() is None:
            raise UserNotFoundError(details={"user_id": user_id})

        await db.execute(delete(User).where(User.id == user_id))
        await db.commit()

        await self.tokens.blacklist_user_tokens(user_id, self.refresh_ttl)
        logger.info(f"User hard-deleted: {user_id}")
        self.audit.log_activity(actor_id, None, ENTITY_USER, user_id, AuditAction.DELETE)
