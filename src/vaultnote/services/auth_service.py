"""Service layer for registration, login and account management."""

import datetime
import hmac
import logging
from typing import Callable, List, Optional, Tuple

from vaultnote.exceptions import (BadRequestError, ConflictError, ErrorCode,
                                  ForbiddenError, MailDeliveryError,
                                  UnauthorizedError, UserNotFoundError)
from vaultnote.models.schema import (ADMIN_USER_ID, AuthResult, PublicUser,
                                     Role, User, utc_now)
from vaultnote.observability import traced
from vaultnote.services.mailer import Mailer
from vaultnote.services.security import (PasswordHasher, TokenService,
                                         generate_verification_code)
from vaultnote.storage.user_repository import UserRepository

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 2
MIN_PASSWORD_LENGTH = 8


class AuthService:
    """Registration with emailed verification codes, login and account changes.

    Settings (token signer, mailer, code lifetime, admin override) are
    passed in once at construction; nothing here reads global config.
    """

    def __init__(
        self,
        users: UserRepository,
        hasher: PasswordHasher,
        tokens: TokenService,
        mailer: Mailer,
        code_ttl: datetime.timedelta = datetime.timedelta(minutes=10),
        admin_credential: Optional[Tuple[str, str]] = None,
        clock: Callable[[], datetime.datetime] = utc_now,
    ):
        """Initialize the service.

        Args:
            users: User storage.
            hasher: Password/code digest capability.
            tokens: Session token signer.
            mailer: Verification code delivery.
            code_ttl: How long a verification code stays valid.
            admin_credential: (email, password) pair that yields an admin
                token without a user row. None disables the override.
            clock: Source of the current UTC time.
        """
        self.users = users
        self.hasher = hasher
        self.tokens = tokens
        self.mailer = mailer
        self.code_ttl = code_ttl
        self._admin_credential = admin_credential
        self._clock = clock

    @classmethod
    def from_config(cls, settings, users: UserRepository, mailer: Mailer) -> "AuthService":
        """Build the service from a VaultNoteConfig."""
        admin_credential = None
        if settings.admin_override_enabled:
            admin_credential = (settings.admin_login_email, settings.admin_login_password)
        return cls(
            users=users,
            hasher=PasswordHasher(iterations=settings.password_hash_iterations),
            tokens=TokenService(
                settings.jwt_secret,
                algorithm=settings.jwt_algorithm,
                ttl=datetime.timedelta(days=settings.token_ttl_days),
            ),
            mailer=mailer,
            code_ttl=datetime.timedelta(minutes=settings.verification_code_ttl_minutes),
            admin_credential=admin_credential,
        )

    @property
    def code_ttl_minutes(self) -> int:
        return int(self.code_ttl.total_seconds() // 60)

    def _issue_user_token(self, user: User) -> AuthResult:
        return AuthResult(
            token=self.tokens.issue(user.id, Role.USER),
            role=Role.USER,
            user=user.to_public(),
        )

    def _send_code(self, user: User, code: str) -> None:
        try:
            self.mailer.send_verification_code(user.email, code, self.code_ttl_minutes)
        except MailDeliveryError:
            # The user row stays; a new code can be requested via resend_verification
            logger.error(f"Verification email for user {user.id} was not delivered")
            raise

    @traced("register")
    def register(self, username: Optional[str], email: Optional[str], password: Optional[str]) -> PublicUser:
        """Create an unverified user and email them a verification code.

        Raises:
            BadRequestError: If a field is missing.
            ConflictError: If the email or username is already registered.
            MailDeliveryError: If the code could not be sent. The user row
                is kept.
        """
        username = (username or "").strip()
        email = (email or "").strip()
        if not username or not email or not password:
            raise BadRequestError("username, email and password required")

        if self.users.get_by_email(email) is not None:
            raise ConflictError(
                "email already registered", code=ErrorCode.EMAIL_ALREADY_REGISTERED
            )
        if self.users.get_by_username(username) is not None:
            raise ConflictError("username already taken", code=ErrorCode.USERNAME_TAKEN)

        code = generate_verification_code()
        user = self.users.create(
            username=username,
            email=email,
            password_hash=self.hasher.hash(password),
            verification_code_hash=self.hasher.hash(code),
            verification_expires_at=self._clock() + self.code_ttl,
        )
        self._send_code(user, code)
        return user.to_public()

    @traced("resend_verification")
    def resend_verification(self, email: Optional[str]) -> str:
        """Issue a fresh code for an account that is still unverified."""
        email = (email or "").strip()
        if not email:
            raise BadRequestError("email required", field="email")

        user = self.users.get_by_email(email)
        if user is None:
            raise UserNotFoundError()
        if user.is_verified:
            return "email already verified"

        code = generate_verification_code()
        user = self.users.set_verification(
            user.id, self.hasher.hash(code), self._clock() + self.code_ttl
        )
        self._send_code(user, code)
        return "verification code sent"

    @traced("verify_email")
    def verify_email(self, email: Optional[str], code: Optional[str]) -> Optional[AuthResult]:
        """Confirm an email address with its code and issue a session token.

        Returns:
            The token result, or None when the account was already verified
            (no token is reissued; the caller must log in).

        Raises:
            BadRequestError: Missing fields, no pending code, or code expired.
            UserNotFoundError: Unknown email.
            UnauthorizedError: Code does not match.
        """
        email = (email or "").strip()
        code = str(code).strip() if code is not None else ""
        if not email or not code:
            raise BadRequestError("email and code required")

        user = self.users.get_by_email(email)
        if user is None:
            raise UserNotFoundError()
        if user.is_verified:
            return None
        if not user.has_pending_verification:
            raise BadRequestError(
                "no verification pending", code=ErrorCode.VERIFICATION_NOT_PENDING
            )
        if self._clock() > user.verification_expires_at:
            raise BadRequestError("code expired", code=ErrorCode.VERIFICATION_CODE_EXPIRED)
        if not self.hasher.verify(code, user.verification_code_hash):
            raise UnauthorizedError("invalid code", code=ErrorCode.VERIFICATION_CODE_INVALID)

        user = self.users.mark_verified(user.id)
        logger.info(f"User {user.id} verified their email")
        return self._issue_user_token(user)

    def _is_admin_override(self, email: Optional[str], password: Optional[str]) -> bool:
        if self._admin_credential is None or email is None or password is None:
            return False
        admin_email, admin_password = self._admin_credential
        return hmac.compare_digest(email.encode("utf-8"), admin_email.encode("utf-8")) and \
            hmac.compare_digest(password.encode("utf-8"), admin_password.encode("utf-8"))

    @traced("login")
    def login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        """Exchange credentials for a session token.

        The configured admin override pair returns an admin token for the
        synthetic user id 0 without consulting storage.

        Raises:
            BadRequestError: If a field is missing.
            UnauthorizedError: Unknown email or wrong password.
            ForbiddenError: Account not yet verified.
        """
        if self._is_admin_override(email, password):
            logger.warning("Admin override credential used to log in")
            return AuthResult(
                token=self.tokens.issue(ADMIN_USER_ID, Role.ADMIN),
                role=Role.ADMIN,
            )

        email = (email or "").strip()
        if not email or not password:
            raise BadRequestError("email and password required")

        user = self.users.get_by_email(email)
        if user is None or not self.hasher.verify(password, user.password_hash):
            raise UnauthorizedError("invalid credentials", code=ErrorCode.INVALID_CREDENTIALS)
        if not user.is_verified:
            raise ForbiddenError("email not verified", code=ErrorCode.ACCOUNT_NOT_VERIFIED)

        return self._issue_user_token(user)

    @traced("change_username")
    def change_username(self, user_id: int, new_username: Optional[str]) -> PublicUser:
        username = (new_username or "").strip()
        if len(username) < MIN_USERNAME_LENGTH:
            raise BadRequestError(
                f"username must be at least {MIN_USERNAME_LENGTH} characters",
                field="username",
            )

        user = self.users.get(user_id)
        if user is None:
            raise UserNotFoundError()
        holder = self.users.get_by_username(username)
        if holder is not None and holder.id != user_id:
            raise ConflictError("username already taken", code=ErrorCode.USERNAME_TAKEN)

        return self.users.update_username(user_id, username).to_public()

    @traced("change_password")
    def change_password(
        self, user_id: int, current_password: Optional[str], new_password: Optional[str]
    ) -> None:
        """Replace the password after re-checking the current one.

        Raises:
            BadRequestError: Missing fields or new password too short.
            UserNotFoundError: Unknown user.
            UnauthorizedError: Current password does not verify.
        """
        if not current_password or not new_password:
            raise BadRequestError("currentPassword and newPassword required")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise BadRequestError(
                f"new password must be at least {MIN_PASSWORD_LENGTH} characters",
                field="newPassword",
            )

        user = self.users.get(user_id)
        if user is None:
            raise UserNotFoundError()
        if not self.hasher.verify(current_password, user.password_hash):
            raise UnauthorizedError("invalid credentials", code=ErrorCode.INVALID_CREDENTIALS)

        self.users.update_password(user_id, self.hasher.hash(new_password))
        logger.info(f"User {user_id} changed their password")

    @traced("delete_account")
    def delete_account(self, user_id: int, password: Optional[str]) -> None:
        """Delete an account and all owned content after re-checking the password."""
        if not password:
            raise BadRequestError("password required", field="password")

        user = self.users.get(user_id)
        if user is None:
            raise UserNotFoundError()
        if not self.hasher.verify(password, user.password_hash):
            raise UnauthorizedError("invalid credentials", code=ErrorCode.INVALID_CREDENTIALS)

        self.users.delete(user_id)

    @traced("list_users_as_admin")
    def list_users_as_admin(self, token: Optional[str]) -> List[PublicUser]:
        """List every user's public projection for an admin token.

        Raises:
            ForbiddenError: Token missing, invalid, or not an admin token.
        """
        identity = self.tokens.decode(token) if token else None
        if identity is None or not identity.is_admin:
            raise ForbiddenError()
        return [user.to_public() for user in self.users.get_all()]
