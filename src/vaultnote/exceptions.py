"""Custom exceptions for the Vaultnote server.

Provides a structured exception hierarchy with error codes, HTTP status
mapping and machine-readable error information for API responses.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note errors (1xxx)
    NOTE_NOT_FOUND = 1001
    NOTE_TITLE_REQUIRED = 1004

    # Link errors (2xxx)
    LINK_INVALID = 2001
    LINK_ALREADY_EXISTS = 2002
    LINK_NOT_FOUND = 2003

    # Vault errors (3xxx)
    VAULT_NOT_FOUND = 3001
    VAULT_NAME_REQUIRED = 3002
    VAULT_ALREADY_EXISTS = 3003

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002

    # Auth errors (5xxx)
    UNAUTHORIZED = 5001
    INVALID_CREDENTIALS = 5002
    FORBIDDEN = 5003
    ACCOUNT_NOT_VERIFIED = 5004
    VERIFICATION_CODE_INVALID = 5005
    VERIFICATION_CODE_EXPIRED = 5006
    VERIFICATION_NOT_PENDING = 5007

    # User errors (6xxx)
    USER_NOT_FOUND = 6001
    EMAIL_ALREADY_REGISTERED = 6002
    USERNAME_TAKEN = 6003

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001

    # Internal errors (9xxx)
    INTERNAL = 9001
    MAIL_DELIVERY_FAILED = 9002


class VaultNoteError(Exception):
    """Base exception for all Vaultnote errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
        http_status: HTTP status code the API layer responds with
    """

    http_status = 500

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self, include_details: bool = True) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        result: Dict[str, Any] = {
            "error": self.message,
            "code": self.code.name,
        }
        if include_details and self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class BadRequestError(VaultNoteError):
    """Raised when input is missing or invalid."""

    http_status = 400

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED
    ):
        details = {"field": field} if field else {}
        super().__init__(message, code=code, details=details)
        self.field = field


class UnauthorizedError(VaultNoteError):
    """Raised for a missing/invalid token or a wrong credential."""

    http_status = 401

    def __init__(
        self,
        message: str = "unauthorized",
        code: ErrorCode = ErrorCode.UNAUTHORIZED
    ):
        super().__init__(message, code=code)


class ForbiddenError(VaultNoteError):
    """Raised when a valid identity may not act on a resource."""

    http_status = 403

    def __init__(
        self,
        message: str = "forbidden",
        code: ErrorCode = ErrorCode.FORBIDDEN
    ):
        super().__init__(message, code=code)


class NotFoundError(VaultNoteError):
    """Raised when a resource does not exist."""

    http_status = 404


class NoteNotFoundError(NotFoundError):
    """Raised when a note cannot be found."""

    def __init__(self, note_id: int, message: Optional[str] = None):
        super().__init__(
            message or "note not found",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"note_id": note_id}
        )
        self.note_id = note_id


class VaultNotFoundError(NotFoundError):
    """Raised when a vault cannot be found."""

    def __init__(self, vault_id: int, message: Optional[str] = None):
        super().__init__(
            message or "vault not found",
            code=ErrorCode.VAULT_NOT_FOUND,
            details={"vault_id": vault_id}
        )
        self.vault_id = vault_id


class UserNotFoundError(NotFoundError):
    """Raised when a user cannot be found."""

    def __init__(self, message: str = "user not found"):
        super().__init__(message, code=ErrorCode.USER_NOT_FOUND)


class ConflictError(VaultNoteError):
    """Raised when a uniqueness constraint would be violated."""

    http_status = 409


class LinkError(VaultNoteError):
    """Raised for link-related errors.

    A duplicate ordered pair is reported as a conflict so clients can tell
    it apart from a generic failure; other link errors are bad requests.
    """

    def __init__(
        self,
        message: str,
        from_note_id: Optional[int] = None,
        to_note_id: Optional[int] = None,
        code: ErrorCode = ErrorCode.LINK_INVALID
    ):
        details: Dict[str, Any] = {}
        if from_note_id is not None:
            details["from_note_id"] = from_note_id
        if to_note_id is not None:
            details["to_note_id"] = to_note_id

        super().__init__(message, code=code, details=details)
        self.from_note_id = from_note_id
        self.to_note_id = to_note_id

    @property
    def http_status(self) -> int:  # type: ignore[override]
        if self.code == ErrorCode.LINK_ALREADY_EXISTS:
            return 409
        if self.code == ErrorCode.LINK_NOT_FOUND:
            return 404
        return 400


class InternalError(VaultNoteError):
    """Raised for unexpected failures; the message stays generic."""

    http_status = 500


class StorageError(InternalError):
    """Raised for storage/persistence errors."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
        original_error: Optional[Exception] = None
    ):
        details: Dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.original_error = original_error


class MailDeliveryError(InternalError):
    """Raised when the verification email cannot be sent."""

    def __init__(
        self,
        message: str = "failed to send verification email",
        original_error: Optional[Exception] = None
    ):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)[:200]
        super().__init__(message, code=ErrorCode.MAIL_DELIVERY_FAILED, details=details)
        self.original_error = original_error
