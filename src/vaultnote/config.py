"""Configuration module for the Vaultnote server."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from vaultnote import __version__

# Load environment variables from the project root .env file.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

logger = logging.getLogger(__name__)

INSECURE_DEFAULT_SECRET = "dev-secret-change-me"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class VaultNoteConfig(BaseModel):
    """Configuration for the Vaultnote server."""

    # Base directory for the project
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("VAULTNOTE_BASE_DIR", "."))
    )
    # Database configuration
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("VAULTNOTE_DATABASE_PATH", "data/db/vaultnote.db")
        )
    )
    # Full SQLAlchemy URL; takes precedence over database_path when set
    database_url: Optional[str] = Field(
        default_factory=lambda: os.getenv("VAULTNOTE_DATABASE_URL") or None
    )
    # Session tokens
    jwt_secret: str = Field(
        default_factory=lambda: os.getenv("VAULTNOTE_JWT_SECRET", INSECURE_DEFAULT_SECRET)
    )
    jwt_algorithm: str = Field(
        default_factory=lambda: os.getenv("VAULTNOTE_JWT_ALGORITHM", "HS256")
    )
    token_ttl_days: int = Field(
        default_factory=lambda: int(os.getenv("VAULTNOTE_TOKEN_TTL_DAYS", "7"))
    )
    # Email verification
    verification_code_ttl_minutes: int = Field(
        default_factory=lambda: int(
            os.getenv("VAULTNOTE_VERIFICATION_CODE_TTL_MINUTES", "10")
        )
    )
    # Legacy override credential that yields an admin token without a user row.
    # Disable in any real deployment.
    admin_override_enabled: bool = Field(
        default_factory=lambda: _env_flag("VAULTNOTE_ADMIN_OVERRIDE_ENABLED", "true")
    )
    admin_login_email: str = Field(
        default_factory=lambda: os.getenv("VAULTNOTE_ADMIN_LOGIN_EMAIL", "admin")
    )
    admin_login_password: str = Field(
        default_factory=lambda: os.getenv("VAULTNOTE_ADMIN_LOGIN_PASSWORD", "admin")
    )
    # Password hashing (PBKDF2-HMAC-SHA256 rounds)
    password_hash_iterations: int = Field(
        default_factory=lambda: int(
            os.getenv("VAULTNOTE_PASSWORD_HASH_ITERATIONS", "390000")
        )
    )
    # Outbound mail. With no smtp_host, codes are written to the log instead.
    smtp_host: Optional[str] = Field(
        default_factory=lambda: os.getenv("VAULTNOTE_SMTP_HOST") or None
    )
    smtp_port: int = Field(
        default_factory=lambda: int(os.getenv("VAULTNOTE_SMTP_PORT", "587"))
    )
    smtp_username: Optional[str] = Field(
        default_factory=lambda: os.getenv("VAULTNOTE_SMTP_USERNAME") or None
    )
    smtp_password: Optional[str] = Field(
        default_factory=lambda: os.getenv("VAULTNOTE_SMTP_PASSWORD") or None
    )
    smtp_use_tls: bool = Field(
        default_factory=lambda: _env_flag("VAULTNOTE_SMTP_USE_TLS", "true")
    )
    mail_from: str = Field(
        default_factory=lambda: os.getenv("VAULTNOTE_MAIL_FROM", "no-reply@vaultnote.local")
    )
    mail_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("VAULTNOTE_MAIL_TIMEOUT_SECONDS", "10"))
    )
    # Include sanitized storage error details in error responses (non-production)
    expose_error_details: bool = Field(
        default_factory=lambda: _env_flag("VAULTNOTE_EXPOSE_ERROR_DETAILS", "false")
    )
    # Logging
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("VAULTNOTE_LOG_DIR"))
            if os.getenv("VAULTNOTE_LOG_DIR")
            else None
        )
    )
    # Server configuration
    host: str = Field(default_factory=lambda: os.getenv("VAULTNOTE_HOST", "127.0.0.1"))
    port: int = Field(default_factory=lambda: int(os.getenv("VAULTNOTE_PORT", "3000")))
    server_name: str = Field(
        default_factory=lambda: os.getenv("VAULTNOTE_SERVER_NAME", "vaultnote")
    )
    server_version: str = Field(default=__version__)

    @model_validator(mode="after")
    def _validate_security_config(self) -> "VaultNoteConfig":
        """Validate TTLs and warn about insecure defaults."""
        if self.token_ttl_days < 1:
            raise ValueError("token_ttl_days must be >= 1")
        if self.verification_code_ttl_minutes < 1:
            raise ValueError("verification_code_ttl_minutes must be >= 1")
        if self.password_hash_iterations < 1:
            raise ValueError("password_hash_iterations must be >= 1")
        if self.mail_timeout_seconds <= 0:
            raise ValueError("mail_timeout_seconds must be > 0")

        if self.jwt_secret == INSECURE_DEFAULT_SECRET:
            logger.warning(
                "Using the built-in JWT secret. Set VAULTNOTE_JWT_SECRET before "
                "exposing this server."
            )
        if self.admin_override_enabled:
            logger.warning(
                "Admin override credential is enabled. Set "
                "VAULTNOTE_ADMIN_OVERRIDE_ENABLED=false to disable it."
            )
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir / path

    def get_db_url(self) -> str:
        """Get the database URL, defaulting to a SQLite file."""
        if self.database_url:
            return self.database_url
        db_path = self.get_absolute_path(self.database_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{db_path}"


# Create a global config instance
config = VaultNoteConfig()
