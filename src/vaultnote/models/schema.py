"""Data models for the Vaultnote server."""

import datetime
from datetime import timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Synthetic user id carried by admin override tokens
ADMIN_USER_ID = 0


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current time with UTC timezone info attached.
    """
    return datetime.datetime.now(timezone.utc)


def ensure_timezone_aware(dt_value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    """Ensure a datetime is timezone-aware, treating naive datetimes as UTC.

    SQLite drops tzinfo on write, so values read back from the database
    are naive UTC timestamps.

    Args:
        dt_value: A datetime that may or may not have timezone info.

    Returns:
        The same datetime with UTC timezone if it was naive, otherwise unchanged.
    """
    if dt_value is None:
        return None
    if dt_value.tzinfo is None:
        return dt_value.replace(tzinfo=timezone.utc)
    return dt_value


class Role(str, Enum):
    """Roles carried by session tokens."""

    USER = "user"
    ADMIN = "admin"


class ApiModel(BaseModel):
    """Base for models serialized over the API with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_api(self) -> dict:
        """Dump to a JSON-compatible dict with camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")


class Identity(BaseModel):
    """The acting identity resolved from a session token."""

    user_id: int
    role: Role = Role.USER

    model_config = {"frozen": True}

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class User(ApiModel):
    """A stored user record, including secrets. Never serialized directly."""

    id: int
    username: Optional[str] = None
    email: str
    password_hash: str
    is_verified: bool = False
    verification_code_hash: Optional[str] = None
    verification_expires_at: Optional[datetime.datetime] = None
    created_at: datetime.datetime = Field(default_factory=utc_now)

    @field_validator("verification_expires_at", "created_at")
    @classmethod
    def _aware(cls, v: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
        return ensure_timezone_aware(v)

    @property
    def has_pending_verification(self) -> bool:
        return bool(self.verification_code_hash) and self.verification_expires_at is not None

    def to_public(self) -> "PublicUser":
        """Project to the fields safe to disclose."""
        return PublicUser(
            id=self.id,
            username=self.username,
            email=self.email,
            is_verified=self.is_verified,
            created_at=self.created_at,
        )


class PublicUser(ApiModel):
    """Public projection of a user: no password or verification secrets."""

    id: int
    username: Optional[str] = None
    email: str
    is_verified: bool
    created_at: datetime.datetime


class AuthResult(ApiModel):
    """Session token issued by login or email verification."""

    token: str
    role: Role
    user: Optional[PublicUser] = None


class Vault(ApiModel):
    """A named, owner-scoped container of notes."""

    id: int
    owner_id: int
    name: str
    created_at: datetime.datetime

    @field_validator("created_at")
    @classmethod
    def _aware(cls, v: datetime.datetime) -> datetime.datetime:
        return ensure_timezone_aware(v)


class Note(ApiModel):
    """A titled text resource belonging to one vault and one owner."""

    id: int
    vault_id: int
    owner_id: int
    title: str
    content: str = ""
    hex_key: Optional[str] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Validate that the title is not empty."""
        if not v.strip():
            raise ValueError("Title cannot be empty")
        return v

    @field_validator("created_at", "updated_at")
    @classmethod
    def _aware(cls, v: datetime.datetime) -> datetime.datetime:
        return ensure_timezone_aware(v)


class NoteLink(ApiModel):
    """A directed edge between two notes, unique per ordered pair."""

    id: int
    from_note_id: int
    to_note_id: int
    created_at: datetime.datetime

    model_config = ConfigDict(frozen=True)

    @field_validator("created_at")
    @classmethod
    def _aware(cls, v: datetime.datetime) -> datetime.datetime:
        return ensure_timezone_aware(v)


class OutgoingLink(NoteLink):
    """An outgoing link together with its destination note."""

    to_note: Note


class IncomingLink(NoteLink):
    """An incoming link together with its source note."""

    from_note: Note


class NoteDetail(Note):
    """A note resolved with its outgoing and incoming links."""

    outgoing_links: List[OutgoingLink] = Field(default_factory=list)
    incoming_links: List[IncomingLink] = Field(default_factory=list)
