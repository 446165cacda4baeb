"""Request bodies for the HTTP API.

Every field is optional at the schema level so that missing input is
reported by the service layer as a 400 with a domain message.
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RequestBody(BaseModel):
    """Base for JSON request bodies with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class RegisterRequest(RequestBody):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class VerifyEmailRequest(RequestBody):
    email: Optional[str] = None
    code: Optional[Union[str, int]] = None


class ResendCodeRequest(RequestBody):
    email: Optional[str] = None


class LoginRequest(RequestBody):
    email: Optional[str] = None
    password: Optional[str] = None


class UsernameUpdate(RequestBody):
    username: Optional[str] = None


class PasswordChange(RequestBody):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class PasswordConfirmation(RequestBody):
    password: Optional[str] = None


class VaultCreate(RequestBody):
    name: Optional[str] = None


class NoteWrite(RequestBody):
    """Body for both creating and updating a note."""

    title: Optional[str] = None
    content: Optional[str] = None
    vault_id: Optional[int] = None
    hex_key: Optional[str] = None


class LinkRequest(RequestBody):
    from_note_id: Optional[int] = None
    to_note_id: Optional[int] = None
