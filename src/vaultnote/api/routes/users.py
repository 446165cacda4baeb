"""User API routes: registration, verification, login and account management."""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Header, Path

from vaultnote.api.deps import Services, current_user, get_services
from vaultnote.api.schemas import (LoginRequest, PasswordChange,
                                   PasswordConfirmation, RegisterRequest,
                                   ResendCodeRequest, UsernameUpdate,
                                   VerifyEmailRequest)
from vaultnote.exceptions import ForbiddenError
from vaultnote.models.schema import Identity

logger = logging.getLogger(__name__)

router = APIRouter()


def _ensure_self(identity: Identity, user_id: int) -> None:
    if identity.user_id != user_id:
        raise ForbiddenError()


@router.post("/register", status_code=201)
def register(body: RegisterRequest, services: Services = Depends(get_services)):
    """Create an unverified account and email a verification code."""
    user = services.auth.register(body.username, body.email, body.password)
    return {"message": "verification code sent", "user": user.to_api()}


@router.post("/verify-email")
def verify_email(body: VerifyEmailRequest, services: Services = Depends(get_services)):
    result = services.auth.verify_email(body.email, body.code)
    if result is None:
        return {"message": "email already verified"}
    return result.to_api()


@router.post("/resend-code")
def resend_code(body: ResendCodeRequest, services: Services = Depends(get_services)):
    return {"message": services.auth.resend_verification(body.email)}


@router.post("/login")
def login(body: LoginRequest, services: Services = Depends(get_services)):
    return services.auth.login(body.email, body.password).to_api()


@router.get("/admin/users")
def list_users(
    authorization: Optional[str] = Header(default=None),
    services: Services = Depends(get_services),
):
    """List all users. Requires an admin token."""
    identity = services.guard.require_identity(authorization)
    users = services.auth.list_users_as_admin(services.guard.bearer_token(authorization))
    logger.info(f"Admin {identity.user_id} listed {len(users)} users")
    return [user.to_api() for user in users]


@router.put("/{user_id}")
def update_username(
    body: UsernameUpdate,
    user_id: int = Path(...),
    identity: Identity = Depends(current_user),
    services: Services = Depends(get_services),
):
    _ensure_self(identity, user_id)
    user = services.auth.change_username(user_id, body.username)
    return {"message": "username updated", "user": user.to_api()}


@router.put("/{user_id}/password")
def change_password(
    body: PasswordChange,
    user_id: int = Path(...),
    identity: Identity = Depends(current_user),
    services: Services = Depends(get_services),
):
    _ensure_self(identity, user_id)
    services.auth.change_password(user_id, body.current_password, body.new_password)
    return {"message": "password updated"}


@router.delete("/{user_id}")
def delete_account(
    user_id: int = Path(...),
    body: PasswordConfirmation = Body(...),
    identity: Identity = Depends(current_user),
    services: Services = Depends(get_services),
):
    """Delete the caller's account and everything it owns."""
    _ensure_self(identity, user_id)
    services.auth.delete_account(user_id, body.password)
    return {"message": "user deleted"}
