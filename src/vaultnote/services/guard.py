"""Authorization guard: resolves the acting identity and enforces ownership."""

import logging
from typing import Optional

from vaultnote.exceptions import ForbiddenError, UnauthorizedError
from vaultnote.models.schema import ADMIN_USER_ID, Identity
from vaultnote.services.security import TokenService

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


class AuthorizationGuard:
    """Derives identities from bearer headers.

    Every protected operation calls one of the ``require_*`` methods before
    touching storage. Ownership checks come after existence checks, so a
    missing resource is reported as not found rather than forbidden.
    """

    def __init__(self, tokens: TokenService):
        self.tokens = tokens

    @staticmethod
    def bearer_token(authorization_header: Optional[str]) -> Optional[str]:
        """Return the raw token from a `Bearer <token>` header, if any."""
        if not authorization_header:
            return None
        if not authorization_header.lower().startswith(BEARER_PREFIX):
            return None
        return authorization_header[len(BEARER_PREFIX):].strip() or None

    def resolve_identity(self, authorization_header: Optional[str]) -> Optional[Identity]:
        """Extract and verify a bearer token.

        Returns:
            The embedded identity, or None when the header is absent, uses
            another scheme, or carries a token that fails verification.
        """
        token = self.bearer_token(authorization_header)
        if token is None:
            return None
        return self.tokens.decode(token)

    def require_identity(self, authorization_header: Optional[str]) -> Identity:
        identity = self.resolve_identity(authorization_header)
        if identity is None:
            raise UnauthorizedError()
        return identity

    def require_user(self, authorization_header: Optional[str]) -> Identity:
        """Require an identity that can own vaults and notes.

        The synthetic admin identity has no user row and owns nothing, so
        it is treated like a missing identity here.
        """
        identity = self.require_identity(authorization_header)
        if identity.user_id == ADMIN_USER_ID:
            raise UnauthorizedError()
        return identity

    def require_admin(self, authorization_header: Optional[str]) -> Identity:
        identity = self.require_identity(authorization_header)
        if not identity.is_admin:
            raise ForbiddenError()
        return identity

    @staticmethod
    def ensure_owner(resource_owner_id: int, identity: Identity) -> None:
        """Raise ForbiddenError unless the identity owns the resource."""
        if resource_owner_id != identity.user_id:
            logger.info(
                f"User {identity.user_id} denied access to resource owned by {resource_owner_id}"
            )
            raise ForbiddenError()
