"""Security primitives: password digests, session tokens and verification codes."""

import base64
import datetime
import hashlib
import hmac
import logging
import secrets
from typing import Callable, Optional

import jwt

from vaultnote.models.schema import Identity, Role, utc_now

logger = logging.getLogger(__name__)

_HASH_SCHEME = "pbkdf2_sha256"
_SALT_BYTES = 16

# Verification codes are drawn uniformly from this inclusive range
CODE_MIN = 100000
CODE_MAX = 999999


class PasswordHasher:
    """Salted PBKDF2-HMAC-SHA256 digests.

    Digest format: ``pbkdf2_sha256$<iterations>$<salt_b64>$<hash_b64>``, so
    the iteration count can be raised without invalidating stored digests.
    """

    def __init__(self, iterations: int = 390000):
        self.iterations = iterations

    def hash(self, secret: str) -> str:
        """Compute a salted digest of a secret."""
        salt = secrets.token_bytes(_SALT_BYTES)
        derived = hashlib.pbkdf2_hmac("sha256", secret.encode("utf-8"), salt, self.iterations)
        return "$".join([
            _HASH_SCHEME,
            str(self.iterations),
            base64.b64encode(salt).decode("ascii"),
            base64.b64encode(derived).decode("ascii"),
        ])

    def verify(self, secret: str, digest: Optional[str]) -> bool:
        """Check a secret against a stored digest in constant time.

        Malformed or missing digests never verify.
        """
        if not digest:
            return False
        try:
            scheme, iterations, salt_b64, hash_b64 = digest.split("$")
            if scheme != _HASH_SCHEME:
                return False
            salt = base64.b64decode(salt_b64)
            expected = base64.b64decode(hash_b64)
            rounds = int(iterations)
        except ValueError:
            logger.warning("Stored digest is malformed")
            return False

        derived = hashlib.pbkdf2_hmac("sha256", secret.encode("utf-8"), salt, rounds)
        return hmac.compare_digest(derived, expected)


def generate_verification_code() -> str:
    """Draw a 6-digit code uniformly from 100000-999999 using a CSPRNG."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


class TokenService:
    """Issues and verifies signed, expiring session tokens (JWT).

    Payload: ``{"userId": int, "role": "user" | "admin", "iat", "exp"}``.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: datetime.timedelta = datetime.timedelta(days=7),
        clock: Callable[[], datetime.datetime] = utc_now,
    ):
        self._secret = secret
        self._algorithm = algorithm
        self.ttl = ttl
        self._clock = clock

    def issue(self, user_id: int, role: Role = Role.USER) -> str:
        """Sign a token for an identity, valid for the configured TTL."""
        now = self._clock()
        payload = {
            "userId": user_id,
            "role": Role(role).value,
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> Optional[Identity]:
        """Verify a token and return its identity.

        Returns None on any failure: malformed, expired, bad signature or
        unexpected payload. Callers never learn which.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp"]},
            )
            return Identity(user_id=int(payload["userId"]), role=Role(payload.get("role", "user")))
        except jwt.PyJWTError as e:
            logger.debug(f"Token rejected: {type(e).__name__}")
            return None
        except (KeyError, TypeError, ValueError):
            logger.debug("Token rejected: unexpected payload")
            return None
