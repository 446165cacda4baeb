"""Repository for user account storage and retrieval."""
import datetime
import logging
from typing import List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError

from vaultnote.exceptions import ConflictError, ErrorCode, UserNotFoundError
from vaultnote.models.db_models import (DBLink, DBNote, DBUser, DBVault,
                                        get_session_factory, init_db)
from vaultnote.models.schema import User, utc_now
from vaultnote.storage.base import Repository

logger = logging.getLogger(__name__)


def _user_conflict(error: IntegrityError) -> ConflictError:
    """Map a unique-constraint violation on users to a conflict."""
    message = str(error.orig).lower()
    if "username" in message:
        return ConflictError("username already taken", code=ErrorCode.USERNAME_TAKEN)
    return ConflictError("email already registered", code=ErrorCode.EMAIL_ALREADY_REGISTERED)


class UserRepository(Repository[User]):
    """Repository for user accounts.

    Email is unique; username is unique when present. Deleting a user
    removes everything the user owns in the same transaction.
    """

    def __init__(self, engine=None):
        """Initialize the repository.

        Args:
            engine: SQLAlchemy engine. If None, uses default from config.
        """
        self.engine = engine or init_db()
        self.session_factory = get_session_factory(self.engine)

    def create(
        self,
        username: Optional[str],
        email: str,
        password_hash: str,
        verification_code_hash: Optional[str] = None,
        verification_expires_at: Optional[datetime.datetime] = None,
    ) -> User:
        """Create a new, unverified user.

        Raises:
            ConflictError: If the email or username is already registered.
        """
        with self._transaction("create user", on_integrity_error=_user_conflict) as session:
            db_user = DBUser(
                username=username,
                email=email,
                password_hash=password_hash,
                is_verified=False,
                verification_code_hash=verification_code_hash,
                verification_expires_at=verification_expires_at,
                created_at=utc_now(),
            )
            session.add(db_user)
            session.flush()
            user = User.model_validate(db_user)

        logger.info(f"Created user {user.id}")
        return user

    def get(self, id: int) -> Optional[User]:
        """Get a user by ID."""
        with self._reading("fetch user") as session:
            db_user = session.get(DBUser, id)
            return User.model_validate(db_user) if db_user else None

    def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by email address."""
        with self._reading("fetch user") as session:
            db_user = session.scalar(select(DBUser).where(DBUser.email == email))
            return User.model_validate(db_user) if db_user else None

    def get_by_username(self, username: str) -> Optional[User]:
        """Get a user by username."""
        with self._reading("fetch user") as session:
            db_user = session.scalar(select(DBUser).where(DBUser.username == username))
            return User.model_validate(db_user) if db_user else None

    def get_all(self) -> List[User]:
        """Get all users, newest first."""
        with self._reading("fetch users") as session:
            db_users = session.scalars(select(DBUser).order_by(DBUser.id.desc())).all()
            return [User.model_validate(u) for u in db_users]

    def set_verification(
        self, id: int, code_hash: str, expires_at: datetime.datetime
    ) -> User:
        """Store a new pending verification code digest and expiry."""
        with self._transaction("update user") as session:
            db_user = session.get(DBUser, id)
            if not db_user:
                raise UserNotFoundError()
            db_user.verification_code_hash = code_hash
            db_user.verification_expires_at = expires_at
            session.flush()
            return User.model_validate(db_user)

    def mark_verified(self, id: int) -> User:
        """Flip the verified flag and clear the pending-code fields."""
        with self._transaction("verify user") as session:
            db_user = session.get(DBUser, id)
            if not db_user:
                raise UserNotFoundError()
            db_user.is_verified = True
            db_user.verification_code_hash = None
            db_user.verification_expires_at = None
            session.flush()
            return User.model_validate(db_user)

    def update_username(self, id: int, username: str) -> User:
        """Change a user's username.

        Raises:
            UserNotFoundError: If the user does not exist.
            ConflictError: If another user already has the username.
        """
        with self._transaction("update user", on_integrity_error=_user_conflict) as session:
            db_user = session.get(DBUser, id)
            if not db_user:
                raise UserNotFoundError()
            db_user.username = username
            session.flush()
            return User.model_validate(db_user)

    def update_password(self, id: int, password_hash: str) -> User:
        """Replace a user's password digest."""
        with self._transaction("update user") as session:
            db_user = session.get(DBUser, id)
            if not db_user:
                raise UserNotFoundError()
            db_user.password_hash = password_hash
            session.flush()
            return User.model_validate(db_user)

    def delete(self, id: int) -> bool:
        """Delete a user and everything they own.

        Links touching the user's notes, the notes, the vaults and the
        user row are removed in one transaction.

        Returns:
            True if the user existed, False otherwise.
        """
        with self._transaction("delete user") as session:
            if session.get(DBUser, id) is None:
                return False

            owned_notes = select(DBNote.id).where(DBNote.owner_id == id)
            self._bulk_delete(
                session,
                delete(DBLink).where(
                    or_(
                        DBLink.from_note_id.in_(owned_notes),
                        DBLink.to_note_id.in_(owned_notes),
                    )
                )
            )
            self._bulk_delete(session, delete(DBNote).where(DBNote.owner_id == id))
            self._bulk_delete(session, delete(DBVault).where(DBVault.owner_id == id))
            self._bulk_delete(session, delete(DBUser).where(DBUser.id == id))

        logger.info(f"Deleted user {id} and owned content")
        return True
