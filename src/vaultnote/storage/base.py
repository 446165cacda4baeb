"""Base repository with transaction handling shared by all repositories."""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Callable, Generic, Iterator, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from vaultnote.exceptions import ErrorCode, StorageError, VaultNoteError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Repository(ABC, Generic[T]):
    """Abstract base class for repositories.

    Subclasses set ``session_factory``. Every write runs inside
    ``_transaction``: one session, committed on success and rolled back on
    any failure, so multi-statement operations are all-or-nothing.
    """

    session_factory: Callable[[], Session]

    @abstractmethod
    def get(self, id: int) -> Optional[T]:
        """Get an item by ID."""

    @abstractmethod
    def delete(self, id: int) -> bool:
        """Delete an item by ID. Returns False if it did not exist."""

    @contextmanager
    def _transaction(
        self,
        operation: str,
        on_integrity_error: Optional[Callable[[IntegrityError], VaultNoteError]] = None,
    ) -> Iterator[Session]:
        """Open a session that commits on exit and rolls back on error.

        Args:
            operation: Name used in logs and StorageError details.
            on_integrity_error: Translates constraint violations into a
                domain error. Without it they surface as StorageError.
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except VaultNoteError:
            session.rollback()
            raise
        except IntegrityError as e:
            session.rollback()
            if on_integrity_error is not None:
                raise on_integrity_error(e) from e
            logger.error(f"Integrity error during {operation}: {e.orig}")
            raise StorageError(
                f"failed to {operation}",
                operation=operation,
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database error during {operation}: {e}")
            raise StorageError(
                f"failed to {operation}",
                operation=operation,
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e
        finally:
            session.close()

    @staticmethod
    def _bulk_delete(session: Session, statement) -> int:
        """Execute a bulk DELETE and return the number of rows removed.

        Sessions here are short-lived, so the identity map is not synchronized.
        """
        result = session.execute(statement, execution_options={"synchronize_session": False})
        return result.rowcount

    @contextmanager
    def _reading(self, operation: str) -> Iterator[Session]:
        """Open a read-only session, translating database errors."""
        session = self.session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            logger.error(f"Database error during {operation}: {e}")
            raise StorageError(
                f"failed to {operation}",
                operation=operation,
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
            ) from e
        finally:
            session.close()
