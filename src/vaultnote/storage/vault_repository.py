"""Repository for vault storage and retrieval."""
import logging
from typing import Dict, List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError

from vaultnote.exceptions import (ConflictError, ErrorCode, StorageError,
                                  VaultNoteError)
from vaultnote.models.db_models import (DBLink, DBNote, DBVault,
                                        get_session_factory, init_db)
from vaultnote.models.schema import Vault, utc_now
from vaultnote.storage.base import Repository

logger = logging.getLogger(__name__)


class VaultRepository(Repository[Vault]):
    """Repository for vaults. (owner_id, name) is unique."""

    def __init__(self, engine=None):
        """Initialize the repository.

        Args:
            engine: SQLAlchemy engine. If None, uses default from config.
        """
        self.engine = engine or init_db()
        self.session_factory = get_session_factory(self.engine)

    def create(self, owner_id: int, name: str) -> Vault:
        """Create a vault.

        Raises:
            ConflictError: If the owner already has a vault with this name.
            StorageError: If the owner no longer exists.
        """
        def _translate(error: IntegrityError) -> VaultNoteError:
            if self.get_by_name(owner_id, name) is not None:
                return ConflictError(
                    "vault name already exists", code=ErrorCode.VAULT_ALREADY_EXISTS
                )
            logger.warning(f"Vault insert for user {owner_id} rejected: {error.orig}")
            return StorageError(
                "vault owner does not exist",
                operation="create vault",
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=error,
            )

        with self._transaction("create vault", on_integrity_error=_translate) as session:
            db_vault = DBVault(owner_id=owner_id, name=name, created_at=utc_now())
            session.add(db_vault)
            session.flush()
            vault = Vault.model_validate(db_vault)

        logger.info(f"Created vault {vault.id} for user {owner_id}")
        return vault

    def get(self, id: int) -> Optional[Vault]:
        """Get a vault by ID."""
        with self._reading("fetch vault") as session:
            db_vault = session.get(DBVault, id)
            return Vault.model_validate(db_vault) if db_vault else None

    def get_by_name(self, owner_id: int, name: str) -> Optional[Vault]:
        with self._reading("fetch vault") as session:
            db_vault = session.scalars(
                select(DBVault).where(DBVault.owner_id == owner_id, DBVault.name == name)
            ).first()
            return Vault.model_validate(db_vault) if db_vault else None

    def list_for_owner(self, owner_id: int) -> List[Vault]:
        """List an owner's vaults in creation order."""
        with self._reading("fetch vaults") as session:
            db_vaults = session.scalars(
                select(DBVault)
                .where(DBVault.owner_id == owner_id)
                .order_by(DBVault.created_at.asc(), DBVault.id.asc())
            ).all()
            return [Vault.model_validate(v) for v in db_vaults]

    def delete(self, id: int) -> bool:
        """Delete a vault with its notes and their links."""
        return self.delete_cascade(id) is not None

    def delete_cascade(self, id: int) -> Optional[Dict[str, int]]:
        """Delete a vault, its notes and every link touching those notes.

        Runs as one transaction so no link can outlive its note and no note
        can outlive its vault.

        Returns:
            Counts of removed notes and links, or None if the vault did not exist.
        """
        with self._transaction("delete vault") as session:
            if session.get(DBVault, id) is None:
                return None

            vault_notes = select(DBNote.id).where(DBNote.vault_id == id)
            links_removed = self._bulk_delete(
                session,
                delete(DBLink).where(
                    or_(
                        DBLink.from_note_id.in_(vault_notes),
                        DBLink.to_note_id.in_(vault_notes),
                    )
                )
            )
            notes_removed = self._bulk_delete(
                session,
                delete(DBNote).where(DBNote.vault_id == id)
            )
            self._bulk_delete(session, delete(DBVault).where(DBVault.id == id))

        logger.info(
            f"Deleted vault {id} ({notes_removed} notes, {links_removed} links)"
        )
        return {"notes": notes_removed, "links": links_removed}
