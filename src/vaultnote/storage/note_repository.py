"""Repository for note storage and retrieval."""

import datetime
import logging
from typing import List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from vaultnote.exceptions import ErrorCode, NoteNotFoundError, StorageError
from vaultnote.models.db_models import (DBLink, DBNote, get_session_factory,
                                        init_db)
from vaultnote.models.schema import (IncomingLink, Note, NoteDetail,
                                     OutgoingLink, utc_now)
from vaultnote.storage.base import Repository

logger = logging.getLogger(__name__)


def _note_reference_error(error: IntegrityError) -> StorageError:
    return StorageError(
        "note references a missing vault or owner",
        operation="save note",
        code=ErrorCode.STORAGE_WRITE_FAILED,
        original_error=error,
    )


class NoteRepository(Repository[Note]):
    """Repository for notes.

    Links live in their own table (see LinkRepository); this repository
    owns the one operation that must touch both: deleting a note together
    with every link that references it.
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
        owner_id: int,
        vault_id: int,
        title: str,
        content: str = "",
        hex_key: Optional[str] = None,
    ) -> Note:
        """Create a note stamped with the current time."""
        now = utc_now()
        with self._transaction("create note", on_integrity_error=_note_reference_error) as session:
            db_note = DBNote(
                owner_id=owner_id,
                vault_id=vault_id,
                title=title,
                content=content,
                hex_key=hex_key,
                created_at=now,
                updated_at=now,
            )
            session.add(db_note)
            session.flush()
            note = Note.model_validate(db_note)

        logger.info(f"Created note {note.id} in vault {vault_id}")
        return note

    def get(self, id: int) -> Optional[Note]:
        """Get a note by ID."""
        with self._reading("fetch note") as session:
            db_note = session.get(DBNote, id)
            return Note.model_validate(db_note) if db_note else None

    def get_detail(self, id: int) -> Optional[NoteDetail]:
        """Get a note with outgoing links (and destinations) and incoming links (and sources)."""
        with self._reading("fetch note") as session:
            db_note = session.scalar(
                select(DBNote)
                .where(DBNote.id == id)
                .options(
                    selectinload(DBNote.outgoing_links).selectinload(DBLink.to_note),
                    selectinload(DBNote.incoming_links).selectinload(DBLink.from_note),
                )
            )
            if not db_note:
                return None

            note = Note.model_validate(db_note)
            outgoing = [
                OutgoingLink(
                    id=link.id,
                    from_note_id=link.from_note_id,
                    to_note_id=link.to_note_id,
                    created_at=link.created_at,
                    to_note=Note.model_validate(link.to_note),
                )
                for link in sorted(db_note.outgoing_links, key=lambda l: l.id)
            ]
            incoming = [
                IncomingLink(
                    id=link.id,
                    from_note_id=link.from_note_id,
                    to_note_id=link.to_note_id,
                    created_at=link.created_at,
                    from_note=Note.model_validate(link.from_note),
                )
                for link in sorted(db_note.incoming_links, key=lambda l: l.id)
            ]
            return NoteDetail(
                **note.model_dump(),
                outgoing_links=outgoing,
                incoming_links=incoming,
            )

    def list_for_vault(self, owner_id: int, vault_id: int) -> List[Note]:
        """List notes matching both vault and owner, newest-updated first."""
        with self._reading("fetch notes") as session:
            db_notes = session.scalars(
                select(DBNote)
                .where(DBNote.vault_id == vault_id, DBNote.owner_id == owner_id)
                .order_by(DBNote.updated_at.desc(), DBNote.id.desc())
            ).all()
            return [Note.model_validate(n) for n in db_notes]

    def update(
        self,
        id: int,
        title: str,
        content: Optional[str] = None,
        vault_id: Optional[int] = None,
        hex_key: Optional[str] = None,
        updated_at: Optional[datetime.datetime] = None,
    ) -> Note:
        """Update a note. Optional fields left as None are not touched.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        with self._transaction("update note", on_integrity_error=_note_reference_error) as session:
            db_note = session.get(DBNote, id)
            if not db_note:
                raise NoteNotFoundError(id)

            db_note.title = title
            if content is not None:
                db_note.content = content
            if vault_id is not None:
                db_note.vault_id = vault_id
            if hex_key is not None:
                db_note.hex_key = hex_key
            db_note.updated_at = updated_at or utc_now()
            session.flush()
            note = Note.model_validate(db_note)

        logger.info(f"Updated note {id}")
        return note

    def delete(self, id: int) -> bool:
        """Delete a note and every link that references it.

        Both directions of links are removed before the note, in a single
        transaction: either everything goes or nothing does.

        Returns:
            True if the note existed, False otherwise.
        """
        with self._transaction("delete note") as session:
            if session.get(DBNote, id) is None:
                return False

            links_removed = self._bulk_delete(
                session,
                delete(DBLink).where(
                    or_(DBLink.from_note_id == id, DBLink.to_note_id == id)
                )
            )
            self._bulk_delete(session, delete(DBNote).where(DBNote.id == id))

        logger.info(f"Deleted note {id} and {links_removed} links")
        return True
