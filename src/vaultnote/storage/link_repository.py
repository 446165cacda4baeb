"""Repository for link storage and retrieval."""
import logging
from typing import List, Optional

from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import aliased

from vaultnote.exceptions import ErrorCode, LinkError
from vaultnote.models.db_models import DBLink, DBNote
from vaultnote.models.schema import NoteLink, utc_now
from vaultnote.storage.base import Repository

logger = logging.getLogger(__name__)


class LinkRepository(Repository[NoteLink]):
    """Repository for directed links between notes.

    A link is identified by its ordered (from_note_id, to_note_id) pair;
    the storage layer enforces both pair uniqueness and that each endpoint
    references an existing note.
    """

    def __init__(self, session_factory):
        """Initialize the link repository.

        Args:
            session_factory: SQLAlchemy session factory for database operations.
        """
        self.session_factory = session_factory

    def create(self, from_note_id: int, to_note_id: int) -> NoteLink:
        """Create a new link.

        Raises:
            LinkError: LINK_ALREADY_EXISTS for a duplicate ordered pair,
                LINK_INVALID when an endpoint does not exist.
        """
        def _translate(error: IntegrityError) -> LinkError:
            # A concurrent insert of the same pair loses on the unique constraint
            if self.get(from_note_id, to_note_id) is not None:
                return LinkError(
                    "link already exists",
                    from_note_id=from_note_id,
                    to_note_id=to_note_id,
                    code=ErrorCode.LINK_ALREADY_EXISTS,
                )
            return LinkError(
                "link endpoint does not exist",
                from_note_id=from_note_id,
                to_note_id=to_note_id,
                code=ErrorCode.LINK_INVALID,
            )

        with self._transaction("create link", on_integrity_error=_translate) as session:
            existing = session.scalar(
                select(DBLink).where(
                    (DBLink.from_note_id == from_note_id) &
                    (DBLink.to_note_id == to_note_id)
                )
            )
            if existing:
                raise LinkError(
                    "link already exists",
                    from_note_id=from_note_id,
                    to_note_id=to_note_id,
                    code=ErrorCode.LINK_ALREADY_EXISTS,
                )

            db_link = DBLink(
                from_note_id=from_note_id,
                to_note_id=to_note_id,
                created_at=utc_now(),
            )
            session.add(db_link)
            session.flush()
            link = NoteLink.model_validate(db_link)

        logger.info(f"Created link {from_note_id} -> {to_note_id}")
        return link

    def get(self, from_note_id: int, to_note_id: int) -> Optional[NoteLink]:  # type: ignore[override]
        """Get a link by its ordered pair."""
        with self._reading("fetch link") as session:
            db_link = session.scalar(
                select(DBLink).where(
                    (DBLink.from_note_id == from_note_id) &
                    (DBLink.to_note_id == to_note_id)
                )
            )
            return NoteLink.model_validate(db_link) if db_link else None

    def get_all(self, owner_id: Optional[int] = None) -> List[NoteLink]:
        """Get links, newest first.

        Args:
            owner_id: If given, only links whose endpoints both belong to
                this owner are returned.
        """
        with self._reading("fetch links") as session:
            query = select(DBLink)
            if owner_id is not None:
                source = aliased(DBNote)
                target = aliased(DBNote)
                query = (
                    query.join(source, DBLink.from_note_id == source.id)
                    .join(target, DBLink.to_note_id == target.id)
                    .where(and_(source.owner_id == owner_id, target.owner_id == owner_id))
                )
            db_links = session.scalars(query.order_by(DBLink.id.desc())).all()
            return [NoteLink.model_validate(link) for link in db_links]

    def get_outgoing(self, note_id: int) -> List[NoteLink]:
        """Get all outgoing links from a note."""
        with self._reading("fetch links") as session:
            db_links = session.scalars(
                select(DBLink).where(DBLink.from_note_id == note_id).order_by(DBLink.id)
            ).all()
            return [NoteLink.model_validate(link) for link in db_links]

    def get_incoming(self, note_id: int) -> List[NoteLink]:
        """Get all incoming links to a note."""
        with self._reading("fetch links") as session:
            db_links = session.scalars(
                select(DBLink).where(DBLink.to_note_id == note_id).order_by(DBLink.id)
            ).all()
            return [NoteLink.model_validate(link) for link in db_links]

    def get_all_for_note(self, note_id: int) -> List[NoteLink]:
        """Get all links (incoming and outgoing) for a note.

        A self-link appears in both directions but is returned once.
        """
        seen = set()
        result = []
        for link in self.get_outgoing(note_id) + self.get_incoming(note_id):
            if link.id not in seen:
                seen.add(link.id)
                result.append(link)
        return result

    def delete(self, from_note_id: int, to_note_id: int) -> bool:  # type: ignore[override]
        """Delete the link with this exact ordered pair.

        Returns:
            True if a link was deleted, False if none existed.
        """
        with self._transaction("delete link") as session:
            db_link = session.scalar(
                select(DBLink).where(
                    (DBLink.from_note_id == from_note_id) &
                    (DBLink.to_note_id == to_note_id)
                )
            )
            if not db_link:
                return False
            session.delete(db_link)

        logger.info(f"Deleted link {from_note_id} -> {to_note_id}")
        return True
