"""Service layer for notes and the links between them."""

import logging
from typing import List, Optional

from vaultnote.exceptions import (BadRequestError, ErrorCode, LinkError,
                                  NoteNotFoundError)
from vaultnote.models.schema import Identity, Note, NoteDetail, NoteLink
from vaultnote.observability import traced
from vaultnote.services.guard import AuthorizationGuard
from vaultnote.services.vault_service import VaultService
from vaultnote.storage.link_repository import LinkRepository
from vaultnote.storage.note_repository import NoteRepository

logger = logging.getLogger(__name__)


def _require_title(title: Optional[str]) -> str:
    title = (title or "").strip()
    if not title:
        raise BadRequestError("title required", field="title", code=ErrorCode.NOTE_TITLE_REQUIRED)
    return title


def _require_id(value: Optional[int], field: str) -> int:
    if not value:
        raise BadRequestError(f"{field} required", field=field)
    return int(value)


class NoteService:
    """Notes scoped to vault and owner, plus directed links between notes.

    Every operation checks existence, then ownership, then mutates.
    Link operations require the caller to own both endpoint notes.
    """

    def __init__(
        self,
        notes: NoteRepository,
        links: LinkRepository,
        vaults: VaultService,
    ):
        self.notes = notes
        self.links = links
        self.vaults = vaults

    def _owned_note(self, owner_id: int, note_id: int) -> Note:
        note = self.notes.get(note_id)
        if note is None:
            raise NoteNotFoundError(note_id)
        AuthorizationGuard.ensure_owner(note.owner_id, Identity(user_id=owner_id))
        return note

    # =========================================================================
    # Notes
    # =========================================================================

    @traced("create_note")
    def create_note(
        self,
        owner_id: int,
        vault_id: Optional[int],
        title: Optional[str],
        content: Optional[str] = None,
        hex_key: Optional[str] = None,
    ) -> Note:
        """Create a note in a vault the caller owns."""
        title = (title or "").strip()
        if not title or not vault_id:
            raise BadRequestError("title and vaultId required")
        self.vaults.get(owner_id, int(vault_id))

        return self.notes.create(
            owner_id=owner_id,
            vault_id=int(vault_id),
            title=title,
            content=content or "",
            hex_key=hex_key or None,
        )

    @traced("list_notes")
    def list_notes(self, owner_id: int, vault_id: Optional[int]) -> List[Note]:
        vault_id = _require_id(vault_id, "vaultId")
        return self.notes.list_for_vault(owner_id, vault_id)

    @traced("get_note")
    def get_note(self, owner_id: int, note_id: int) -> NoteDetail:
        """Resolve a note with its outgoing and incoming links."""
        detail = self.notes.get_detail(note_id)
        if detail is None:
            raise NoteNotFoundError(note_id)
        AuthorizationGuard.ensure_owner(detail.owner_id, Identity(user_id=owner_id))
        return detail

    @traced("update_note")
    def update_note(
        self,
        owner_id: int,
        note_id: int,
        title: Optional[str],
        content: Optional[str] = None,
        vault_id: Optional[int] = None,
        hex_key: Optional[str] = None,
    ) -> Note:
        """Update a note the caller owns.

        The title is required and re-trimmed. Optional fields left as None
        keep their stored values. A new vault must exist and be owned by
        the caller.
        """
        title = _require_title(title)
        self._owned_note(owner_id, note_id)
        if vault_id:
            self.vaults.get(owner_id, int(vault_id))

        return self.notes.update(
            note_id,
            title=title,
            content=content,
            vault_id=int(vault_id) if vault_id else None,
            hex_key=hex_key,
        )

    @traced("delete_note")
    def delete_note(self, owner_id: int, note_id: int) -> None:
        """Delete a note together with every link referencing it."""
        self._owned_note(owner_id, note_id)
        if not self.notes.delete(note_id):
            raise NoteNotFoundError(note_id)

    # =========================================================================
    # Links
    # =========================================================================

    def _owned_endpoints(
        self, owner_id: int, from_note_id: Optional[int], to_note_id: Optional[int]
    ) -> tuple:
        if not from_note_id or not to_note_id:
            raise BadRequestError("fromNoteId and toNoteId required")
        from_note_id, to_note_id = int(from_note_id), int(to_note_id)
        self._owned_note(owner_id, from_note_id)
        self._owned_note(owner_id, to_note_id)
        return from_note_id, to_note_id

    @traced("create_link")
    def create_link(
        self, owner_id: int, from_note_id: Optional[int], to_note_id: Optional[int]
    ) -> NoteLink:
        """Link two notes the caller owns.

        Raises:
            BadRequestError: If an id is missing.
            NoteNotFoundError / ForbiddenError: Endpoint missing or not owned.
            LinkError: LINK_ALREADY_EXISTS for a duplicate ordered pair.
        """
        from_note_id, to_note_id = self._owned_endpoints(owner_id, from_note_id, to_note_id)
        return self.links.create(from_note_id, to_note_id)

    @traced("list_links")
    def list_links(self, owner_id: int) -> List[NoteLink]:
        """All links between the caller's notes, newest first."""
        return self.links.get_all(owner_id=owner_id)

    @traced("list_links_for_note")
    def list_links_for_note(self, owner_id: int, note_id: int) -> List[NoteLink]:
        """Links where a note is source or destination."""
        self._owned_note(owner_id, note_id)
        return self.links.get_all_for_note(note_id)

    @traced("delete_link")
    def delete_link(
        self, owner_id: int, from_note_id: Optional[int], to_note_id: Optional[int]
    ) -> None:
        """Delete the exact ordered-pair link."""
        from_note_id, to_note_id = self._owned_endpoints(owner_id, from_note_id, to_note_id)
        if not self.links.delete(from_note_id, to_note_id):
            raise LinkError(
                "link not found",
                from_note_id=from_note_id,
                to_note_id=to_note_id,
                code=ErrorCode.LINK_NOT_FOUND,
            )
