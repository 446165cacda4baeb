"""Storage layer for the Vaultnote server."""

from vaultnote.storage.base import Repository
from vaultnote.storage.link_repository import LinkRepository
from vaultnote.storage.note_repository import NoteRepository
from vaultnote.storage.user_repository import UserRepository
from vaultnote.storage.vault_repository import VaultRepository

__all__ = [
    "Repository",
    "UserRepository",
    "VaultRepository",
    "NoteRepository",
    "LinkRepository",
]
