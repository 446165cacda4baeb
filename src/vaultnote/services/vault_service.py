"""Service layer for vaults."""

import logging
from typing import Dict, List, Optional

from vaultnote.exceptions import BadRequestError, ErrorCode, VaultNotFoundError
from vaultnote.models.schema import Identity, Vault
from vaultnote.observability import traced
from vaultnote.services.guard import AuthorizationGuard
from vaultnote.storage.vault_repository import VaultRepository

logger = logging.getLogger(__name__)


class VaultService:
    """CRUD over vaults, scoped to the authenticated owner."""

    def __init__(self, repository: VaultRepository):
        self.repository = repository

    @traced("list_vaults")
    def list(self, owner_id: int) -> List[Vault]:
        return self.repository.list_for_owner(owner_id)

    @traced("create_vault")
    def create(self, owner_id: int, name: Optional[str]) -> Vault:
        """Create a vault with a trimmed, non-empty name.

        Raises:
            BadRequestError: If the name is empty.
            ConflictError: If the owner already has a vault with that name.
        """
        name = (name or "").strip()
        if not name:
            raise BadRequestError("name required", field="name", code=ErrorCode.VAULT_NAME_REQUIRED)
        return self.repository.create(owner_id, name)

    def get(self, owner_id: int, vault_id: int) -> Vault:
        """Fetch a vault the caller owns (NotFound before Forbidden)."""
        vault = self.repository.get(vault_id)
        if vault is None:
            raise VaultNotFoundError(vault_id)
        AuthorizationGuard.ensure_owner(vault.owner_id, Identity(user_id=owner_id))
        return vault

    @traced("delete_vault")
    def delete(self, owner_id: int, vault_id: int) -> Dict[str, int]:
        """Delete a vault with its notes and their links.

        Returns:
            Counts of removed notes and links.
        """
        self.get(owner_id, vault_id)
        removed = self.repository.delete_cascade(vault_id)
        if removed is None:
            # Deleted concurrently between the ownership check and the delete
            raise VaultNotFoundError(vault_id)
        return removed
