"""Vault API routes."""

from fastapi import APIRouter, Depends, Path

from vaultnote.api.deps import Services, current_user, get_services
from vaultnote.api.schemas import VaultCreate
from vaultnote.models.schema import Identity

router = APIRouter()


@router.get("")
def list_vaults(
    identity: Identity = Depends(current_user),
    services: Services = Depends(get_services),
):
    """List the caller's vaults, oldest first."""
    return [vault.to_api() for vault in services.vaults.list(identity.user_id)]


@router.post("", status_code=201)
def create_vault(
    body: VaultCreate,
    identity: Identity = Depends(current_user),
    services: Services = Depends(get_services),
):
    return services.vaults.create(identity.user_id, body.name).to_api()


@router.delete("/{vault_id}")
def delete_vault(
    vault_id: int = Path(...),
    identity: Identity = Depends(current_user),
    services: Services = Depends(get_services),
):
    """Delete a vault together with its notes and their links."""
    removed = services.vaults.delete(identity.user_id, vault_id)
    return {
        "message": "vault deleted",
        "notesDeleted": removed["notes"],
        "linksDeleted": removed["links"],
    }
