"""Note API routes.

Notes are always scoped to the authenticated owner. Listing requires a
vault id; fetching a single note includes its links in both directions.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from vaultnote.api.deps import Services, current_user, get_services
from vaultnote.api.schemas import NoteWrite
from vaultnote.models.schema import Identity

router = APIRouter()


@router.get("")
def list_notes(
    vault_id: Optional[int] = Query(default=None, alias="vaultId"),
    identity: Identity = Depends(current_user),
    services: Services = Depends(get_services),
):
    """List notes in one vault, most recently updated first."""
    notes = services.notes.list_notes(identity.user_id, vault_id)
    return [note.to_api() for note in notes]


@router.get("/{note_id}")
def get_note(
    note_id: int = Path(...),
    identity: Identity = Depends(current_user),
    services: Services = Depends(get_services),
):
    return services.notes.get_note(identity.user_id, note_id).to_api()


@router.get("/{note_id}/links")
def list_note_links(
    note_id: int = Path(...),
    identity: Identity = Depends(current_user),
    services: Services = Depends(get_services),
):
    links = services.notes.list_links_for_note(identity.user_id, note_id)
    return [link.to_api() for link in links]


@router.post("", status_code=201)
def create_note(
    body: NoteWrite,
    identity: Identity = Depends(current_user),
    services: Services = Depends(get_services),
):
    note = services.notes.create_note(
        identity.user_id,
        vault_id=body.vault_id,
        title=body.title,
        content=body.content,
        hex_key=body.hex_key,
    )
    return note.to_api()


@router.put("/{note_id}")
def update_note(
    body: NoteWrite,
    note_id: int = Path(...),
    identity: Identity = Depends(current_user),
    services: Services = Depends(get_services),
):
    """Update title (required) and any of content, vault and hex key."""
    note = services.notes.update_note(
        identity.user_id,
        note_id,
        title=body.title,
        content=body.content,
        vault_id=body.vault_id,
        hex_key=body.hex_key,
    )
    return note.to_api()


@router.delete("/{note_id}")
def delete_note(
    note_id: int = Path(...),
    identity: Identity = Depends(current_user),
    services: Services = Depends(get_services),
):
    services.notes.delete_note(identity.user_id, note_id)
    return {"message": "deleted"}
