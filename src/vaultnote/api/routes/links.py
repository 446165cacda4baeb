"""Link API routes. Links are addressed by their ordered (from, to) pair."""

from fastapi import APIRouter, Body, Depends

from vaultnote.api.deps import Services, current_user, get_services
from vaultnote.api.schemas import LinkRequest
from vaultnote.models.schema import Identity

router = APIRouter()


@router.get("")
def list_links(
    identity: Identity = Depends(current_user),
    services: Services = Depends(get_services),
):
    """List links between the caller's notes, newest first."""
    return [link.to_api() for link in services.notes.list_links(identity.user_id)]


@router.post("", status_code=201)
def create_link(
    body: LinkRequest,
    identity: Identity = Depends(current_user),
    services: Services = Depends(get_services),
):
    link = services.notes.create_link(identity.user_id, body.from_note_id, body.to_note_id)
    return link.to_api()


@router.delete("")
def delete_link(
    body: LinkRequest = Body(...),
    identity: Identity = Depends(current_user),
    services: Services = Depends(get_services),
):
    services.notes.delete_link(identity.user_id, body.from_note_id, body.to_note_id)
    return {"message": "deleted"}
