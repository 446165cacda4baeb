"""HTTP route modules and the combined API router."""

from fastapi import APIRouter

from vaultnote.api.routes import links, notes, users, vaults

api_router = APIRouter()
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(vaults.router, prefix="/vaults", tags=["vaults"])
api_router.include_router(notes.router, prefix="/notes", tags=["notes"])
api_router.include_router(links.router, prefix="/links", tags=["links"])
