"""Dependency wiring for FastAPI routes.

Services are built once per application from configuration and a shared
engine, stored on ``app.state``, and handed to routes through Depends.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request

from vaultnote.config import VaultNoteConfig
from vaultnote.models.db_models import get_session_factory, init_db
from vaultnote.models.schema import Identity
from vaultnote.services.auth_service import AuthService
from vaultnote.services.guard import AuthorizationGuard
from vaultnote.services.mailer import Mailer, create_mailer
from vaultnote.services.note_service import NoteService
from vaultnote.services.vault_service import VaultService
from vaultnote.storage.link_repository import LinkRepository
from vaultnote.storage.note_repository import NoteRepository
from vaultnote.storage.user_repository import UserRepository
from vaultnote.storage.vault_repository import VaultRepository


@dataclass
class Services:
    """Everything a request handler may need."""

    settings: VaultNoteConfig
    auth: AuthService
    guard: AuthorizationGuard
    vaults: VaultService
    notes: NoteService


def build_services(
    settings: VaultNoteConfig,
    engine=None,
    mailer: Optional[Mailer] = None,
) -> Services:
    """Create repositories over one engine and the services on top of them."""
    engine = engine or init_db(settings.get_db_url())

    users = UserRepository(engine=engine)
    vault_service = VaultService(VaultRepository(engine=engine))
    note_service = NoteService(
        notes=NoteRepository(engine=engine),
        links=LinkRepository(get_session_factory(engine)),
        vaults=vault_service,
    )
    auth = AuthService.from_config(settings, users, mailer or create_mailer(settings))

    return Services(
        settings=settings,
        auth=auth,
        guard=AuthorizationGuard(auth.tokens),
        vaults=vault_service,
        notes=note_service,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def current_user(
    authorization: Optional[str] = Header(default=None),
    services: Services = Depends(get_services),
) -> Identity:
    """Resolve the calling user or respond 401 before any storage access."""
    return services.guard.require_user(authorization)
