"""Common test fixtures for the Vaultnote server."""

import datetime
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from tests.fakes import FakeClock, RecordingMailer
from vaultnote.api.app import create_application
from vaultnote.config import config
from vaultnote.models.db_models import get_session_factory, init_db
from vaultnote.services.auth_service import AuthService
from vaultnote.services.guard import AuthorizationGuard
from vaultnote.services.note_service import NoteService
from vaultnote.services.security import PasswordHasher, TokenService
from vaultnote.services.vault_service import VaultService
from vaultnote.storage.link_repository import LinkRepository
from vaultnote.storage.note_repository import NoteRepository
from vaultnote.storage.user_repository import UserRepository
from vaultnote.storage.vault_repository import VaultRepository

TEST_SECRET = "test-secret-0123456789abcdef0123456789"
# Low PBKDF2 cost keeps the suite fast
TEST_HASH_ITERATIONS = 1000


@pytest.fixture
def temp_db_dir():
    """Create a temporary directory for the database."""
    with tempfile.TemporaryDirectory() as db_dir:
        yield Path(db_dir)


@pytest.fixture
def test_config(temp_db_dir, monkeypatch):
    """Configure with test paths (auto-restored even on crash)."""
    monkeypatch.setattr(config, "database_path", temp_db_dir / "test_vaultnote.db")
    monkeypatch.setattr(config, "database_url", None)
    monkeypatch.setattr(config, "jwt_secret", TEST_SECRET)
    monkeypatch.setattr(config, "password_hash_iterations", TEST_HASH_ITERATIONS)
    monkeypatch.setattr(config, "admin_override_enabled", True)
    monkeypatch.setattr(config, "expose_error_details", False)
    yield config


@pytest.fixture
def engine(test_config):
    """A file-backed SQLite engine with all tables created."""
    engine = init_db(test_config.get_db_url())
    yield engine
    engine.dispose()


@pytest.fixture
def user_repository(engine):
    return UserRepository(engine=engine)


@pytest.fixture
def vault_repository(engine):
    return VaultRepository(engine=engine)


@pytest.fixture
def note_repository(engine):
    return NoteRepository(engine=engine)


@pytest.fixture
def link_repository(engine):
    return LinkRepository(get_session_factory(engine))


@pytest.fixture
def clock():
    """Controllable clock starting at a fixed UTC instant."""
    return FakeClock(datetime.datetime(2026, 1, 1, 12, 0, tzinfo=datetime.timezone.utc))


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def hasher():
    return PasswordHasher(iterations=TEST_HASH_ITERATIONS)


@pytest.fixture
def token_service():
    # Token expiry is checked against real time, so tokens use the real clock
    return TokenService(TEST_SECRET)


@pytest.fixture
def auth_service(user_repository, hasher, token_service, mailer, clock):
    """AuthService with a recording mailer and the admin override enabled."""
    return AuthService(
        users=user_repository,
        hasher=hasher,
        tokens=token_service,
        mailer=mailer,
        code_ttl=datetime.timedelta(minutes=10),
        admin_credential=("admin", "admin"),
        clock=clock,
    )


@pytest.fixture
def guard(token_service):
    return AuthorizationGuard(token_service)


@pytest.fixture
def vault_service(vault_repository):
    return VaultService(vault_repository)


@pytest.fixture
def note_service(note_repository, link_repository, vault_service):
    return NoteService(notes=note_repository, links=link_repository, vaults=vault_service)


@pytest.fixture
def make_user(auth_service, mailer):
    """Factory that registers and verifies a user, returning the AuthResult."""
    def _make(username="alice", email=None, password="password123"):
        email = email or f"{username}@example.com"
        auth_service.register(username, email, password)
        return auth_service.verify_email(email, mailer.last_code(email))
    return _make


@pytest.fixture
def app(test_config, engine, mailer):
    """The FastAPI application wired to the test database and mailer."""
    return create_application(test_config, engine=engine, mailer=mailer)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client
