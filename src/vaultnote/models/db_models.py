"""SQLAlchemy database models for the Vaultnote server."""
import datetime
from typing import Optional

from sqlalchemy import (Boolean, Column, DateTime, ForeignKey, Integer, String,
                        Text, UniqueConstraint, create_engine, event)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from vaultnote.config import config


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


# Create base class for SQLAlchemy models
Base = declarative_base()


class DBUser(Base):
    """Database model for a user account."""
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), unique=True, nullable=True)
    email = Column(String(320), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    verification_code_hash = Column(String(255), nullable=True)
    verification_expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    # Relationships
    vaults = relationship("DBVault", back_populates="owner")

    def __repr__(self) -> str:
        """Return string representation of user."""
        return f"<User(id={self.id}, email='{self.email}')>"


class DBVault(Base):
    """Database model for a vault."""
    __tablename__ = "vaults"
    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    # Relationships
    owner = relationship("DBUser", back_populates="vaults")
    notes = relationship("DBNote", back_populates="vault")

    # One vault name per owner
    __table_args__ = (
        UniqueConstraint("owner_id", "name", name="unique_vault_name_per_owner"),
    )

    def __repr__(self) -> str:
        """Return string representation of vault."""
        return f"<Vault(id={self.id}, owner_id={self.owner_id}, name='{self.name}')>"


class DBNote(Base):
    """Database model for a note."""
    __tablename__ = "notes"
    id = Column(Integer, primary_key=True, autoincrement=True)
    vault_id = Column(Integer, ForeignKey("vaults.id"), nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False, default="")
    hex_key = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, nullable=False, index=True)

    # Relationships
    vault = relationship("DBVault", back_populates="notes")
    outgoing_links = relationship(
        "DBLink",
        foreign_keys="DBLink.from_note_id",
        back_populates="from_note",
    )
    incoming_links = relationship(
        "DBLink",
        foreign_keys="DBLink.to_note_id",
        back_populates="to_note",
    )

    def __repr__(self) -> str:
        """Return string representation of note."""
        return f"<Note(id={self.id}, title='{self.title}')>"


class DBLink(Base):
    """Database model for a directed link between notes."""
    __tablename__ = "note_links"
    id = Column(Integer, primary_key=True, autoincrement=True)
    from_note_id = Column(Integer, ForeignKey("notes.id"), nullable=False, index=True)
    to_note_id = Column(Integer, ForeignKey("notes.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    # Relationships
    from_note = relationship(
        "DBNote", foreign_keys=[from_note_id], back_populates="outgoing_links"
    )
    to_note = relationship(
        "DBNote", foreign_keys=[to_note_id], back_populates="incoming_links"
    )

    # At most one link per ordered pair
    __table_args__ = (
        UniqueConstraint("from_note_id", "to_note_id", name="unique_link_pair"),
    )

    def __repr__(self) -> str:
        """Return string representation of link."""
        return (
            f"<Link(id={self.id}, from={self.from_note_id}, to={self.to_note_id})>"
        )


def init_db(db_url: Optional[str] = None):
    """Initialize the database with hardened configuration.

    Applies SQLite settings for integrity and crash resilience:
    - foreign_keys=ON so links cannot reference missing notes
    - WAL (Write-Ahead Logging) mode for atomic writes
    - busy_timeout so concurrent writers wait instead of failing
    - QueuePool with pre-ping for file databases; StaticPool for in-memory

    Args:
        db_url: SQLAlchemy URL. Defaults to the configured database.

    Returns:
        The configured engine with all tables created.
    """
    url = db_url or config.get_db_url()
    is_sqlite = url.startswith("sqlite")
    in_memory = is_sqlite and (":memory:" in url or url in ("sqlite://", "sqlite:///"))

    if in_memory:
        engine = create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    elif is_sqlite:
        engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=5,           # Base pool size (concurrent reads)
            max_overflow=10,       # Allow up to 15 total connections under load
            pool_timeout=30,       # Wait up to 30s for a connection
            pool_recycle=3600,     # Recycle connections after 1 hour
            pool_pre_ping=True,    # Validate connections before use
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(url, pool_pre_ping=True)

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if not in_memory:
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine=None):
    """Get a session factory for the database."""
    if engine is None:
        engine = init_db()
    return sessionmaker(bind=engine, expire_on_commit=False)
