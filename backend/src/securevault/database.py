"""Database session factory and configuration.

Provides database connectivity and session management for the vault.
PostgreSQL in production, SQLite for local development and tests.
"""

from typing import Any, Dict, Generator, Sequence

from sqlalchemy import create_engine, event
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from .config import get_settings
from .models.base import Base


def build_engine(database_url: str) -> Engine:
    """Create an engine with settings appropriate for the target database."""
    engine_kwargs: Dict[str, Any] = {
        "pool_pre_ping": True,  # Verify connections before using
        "echo": False,  # Set to True for SQL query logging
    }

    # Pool settings only apply to PostgreSQL (not SQLite)
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        engine_kwargs["pool_size"] = 5
        engine_kwargs["max_overflow"] = 10

    built = create_engine(database_url, **engine_kwargs)

    if built.dialect.name == "sqlite":
        # SQLite ignores ON DELETE unless foreign keys are switched on per connection
        @event.listens_for(built, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return built


engine = build_engine(get_settings().DATABASE_URL)

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def create_all_tables(bind: Engine = engine) -> None:
    """Create all tables (development convenience; production uses Alembic)."""
    Base.metadata.create_all(bind=bind)


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI endpoints.

    Usage:
        @router.get("/documents")
        def list_documents(db: Session = Depends(get_db)):
            return db.query(Document).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def upsert(
    session: Session,
    model,
    values: Dict[str, Any],
    conflict_columns: Sequence[str],
    update_columns: Sequence[str],
) -> None:
    """Insert a row or update it in place when the unique key already exists.

    A single INSERT ... ON CONFLICT DO UPDATE statement, so two concurrent
    callers targeting the same key can never produce duplicate rows.
    Supported on PostgreSQL and SQLite.
    """
    dialect_name = session.get_bind().dialect.name
    if dialect_name == "postgresql":
        stmt = postgresql.insert(model).values(**values)
    elif dialect_name == "sqlite":
        stmt = sqlite.insert(model).values(**values)
    else:
        raise NotImplementedError(f"upsert is not supported on dialect '{dialect_name}'")

    stmt = stmt.on_conflict_do_update(
        index_elements=list(conflict_columns),
        set_={column: stmt.excluded[column] for column in update_columns},
    )
    session.execute(stmt)
