from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Generator

from core.config import settings


def _connect_args(database_url: str) -> dict:
    # SQLite connections are handed across FastAPI's worker threads
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


def _unicode_lower(value):
    if isinstance(value, str):
        return value.lower()
    return value


def register_sqlite_functions(bind: Engine) -> Engine:
    """Replace SQLite's ASCII-only lower() so icontains folds any script"""
    if bind.dialect.name != "sqlite":
        return bind

    @event.listens_for(bind, "connect")
    def _register_lower(dbapi_conn, connection_record):
        dbapi_conn.create_function("lower", 1, _unicode_lower, deterministic=True)

    return bind


# Create SQLAlchemy engine
engine = register_sqlite_functions(create_engine(
    settings.database_url,
    echo=settings.sql_echo,
    pool_pre_ping=True,
    pool_recycle=300,
    connect_args=_connect_args(settings.database_url),
))

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Dependency to get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None) -> None:
    """Create all tables that do not exist yet"""
    # Models register themselves on Base.metadata at import
    import core.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
