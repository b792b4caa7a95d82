from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from jobflow.core.base import LocalBase
from jobflow.core.config import settings


def _engine_for(url: str) -> Engine:
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)  # checks stale connections


engine = _engine_for(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def open_local_database(path: str | None = None) -> sessionmaker:
    """
    Open (and create if needed) the on-device database used by the guest scope.
    Returns a session factory bound to it.
    """
    db_path = path or settings.LOCAL_DB_PATH
    if db_path == ":memory:":
        # One shared connection, otherwise every session sees an empty database.
        local_engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        local_engine = _engine_for(f"sqlite+pysqlite:///{db_path}")

    # Import models so they register with the local metadata.
    import jobflow.models.local  # noqa: F401

    LocalBase.metadata.create_all(bind=local_engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=local_engine)
