from __future__ import annotations

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import get_settings

_engine = None
_SessionLocal: sessionmaker[Session] | None = None


def _resolve_db_url() -> str:
    settings = get_settings()
    backend = (settings.catalog_db_backend or "sqlite").strip().lower()
    if backend == "postgres":
        db_url = (settings.catalog_postgres_url or "").strip()
        if not db_url:
            raise ValueError("CATALOG_POSTGRES_URL must be configured when CATALOG_DB_BACKEND=postgres.")
        return db_url
    if backend == "sqlite":
        db_url = (settings.catalog_sqlite_url or "").strip()
        if not db_url:
            raise ValueError("CATALOG_SQLITE_URL / SQLITE_URL must be configured when CATALOG_DB_BACKEND=sqlite.")
        return db_url
    raise ValueError(f"Unsupported CATALOG_DB_BACKEND: {settings.catalog_db_backend}")


def _get_engine():
    global _engine
    if _engine is None:
        db_url = _resolve_db_url()
        kwargs: dict[str, object] = {}
        if db_url.startswith("sqlite"):
            # reads are handed to worker threads
            kwargs["connect_args"] = {"check_same_thread": False}
        _engine = create_engine(db_url, **kwargs)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(bind=_get_engine(), autoflush=False, autocommit=False)
    return _SessionLocal


def get_session() -> Generator[Session, None, None]:
    session_factory = get_session_factory()
    with session_factory() as session:
        yield session
