"""SQLAlchemy engine and session factory."""

import os
from collections.abc import Generator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    pass


def _get_database_url() -> str:
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL environment variable is not set")
    return url


def _enable_sqlite_savepoints(engine: Engine) -> None:
    # pysqlite starts transactions lazily and breaks SAVEPOINT; emit BEGIN ourselves.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):  # type: ignore[no-untyped-def]
        conn.exec_driver_sql("BEGIN")


def make_engine(database_url: str | None = None) -> Engine:
    url = make_url(database_url or _get_database_url())
    if url.get_backend_name() != "sqlite":
        return create_engine(url)

    if url.database in (None, "", ":memory:"):
        # One shared connection, otherwise every checkout gets an empty database.
        engine = create_engine(
            url, connect_args={"check_same_thread": False}, poolclass=StaticPool
        )
    else:
        engine = create_engine(url)
    _enable_sqlite_savepoints(engine)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


# Module-level singletons, created lazily on first access via _get_engine().
_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _get_engine() -> Engine:
    global _engine, _session_factory
    if _engine is None:
        _engine = make_engine()
        _session_factory = make_session_factory(_engine)
    return _engine


def get_session() -> Generator[Session, None, None]:
    """Yield a database session and close it when the request is done."""
    _get_engine()
    assert _session_factory is not None
    session = _session_factory()
    try:
        yield session
    finally:
        session.close()


def create_tables(engine: Engine | None = None) -> None:
    """Create the tags and taggable tables if they do not exist yet."""
    # Import models so Base.metadata includes them before create_all().
    import polytag.models.tag  # noqa: F401
    import polytag.models.taggable  # noqa: F401

    Base.metadata.create_all(bind=engine or _get_engine())
