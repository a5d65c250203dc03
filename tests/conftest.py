"""Shared pytest fixtures."""

from collections.abc import Generator
from unittest.mock import MagicMock

import pytest
from sqlalchemy import Engine, Integer, Text
from sqlalchemy.orm import Mapped, Session, mapped_column

from polytag.db import Base, create_tables, make_engine, make_session_factory


class Post(Base):
    """Host entity used to exercise tagging against a real table."""

    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)


@pytest.fixture()
def db_session() -> MagicMock:
    """Mock database session for unit tests."""
    return MagicMock()


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    """Fresh in-memory SQLite database with the tagging schema."""
    engine = make_engine("sqlite://")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db(engine: Engine) -> Generator[Session, None, None]:
    session = make_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def post_model() -> type[Post]:
    return Post
