import uuid
from typing import Iterator

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from recipebook.database import enable_sqlite_foreign_keys
from recipebook.models import Base
from recipebook.services import PreferenceStore, RecipeStore


@pytest.fixture
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def recipe_store(session_factory: sessionmaker[Session]) -> RecipeStore:
    return RecipeStore(session_factory)


@pytest.fixture
def preference_store(session_factory: sessionmaker[Session]) -> PreferenceStore:
    return PreferenceStore(session_factory)


@pytest.fixture
def owner() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def other_owner() -> uuid.UUID:
    return uuid.uuid4()
