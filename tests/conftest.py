import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import propdash.models  # noqa: F401
from propdash.db import Base
from propdash.services.entities import EntityRegistry
from propdash.services.preference_store import InMemoryPreferenceStore
from tests.mocks import FakePagedDataProvider


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autoflush=False,
        autocommit=False,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture()
def store():
    return InMemoryPreferenceStore()


@pytest.fixture()
def provider():
    return FakePagedDataProvider()


@pytest.fixture()
def contacts():
    return EntityRegistry.get("contacts")


@pytest.fixture()
def developers():
    return EntityRegistry.get("developers")


@pytest.fixture()
def reports():
    return EntityRegistry.get("reports")
