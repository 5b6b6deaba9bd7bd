import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import rivr_api.models  # noqa: F401
from rivr_api.core.database import Base
from rivr_api.services import passwords
from rivr_api.services.tenant_directory import tenant_directory


@pytest.fixture(autouse=True)
def _fast_hashing_and_fresh_directory(monkeypatch):
    monkeypatch.setattr(passwords, "BCRYPT_ROUNDS", 4)
    tenant_directory.invalidate()
    yield
    tenant_directory.invalidate()


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db(engine):
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = testing_session_local()
    yield session
    session.close()
