from __future__ import annotations

import pytest
from sqlalchemy.orm import sessionmaker

from healthpipe.db.engine import make_engine
from healthpipe.db.schema import create_tables


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'health_data.db'}")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()
