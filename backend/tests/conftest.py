import os

# Must be set before the application settings are loaded
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["GEOIP_DATABASE_PATH"] = ""
os.environ["LOG_JSON"] = "false"

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shortlinks.core.security import create_access_token
from shortlinks.database import Base, get_db, set_sqlite_pragma
from shortlinks.main import app
from shortlinks.services.classifier import RequestContext, classify
from shortlinks.utils.geo import GeoData

NOW = datetime(2026, 10, 18, 12, 0, 0)

CHROME_DESKTOP = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


class FakeGeo:
    """Static IP -> location table standing in for a MaxMind database"""

    def __init__(self, table=None):
        self.table = table or {}

    def lookup(self, ip):
        return self.table.get(ip, GeoData())


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(test_engine, "connect", set_sqlite_pragma)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token('owner-1')}"}


@pytest.fixture
def other_headers():
    return {"Authorization": f"Bearer {create_access_token('owner-2')}"}


def make_context(ip="203.0.113.10", user_agent=CHROME_DESKTOP, referrer=None, geo=None):
    return RequestContext(
        client_ip=ip,
        user_agent=user_agent,
        referrer=referrer,
        info=classify(user_agent, ip, geo or FakeGeo()),
    )
