import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("IDENTITY_BACKEND", "local")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings, get_settings
from app.core.security import hash_password
from app.db.base import Base
from app.db.models import PasswordResetChallenge, User
from app.dependencies import get_clock, get_db, get_mailer
from app.services.email_service import DeliveryResult
from app.services.identity_service import LocalIdentityProvider
from app.services.password_reset_service import PasswordResetService
from app.services.reset_store import SqlAlchemyPasswordResetStore

ACCOUNT_EMAIL = "a@b.com"
ACCOUNT_PASSWORD = "OldPassw0rd"


class FrozenClock:
    def __init__(self, now=None):
        self.current = now or datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

    def now(self):
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)


class RecordingMailer:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send_password_reset_code(self, email, code, expires_in_minutes):
        self.sent.append({"email": email, "code": code, "expires_in_minutes": expires_in_minutes})
        if self.fail:
            return DeliveryResult(delivered=False, provider="memory", error="mailbox unavailable")
        return DeliveryResult(delivered=True, provider="memory")

    @property
    def last_code(self):
        return self.sent[-1]["code"]


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def settings():
    return Settings(_env_file=None, environment="development", identity_backend="local")


@pytest.fixture()
def clock():
    return FrozenClock()


@pytest.fixture()
def mailer():
    return RecordingMailer()


@pytest.fixture()
def account(db_session):
    user = User(email=ACCOUNT_EMAIL, password_hash=hash_password(ACCOUNT_PASSWORD), name="a")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def store(db_session):
    return SqlAlchemyPasswordResetStore(db_session)


@pytest.fixture()
def service(db_session, store, mailer, clock, settings):
    return PasswordResetService(
        store=store,
        identity=LocalIdentityProvider(db_session),
        mailer=mailer,
        clock=clock,
        settings=settings,
    )


@pytest.fixture()
def challenges(db_session):
    def _all(email=ACCOUNT_EMAIL):
        db_session.expire_all()
        return (
            db_session.query(PasswordResetChallenge)
            .filter(PasswordResetChallenge.email == email)
            .all()
        )

    return _all


@pytest.fixture()
def client(db_session, mailer, clock, settings):
    from app.main import app

    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
