import base64
import os
from datetime import datetime, timedelta, timezone
from typing import Generator

# must be set before the app modules read their settings
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-secret-key"
os.environ["JWT_ACCESS_TOKEN_EXPIRY"] = "1h"
os.environ["JWT_REFRESH_TOKEN_EXPIRY"] = "7d"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("REDIS_HOST", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from stellar_sdk import Keypair

from main import app
from app.core.clock import get_clock
from app.core.rate_limit import counter_store
from app.core.stellar_auth import challenge_payload
from app.core.tokens import TokenConfig, TokenService
from app.db.base import Base
from app.db.session import get_db
from app.services.auth import AuthService
from app.services.identity_store import SqlIdentityStore


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FrozenClock:
    """Clock that only moves when a test tells it to"""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


def sign_nonce(keypair: Keypair, nonce: str) -> str:
    """Sign the challenge payload the way a Stellar wallet does"""
    return base64.b64encode(keypair.sign(challenge_payload(nonce))).decode()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def db() -> Generator[Session, None, None]:
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def token_config() -> TokenConfig:
    return TokenConfig(
        secret="test-secret-key",
        algorithm="HS256",
        access_token_seconds=3600,
        refresh_token_seconds=7 * 24 * 3600,
    )


@pytest.fixture
def token_service(token_config: TokenConfig, clock: FrozenClock) -> TokenService:
    return TokenService(token_config, clock)


@pytest.fixture
def auth_service(db: Session, token_service: TokenService, clock: FrozenClock) -> AuthService:
    return AuthService(SqlIdentityStore(db), token_service, clock)


@pytest.fixture
def keypair() -> Keypair:
    return Keypair.random()


@pytest.fixture
def client(db: Session, clock: FrozenClock) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application"""

    def override_get_db() -> Generator[Session, None, None]:
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    counter_store.reset()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    counter_store.reset()


@pytest.fixture
def signer():
    return sign_nonce
