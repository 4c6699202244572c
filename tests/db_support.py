"""Shared helpers for tests that need a real (in-memory SQLite) database."""

from datetime import datetime, timedelta

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from dynasty_auth.core.clock import utcnow
from dynasty_auth.core.security import PasswordHasher
from dynasty_auth.core.tokens import TokenIssuer
from dynasty_auth.models import Base
from dynasty_auth.repositories.auth import AuthRepository
from dynasty_auth.services.auth import AuthService

# bcrypt's minimum cost keeps the suite fast.
FAST_ROUNDS = 4
TEST_SECRET = "test-secret-that-is-long-enough-for-hs256"


def make_sessionmaker() -> sessionmaker:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_session() -> Session:
    return make_sessionmaker()()


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or utcnow()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


def make_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=FAST_ROUNDS)


def make_tokens(**kwargs) -> TokenIssuer:
    return TokenIssuer(TEST_SECRET, **kwargs)


def make_service(db: Session, **kwargs) -> AuthService:
    kwargs.setdefault("hasher", make_hasher())
    kwargs.setdefault("tokens", make_tokens())
    return AuthService(AuthRepository(db), **kwargs)
