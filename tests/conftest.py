"""
Test configuration and fixtures.

Provides:
- An in-memory entity store and a SQLite-backed SQL store (fresh per test)
- A ``store`` fixture parametrized over both, for behaviour both must share
- Users of every role and a fixed, advanceable clock
- HTTPX AsyncClient wired to the SQL store, plus session token minting
"""
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Callable, Generator

# Keep the app's module-level engine off the filesystem
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from aidcrm.core.deps import get_db
from aidcrm.core.security import create_session_token
from aidcrm.db.base import Base
import aidcrm.db.models  # noqa: F401
from aidcrm.db.enums import Role
from aidcrm.db.memory_store import InMemoryEntityStore
from aidcrm.db.session import build_engine
from aidcrm.db.sql_store import SqlEntityStore
from aidcrm.db.store import EntityStore
from aidcrm.main import app
from aidcrm.schemas.auth import Actor
from aidcrm.services.orchestrator import MutationOrchestrator
from aidcrm.services.seed_service import create_user


# =============================================================================
# Clock
# =============================================================================

class FixedClock:
    """Deterministic clock; ``advance`` moves it forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 3, 15, 9, 30, tzinfo=timezone.utc))


# =============================================================================
# Stores
# =============================================================================

@pytest.fixture
def sql_session_factory() -> Generator[sessionmaker, None, None]:
    """Fresh in-memory SQLite database shared by every session/thread of one test."""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(sql_session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = sql_session_factory()
    yield session
    session.close()


@pytest.fixture
def memory_store() -> InMemoryEntityStore:
    return InMemoryEntityStore()


@pytest.fixture
def sql_store(db: Session) -> SqlEntityStore:
    return SqlEntityStore(db)


@pytest.fixture(params=["memory", "sql"])
def store(request) -> EntityStore:
    """Every test using this fixture runs against both store implementations."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def orchestrator(store: EntityStore, clock: FixedClock) -> MutationOrchestrator:
    return MutationOrchestrator(store, clock=clock)


# =============================================================================
# Users
# =============================================================================

@dataclass
class Actors:
    super_admin: Actor
    admin: Actor
    staff: Actor
    other_staff: Actor
    field_worker: Actor
    volunteer: Actor


@pytest.fixture
def actors(store: EntityStore, clock: FixedClock) -> Actors:
    def make(email: str, role: Role) -> Actor:
        user = create_user(store, email=email, name=email.split("@")[0], role=role, clock=clock)
        return Actor.from_user(user)

    return Actors(
        super_admin=make("root@example.org", Role.SUPER_ADMIN),
        admin=make("admin@example.org", Role.ADMIN),
        staff=make("staff@example.org", Role.STAFF),
        other_staff=make("staff2@example.org", Role.STAFF),
        field_worker=make("field@example.org", Role.FIELD_WORKER),
        volunteer=make("volunteer@example.org", Role.VOLUNTEER),
    )


# =============================================================================
# Payload builders
# =============================================================================

@pytest.fixture
def beneficiary_payload() -> Callable[..., dict]:
    def build(**overrides) -> dict:
        payload = {
            "first_name": "Ahmad",
            "last_name": "Abdullah",
            "phone": "+60123456786",
            "category": "HOMELESS",
            "priority": "HIGH",
            "tags": ["kl"],
        }
        payload.update(overrides)
        return payload
    return build


@pytest.fixture
def case_payload() -> Callable[..., dict]:
    def build(beneficiary_id, **overrides) -> dict:
        payload = {
            "beneficiary_id": str(beneficiary_id),
            "title": "Emergency shelter",
            "description": "Needs temporary shelter",
            "type": "SHELTER",
        }
        payload.update(overrides)
        return payload
    return build


@pytest.fixture
def service_payload() -> Callable[..., dict]:
    def build(beneficiary_id, **overrides) -> dict:
        payload = {
            "type": "FOOD_DISTRIBUTION",
            "date": "2026-03-14",
            "quantity": 2,
            "beneficiary_id": str(beneficiary_id),
        }
        payload.update(overrides)
        return payload
    return build


# =============================================================================
# HTTP
# =============================================================================

@pytest.fixture
def http_store(db: Session) -> SqlEntityStore:
    """SQL store sharing the session the HTTP app uses."""
    return SqlEntityStore(db)


@pytest.fixture
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated client; requests run against the test database."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def auth_headers(actor: Actor, token_version: int = 1) -> dict[str, str]:
    token = create_session_token(actor.user_id, actor.role.value, token_version)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def bearer() -> Callable[..., dict[str, str]]:
    return auth_headers
