"""
Test configuration and fixtures.

Provides:
- Database session joined to an outer transaction (rolled back after each test)
- Circle with members at every role
- Bearer token minting for authenticated API tests
- HTTPX AsyncClient over ASGITransport

Tests run against TEST_DATABASE_URL when set, otherwise a temporary SQLite file.
"""
import os
import tempfile
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Callable, Generator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import delete
from sqlalchemy.orm import Session

_tmpdir = tempfile.mkdtemp(prefix="carecircle-tests-")
os.environ["DATABASE_URL"] = os.environ.get(
    "TEST_DATABASE_URL", f"sqlite:///{os.path.join(_tmpdir, 'test.db')}"
)
os.environ["TESTING"] = "1"
os.environ["INTERNAL_SECRET"] = "test-internal-secret"
os.environ["JWT_SECRET"] = "test-jwt-secret"

from carecircle.main import app
from carecircle.core.access import MembershipAccess
from carecircle.core.deps import get_db
from carecircle.core.security import create_session_token
from carecircle.db.base import Base
from carecircle.db.enums import InboxItemKind, MemberStatus, Role
from carecircle.db.models import Attachment, Circle, CircleMember, InboxItem, Patient
from carecircle.db.session import SessionLocal, engine
from carecircle.db.uow import unit_of_work


INTERNAL_SECRET = "test-internal-secret"


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="session", autouse=True)
def create_schema() -> Generator[None, None, None]:
    Base.metadata.create_all(engine)
    yield
    engine.dispose()


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Session joined to an outer transaction for test isolation.

    ``commit()`` inside app code only releases a SAVEPOINT; everything is
    rolled back when the test ends. Holds the SQLite write lock for the
    whole test, so concurrency tests use ``SessionLocal`` directly instead.
    """
    connection = engine.connect()
    transaction = connection.begin()
    session = SessionLocal(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


# =============================================================================
# Circle Fixtures
# =============================================================================

@dataclass
class CircleContext:
    """A circle with one member per role and one outsider."""
    circle: Circle
    patient: Patient
    owner_id: uuid.UUID
    admin_id: uuid.UUID
    contributor_id: uuid.UUID
    viewer_id: uuid.UUID
    outsider_id: uuid.UUID

    @property
    def circle_id(self) -> uuid.UUID:
        return self.circle.id

    @property
    def member_ids(self) -> list[uuid.UUID]:
        return [self.owner_id, self.admin_id, self.contributor_id, self.viewer_id]


def seed_circle(db: Session) -> CircleContext:
    """Insert a circle, a patient and members at every role, then commit."""
    circle = Circle(id=uuid.uuid4(), name=f"Test Circle {uuid.uuid4().hex[:6]}")
    db.add(circle)
    db.flush()

    patient = Patient(circle_id=circle.id, display_name="Mom")
    db.add(patient)

    ids = {role: uuid.uuid4() for role in Role}
    for role, user_id in ids.items():
        db.add(
            CircleMember(
                circle_id=circle.id,
                user_id=user_id,
                role=role.value,
                status=MemberStatus.ACTIVE.value,
            )
        )
    db.commit()

    return CircleContext(
        circle=circle,
        patient=patient,
        owner_id=ids[Role.OWNER],
        admin_id=ids[Role.ADMIN],
        contributor_id=ids[Role.CONTRIBUTOR],
        viewer_id=ids[Role.VIEWER],
        outsider_id=uuid.uuid4(),
    )


@pytest.fixture(scope="function")
def ctx(db: Session) -> CircleContext:
    return seed_circle(db)


@pytest.fixture(scope="function")
def committed_ctx() -> Generator[CircleContext, None, None]:
    """
    Circle committed through its own session, for multi-session tests.

    Deleted afterwards; every row the circle owns cascades.
    """
    with SessionLocal() as session:
        context = seed_circle(session)
        session.refresh(context.circle)
        session.refresh(context.patient)

    yield context

    with SessionLocal() as session, unit_of_work(session):
        session.execute(delete(Circle).where(Circle.id == context.circle.id))


@pytest.fixture(scope="function")
def make_circle(db: Session) -> Callable[[], CircleContext]:
    """Factory for additional circles (cross-tenant tests)."""
    return lambda: seed_circle(db)


@pytest.fixture(scope="function")
def access(db: Session) -> MembershipAccess:
    return MembershipAccess(db)


@pytest.fixture(scope="function")
def make_inbox_item(db: Session, ctx: CircleContext) -> Callable[..., InboxItem]:
    """Factory for captured inbox items (capture itself lives outside the core)."""
    def _make(kind: InboxItemKind = InboxItemKind.TEXT, **kwargs) -> InboxItem:
        values = {
            "circle_id": ctx.circle_id,
            "created_by": ctx.contributor_id,
            "kind": kind.value,
            "title": "Captured item",
            "note": "Call the pharmacy about refills",
        }
        values.update(kwargs)
        item = InboxItem(**values)
        db.add(item)
        db.commit()
        return item
    return _make


@pytest.fixture(scope="function")
def make_attachment(db: Session, ctx: CircleContext) -> Callable[..., Attachment]:
    def _make(kind: str = "PDF") -> Attachment:
        attachment = Attachment(
            circle_id=ctx.circle_id,
            uploader_user_id=ctx.contributor_id,
            kind=kind,
            mime_type="application/pdf" if kind == "PDF" else "image/jpeg",
            byte_size=2048,
            sha256="0" * 64,
            storage_key=f"attachments/{uuid.uuid4()}",
            filename="scan.pdf" if kind == "PDF" else "photo.jpg",
        )
        db.add(attachment)
        db.commit()
        return attachment
    return _make


# =============================================================================
# Auth / Client Fixtures
# =============================================================================

def bearer(user_id: uuid.UUID) -> dict[str, str]:
    """Authorization header for a user."""
    return {"Authorization": f"Bearer {create_session_token(user_id)}"}


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient whose requests share the test's database session."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def auth() -> Callable[[uuid.UUID], dict[str, str]]:
    """Header factory: ``auth(user_id)`` -> Authorization header."""
    return bearer
