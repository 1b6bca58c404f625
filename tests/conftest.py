"""
Pytest fixtures for symposium tests.

Every test gets its own file-based SQLite database (in-memory SQLite is
per-connection) and a local blob store under tmp_path.
"""

import os
import tempfile
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Dict, List, Optional, Tuple

# Settings are read at import time; point them at a throwaway database first
_tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_tmp.close()
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp.name}"
os.environ["EMAIL_ENABLED"] = "false"

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from symposium.config import get_settings

get_settings.cache_clear()

from symposium.database import build_engine, build_session_maker
from symposium.kernel.errors import ExternalFailure
from symposium.kernel.identity.password import hash_password
from symposium.kernel.models import Base, Event, EventStatus, User, UserRole
from symposium.kernel.permissions import Actor
from symposium.orchestration.workflow import ArtifactUpload, SubmissionWorkflow
from symposium.services.notifier import NotificationKind, Notifier
from symposium.services.storage import LocalBlobStore

# Fixed "now" for every workflow under test
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

PDF_BYTES = b"%PDF-1.4\n% symposium test document\n"
TEST_PASSWORD = "TestPassword123"


def pytest_sessionfinish(session, exitstatus):
    """Clean up the import-time temp DB file."""
    try:
        if os.path.exists(_tmp.name):
            os.unlink(_tmp.name)
    except OSError:
        pass


class RecordingNotifier(Notifier):
    """Keeps every notification in memory."""

    def __init__(self):
        self.sent: List[Tuple[NotificationKind, str, Dict[str, Any]]] = []

    async def notify(self, kind: NotificationKind, recipient: str, payload: Dict[str, Any]) -> None:
        self.sent.append((kind, recipient, dict(payload)))

    def of_kind(self, kind: NotificationKind) -> List[Tuple[NotificationKind, str, Dict[str, Any]]]:
        return [n for n in self.sent if n[0] == kind]


class FailingNotifier(Notifier):
    """Fails every delivery the way a dead SMTP relay would."""

    def __init__(self):
        self.attempts = 0

    async def notify(self, kind: NotificationKind, recipient: str, payload: Dict[str, Any]) -> None:
        self.attempts += 1
        raise ExternalFailure("SMTP relay unavailable", service="smtp")


def pdf_upload(filename: str = "paper.pdf", data: bytes = PDF_BYTES) -> ArtifactUpload:
    return ArtifactUpload(data=data, filename=filename, content_type="application/pdf")


async def create_user(
    session: AsyncSession,
    email: str,
    roles: Optional[List[str]] = None,
    verified: bool = True,
) -> User:
    user = User(
        id=uuid.uuid4(),
        email=email,
        password_hash=hash_password(TEST_PASSWORD, rounds=4),
        first_name=email.split("@")[0].title(),
        last_name="Tester",
        affiliation="Test University",
        roles=roles or [UserRole.USER.value],
        is_email_verified=verified,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Create a test database engine with all tables."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return build_session_maker(db_engine)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def author(db_session: AsyncSession) -> User:
    return await create_user(db_session, "author@example.com")


@pytest_asyncio.fixture
async def other_author(db_session: AsyncSession) -> User:
    return await create_user(db_session, "other@example.com")


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> User:
    return await create_user(
        db_session, "admin@example.com", roles=[UserRole.USER.value, UserRole.ADMIN.value]
    )


@pytest_asyncio.fixture
async def reviewer(db_session: AsyncSession) -> User:
    return await create_user(
        db_session, "reviewer1@example.com", roles=[UserRole.USER.value, UserRole.REVIEWER.value]
    )


@pytest_asyncio.fixture
async def second_reviewer(db_session: AsyncSession) -> User:
    return await create_user(
        db_session, "reviewer2@example.com", roles=[UserRole.USER.value, UserRole.REVIEWER.value]
    )


@pytest_asyncio.fixture
async def event(db_session: AsyncSession, admin: User) -> Event:
    """An event whose submission window is open at NOW."""
    event = Event(
        id=uuid.uuid4(),
        title="Spring Symposium 2026",
        location="Seoul",
        event_date=NOW + timedelta(days=30),
        submission_start_date=NOW - timedelta(days=10),
        submission_end_date=NOW + timedelta(days=10),
        status=EventStatus.UPCOMING.value,
        created_by=admin.id,
    )
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest.fixture
def author_actor(author: User) -> Actor:
    return Actor.from_user(author)


@pytest.fixture
def admin_actor(admin: User) -> Actor:
    return Actor.from_user(admin)


@pytest.fixture
def reviewer_actor(reviewer: User) -> Actor:
    return Actor.from_user(reviewer)


@pytest.fixture
def second_reviewer_actor(second_reviewer: User) -> Actor:
    return Actor.from_user(second_reviewer)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Create extra users: await make_user("x@example.com", roles=[...])."""

    async def _make(email: str, roles: Optional[List[str]] = None, verified: bool = True) -> User:
        return await create_user(db_session, email, roles=roles, verified=verified)

    return _make


@pytest.fixture
def pdf():
    """Factory for PDF uploads: pdf() or pdf("revised.pdf")."""
    return pdf_upload


@pytest.fixture
def upload_dir(tmp_path) -> str:
    return str(tmp_path / "uploads")


@pytest.fixture
def blob_store(upload_dir: str) -> LocalBlobStore:
    return LocalBlobStore(
        upload_dir=upload_dir,
        base_url="/uploads",
        max_size=1024 * 1024,
        allowed_types=["application/pdf"],
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def failing_notifier() -> FailingNotifier:
    return FailingNotifier()


@pytest.fixture
def make_workflow(db_session: AsyncSession, blob_store: LocalBlobStore, notifier: RecordingNotifier):
    """Build a workflow; override the notifier or the clock per test."""

    def _make(notifier_override: Optional[Notifier] = None, now: datetime = NOW) -> SubmissionWorkflow:
        return SubmissionWorkflow(
            db_session,
            blob_store,
            notifier_override or notifier,
            settings=get_settings(),
            clock=lambda: now,
        )

    return _make


@pytest.fixture
def workflow(make_workflow) -> SubmissionWorkflow:
    return make_workflow()
