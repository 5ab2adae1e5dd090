import os

os.environ.setdefault("IP_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("IP_ENVIRONMENT", "test")
os.environ.setdefault("IP_CALENDAR_TIMEZONE", "UTC")
os.environ.setdefault("IP_REDIS_URL", "")

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from interview_pipeline.models import Base, RecCandidate
from interview_pipeline.services.pipeline import InterviewPipeline


class RecordingSink:
    def __init__(self, fail: bool = False) -> None:
        self.sent: list[dict] = []
        self.fail = fail

    async def notify(self, **kwargs) -> None:
        if self.fail:
            raise RuntimeError("sink unavailable")
        self.sent.append(kwargs)

    def of_type(self, notification_type: str) -> list[dict]:
        return [item for item in self.sent if item["type"] == notification_type]


@pytest.fixture()
async def async_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(async_engine):
    return async_sessionmaker(bind=async_engine, expire_on_commit=False, autoflush=False)


@pytest.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def pipeline(session_factory, sink) -> InterviewPipeline:
    return InterviewPipeline(session_factory, notifier=sink, lock_timeout=5.0)


@pytest.fixture()
def make_candidate(session_factory):
    async def _make(workspace_id: int = 1, full_name: str = "Jane Doe", status: str = "active") -> int:
        async with session_factory() as session:
            candidate = RecCandidate(workspace_id=workspace_id, full_name=full_name, status=status)
            session.add(candidate)
            await session.commit()
            return candidate.candidate_id

    return _make


@pytest.fixture()
def failing_sink() -> RecordingSink:
    return RecordingSink(fail=True)
