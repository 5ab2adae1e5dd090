import asyncio

import pytest

from interview_pipeline.core.errors import ConcurrencyError
from interview_pipeline.models import RecInterviewerLock
from interview_pipeline.services.interviewer_locks import InterviewerLockRegistry, lock_interviewer_row


async def test_same_interviewer_is_serialized():
    registry = InterviewerLockRegistry()
    order: list[str] = []

    async def worker(name: str) -> None:
        async with registry.hold(1):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))
    assert order == ["a-in", "a-out", "b-in", "b-out"]
    assert len(registry) == 0


async def test_different_interviewers_do_not_share_a_lock():
    registry = InterviewerLockRegistry()
    async with registry.hold(1):
        async with registry.hold(2, timeout=0.1):
            assert len(registry) == 2


async def test_timeout_raises_concurrency_error():
    registry = InterviewerLockRegistry()
    async with registry.hold(1):
        with pytest.raises(ConcurrencyError):
            async with registry.hold(1, timeout=0.05):
                pass
    assert len(registry) == 0


async def test_lock_row_is_created_once(db_session):
    first = await lock_interviewer_row(db_session, 5, timeout=1.0)
    await db_session.flush()
    again = await lock_interviewer_row(db_session, 5, timeout=1.0)
    assert first is again
    assert again.locked_at is not None
    assert await db_session.get(RecInterviewerLock, 5) is first
