from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from interview_pipeline.core.datetime_utils import utcnow_naive
from interview_pipeline.core.errors import ConcurrencyError
from interview_pipeline.models.interviewer_lock import RecInterviewerLock


class InterviewerLockRegistry:
    """One asyncio.Lock per interviewer id, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        self._waiters: dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, interviewer_id: int, *, timeout: float | None = None) -> AsyncIterator[None]:
        lock = self._locks.setdefault(interviewer_id, asyncio.Lock())
        self._waiters[interviewer_id] = self._waiters.get(interviewer_id, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=timeout)
            except asyncio.TimeoutError as exc:
                raise ConcurrencyError(
                    "Timed out waiting for the interviewer's schedule lock. Please retry.",
                    {"interviewer_id": interviewer_id},
                ) from exc
            try:
                yield
            finally:
                lock.release()
        finally:
            remaining = self._waiters[interviewer_id] - 1
            if remaining:
                self._waiters[interviewer_id] = remaining
            else:
                self._waiters.pop(interviewer_id, None)
                self._locks.pop(interviewer_id, None)


async def _apply_lock_timeout(session: AsyncSession, timeout: float) -> str:
    connection = await session.connection()
    dialect = connection.dialect.name
    if dialect == "postgresql":
        await session.execute(text(f"SET LOCAL lock_timeout = '{int(timeout * 1000)}ms'"))
    elif dialect in {"mysql", "mariadb"}:
        await session.execute(text(f"SET SESSION innodb_lock_wait_timeout = {max(int(timeout), 1)}"))
    return dialect


async def lock_interviewer_row(session: AsyncSession, interviewer_id: int, *, timeout: float) -> RecInterviewerLock:
    """
    Takes the interviewer's lock row with SELECT ... FOR UPDATE.

    The row lock lives until the surrounding transaction commits or rolls back, so a
    second booking transaction for the same interviewer waits and then reads the first
    one's committed interviews. SQLite ignores FOR UPDATE and serializes writers itself.
    """
    dialect = await _apply_lock_timeout(session, timeout)
    row = await session.get(RecInterviewerLock, interviewer_id, with_for_update=True)
    if row is None and dialect == "sqlite":
        row = RecInterviewerLock(interviewer_id=interviewer_id)
        session.add(row)
    elif row is None:
        try:
            async with session.begin_nested():
                session.add(RecInterviewerLock(interviewer_id=interviewer_id, locked_at=utcnow_naive()))
        except IntegrityError:
            # Another transaction created the row first; wait on its lock below.
            pass
        row = await session.get(
            RecInterviewerLock,
            interviewer_id,
            with_for_update=True,
            populate_existing=True,
        )
    row.locked_at = utcnow_naive()
    return row
