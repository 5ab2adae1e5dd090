"""
Transactional entry point for every pipeline operation.

Each call opens its own session and transaction. Scheduling calls additionally hold the
interviewer's in-process lock and database lock row for the whole transaction, so the
conflict check and the insert form one critical section per interviewer. Notifications
and bus events are sent only after the transaction commits.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Sequence

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from interview_pipeline.core.config import settings
from interview_pipeline.core.errors import ConcurrencyError
from interview_pipeline.models.candidate import RecCandidate
from interview_pipeline.models.interview import RecInterview
from interview_pipeline.models.stage import RecInterviewStage
from interview_pipeline.request_context import RequestContext
from interview_pipeline.schemas.stage import StageSpec
from interview_pipeline.services import candidate_status, interview_scheduler, stage_chain, stage_transitions, store
from interview_pipeline.services.audit import write_audit_log
from interview_pipeline.services.event_bus import EventBus
from interview_pipeline.services.interviewer_locks import InterviewerLockRegistry, lock_interviewer_row
from interview_pipeline.services.notifications import (
    NotificationSink,
    NullNotificationSink,
    PendingNotification,
    dispatch_notifications,
)

logger = logging.getLogger("ipl.pipeline")

# Serialization failure, deadlock and lock-not-available.
_RETRYABLE_SQLSTATES = {"40001", "40P01", "55P03"}
# MySQL lock wait timeout and deadlock.
_RETRYABLE_MYSQL_CODES = {1205, 1213}
_RETRYABLE_SQLITE_MESSAGES = ("database is locked", "database table is locked")


@dataclass
class InterviewCompletionResult:
    interview: RecInterview
    stage: stage_transitions.StageOutcomeResult


def _is_retryable(exc: DBAPIError) -> bool:
    """True only for lock and serialization failures; every other database error propagates."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code in _RETRYABLE_SQLSTATES:
        return True
    args = getattr(orig, "args", ()) or ()
    if args and isinstance(args[0], int) and args[0] in _RETRYABLE_MYSQL_CODES:
        return True
    if isinstance(exc, OperationalError):
        message = str(orig).lower()
        return any(fragment in message for fragment in _RETRYABLE_SQLITE_MESSAGES)
    return False


class InterviewPipeline:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        notifier: NotificationSink | None = None,
        bus: EventBus | None = None,
        locks: InterviewerLockRegistry | None = None,
        lock_timeout: float | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._notifier = notifier or NullNotificationSink()
        self._bus = bus
        self._locks = locks or InterviewerLockRegistry()
        self._lock_timeout = settings.schedule_lock_timeout_seconds if lock_timeout is None else lock_timeout

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except DBAPIError as exc:
            if not _is_retryable(exc):
                raise
            logger.warning("pipeline_transaction_aborted", exc_info=True)
            raise ConcurrencyError("The operation could not acquire its locks. Please retry.") from exc

    @asynccontextmanager
    async def _interviewer_transaction(self, interviewer_id: int) -> AsyncIterator[AsyncSession]:
        async with self._locks.hold(interviewer_id, timeout=self._lock_timeout):
            async with self._transaction() as session:
                await lock_interviewer_row(session, interviewer_id, timeout=self._lock_timeout)
                yield session

    async def _after_commit(self, notifications: list[PendingNotification], event: dict[str, Any] | None) -> None:
        if notifications:
            await dispatch_notifications(self._notifier, notifications)
        if event is not None and self._bus is not None:
            await self._bus.publish(event)

    async def sync_stage_chain(
        self,
        candidate_id: int,
        stages: Sequence[StageSpec],
        *,
        workspace_id: int | None = None,
        context: RequestContext | None = None,
    ) -> stage_chain.StageChainSyncResult:
        async with self._transaction() as session:
            result = await stage_chain.sync_stage_chain(
                session,
                candidate_id=candidate_id,
                stages=stages,
                workspace_id=workspace_id,
            )
            if context is not None:
                await write_audit_log(
                    session,
                    action="candidate_stages.sync",
                    entity_type="candidate",
                    entity_id=candidate_id,
                    before=result.before,
                    after=result.after,
                    context=context,
                )
        await self._after_commit([], {"type": "interview_stage_updated", "candidate_id": candidate_id})
        return result

    async def record_stage_outcome(
        self,
        stage_id: int,
        status: str,
        comments: str,
        *,
        rating: int | None = None,
        workspace_id: int | None = None,
        context: RequestContext | None = None,
    ) -> stage_transitions.StageOutcomeResult:
        async with self._transaction() as session:
            result = await stage_transitions.record_stage_outcome(
                session,
                stage_id=stage_id,
                status=status,
                comments=comments,
                rating=rating,
                workspace_id=workspace_id,
            )
            if context is not None:
                await self._audit_stage_outcome(session, result, context)
        await self._after_commit(result.notifications, self._stage_event(result))
        return result

    async def schedule_interview(
        self,
        stage_id: int,
        interviewer_id: int,
        scheduled_at: datetime,
        *,
        duration_minutes: int | None = None,
        meeting_link: str | None = None,
        workspace_id: int | None = None,
        context: RequestContext | None = None,
    ) -> RecInterview:
        async with self._interviewer_transaction(interviewer_id) as session:
            change = await interview_scheduler.schedule_interview(
                session,
                stage_id=stage_id,
                interviewer_id=interviewer_id,
                scheduled_at=scheduled_at,
                duration_minutes=duration_minutes,
                meeting_link=meeting_link,
                workspace_id=workspace_id,
            )
            if context is not None:
                await write_audit_log(
                    session,
                    action="interview.schedule",
                    entity_type="interview",
                    entity_id=change.interview.interview_id,
                    before=None,
                    after=change.after,
                    context=context,
                )
        await self._after_commit(change.notifications, self._interview_event("interview_scheduled", change.interview))
        return change.interview

    async def reschedule_interview(
        self,
        interview_id: int,
        new_datetime: datetime,
        *,
        workspace_id: int | None = None,
        context: RequestContext | None = None,
    ) -> RecInterview:
        # The interviewer of a booking never changes, so it can be read before locking.
        async with self._session_factory() as session:
            interview = await store.get_live_interview(session, interview_id, workspace_id=workspace_id)
            interviewer_id = interview.interviewer_id

        async with self._interviewer_transaction(interviewer_id) as session:
            interview = await store.get_live_interview(session, interview_id, workspace_id=workspace_id)
            change = await interview_scheduler.reschedule_interview(session, interview=interview, new_datetime=new_datetime)
            if context is not None:
                await write_audit_log(
                    session,
                    action="interview.reschedule",
                    entity_type="interview",
                    entity_id=interview_id,
                    before=change.before,
                    after=change.after,
                    context=context,
                )
        await self._after_commit(change.notifications, self._interview_event("interview_rescheduled", change.interview))
        return change.interview

    async def record_interview_outcome(
        self,
        interview_id: int,
        outcome: str,
        notes: str | None = None,
        *,
        workspace_id: int | None = None,
        context: RequestContext | None = None,
    ) -> RecInterview:
        async with self._transaction() as session:
            change = await interview_scheduler.record_interview_outcome(
                session,
                interview_id=interview_id,
                outcome=outcome,
                notes=notes,
                workspace_id=workspace_id,
            )
            if context is not None:
                await write_audit_log(
                    session,
                    action="interview.outcome",
                    entity_type="interview",
                    entity_id=interview_id,
                    before=change.before,
                    after=change.after,
                    context=context,
                )
        await self._after_commit([], self._interview_event("interview_updated", change.interview))
        return change.interview

    async def complete_interview(
        self,
        interview_id: int,
        outcome: str,
        notes: str,
        *,
        rating: int | None = None,
        workspace_id: int | None = None,
        context: RequestContext | None = None,
    ) -> InterviewCompletionResult:
        """Records the interview outcome and drives the owning stage in one transaction."""
        async with self._transaction() as session:
            change = await interview_scheduler.record_interview_outcome(
                session,
                interview_id=interview_id,
                outcome=outcome,
                notes=notes,
                workspace_id=workspace_id,
            )
            stage = await store.get_live_stage(session, change.interview.stage_id, for_update=True)
            stage_result = await stage_transitions.apply_stage_outcome(
                session,
                stage=stage,
                status=outcome,
                comments=notes,
                rating=rating,
            )
            if context is not None:
                await write_audit_log(
                    session,
                    action="interview.complete",
                    entity_type="interview",
                    entity_id=interview_id,
                    before=change.before,
                    after=change.after,
                    context=context,
                )
                await self._audit_stage_outcome(session, stage_result, context)
        await self._after_commit(stage_result.notifications, self._stage_event(stage_result))
        return InterviewCompletionResult(interview=change.interview, stage=stage_result)

    async def cancel_interview(
        self,
        interview_id: int,
        *,
        workspace_id: int | None = None,
        context: RequestContext | None = None,
    ) -> RecInterview:
        async with self._transaction() as session:
            change = await interview_scheduler.cancel_interview(
                session,
                interview_id=interview_id,
                workspace_id=workspace_id,
            )
            if context is not None:
                await write_audit_log(
                    session,
                    action="interview.cancel",
                    entity_type="interview",
                    entity_id=interview_id,
                    before=change.before,
                    after=change.after,
                    context=context,
                )
        await self._after_commit(change.notifications, self._interview_event("interview_cancelled", change.interview))
        return change.interview

    async def hire_candidate(
        self,
        candidate_id: int,
        *,
        workspace_id: int | None = None,
        context: RequestContext | None = None,
    ) -> RecCandidate:
        async with self._transaction() as session:
            change = await candidate_status.hire_candidate(session, candidate_id=candidate_id, workspace_id=workspace_id)
            if context is not None:
                await write_audit_log(
                    session,
                    action="candidate.hire",
                    entity_type="candidate",
                    entity_id=candidate_id,
                    before=change.before,
                    after=change.after,
                    context=context,
                )
        return change.candidate

    async def dismiss_candidate(
        self,
        candidate_id: int,
        reason: str,
        dismissal_date: datetime | None = None,
        *,
        workspace_id: int | None = None,
        context: RequestContext | None = None,
    ) -> RecCandidate:
        async with self._transaction() as session:
            change = await candidate_status.dismiss_candidate(
                session,
                candidate_id=candidate_id,
                reason=reason,
                dismissal_date=dismissal_date,
                workspace_id=workspace_id,
            )
            if context is not None:
                await write_audit_log(
                    session,
                    action="candidate.dismiss",
                    entity_type="candidate",
                    entity_id=candidate_id,
                    before=change.before,
                    after=change.after,
                    context=context,
                )
        return change.candidate

    async def list_candidate_stages(
        self, candidate_id: int, *, workspace_id: int | None = None
    ) -> list[RecInterviewStage]:
        async with self._session_factory() as session:
            await store.get_candidate(session, candidate_id, workspace_id=workspace_id)
            return await store.live_stages_for_candidate(session, candidate_id)

    async def get_interview(self, interview_id: int, *, workspace_id: int | None = None) -> RecInterview:
        async with self._session_factory() as session:
            return await store.get_live_interview(session, interview_id, workspace_id=workspace_id)

    async def list_interviewer_interviews(
        self,
        interviewer_id: int,
        *,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
        workspace_id: int | None = None,
    ) -> list[RecInterview]:
        async with self._session_factory() as session:
            return await store.list_interviewer_interviews(
                session,
                interviewer_id,
                start_at=start_at,
                end_at=end_at,
                workspace_id=workspace_id,
            )

    async def available_slots(self, interviewer_id: int, day: date) -> list[interview_scheduler.SlotCandidate]:
        async with self._session_factory() as session:
            return await interview_scheduler.available_slots(session, interviewer_id=interviewer_id, day=day)

    async def _audit_stage_outcome(
        self,
        session: AsyncSession,
        result: stage_transitions.StageOutcomeResult,
        context: RequestContext,
    ) -> None:
        await write_audit_log(
            session,
            action="interview_stage.outcome",
            entity_type="interview_stage",
            entity_id=result.stage.stage_id,
            before=result.stage_before,
            after=result.stage_after,
            context=context,
        )
        if result.candidate_before != result.candidate_after:
            await write_audit_log(
                session,
                action="candidate.progress",
                entity_type="candidate",
                entity_id=result.candidate.candidate_id,
                before=result.candidate_before,
                after=result.candidate_after,
                context=context,
            )

    @staticmethod
    def _stage_event(result: stage_transitions.StageOutcomeResult) -> dict[str, Any]:
        return {
            "type": "interview_stage_updated",
            "candidate_id": result.candidate.candidate_id,
            "stage_id": result.stage.stage_id,
            "status": result.stage.status,
            "candidate_status": result.candidate.status,
        }

    @staticmethod
    def _interview_event(event_type: str, interview: RecInterview) -> dict[str, Any]:
        return {
            "type": event_type,
            "interview_id": interview.interview_id,
            "candidate_id": interview.candidate_id,
            "stage_id": interview.stage_id,
            "interviewer_id": interview.interviewer_id,
            "scheduled_at": interview.scheduled_at,
        }
