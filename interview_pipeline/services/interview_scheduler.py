from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from interview_pipeline.core.config import settings
from interview_pipeline.core.datetime_utils import calendar_tz, format_clock, format_slot_label, to_utc_naive, utcnow_naive
from interview_pipeline.core.errors import ConflictError, ValidationError
from interview_pipeline.core.pipeline_states import (
    ACTIVE_INTERVIEW_STATUSES,
    INTERVIEW_CANCELLED,
    INTERVIEW_COMPLETED,
    INTERVIEW_OUTCOMES,
    INTERVIEW_RESCHEDULED,
    INTERVIEW_SCHEDULED,
    STAGE_IN_PROGRESS,
    STAGE_PENDING,
    is_terminal_stage_status,
    normalize_status,
)
from interview_pipeline.models.interview import RecInterview
from interview_pipeline.models.stage import RecInterviewStage
from interview_pipeline.schemas.interview import InterviewOut
from interview_pipeline.services.notifications import (
    TITLE_INTERVIEW_CANCELLED,
    TITLE_INTERVIEW_RESCHEDULED,
    TITLE_NEW_INTERVIEW,
    TYPE_INTERVIEW_CANCELLED,
    TYPE_INTERVIEW_RESCHEDULED,
    TYPE_INTERVIEW_SCHEDULED,
    PendingNotification,
)
from interview_pipeline.services.store import active_interviews_for_stage, get_live_interview, get_live_stage

logger = logging.getLogger("ipl.scheduler")

DEFAULT_DURATION_MINUTES = 30
# The conflict query looks back one day, so no booking may run longer.
MAX_DURATION_MINUTES = 24 * 60
BUSINESS_START = time(10, 0)
BUSINESS_END = time(18, 30)
SLOT_MINUTES = 30


@dataclass
class SlotCandidate:
    start_at: datetime
    end_at: datetime

    @property
    def label(self) -> str:
        return format_slot_label(self.start_at)


@dataclass
class InterviewChange:
    interview: RecInterview
    stage: RecInterviewStage | None = None
    before: dict[str, Any] = field(default_factory=dict)
    after: dict[str, Any] = field(default_factory=dict)
    notifications: list[PendingNotification] = field(default_factory=list)


def interview_snapshot(interview: RecInterview) -> dict[str, Any]:
    return InterviewOut.model_validate(interview).model_dump(mode="json")


def _overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and a_end > b_start


def interview_window(interview: RecInterview) -> tuple[datetime, datetime]:
    minutes = interview.duration_minutes or DEFAULT_DURATION_MINUTES
    return interview.scheduled_at, interview.scheduled_at + timedelta(minutes=minutes)


def find_conflicts(
    start_at: datetime,
    duration_minutes: int,
    existing: Iterable[RecInterview],
    *,
    exclude_interview_id: int | None = None,
) -> list[RecInterview]:
    end_at = start_at + timedelta(minutes=duration_minutes)
    conflicts = []
    for interview in existing:
        if exclude_interview_id is not None and interview.interview_id == exclude_interview_id:
            continue
        existing_start, existing_end = interview_window(interview)
        if _overlaps(start_at, end_at, existing_start, existing_end):
            conflicts.append(interview)
    return sorted(conflicts, key=lambda item: item.scheduled_at)


def _day_bounds(moment: datetime) -> tuple[datetime, datetime]:
    day_start = datetime.combine(moment.date(), time.min)
    return day_start, day_start + timedelta(days=1)


async def load_interviewer_day(
    session: AsyncSession,
    interviewer_id: int,
    moment: datetime,
    *,
    duration_minutes: int = DEFAULT_DURATION_MINUTES,
) -> list[RecInterview]:
    """Active, live bookings of the interviewer around the calendar day of `moment`, row-locked."""
    day_start, day_end = _day_bounds(moment)
    # Previous-day bookings may run past midnight; late bookings may start on the next day.
    window_start = day_start - timedelta(days=1)
    window_end = max(day_end, moment + timedelta(minutes=duration_minutes))
    rows = (
        await session.execute(
            select(RecInterview)
            .where(
                RecInterview.interviewer_id == interviewer_id,
                RecInterview.status.in_(ACTIVE_INTERVIEW_STATUSES),
                RecInterview.deleted_at.is_(None),
                RecInterview.scheduled_at >= window_start,
                RecInterview.scheduled_at < window_end,
            )
            .order_by(RecInterview.scheduled_at.asc())
            .with_for_update()
        )
    ).scalars().all()
    return list(rows)


def _raise_conflict(interviewer_id: int, conflict: RecInterview) -> None:
    conflict_time = format_clock(conflict.scheduled_at)
    raise ConflictError(
        f"Interviewer is busy at this time. Conflicts with the interview at {conflict_time}.",
        {
            "interviewer_id": interviewer_id,
            "conflicting_interview_id": conflict.interview_id,
            "conflicting_time": conflict_time,
            "conflicting_scheduled_at": conflict.scheduled_at.isoformat(),
        },
    )


async def ensure_slot_free(
    session: AsyncSession,
    *,
    interviewer_id: int,
    start_at: datetime,
    duration_minutes: int,
    exclude_interview_id: int | None = None,
) -> None:
    existing = await load_interviewer_day(session, interviewer_id, start_at, duration_minutes=duration_minutes)
    conflicts = find_conflicts(start_at, duration_minutes, existing, exclude_interview_id=exclude_interview_id)
    if conflicts:
        _raise_conflict(interviewer_id, conflicts[0])


def _resolve_duration(duration_minutes: int | None) -> int:
    if duration_minutes is None:
        return settings.default_interview_minutes or DEFAULT_DURATION_MINUTES
    if duration_minutes <= 0 or duration_minutes > MAX_DURATION_MINUTES:
        raise ValidationError(
            f"Interview duration must be between 1 and {MAX_DURATION_MINUTES} minutes.",
            {"duration": duration_minutes},
        )
    return duration_minutes


async def schedule_interview(
    session: AsyncSession,
    *,
    stage_id: int,
    interviewer_id: int,
    scheduled_at: datetime,
    duration_minutes: int | None = None,
    meeting_link: str | None = None,
    workspace_id: int | None = None,
) -> InterviewChange:
    """
    Books `interviewer_id` for a stage. The caller must already hold the interviewer's
    lock (see InterviewPipeline) so check and insert happen in one critical section.
    """
    duration = _resolve_duration(duration_minutes)
    start_at = to_utc_naive(scheduled_at)

    stage = await get_live_stage(session, stage_id, workspace_id=workspace_id, for_update=True)
    if is_terminal_stage_status(stage.status):
        raise ConflictError(
            f"Interview stage is already '{stage.status}'.",
            {"stage_id": stage.stage_id, "status": stage.status},
        )

    await ensure_slot_free(session, interviewer_id=interviewer_id, start_at=start_at, duration_minutes=duration)

    now = utcnow_naive()
    interview = RecInterview(
        stage_id=stage.stage_id,
        candidate_id=stage.candidate_id,
        interviewer_id=interviewer_id,
        scheduled_at=start_at,
        duration_minutes=duration,
        status=INTERVIEW_SCHEDULED,
        meeting_link=meeting_link,
        created_at=now,
        updated_at=now,
    )
    session.add(interview)

    stage.status = STAGE_IN_PROGRESS
    stage.scheduled_at = start_at
    if stage.interviewer_id is None:
        stage.interviewer_id = interviewer_id
    stage.updated_at = now
    await session.flush()

    change = InterviewChange(interview=interview, stage=stage, after=interview_snapshot(interview))
    change.notifications.append(
        PendingNotification(
            user_id=interviewer_id,
            type=TYPE_INTERVIEW_SCHEDULED,
            title=TITLE_NEW_INTERVIEW,
            message=f'Interview scheduled for stage "{stage.stage_name}" on {format_slot_label(start_at)}',
            related_entity_type="interview",
            related_entity_id=interview.interview_id,
        )
    )
    logger.info(
        "interview_scheduled",
        extra={
            "interview_id": interview.interview_id,
            "stage_id": stage.stage_id,
            "interviewer_id": interviewer_id,
            "scheduled_at": start_at.isoformat(),
            "duration_minutes": duration,
        },
    )
    return change


async def reschedule_interview(
    session: AsyncSession,
    *,
    interview: RecInterview,
    new_datetime: datetime,
) -> InterviewChange:
    """Moves a booking; the same conflict check as scheduling runs, ignoring the booking itself."""
    if normalize_status(interview.status) not in ACTIVE_INTERVIEW_STATUSES:
        raise ConflictError(
            f"Interview is '{interview.status}' and cannot be rescheduled.",
            {"interview_id": interview.interview_id, "status": interview.status},
        )
    start_at = to_utc_naive(new_datetime)
    duration = interview.duration_minutes or DEFAULT_DURATION_MINUTES
    await ensure_slot_free(
        session,
        interviewer_id=interview.interviewer_id,
        start_at=start_at,
        duration_minutes=duration,
        exclude_interview_id=interview.interview_id,
    )

    change = InterviewChange(interview=interview, before=interview_snapshot(interview))
    now = utcnow_naive()
    interview.scheduled_at = start_at
    interview.status = INTERVIEW_RESCHEDULED
    interview.updated_at = now

    stage = await get_live_stage(session, interview.stage_id, for_update=True)
    stage.scheduled_at = start_at
    stage.updated_at = now
    change.stage = stage
    await session.flush()

    change.after = interview_snapshot(interview)
    change.notifications.append(
        PendingNotification(
            user_id=interview.interviewer_id,
            type=TYPE_INTERVIEW_RESCHEDULED,
            title=TITLE_INTERVIEW_RESCHEDULED,
            message=f"Interview rescheduled to {format_slot_label(start_at)}",
            related_entity_type="interview",
            related_entity_id=interview.interview_id,
        )
    )
    logger.info(
        "interview_rescheduled",
        extra={
            "interview_id": interview.interview_id,
            "interviewer_id": interview.interviewer_id,
            "scheduled_at": start_at.isoformat(),
        },
    )
    return change


async def record_interview_outcome(
    session: AsyncSession,
    *,
    interview_id: int,
    outcome: str,
    notes: str | None = None,
    workspace_id: int | None = None,
) -> InterviewChange:
    normalized = normalize_status(outcome)
    if normalized not in INTERVIEW_OUTCOMES:
        raise ValidationError("Interview outcome must be 'passed', 'failed' or 'pending'.", {"outcome": outcome})
    interview = await get_live_interview(session, interview_id, workspace_id=workspace_id)
    if normalize_status(interview.status) == INTERVIEW_CANCELLED:
        raise ConflictError("Interview was cancelled.", {"interview_id": interview_id})

    change = InterviewChange(interview=interview, before=interview_snapshot(interview))
    interview.status = INTERVIEW_COMPLETED
    interview.outcome = normalized
    interview.notes = notes or ""
    interview.updated_at = utcnow_naive()
    await session.flush()
    change.after = interview_snapshot(interview)
    return change


async def cancel_interview(
    session: AsyncSession,
    *,
    interview_id: int,
    workspace_id: int | None = None,
) -> InterviewChange:
    interview = await get_live_interview(session, interview_id, workspace_id=workspace_id)
    if normalize_status(interview.status) not in ACTIVE_INTERVIEW_STATUSES:
        raise ConflictError(
            f"Interview is '{interview.status}' and cannot be cancelled.",
            {"interview_id": interview_id, "status": interview.status},
        )
    change = InterviewChange(interview=interview, before=interview_snapshot(interview))
    now = utcnow_naive()
    interview.status = INTERVIEW_CANCELLED
    interview.updated_at = now

    stage = await get_live_stage(session, interview.stage_id, for_update=True)
    if normalize_status(stage.status) == STAGE_IN_PROGRESS:
        remaining = [
            other for other in await active_interviews_for_stage(session, stage.stage_id)
            if other.interview_id != interview.interview_id
        ]
        if not remaining:
            stage.status = STAGE_PENDING
            stage.scheduled_at = None
            stage.updated_at = now
    change.stage = stage
    await session.flush()

    change.after = interview_snapshot(interview)
    change.notifications.append(
        PendingNotification(
            user_id=interview.interviewer_id,
            type=TYPE_INTERVIEW_CANCELLED,
            title=TITLE_INTERVIEW_CANCELLED,
            message=f"Interview on {format_slot_label(interview.scheduled_at)} was cancelled",
            related_entity_type="interview",
            related_entity_id=interview.interview_id,
        )
    )
    return change


def generate_day_slots(day: date) -> list[SlotCandidate]:
    """Business-hours slots of `day` in the calendar timezone, returned as naive UTC."""
    tz = calendar_tz()
    slots: list[SlotCandidate] = []
    current = datetime.combine(day, BUSINESS_START, tzinfo=tz)
    day_end = datetime.combine(day, BUSINESS_END, tzinfo=tz)
    while current + timedelta(minutes=SLOT_MINUTES) <= day_end:
        start_utc = current.astimezone(timezone.utc).replace(tzinfo=None)
        slots.append(SlotCandidate(start_at=start_utc, end_at=start_utc + timedelta(minutes=SLOT_MINUTES)))
        current += timedelta(minutes=SLOT_MINUTES)
    return slots


def filter_free_slots(slots: list[SlotCandidate], bookings: Iterable[RecInterview]) -> list[SlotCandidate]:
    busy = [interview_window(interview) for interview in bookings]
    return [
        slot
        for slot in slots
        if not any(_overlaps(slot.start_at, slot.end_at, busy_start, busy_end) for busy_start, busy_end in busy)
    ]


async def available_slots(session: AsyncSession, *, interviewer_id: int, day: date) -> list[SlotCandidate]:
    slots = generate_day_slots(day)
    if not slots:
        return []
    window_start = slots[0].start_at - timedelta(days=1)
    window_end = slots[-1].end_at
    bookings = (
        await session.execute(
            select(RecInterview).where(
                RecInterview.interviewer_id == interviewer_id,
                RecInterview.status.in_(ACTIVE_INTERVIEW_STATUSES),
                RecInterview.deleted_at.is_(None),
                RecInterview.scheduled_at >= window_start,
                RecInterview.scheduled_at < window_end,
            )
        )
    ).scalars().all()
    return filter_free_slots(slots, bookings)
