from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from interview_pipeline.core.config import settings
from interview_pipeline.core.datetime_utils import format_slot_label, utcnow_naive
from interview_pipeline.core.pipeline_states import ACTIVE_INTERVIEW_STATUSES
from interview_pipeline.db.session import SessionLocal
from interview_pipeline.models.interview import RecInterview
from interview_pipeline.models.stage import RecInterviewStage
from interview_pipeline.services.event_bus import event_bus
from interview_pipeline.services.interview_scheduler import interview_window
from interview_pipeline.services.notifications import (
    TITLE_FEEDBACK_REMINDER,
    TYPE_REMINDER,
    DatabaseNotificationSink,
    NotificationSink,
    PendingNotification,
    dispatch_notifications,
)

logger = logging.getLogger("ipl.jobs")


async def run_interview_feedback_reminders(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    notifier: NotificationSink | None = None,
    now: datetime | None = None,
) -> int:
    """Reminds interviewers once about interviews that ended without an outcome."""
    session_factory = session_factory or SessionLocal
    notifier = notifier or DatabaseNotificationSink(session_factory, bus=event_bus)
    now = now or utcnow_naive()
    cutoff = now - timedelta(hours=settings.feedback_reminder_hours)

    pending: list[PendingNotification] = []
    async with session_factory() as session:
        rows = (
            await session.execute(
                select(RecInterview, RecInterviewStage)
                .join(RecInterviewStage, RecInterviewStage.stage_id == RecInterview.stage_id)
                .where(
                    RecInterview.status.in_(ACTIVE_INTERVIEW_STATUSES),
                    RecInterview.outcome.is_(None),
                    RecInterview.reminder_sent_at.is_(None),
                    RecInterview.deleted_at.is_(None),
                    RecInterview.scheduled_at <= cutoff,
                )
            )
        ).all()

        for interview, stage in rows:
            _, ended_at = interview_window(interview)
            if ended_at > cutoff:
                continue
            interview.reminder_sent_at = now
            pending.append(
                PendingNotification(
                    user_id=interview.interviewer_id,
                    type=TYPE_REMINDER,
                    title=TITLE_FEEDBACK_REMINDER,
                    message=(
                        f'Please submit feedback for stage "{stage.stage_name}" '
                        f"held on {format_slot_label(interview.scheduled_at)}"
                    ),
                    related_entity_type="interview",
                    related_entity_id=interview.interview_id,
                )
            )
        await session.commit()

    delivered = await dispatch_notifications(notifier, pending)
    logger.info("feedback_reminders_sent", extra={"due_count": len(pending), "delivered_count": delivered})
    return delivered
