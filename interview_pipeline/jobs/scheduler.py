from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from interview_pipeline.core.config import settings
from interview_pipeline.jobs.tasks import run_interview_feedback_reminders


def start_scheduler() -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_interview_feedback_reminders,
        IntervalTrigger(minutes=settings.feedback_reminder_interval_minutes),
        id="interview_feedback_reminders",
        replace_existing=True,
    )
    scheduler.start()
    return scheduler
