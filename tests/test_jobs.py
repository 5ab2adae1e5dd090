from datetime import datetime, timedelta

from interview_pipeline.jobs.tasks import run_interview_feedback_reminders
from interview_pipeline.models import RecInterview
from interview_pipeline.schemas.stage import StageSpec


async def test_feedback_reminder_is_sent_once(pipeline, make_candidate, session_factory, sink):
    candidate_id = await make_candidate()
    result = await pipeline.sync_stage_chain(candidate_id, [StageSpec(stage_name="A"), StageSpec(stage_name="B")])
    old = await pipeline.schedule_interview(result.stages[0].stage_id, 7, datetime(2026, 3, 2, 10, 0))
    await pipeline.schedule_interview(result.stages[1].stage_id, 7, datetime(2026, 3, 4, 10, 0))
    now = datetime(2026, 3, 4, 12, 0)

    sent = await run_interview_feedback_reminders(session_factory, sink, now=now)
    assert sent == 1
    reminders = sink.of_type("reminder")
    assert reminders[0]["related_entity_id"] == old.interview_id
    assert reminders[0]["user_id"] == 7

    assert await run_interview_feedback_reminders(session_factory, sink, now=now + timedelta(hours=1)) == 0
    async with session_factory() as session:
        row = await session.get(RecInterview, old.interview_id)
    assert row.reminder_sent_at == now
