from datetime import datetime

import pytest
from sqlalchemy import select

from interview_pipeline.core.errors import NotFoundError, ValidationError
from interview_pipeline.models import RecInterview, RecInterviewStage
from interview_pipeline.schemas.stage import StageSpec
from interview_pipeline.services.stage_chain import order_stage_specs


def specs(*names, **overrides):
    return [StageSpec(stage_name=name, **overrides) for name in names]


def test_order_uses_list_position_by_default():
    ordered = order_stage_specs(specs("Screen", "Tech", "Final"))
    assert [spec.stage_name for spec in ordered] == ["Screen", "Tech", "Final"]


def test_order_follows_explicit_positions():
    ordered = order_stage_specs(
        [
            StageSpec(stage_name="Final", position=2),
            StageSpec(stage_name="Screen", position=0),
            StageSpec(stage_name="Tech", position=1),
        ]
    )
    assert [spec.stage_name for spec in ordered] == ["Screen", "Tech", "Final"]


@pytest.mark.parametrize(
    "stages",
    [
        [StageSpec(stage_name="  ")],
        [StageSpec(id=4, stage_name="A"), StageSpec(id=4, stage_name="B")],
        [StageSpec(stage_name="A", position=0), StageSpec(stage_name="B", position=0)],
        [StageSpec(stage_name="A", position=0), StageSpec(stage_name="B", position=2)],
        [StageSpec(stage_name="A", position=0), StageSpec(stage_name="B")],
        [StageSpec(stage_name="A", status="passed")],
    ],
)
def test_invalid_chains_are_rejected(stages):
    with pytest.raises(ValidationError):
        order_stage_specs(stages)


async def test_initial_sync_creates_indexed_waiting_stages(pipeline, make_candidate):
    candidate_id = await make_candidate()
    result = await pipeline.sync_stage_chain(
        candidate_id,
        [StageSpec(stage_name="Screen", interviewer_id=7), StageSpec(stage_name="Tech")],
    )
    assert len(result.created_stage_ids) == 2
    assert result.updated_stage_ids == [] and result.removed_stage_ids == []
    assert [(s.stage_index, s.stage_name, s.status) for s in result.stages] == [
        (0, "Screen", "waiting"),
        (1, "Tech", "waiting"),
    ]
    assert result.stages[0].interviewer_id == 7


async def test_resync_tombstones_omitted_stage_and_its_interviews(pipeline, make_candidate, session_factory):
    candidate_id = await make_candidate()
    first = await pipeline.sync_stage_chain(candidate_id, specs("A", "B", "C"))
    a, b, c = first.stages
    interview = await pipeline.schedule_interview(b.stage_id, 9, datetime(2026, 3, 2, 11, 0))

    second = await pipeline.sync_stage_chain(
        candidate_id,
        [StageSpec(id=a.stage_id, stage_name="A"), StageSpec(id=c.stage_id, stage_name="C")],
    )
    assert second.removed_stage_ids == [b.stage_id]

    async with session_factory() as session:
        removed = await session.get(RecInterviewStage, b.stage_id)
        assert removed.deleted_at is not None
        booking = await session.get(RecInterview, interview.interview_id)
        assert booking.deleted_at is not None
        kept_c = await session.get(RecInterviewStage, c.stage_id)
        assert kept_c.stage_index == 1

    live = await pipeline.list_candidate_stages(candidate_id)
    assert [stage.stage_index for stage in live] == [0, 1]
    # The freed slot can be booked again.
    await pipeline.schedule_interview(a.stage_id, 9, datetime(2026, 3, 2, 11, 0))


async def test_reorder_keeps_progress(pipeline, make_candidate):
    candidate_id = await make_candidate()
    first = await pipeline.sync_stage_chain(candidate_id, specs("A", "B"))
    a, b = first.stages
    await pipeline.schedule_interview(a.stage_id, 3, datetime(2026, 3, 2, 10, 0))

    result = await pipeline.sync_stage_chain(
        candidate_id,
        [
            StageSpec(id=b.stage_id, stage_name="B renamed", interviewer_id=4),
            StageSpec(id=a.stage_id, stage_name="A"),
        ],
    )
    assert sorted(result.updated_stage_ids) == sorted([a.stage_id, b.stage_id])
    by_id = {stage.stage_id: stage for stage in result.stages}
    assert by_id[b.stage_id].stage_index == 0
    assert by_id[b.stage_id].stage_name == "B renamed"
    assert by_id[b.stage_id].interviewer_id == 4
    assert by_id[a.stage_id].stage_index == 1
    assert by_id[a.stage_id].status == "in_progress"
    assert by_id[a.stage_id].scheduled_at == datetime(2026, 3, 2, 10, 0)


async def test_unknown_stage_id_is_created(pipeline, make_candidate):
    candidate_id = await make_candidate()
    result = await pipeline.sync_stage_chain(candidate_id, [StageSpec(id=999, stage_name="Ghost")])
    assert len(result.created_stage_ids) == 1
    assert result.created_stage_ids[0] != 999


async def test_sync_is_scoped_to_workspace(pipeline, make_candidate):
    candidate_id = await make_candidate(workspace_id=1)
    with pytest.raises(NotFoundError):
        await pipeline.sync_stage_chain(candidate_id, specs("A"), workspace_id=2)


async def test_failed_sync_leaves_chain_untouched(pipeline, make_candidate, session_factory):
    candidate_id = await make_candidate()
    await pipeline.sync_stage_chain(candidate_id, specs("A", "B"))
    with pytest.raises(ValidationError):
        await pipeline.sync_stage_chain(candidate_id, specs("C", ""))
    async with session_factory() as session:
        names = (
            await session.execute(
                select(RecInterviewStage.stage_name).where(
                    RecInterviewStage.candidate_id == candidate_id,
                    RecInterviewStage.deleted_at.is_(None),
                )
            )
        ).scalars().all()
    assert sorted(names) == ["A", "B"]
