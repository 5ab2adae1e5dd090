"""Workspace-scoped lookups shared by the pipeline services."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Select, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from interview_pipeline.core.errors import NotFoundError
from interview_pipeline.core.pipeline_states import ACTIVE_INTERVIEW_STATUSES
from interview_pipeline.models.candidate import RecCandidate
from interview_pipeline.models.interview import RecInterview
from interview_pipeline.models.stage import RecInterviewStage


def _scoped_candidate_query(candidate_id: int, workspace_id: int | None) -> Select:
    query = select(RecCandidate).where(
        RecCandidate.candidate_id == candidate_id,
        RecCandidate.deleted_at.is_(None),
    )
    if workspace_id is not None:
        query = query.where(RecCandidate.workspace_id == workspace_id)
    return query


async def get_candidate(
    session: AsyncSession,
    candidate_id: int,
    *,
    workspace_id: int | None = None,
    for_update: bool = False,
) -> RecCandidate:
    query = _scoped_candidate_query(candidate_id, workspace_id)
    if for_update:
        query = query.with_for_update()
    candidate = (await session.execute(query)).scalars().first()
    if not candidate:
        raise NotFoundError("Candidate not found", {"candidate_id": candidate_id})
    return candidate


async def get_live_stage(
    session: AsyncSession,
    stage_id: int,
    *,
    workspace_id: int | None = None,
    for_update: bool = False,
) -> RecInterviewStage:
    query = select(RecInterviewStage).where(
        RecInterviewStage.stage_id == stage_id,
        RecInterviewStage.deleted_at.is_(None),
    )
    if workspace_id is not None:
        query = query.join(RecCandidate, RecCandidate.candidate_id == RecInterviewStage.candidate_id).where(
            RecCandidate.workspace_id == workspace_id,
            RecCandidate.deleted_at.is_(None),
        )
    if for_update:
        query = query.with_for_update()
    stage = (await session.execute(query)).scalars().first()
    if not stage:
        raise NotFoundError("Interview stage not found", {"stage_id": stage_id})
    return stage


async def live_stages_for_candidate(session: AsyncSession, candidate_id: int) -> list[RecInterviewStage]:
    rows = (
        await session.execute(
            select(RecInterviewStage)
            .where(
                RecInterviewStage.candidate_id == candidate_id,
                RecInterviewStage.deleted_at.is_(None),
            )
            .order_by(RecInterviewStage.stage_index.asc(), RecInterviewStage.stage_id.asc())
        )
    ).scalars().all()
    return list(rows)


async def live_stage_at_index(session: AsyncSession, candidate_id: int, stage_index: int) -> RecInterviewStage | None:
    return (
        await session.execute(
            select(RecInterviewStage)
            .where(
                RecInterviewStage.candidate_id == candidate_id,
                RecInterviewStage.stage_index == stage_index,
                RecInterviewStage.deleted_at.is_(None),
            )
            .limit(1)
        )
    ).scalars().first()


async def get_live_interview(
    session: AsyncSession,
    interview_id: int,
    *,
    workspace_id: int | None = None,
) -> RecInterview:
    query = select(RecInterview).where(
        RecInterview.interview_id == interview_id,
        RecInterview.deleted_at.is_(None),
    )
    if workspace_id is not None:
        query = query.join(RecCandidate, RecCandidate.candidate_id == RecInterview.candidate_id).where(
            RecCandidate.workspace_id == workspace_id,
            RecCandidate.deleted_at.is_(None),
        )
    interview = (await session.execute(query)).scalars().first()
    if not interview:
        raise NotFoundError("Interview not found", {"interview_id": interview_id})
    return interview


async def active_interviews_for_stage(session: AsyncSession, stage_id: int) -> list[RecInterview]:
    rows = (
        await session.execute(
            select(RecInterview)
            .where(
                RecInterview.stage_id == stage_id,
                RecInterview.deleted_at.is_(None),
                RecInterview.status.in_(ACTIVE_INTERVIEW_STATUSES),
            )
            .order_by(RecInterview.scheduled_at.asc())
        )
    ).scalars().all()
    return list(rows)


async def tombstone_stage_interviews(session: AsyncSession, stage_ids: list[int], *, now: datetime) -> None:
    if not stage_ids:
        return
    await session.execute(
        update(RecInterview)
        .where(RecInterview.stage_id.in_(stage_ids), RecInterview.deleted_at.is_(None))
        .values(deleted_at=now, updated_at=now)
    )


async def list_interviewer_interviews(
    session: AsyncSession,
    interviewer_id: int,
    *,
    start_at: datetime | None = None,
    end_at: datetime | None = None,
    workspace_id: int | None = None,
) -> list[RecInterview]:
    query = select(RecInterview).where(
        RecInterview.interviewer_id == interviewer_id,
        RecInterview.deleted_at.is_(None),
    )
    if start_at is not None:
        query = query.where(RecInterview.scheduled_at >= start_at)
    if end_at is not None:
        query = query.where(RecInterview.scheduled_at < end_at)
    if workspace_id is not None:
        query = query.join(RecCandidate, RecCandidate.candidate_id == RecInterview.candidate_id).where(
            RecCandidate.workspace_id == workspace_id
        )
    rows = (await session.execute(query.order_by(RecInterview.scheduled_at.asc()))).scalars().all()
    return list(rows)
