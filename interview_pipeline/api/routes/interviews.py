from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from interview_pipeline.api import deps
from interview_pipeline.core.datetime_utils import to_utc_naive
from interview_pipeline.request_context import RequestContext
from interview_pipeline.schemas.candidate import CandidateOut
from interview_pipeline.schemas.interview import (
    FreeSlotOut,
    InterviewCompleteRequest,
    InterviewCompletionOut,
    InterviewCreate,
    InterviewOut,
    InterviewOutcomeRequest,
    InterviewReschedule,
)
from interview_pipeline.schemas.stage import StageOut
from interview_pipeline.services.pipeline import InterviewPipeline

router = APIRouter(prefix="/rec", tags=["interviews"])


@router.post("/interviews", response_model=InterviewOut, status_code=status.HTTP_201_CREATED)
async def schedule_interview(
    payload: InterviewCreate,
    context: RequestContext = Depends(deps.get_context),
    pipeline: InterviewPipeline = Depends(deps.get_pipeline),
):
    interview = await pipeline.schedule_interview(
        payload.stage_id,
        payload.interviewer_id,
        payload.scheduled_at,
        duration_minutes=payload.duration_minutes,
        meeting_link=payload.meeting_link,
        workspace_id=context.workspace_id,
        context=context,
    )
    return InterviewOut.model_validate(interview)


@router.get("/interviews/{interview_id}", response_model=InterviewOut)
async def get_interview(
    interview_id: int,
    context: RequestContext = Depends(deps.get_context),
    pipeline: InterviewPipeline = Depends(deps.get_pipeline),
):
    interview = await pipeline.get_interview(interview_id, workspace_id=context.workspace_id)
    return InterviewOut.model_validate(interview)


@router.post("/interviews/{interview_id}/reschedule", response_model=InterviewOut)
async def reschedule_interview(
    interview_id: int,
    payload: InterviewReschedule,
    context: RequestContext = Depends(deps.get_context),
    pipeline: InterviewPipeline = Depends(deps.get_pipeline),
):
    interview = await pipeline.reschedule_interview(
        interview_id,
        payload.new_datetime,
        workspace_id=context.workspace_id,
        context=context,
    )
    return InterviewOut.model_validate(interview)


@router.post("/interviews/{interview_id}/outcome", response_model=InterviewOut)
async def record_interview_outcome(
    interview_id: int,
    payload: InterviewOutcomeRequest,
    context: RequestContext = Depends(deps.get_context),
    pipeline: InterviewPipeline = Depends(deps.get_pipeline),
):
    interview = await pipeline.record_interview_outcome(
        interview_id,
        payload.outcome,
        payload.notes,
        workspace_id=context.workspace_id,
        context=context,
    )
    return InterviewOut.model_validate(interview)


@router.post("/interviews/{interview_id}/complete", response_model=InterviewCompletionOut)
async def complete_interview(
    interview_id: int,
    payload: InterviewCompleteRequest,
    context: RequestContext = Depends(deps.get_context),
    pipeline: InterviewPipeline = Depends(deps.get_pipeline),
):
    result = await pipeline.complete_interview(
        interview_id,
        payload.outcome,
        payload.notes,
        rating=payload.rating,
        workspace_id=context.workspace_id,
        context=context,
    )
    return InterviewCompletionOut(
        interview=InterviewOut.model_validate(result.interview),
        stage=StageOut.model_validate(result.stage.stage),
        candidate=CandidateOut.model_validate(result.stage.candidate),
    )


@router.post("/interviews/{interview_id}/cancel", response_model=InterviewOut)
async def cancel_interview(
    interview_id: int,
    context: RequestContext = Depends(deps.get_context),
    pipeline: InterviewPipeline = Depends(deps.get_pipeline),
):
    interview = await pipeline.cancel_interview(interview_id, workspace_id=context.workspace_id, context=context)
    return InterviewOut.model_validate(interview)


@router.get("/interviewers/{interviewer_id}/interviews", response_model=list[InterviewOut])
async def list_interviewer_interviews(
    interviewer_id: int,
    start_at: Optional[datetime] = Query(default=None),
    end_at: Optional[datetime] = Query(default=None),
    context: RequestContext = Depends(deps.get_context),
    pipeline: InterviewPipeline = Depends(deps.get_pipeline),
):
    interviews = await pipeline.list_interviewer_interviews(
        interviewer_id,
        start_at=to_utc_naive(start_at) if start_at else None,
        end_at=to_utc_naive(end_at) if end_at else None,
        workspace_id=context.workspace_id,
    )
    return [InterviewOut.model_validate(interview) for interview in interviews]


@router.get("/interviewers/{interviewer_id}/free-slots", response_model=list[FreeSlotOut])
async def list_free_slots(
    interviewer_id: int,
    day: date = Query(...),
    pipeline: InterviewPipeline = Depends(deps.get_pipeline),
):
    slots = await pipeline.available_slots(interviewer_id, day)
    return [FreeSlotOut(start_at=slot.start_at, end_at=slot.end_at, label=slot.label) for slot in slots]
