from __future__ import annotations

from fastapi import APIRouter, Depends

from interview_pipeline.api import deps
from interview_pipeline.request_context import RequestContext
from interview_pipeline.schemas.candidate import CandidateOut
from interview_pipeline.schemas.stage import (
    StageChainSyncOut,
    StageChainSyncRequest,
    StageOut,
    StageOutcomeOut,
    StageOutcomeRequest,
)
from interview_pipeline.services.pipeline import InterviewPipeline

router = APIRouter(prefix="/rec", tags=["stages"])


@router.get("/candidates/{candidate_id}/stages", response_model=list[StageOut])
async def list_candidate_stages(
    candidate_id: int,
    context: RequestContext = Depends(deps.get_context),
    pipeline: InterviewPipeline = Depends(deps.get_pipeline),
):
    stages = await pipeline.list_candidate_stages(candidate_id, workspace_id=context.workspace_id)
    return [StageOut.model_validate(stage) for stage in stages]


@router.put("/candidates/{candidate_id}/stages", response_model=StageChainSyncOut)
async def sync_candidate_stages(
    candidate_id: int,
    payload: StageChainSyncRequest,
    context: RequestContext = Depends(deps.get_context),
    pipeline: InterviewPipeline = Depends(deps.get_pipeline),
):
    result = await pipeline.sync_stage_chain(
        candidate_id,
        payload.stages,
        workspace_id=context.workspace_id,
        context=context,
    )
    return StageChainSyncOut(
        candidate_id=result.candidate_id,
        created_stage_ids=result.created_stage_ids,
        updated_stage_ids=result.updated_stage_ids,
        removed_stage_ids=result.removed_stage_ids,
        stages=[StageOut.model_validate(stage) for stage in result.stages],
    )


@router.post("/stages/{stage_id}/outcome", response_model=StageOutcomeOut)
async def record_stage_outcome(
    stage_id: int,
    payload: StageOutcomeRequest,
    context: RequestContext = Depends(deps.get_context),
    pipeline: InterviewPipeline = Depends(deps.get_pipeline),
):
    result = await pipeline.record_stage_outcome(
        stage_id,
        payload.status,
        payload.comments,
        rating=payload.rating,
        workspace_id=context.workspace_id,
        context=context,
    )
    return StageOutcomeOut(
        stage=StageOut.model_validate(result.stage),
        candidate=CandidateOut.model_validate(result.candidate),
        next_stage=StageOut.model_validate(result.next_stage) if result.next_stage else None,
    )
