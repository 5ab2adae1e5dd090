from __future__ import annotations

from fastapi import APIRouter, Depends

from interview_pipeline.api import deps
from interview_pipeline.request_context import RequestContext
from interview_pipeline.schemas.candidate import CandidateDismissRequest, CandidateOut
from interview_pipeline.services.pipeline import InterviewPipeline

router = APIRouter(prefix="/rec", tags=["candidates"])


@router.post("/candidates/{candidate_id}/hire", response_model=CandidateOut)
async def hire_candidate(
    candidate_id: int,
    context: RequestContext = Depends(deps.get_context),
    pipeline: InterviewPipeline = Depends(deps.get_pipeline),
):
    candidate = await pipeline.hire_candidate(candidate_id, workspace_id=context.workspace_id, context=context)
    return CandidateOut.model_validate(candidate)


@router.post("/candidates/{candidate_id}/dismiss", response_model=CandidateOut)
async def dismiss_candidate(
    candidate_id: int,
    payload: CandidateDismissRequest,
    context: RequestContext = Depends(deps.get_context),
    pipeline: InterviewPipeline = Depends(deps.get_pipeline),
):
    candidate = await pipeline.dismiss_candidate(
        candidate_id,
        payload.reason,
        payload.dismissal_date,
        workspace_id=context.workspace_id,
        context=context,
    )
    return CandidateOut.model_validate(candidate)
