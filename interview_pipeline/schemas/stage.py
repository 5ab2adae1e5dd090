from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, conint

from interview_pipeline.schemas.candidate import CandidateOut

Rating = conint(ge=1, le=5)
StageOutcome = Literal["passed", "failed"]


class StageSpec(BaseModel):
    id: Optional[int] = None
    stage_name: str = Field(max_length=255)
    interviewer_id: Optional[int] = None
    # Only honoured for newly created stages; existing stages keep their progress.
    status: Optional[str] = None
    position: Optional[int] = None


class StageChainSyncRequest(BaseModel):
    stages: list[StageSpec]


class StageOut(BaseModel):
    stage_id: int
    candidate_id: int
    stage_index: int
    stage_name: str
    interviewer_id: Optional[int] = None
    status: str
    scheduled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    comments: Optional[str] = None
    rating: Optional[int] = None
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StageChainSyncOut(BaseModel):
    candidate_id: int
    created_stage_ids: list[int]
    updated_stage_ids: list[int]
    removed_stage_ids: list[int]
    stages: list[StageOut]


class StageOutcomeRequest(BaseModel):
    status: StageOutcome
    comments: str
    rating: Optional[Rating] = None


class StageOutcomeOut(BaseModel):
    stage: StageOut
    candidate: CandidateOut
    next_stage: Optional[StageOut] = None
