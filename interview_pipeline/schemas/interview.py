from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, conint

from interview_pipeline.schemas.candidate import CandidateOut
from interview_pipeline.schemas.stage import Rating, StageOut

InterviewOutcome = Literal["passed", "failed", "pending"]


class InterviewCreate(BaseModel):
    stage_id: int
    interviewer_id: int
    scheduled_at: datetime
    duration_minutes: Optional[conint(gt=0, le=24 * 60)] = None
    meeting_link: Optional[str] = Field(default=None, max_length=500)


class InterviewReschedule(BaseModel):
    new_datetime: datetime


class InterviewOutcomeRequest(BaseModel):
    outcome: InterviewOutcome
    notes: Optional[str] = None


class InterviewCompleteRequest(BaseModel):
    outcome: Literal["passed", "failed"]
    notes: str
    rating: Optional[Rating] = None


class InterviewOut(BaseModel):
    interview_id: int
    stage_id: int
    candidate_id: int
    interviewer_id: int
    scheduled_at: datetime
    duration_minutes: Optional[int] = None
    status: str
    outcome: Optional[str] = None
    notes: Optional[str] = None
    meeting_link: Optional[str] = None
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InterviewCompletionOut(BaseModel):
    interview: InterviewOut
    stage: StageOut
    candidate: CandidateOut


class FreeSlotOut(BaseModel):
    start_at: datetime
    end_at: datetime
    label: str


