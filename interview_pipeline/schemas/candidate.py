from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CandidateOut(BaseModel):
    candidate_id: int
    workspace_id: int
    full_name: str
    email: Optional[str] = None
    current_stage_index: int
    status: str
    rejection_stage: Optional[int] = None
    rejection_reason: Optional[str] = None
    dismissal_reason: Optional[str] = None
    dismissal_date: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CandidateDismissRequest(BaseModel):
    reason: str = Field(min_length=1)
    dismissal_date: Optional[datetime] = None
