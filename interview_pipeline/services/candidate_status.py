from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from interview_pipeline.core.datetime_utils import to_utc_naive, utcnow_naive
from interview_pipeline.core.errors import ValidationError
from interview_pipeline.core.pipeline_states import CANDIDATE_DISMISSED, CANDIDATE_HIRED
from interview_pipeline.models.candidate import RecCandidate
from interview_pipeline.services.stage_transitions import candidate_snapshot, move_candidate
from interview_pipeline.services.store import get_candidate

logger = logging.getLogger("ipl.candidates")


@dataclass
class CandidateChange:
    candidate: RecCandidate
    before: dict[str, Any] = field(default_factory=dict)
    after: dict[str, Any] = field(default_factory=dict)


async def hire_candidate(
    session: AsyncSession,
    *,
    candidate_id: int,
    workspace_id: int | None = None,
) -> CandidateChange:
    candidate = await get_candidate(session, candidate_id, workspace_id=workspace_id, for_update=True)
    change = CandidateChange(candidate=candidate, before=candidate_snapshot(candidate))
    move_candidate(candidate, CANDIDATE_HIRED)
    candidate.updated_at = utcnow_naive()
    await session.flush()
    change.after = candidate_snapshot(candidate)
    logger.info("candidate_hired", extra={"candidate_id": candidate_id})
    return change


async def dismiss_candidate(
    session: AsyncSession,
    *,
    candidate_id: int,
    reason: str,
    dismissal_date: datetime | None = None,
    workspace_id: int | None = None,
) -> CandidateChange:
    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValidationError("Dismissal reason is required.")
    candidate = await get_candidate(session, candidate_id, workspace_id=workspace_id, for_update=True)
    change = CandidateChange(candidate=candidate, before=candidate_snapshot(candidate))
    move_candidate(candidate, CANDIDATE_DISMISSED)
    now = utcnow_naive()
    candidate.dismissal_reason = cleaned
    candidate.dismissal_date = to_utc_naive(dismissal_date) if dismissal_date else now
    candidate.updated_at = now
    await session.flush()
    change.after = candidate_snapshot(candidate)
    logger.info("candidate_dismissed", extra={"candidate_id": candidate_id})
    return change
