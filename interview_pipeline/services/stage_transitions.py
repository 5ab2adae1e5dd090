from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from interview_pipeline.core.datetime_utils import utcnow_naive
from interview_pipeline.core.errors import ConflictError, ValidationError
from interview_pipeline.core.pipeline_states import (
    CANDIDATE_ACTIVE,
    CANDIDATE_DOCUMENTATION,
    CANDIDATE_REJECTED,
    STAGE_FAILED,
    STAGE_OUTCOMES,
    STAGE_PASSED,
    can_transition_candidate,
    is_terminal_stage_status,
    normalize_status,
)
from interview_pipeline.models.candidate import RecCandidate
from interview_pipeline.models.stage import RecInterviewStage
from interview_pipeline.schemas.candidate import CandidateOut
from interview_pipeline.services.notifications import (
    TITLE_NEW_INTERVIEW,
    TYPE_INTERVIEW_ASSIGNED,
    PendingNotification,
)
from interview_pipeline.services.stage_chain import stage_snapshot
from interview_pipeline.services.store import get_candidate, get_live_stage, live_stage_at_index

logger = logging.getLogger("ipl.stages")

DEFAULT_REJECTION_REASON = "Failed interview stage"


@dataclass
class StageOutcomeResult:
    stage: RecInterviewStage
    candidate: RecCandidate
    next_stage: RecInterviewStage | None = None
    candidate_before: dict[str, Any] = field(default_factory=dict)
    candidate_after: dict[str, Any] = field(default_factory=dict)
    stage_before: dict[str, Any] = field(default_factory=dict)
    stage_after: dict[str, Any] = field(default_factory=dict)
    notifications: list[PendingNotification] = field(default_factory=list)


def candidate_snapshot(candidate: RecCandidate) -> dict[str, Any]:
    return CandidateOut.model_validate(candidate).model_dump(mode="json")


def _validate_outcome(status: str | None, comments: str | None, rating: int | None) -> tuple[str, str]:
    normalized = normalize_status(status)
    if normalized not in STAGE_OUTCOMES:
        raise ValidationError("Stage outcome must be 'passed' or 'failed'.", {"status": status})
    cleaned = (comments or "").strip()
    if not cleaned:
        raise ValidationError("Feedback is required when completing interview stages.")
    if rating is not None and not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5.", {"rating": rating})
    return normalized, cleaned


def move_candidate(candidate: RecCandidate, to_status: str) -> None:
    if not can_transition_candidate(candidate.status, to_status):
        raise ConflictError(
            f"Invalid candidate transition from '{candidate.status}' to '{to_status}'.",
            {"candidate_id": candidate.candidate_id, "from_status": candidate.status, "to_status": to_status},
        )
    candidate.status = to_status


async def apply_stage_outcome(
    session: AsyncSession,
    *,
    stage: RecInterviewStage,
    status: str,
    comments: str,
    rating: int | None = None,
) -> StageOutcomeResult:
    """Mutates an already-loaded live stage and its candidate for a passed/failed outcome."""
    normalized, cleaned = _validate_outcome(status, comments, rating)

    if is_terminal_stage_status(stage.status):
        raise ConflictError(
            f"Interview stage is already '{stage.status}'.",
            {"stage_id": stage.stage_id, "status": stage.status},
        )

    candidate = await get_candidate(session, stage.candidate_id, for_update=True)
    if normalize_status(candidate.status) != CANDIDATE_ACTIVE:
        raise ConflictError(
            f"Candidate is '{candidate.status}' and no longer in the interview phase.",
            {"candidate_id": candidate.candidate_id, "status": candidate.status},
        )

    result = StageOutcomeResult(
        stage=stage,
        candidate=candidate,
        candidate_before=candidate_snapshot(candidate),
        stage_before=stage_snapshot(stage),
    )
    now = utcnow_naive()

    stage.status = normalized
    stage.completed_at = now
    stage.comments = cleaned
    if rating is not None:
        stage.rating = rating
    stage.updated_at = now

    if normalized == STAGE_PASSED:
        next_index = stage.stage_index + 1
        candidate.current_stage_index = next_index
        next_stage = await live_stage_at_index(session, candidate.candidate_id, next_index)
        if next_stage is not None:
            result.next_stage = next_stage
            # The next stage keeps its status until it is explicitly scheduled.
            if next_stage.interviewer_id is not None:
                result.notifications.append(
                    PendingNotification(
                        user_id=next_stage.interviewer_id,
                        type=TYPE_INTERVIEW_ASSIGNED,
                        title=TITLE_NEW_INTERVIEW,
                        message=(
                            "Candidate passed the previous stage. "
                            f'Assigned to stage "{next_stage.stage_name}"'
                        ),
                        related_entity_type="interview_stage",
                        related_entity_id=next_stage.stage_id,
                    )
                )
        else:
            move_candidate(candidate, CANDIDATE_DOCUMENTATION)
    elif normalized == STAGE_FAILED:
        move_candidate(candidate, CANDIDATE_REJECTED)
        candidate.rejection_stage = stage.stage_index
        candidate.rejection_reason = cleaned or DEFAULT_REJECTION_REASON

    candidate.updated_at = now
    await session.flush()

    result.stage_after = stage_snapshot(stage)
    result.candidate_after = candidate_snapshot(candidate)
    logger.info(
        "stage_outcome_recorded",
        extra={
            "stage_id": stage.stage_id,
            "candidate_id": candidate.candidate_id,
            "outcome": normalized,
            "candidate_status": candidate.status,
            "current_stage_index": candidate.current_stage_index,
        },
    )
    return result


async def record_stage_outcome(
    session: AsyncSession,
    *,
    stage_id: int,
    status: str,
    comments: str,
    rating: int | None = None,
    workspace_id: int | None = None,
) -> StageOutcomeResult:
    # Malformed requests never take row locks.
    _validate_outcome(status, comments, rating)
    stage = await get_live_stage(session, stage_id, workspace_id=workspace_id, for_update=True)
    return await apply_stage_outcome(session, stage=stage, status=status, comments=comments, rating=rating)
