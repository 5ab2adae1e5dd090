from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from interview_pipeline.core.datetime_utils import utcnow_naive
from interview_pipeline.core.errors import ValidationError
from interview_pipeline.core.pipeline_states import STAGE_WAITING, can_transition_stage, normalize_status
from interview_pipeline.models.stage import RecInterviewStage
from interview_pipeline.schemas.stage import StageOut, StageSpec
from interview_pipeline.services.store import get_candidate, live_stages_for_candidate, tombstone_stage_interviews

logger = logging.getLogger("ipl.stages")


@dataclass
class StageChainSyncResult:
    candidate_id: int
    stages: list[RecInterviewStage]
    created_stage_ids: list[int] = field(default_factory=list)
    updated_stage_ids: list[int] = field(default_factory=list)
    removed_stage_ids: list[int] = field(default_factory=list)
    before: list[dict[str, Any]] = field(default_factory=list)
    after: list[dict[str, Any]] = field(default_factory=list)


def stage_snapshot(stage: RecInterviewStage) -> dict[str, Any]:
    return StageOut.model_validate(stage).model_dump(mode="json")


def order_stage_specs(stages: Sequence[StageSpec]) -> list[StageSpec]:
    """
    Validates a submitted chain and returns it in presentation order.

    Entries are placed by list position unless every entry carries an explicit
    `position`, in which case positions must be exactly 0..n-1.
    """
    seen_ids: set[int] = set()
    for index, spec in enumerate(stages):
        if not (spec.stage_name or "").strip():
            raise ValidationError("Stage name is required.", {"position": index})
        if spec.id is not None:
            if spec.id in seen_ids:
                raise ValidationError("Stage appears more than once in the chain.", {"stage_id": spec.id})
            seen_ids.add(spec.id)
        if spec.status is not None and not can_transition_stage(None, spec.status):
            raise ValidationError(
                f"Invalid initial stage status '{spec.status}'.",
                {"position": index, "status": spec.status},
            )

    explicit = [spec.position for spec in stages if spec.position is not None]
    if not explicit:
        return list(stages)
    if len(explicit) != len(stages):
        raise ValidationError("Either every stage or no stage may carry a position.")
    if sorted(explicit) != list(range(len(stages))):
        raise ValidationError(
            "Stage positions must be unique and within the chain length.",
            {"positions": explicit},
        )
    return sorted(stages, key=lambda spec: spec.position)


async def sync_stage_chain(
    session: AsyncSession,
    *,
    candidate_id: int,
    stages: Sequence[StageSpec],
    workspace_id: int | None = None,
) -> StageChainSyncResult:
    ordered = order_stage_specs(stages)

    await get_candidate(session, candidate_id, workspace_id=workspace_id, for_update=True)
    existing = await live_stages_for_candidate(session, candidate_id)
    existing_by_id = {stage.stage_id: stage for stage in existing}
    incoming_ids = {spec.id for spec in ordered if spec.id is not None}

    result = StageChainSyncResult(
        candidate_id=candidate_id,
        stages=[],
        before=[stage_snapshot(stage) for stage in existing],
    )
    now = utcnow_naive()

    removed = [stage for stage in existing if stage.stage_id not in incoming_ids]
    # Interviews go first so no active booking points at a tombstoned stage.
    await tombstone_stage_interviews(session, [stage.stage_id for stage in removed], now=now)
    for stage in removed:
        stage.deleted_at = now
        stage.updated_at = now
        result.removed_stage_ids.append(stage.stage_id)

    created: list[RecInterviewStage] = []
    for position, spec in enumerate(ordered):
        stage = existing_by_id.get(spec.id) if spec.id is not None else None
        if stage is not None:
            # Progress (status, timings, feedback) is never reset by a resync.
            stage.stage_index = position
            stage.stage_name = spec.stage_name.strip()
            stage.interviewer_id = spec.interviewer_id
            stage.updated_at = now
            result.updated_stage_ids.append(stage.stage_id)
            result.stages.append(stage)
            continue

        if spec.id is not None:
            logger.warning(
                "stage_chain_unknown_stage_id",
                extra={"candidate_id": candidate_id, "stage_id": spec.id},
            )
        stage = RecInterviewStage(
            candidate_id=candidate_id,
            stage_index=position,
            stage_name=spec.stage_name.strip(),
            interviewer_id=spec.interviewer_id,
            status=normalize_status(spec.status) or STAGE_WAITING,
            created_at=now,
            updated_at=now,
        )
        session.add(stage)
        created.append(stage)
        result.stages.append(stage)

    await session.flush()
    result.created_stage_ids = [stage.stage_id for stage in created]
    result.after = [stage_snapshot(stage) for stage in result.stages]

    logger.info(
        "stage_chain_synced",
        extra={
            "candidate_id": candidate_id,
            "created_count": len(result.created_stage_ids),
            "updated_count": len(result.updated_stage_ids),
            "removed_count": len(result.removed_stage_ids),
        },
    )
    return result
