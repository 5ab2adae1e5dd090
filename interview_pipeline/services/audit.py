from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from interview_pipeline.models.audit_log import RecAuditLog
from interview_pipeline.request_context import RequestContext


async def write_audit_log(
    session: AsyncSession,
    *,
    action: str,
    entity_type: str,
    entity_id: str | int,
    before: dict[str, Any] | list[dict[str, Any]] | None,
    after: dict[str, Any] | list[dict[str, Any]] | None,
    context: RequestContext | None,
) -> RecAuditLog:
    # Chain snapshots are lists; the JSON columns hold a mapping.
    if isinstance(before, list):
        before = {"items": before}
    if isinstance(after, list):
        after = {"items": after}
    entry = RecAuditLog(
        workspace_id=context.workspace_id if context else None,
        actor_user_id=context.actor_user_id if context else None,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        before_json=before,
        after_json=after,
        ip=context.ip if context else None,
        user_agent=context.user_agent if context else None,
        request_id=context.request_id if context else None,
    )
    session.add(entry)
    return entry
