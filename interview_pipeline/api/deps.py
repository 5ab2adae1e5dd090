from fastapi import Depends, Header, Request

from interview_pipeline.db.session import SessionLocal
from interview_pipeline.request_context import RequestContext, get_request_context
from interview_pipeline.services.event_bus import event_bus
from interview_pipeline.services.notifications import DatabaseNotificationSink
from interview_pipeline.services.pipeline import InterviewPipeline

_pipeline: InterviewPipeline | None = None


def get_pipeline() -> InterviewPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = InterviewPipeline(
            SessionLocal,
            notifier=DatabaseNotificationSink(SessionLocal, bus=event_bus),
            bus=event_bus,
        )
    return _pipeline


async def get_workspace_id(request: Request, x_workspace_id: int | None = Header(default=None)) -> int | None:
    request.state.workspace_id = x_workspace_id
    return x_workspace_id


async def get_actor_id(request: Request, x_actor_id: int | None = Header(default=None)) -> int | None:
    request.state.actor_user_id = x_actor_id
    return x_actor_id


async def get_context(
    request: Request,
    _workspace_id: int | None = Depends(get_workspace_id),
    _actor_id: int | None = Depends(get_actor_id),
) -> RequestContext:
    return get_request_context(request)
