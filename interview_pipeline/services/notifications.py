from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from interview_pipeline.models.notification import RecNotification
from interview_pipeline.services.event_bus import EventBus

logger = logging.getLogger("ipl.notifications")

TYPE_INTERVIEW_ASSIGNED = "interview_assigned"
TYPE_INTERVIEW_SCHEDULED = "interview_scheduled"
TYPE_INTERVIEW_RESCHEDULED = "interview_rescheduled"
TYPE_INTERVIEW_CANCELLED = "interview_cancelled"
TYPE_REMINDER = "reminder"

TITLE_NEW_INTERVIEW = "New Interview"
TITLE_INTERVIEW_RESCHEDULED = "Interview Rescheduled"
TITLE_INTERVIEW_CANCELLED = "Interview Cancelled"
TITLE_FEEDBACK_REMINDER = "Interview feedback reminder"


@dataclass(frozen=True)
class PendingNotification:
    user_id: int
    type: str
    title: str
    message: str
    related_entity_type: str | None = None
    related_entity_id: int | None = None


class NotificationSink(Protocol):
    async def notify(
        self,
        *,
        user_id: int,
        type: str,
        title: str,
        message: str,
        related_entity_type: str | None = None,
        related_entity_id: int | None = None,
    ) -> None: ...


class NullNotificationSink:
    async def notify(self, **_: object) -> None:
        return None


class DatabaseNotificationSink:
    """Persists notifications in their own session and announces them on the event bus."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], bus: EventBus | None = None) -> None:
        self._session_factory = session_factory
        self._bus = bus

    async def notify(
        self,
        *,
        user_id: int,
        type: str,
        title: str,
        message: str,
        related_entity_type: str | None = None,
        related_entity_id: int | None = None,
    ) -> None:
        async with self._session_factory() as session:
            row = RecNotification(
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                is_read=False,
                related_entity_type=related_entity_type,
                related_entity_id=related_entity_id,
            )
            session.add(row)
            await session.commit()
            notification_id = row.notification_id
        if self._bus is not None:
            await self._bus.publish(
                {
                    "type": "notification_created",
                    "notification_id": notification_id,
                    "user_id": user_id,
                    "notification_type": type,
                }
            )


async def dispatch_notifications(sink: NotificationSink, notifications: list[PendingNotification]) -> int:
    """Deliver queued notifications; a failing delivery is logged and never raised."""
    delivered = 0
    for item in notifications:
        try:
            await sink.notify(
                user_id=item.user_id,
                type=item.type,
                title=item.title,
                message=item.message,
                related_entity_type=item.related_entity_type,
                related_entity_id=item.related_entity_id,
            )
            delivered += 1
        except Exception:  # noqa: BLE001
            logger.warning(
                "notification_failed",
                extra={"user_id": item.user_id, "notification_type": item.type},
                exc_info=True,
            )
    return delivered
