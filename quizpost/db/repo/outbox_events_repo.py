from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from quizpost.db.models.outbox_events import OutboxEvent


class OutboxEventsRepo:
    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        event_type: str,
        payload: dict[str, object],
        status: str,
    ) -> OutboxEvent:
        event = OutboxEvent(
            event_type=event_type,
            payload=payload,
            status=status,
        )
        session.add(event)
        await session.flush()
        return event
