"""
Usage Event Repository

Append-only ledger of completed analyses with time-window counts.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select

from app.domain.interfaces import UsageLedger
from app.domain.models import Tonality, UsageEvent
from app.infrastructure.db.database import storage_session
from app.infrastructure.db.models.usage_event import UsageEventModel
from app.infrastructure.db.repositories.user_repository import to_uuid


logger = logging.getLogger(__name__)


class UsageEventRepository(UsageLedger):
    """Repository for usage events. There is no update method."""

    async def append(self, event: UsageEvent) -> UsageEvent:
        """
        Insert a usage event.

        Raises:
            StorageUnavailableError: if the insert fails
        """
        async with storage_session("append_usage_event", "usage_events") as session:
            model = UsageEventModel(
                user_id=to_uuid(event.user_id),
                tonality=event.tonality.value,
                rating=event.rating,
                transcript_length=event.transcript_length,
                created_at=event.created_at,
            )
            session.add(model)
            await session.flush()
            await session.refresh(model)
            return self._to_domain(model)

    async def count_between(self, user_id: str, start: datetime, end: datetime) -> int:
        """Count events for a user with ``start <= created_at < end``."""
        async with storage_session("count_usage_events", "usage_events") as session:
            stmt = (
                select(func.count(UsageEventModel.id))
                .where(
                    UsageEventModel.user_id == to_uuid(user_id),
                    UsageEventModel.created_at >= start,
                    UsageEventModel.created_at < end,
                )
            )
            result = await session.execute(stmt)
            return result.scalar_one()

    def _to_domain(self, model: UsageEventModel) -> UsageEvent:
        return UsageEvent(
            id=str(model.id),
            user_id=str(model.user_id),
            tonality=Tonality(model.tonality),
            rating=model.rating,
            transcript_length=model.transcript_length,
            created_at=model.created_at,
        )


_usage_repo_instance: Optional[UsageEventRepository] = None


def get_usage_event_repository() -> UsageEventRepository:
    """Get or create usage event repository singleton."""
    global _usage_repo_instance

    if _usage_repo_instance is None:
        _usage_repo_instance = UsageEventRepository()

    return _usage_repo_instance
