"""
Webhook Event Repository

DB-backed idempotency for payment webhooks (survives restarts).
"""

from typing import Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert

from app.infrastructure.db.database import storage_session
from app.infrastructure.db.models.base import utc_now
from app.infrastructure.db.models.processed_webhook_event import ProcessedWebhookEvent


class WebhookEventRepository:
    """Tracks which Stripe event ids have been dispatched."""

    async def is_processed(self, event_id: str) -> bool:
        """Check if a webhook event has already been processed."""
        async with storage_session("check_webhook_event", "processed_webhook_events") as session:
            model = await session.get(ProcessedWebhookEvent, event_id)
            return model is not None

    async def mark_processed(self, event_id: str, event_type: str) -> None:
        """Record a processed webhook event."""
        async with storage_session("mark_webhook_event", "processed_webhook_events") as session:
            stmt = pg_insert(ProcessedWebhookEvent).values(
                event_id=event_id,
                event_type=event_type,
                processed_at=utc_now(),
            ).on_conflict_do_nothing(index_elements=["event_id"])
            await session.execute(stmt)


_webhook_repo_instance: Optional[WebhookEventRepository] = None


def get_webhook_event_repository() -> WebhookEventRepository:
    """Get or create webhook event repository singleton."""
    global _webhook_repo_instance

    if _webhook_repo_instance is None:
        _webhook_repo_instance = WebhookEventRepository()

    return _webhook_repo_instance
