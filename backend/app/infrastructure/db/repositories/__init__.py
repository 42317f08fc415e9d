"""
Repository Layer for Tonr

Exports all repository classes for dependency injection.
"""

from app.infrastructure.db.repositories.user_repository import (
    UserRepository,
    get_user_repository,
)
from app.infrastructure.db.repositories.usage_event_repository import (
    UsageEventRepository,
    get_usage_event_repository,
)
from app.infrastructure.db.repositories.webhook_event_repository import (
    WebhookEventRepository,
    get_webhook_event_repository,
)


__all__ = [
    # Repositories
    "UserRepository",
    "UsageEventRepository",
    "WebhookEventRepository",
    # Providers
    "get_user_repository",
    "get_usage_event_repository",
    "get_webhook_event_repository",
]
