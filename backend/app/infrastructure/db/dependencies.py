"""
Dependency Injection Providers for Tonr

FastAPI dependencies for the repositories.
Tests replace the provider functions through ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends

from app.domain.interfaces import UsageLedger, UserStore
from app.infrastructure.db.repositories import (
    WebhookEventRepository,
    get_usage_event_repository,
    get_user_repository,
    get_webhook_event_repository,
)


# Type aliases for repository dependencies
UserRepoDep = Annotated[UserStore, Depends(get_user_repository)]
UsageRepoDep = Annotated[UsageLedger, Depends(get_usage_event_repository)]
WebhookEventRepoDep = Annotated[
    WebhookEventRepository,
    Depends(get_webhook_event_repository),
]
