"""
SQLModel ORM Models for Tonr

Exports all database models for Alembic autogenerate and application use.
Import models here to register them with SQLModel.metadata.
"""

from app.infrastructure.db.models.base import (
    TimestampMixin,
    UUIDMixin,
)
from app.infrastructure.db.models.user import UserModel
from app.infrastructure.db.models.usage_event import UsageEventModel
from app.infrastructure.db.models.processed_webhook_event import ProcessedWebhookEvent


__all__ = [
    # Base
    "TimestampMixin",
    "UUIDMixin",
    # Tables
    "UserModel",
    "UsageEventModel",
    "ProcessedWebhookEvent",
]
