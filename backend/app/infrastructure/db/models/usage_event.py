"""
Usage Event Model

Append-only record of completed analyses, used for daily limits.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import Column, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlmodel import Field

from app.infrastructure.db.models.base import UUIDMixin, utc_now


class UsageEventModel(UUIDMixin, table=True):
    """One analysis session. Rows are never updated."""

    __tablename__ = "usage_events"
    __table_args__ = (
        Index("ix_usage_events_user_created", "user_id", "created_at"),
    )

    user_id: UUID = Field(
        sa_column=Column(
            PGUUID(as_uuid=True),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        description="Owning user",
    )

    tonality: str = Field(..., max_length=20)
    rating: Optional[int] = Field(default=None, ge=1, le=100)
    transcript_length: Optional[int] = Field(default=None, ge=0)

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),
        nullable=False,
        description="When the analysis completed"
    )
