"""
Domain Models for Tonr

Pure Python/Pydantic models with no framework dependencies.
These models define the entitlement entities shared by every layer.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Tier(str, Enum):
    """Entitlement level of a user."""
    UNSET = "unset"
    FREE = "free"
    PRO = "pro"


class Tonality(str, Enum):
    """Style the speech analysis is tuned for."""
    NEUTRAL = "neutral"
    ASSERTIVE = "assertive"
    COMPOSED = "composed"


class SubscriptionStatus(str, Enum):
    """Payment provider's view of the subscription. Advisory only."""
    NONE = "none"
    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"


class Identity(BaseModel):
    """Authenticated caller as reported by the identity provider."""
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None


class UserAccount(BaseModel):
    """
    User record.

    ``tier`` is the only field used for enforcement. ``subscription_status``
    mirrors Stripe and may briefly disagree with it.
    """
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    tier: Tier = Tier.UNSET
    payment_customer_ref: Optional[str] = None
    payment_subscription_ref: Optional[str] = None
    subscription_status: SubscriptionStatus = SubscriptionStatus.NONE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UsageEvent(BaseModel):
    """One completed analysis. Immutable once recorded."""
    id: Optional[str] = None
    user_id: str
    tonality: Tonality
    rating: Optional[int] = Field(default=None, ge=1, le=100)
    transcript_length: Optional[int] = Field(default=None, ge=0)
    created_at: datetime

    model_config = ConfigDict(frozen=True)


class ScoreResult(BaseModel):
    """Output of the speech scorer."""
    rating: int = Field(..., ge=1, le=100, description="Overall rating 1-100")
    feedback: List[str] = Field(..., min_length=1, description="Improvement points, in order")

    @field_validator("feedback")
    @classmethod
    def validate_feedback(cls, v: List[str]) -> List[str]:
        cleaned = [point.strip() for point in v if point and point.strip()]
        if not cleaned:
            raise ValueError("Feedback must contain at least one non-empty point")
        return cleaned
