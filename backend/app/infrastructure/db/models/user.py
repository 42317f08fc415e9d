"""
User Database Model

One row per identity. ``tier`` is NULL until the user picks a tier.
"""

from typing import Optional
from uuid import UUID

from sqlmodel import Field

from app.infrastructure.db.models.base import TimestampMixin


class UserModel(TimestampMixin, table=True):
    """
    Users table holding entitlement state.

    ``id`` is the identity provider's user id, not generated here.
    """

    __tablename__ = "users"

    id: UUID = Field(primary_key=True, nullable=False)

    # Display fields (never used for decisions)
    email: Optional[str] = Field(default=None, max_length=320, index=True)
    name: Optional[str] = Field(default=None, max_length=100)

    # Entitlement
    tier: Optional[str] = Field(default=None, max_length=10, index=True)

    # Stripe linkage
    stripe_customer_id: Optional[str] = Field(default=None, unique=True, index=True)
    stripe_subscription_id: Optional[str] = Field(default=None)
    subscription_status: Optional[str] = Field(default=None, max_length=20)
