"""
Verified Payment Events

Provider-neutral messages fed to the tier transition handler once a
webhook has passed signature verification. Delivery is at-least-once,
so every handler for these events must be idempotent.
"""

from typing import Union

from pydantic import BaseModel, ConfigDict


class PaymentCompleted(BaseModel):
    """A checkout for the Pro subscription finished successfully."""
    user_id: str
    customer_ref: str
    subscription_ref: str

    model_config = ConfigDict(frozen=True)


class SubscriptionCanceled(BaseModel):
    """The Pro subscription ended."""
    user_id: str

    model_config = ConfigDict(frozen=True)


PaymentEvent = Union[PaymentCompleted, SubscriptionCanceled]
