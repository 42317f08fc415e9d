"""
Payments Infrastructure Module

Stripe checkout and webhook verification.
"""

from app.infrastructure.payments.stripe_service import (
    StripeService,
    StripeServiceError,
    get_stripe_service,
    to_payment_event,
)

__all__ = [
    "StripeService",
    "StripeServiceError",
    "get_stripe_service",
    "to_payment_event",
]
