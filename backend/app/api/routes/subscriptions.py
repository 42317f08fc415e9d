"""
Subscription Routes

Starts a Stripe Checkout for the Pro subscription. Checkout itself never
changes the tier; the payment webhook does once Stripe confirms payment.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.api.dependencies import CurrentIdentity, UserRepoDep
from app.domain.models import Tier
from app.infrastructure.payments.stripe_service import (
    StripeService,
    StripeServiceError,
    get_stripe_service,
)


logger = logging.getLogger(__name__)

router = APIRouter()


class CheckoutResponse(BaseModel):
    """Hosted checkout session to redirect the user to."""
    session_id: str
    url: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


@router.post("/stripe/create-checkout", response_model=CheckoutResponse)
async def create_checkout_session(
    identity: CurrentIdentity,
    users: UserRepoDep,
    stripe_service: StripeService = Depends(get_stripe_service),
):
    """
    Create a Stripe Checkout session for the Pro plan.

    Returns:
        CheckoutResponse with session ID and checkout URL

    Raises:
        409 if the user is already on Pro
    """
    user = await users.get_or_create(identity)

    if user.tier == Tier.PRO:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Already subscribed to Pro",
        )

    try:
        session = await stripe_service.create_checkout_session(
            user_id=user.id,
            email=user.email,
        )
    except StripeServiceError as e:
        logger.error(f"Checkout creation failed for user {user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=e.message,
        )

    return CheckoutResponse(session_id=session.id, url=session.url)
