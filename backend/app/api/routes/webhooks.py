"""
Stripe Webhook Handler

Verifies Stripe webhook events and turns them into tier transitions.
Implements idempotent event processing backed by the database (survives restarts).

Handled Events:
- checkout.session.completed: upgrade to Pro
- customer.subscription.deleted: downgrade to free

Every other event type is acknowledged without any state change.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, HTTPException, status

from app.api.dependencies import TierHandlerDep, UserRepoDep, WebhookEventRepoDep
from app.infrastructure.exceptions import (
    NotFoundError,
    UnverifiedPaymentEventError,
    ValidationError,
)
from app.infrastructure.payments.stripe_service import (
    SUBSCRIPTION_DELETED,
    StripeService,
    get_stripe_service,
    to_payment_event,
)


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/stripe/webhook")
async def stripe_webhook(
    request: Request,
    users: UserRepoDep,
    handler: TierHandlerDep,
    processed_events: WebhookEventRepoDep,
    stripe_service: StripeService = Depends(get_stripe_service),
):
    """
    Handle Stripe webhook events.

    Unverified payloads are rejected with 400 and never dispatched. Storage
    failures surface as 503 so Stripe redelivers the event.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    if not signature:
        logger.warning("Rejected unverified webhook: missing Stripe signature")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe signature"
        )

    try:
        event = stripe_service.verify_webhook_signature(payload, signature)
    except UnverifiedPaymentEventError as e:
        logger.warning(f"Rejected unverified webhook: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid signature"
        )

    event_id = event.get("id")
    event_type = event.get("type")

    if not event_id or not event_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Event is missing id or type"
        )

    if await processed_events.is_processed(event_id):
        logger.info(f"Event {event_id} already processed, skipping")
        return {"status": "already_processed"}

    logger.info(f"Processing webhook event: {event_type} ({event_id})")

    customer_user_id: Optional[str] = None
    if event_type == SUBSCRIPTION_DELETED:
        obj = (event.get("data") or {}).get("object") or {}
        customer_ref = obj.get("customer")
        if customer_ref:
            owner = await users.get_by_payment_customer_ref(customer_ref)
            customer_user_id = owner.id if owner else None

    payment_event = to_payment_event(event, customer_user_id=customer_user_id)

    if payment_event is None:
        logger.debug(f"No tier change for event type: {event_type}")
    else:
        try:
            await handler.apply(payment_event)
        except (NotFoundError, ValidationError) as e:
            # Redelivery cannot fix an unknown or malformed user id
            logger.error(f"Webhook {event_id} references an unusable user: {e}")

    await processed_events.mark_processed(event_id, event_type)

    return {"status": "success"}
