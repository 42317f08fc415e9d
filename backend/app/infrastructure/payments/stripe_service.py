"""
Stripe Payment Service

Infrastructure service for Stripe: Pro checkout sessions, webhook
signature verification, and translation of verified Stripe events into
the provider-neutral payment events the tier handler consumes.
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional

import stripe
from stripe import StripeError

from app.config.settings import get_settings
from app.domain.payment_events import (
    PaymentCompleted,
    PaymentEvent,
    SubscriptionCanceled,
)
from app.infrastructure.exceptions import TonrError, UnverifiedPaymentEventError


logger = logging.getLogger(__name__)


CHECKOUT_COMPLETED = "checkout.session.completed"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"


class StripeServiceError(TonrError):
    """Base exception for Stripe service errors."""
    pass


class StripeService:
    """
    Stripe payment processing service.

    All methods are stateless; the webhook side is idempotent because the
    events it produces are applied as overwrites.
    """

    def __init__(self):
        """Initialize Stripe with API key from settings."""
        settings = get_settings()
        self._api_key = settings.stripe_secret_key
        self._webhook_secret = settings.stripe_webhook_secret
        self._pro_price_id = settings.stripe_price_id_pro
        self._frontend_url = settings.frontend_url.rstrip("/")

        if self._api_key:
            stripe.api_key = self._api_key
        else:
            logger.warning("STRIPE_SECRET_KEY not set, payment features are disabled")

    # =========================================================================
    # Checkout Session (Pro subscription)
    # =========================================================================

    async def create_checkout_session(
        self,
        user_id: str,
        email: Optional[str] = None,
    ) -> stripe.checkout.Session:
        """
        Create a hosted Checkout session for the Pro subscription.

        The user id travels in ``client_reference_id`` and in both session
        and subscription metadata, so completion and cancellation webhooks
        can be tied back to the user.

        Args:
            user_id: Internal user ID
            email: Prefills the checkout form when known

        Returns:
            stripe.checkout.Session with checkout URL
        """
        if not self._api_key or not self._pro_price_id:
            raise StripeServiceError(
                "Stripe is not configured",
                details={"missing": ["STRIPE_SECRET_KEY", "STRIPE_PRICE_ID_PRO"]},
            )

        try:
            session = stripe.checkout.Session.create(
                mode="subscription",
                payment_method_types=["card"],
                line_items=[
                    {
                        "price": self._pro_price_id,
                        "quantity": 1,
                    }
                ],
                customer_email=email,
                client_reference_id=user_id,
                success_url=f"{self._frontend_url}/dashboard.html?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{self._frontend_url}/pricing.html",
                metadata={"user_id": user_id},
                subscription_data={"metadata": {"user_id": user_id}},
            )

            logger.info(f"Created checkout session {session.id} for user {user_id}")
            return session

        except StripeError as e:
            logger.error(f"Failed to create checkout session: {e}")
            raise StripeServiceError(f"Failed to create checkout: {e.user_message}")

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_webhook_signature(
        self,
        payload: bytes,
        signature: str,
    ) -> Dict[str, Any]:
        """
        Verify webhook signature and decode the event.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header

        Returns:
            The event as a plain dict

        Raises:
            UnverifiedPaymentEventError if the payload or signature is invalid
        """
        if not self._webhook_secret:
            raise UnverifiedPaymentEventError("Webhook secret is not configured")

        if isinstance(payload, bytes):
            try:
                payload = payload.decode("utf-8")
            except UnicodeDecodeError as e:
                raise UnverifiedPaymentEventError(f"Invalid payload: {e}")

        try:
            stripe.WebhookSignature.verify_header(
                payload,
                signature,
                self._webhook_secret,
                stripe.Webhook.DEFAULT_TOLERANCE,
            )
        except stripe.SignatureVerificationError as e:
            raise UnverifiedPaymentEventError(f"Invalid signature: {e}")

        try:
            event = json.loads(payload)
        except ValueError as e:
            raise UnverifiedPaymentEventError(f"Invalid payload: {e}")

        if not isinstance(event, dict):
            raise UnverifiedPaymentEventError("Invalid payload: not an event object")
        return event


# =============================================================================
# Event Translation
# =============================================================================

def _metadata_user_id(obj: Mapping[str, Any]) -> Optional[str]:
    metadata = obj.get("metadata") or {}
    return metadata.get("user_id")


def to_payment_event(
    event: Mapping[str, Any],
    customer_user_id: Optional[str] = None,
) -> Optional[PaymentEvent]:
    """
    Translate a verified Stripe event into a payment event.

    Args:
        event: Verified Stripe event
        customer_user_id: User id already resolved from the event's
            customer, used when a cancellation carries no metadata

    Returns:
        PaymentCompleted, SubscriptionCanceled, or None for event types
        (or payloads) that must not change any state
    """
    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}

    if event_type == CHECKOUT_COMPLETED:
        user_id = _metadata_user_id(obj) or obj.get("client_reference_id")
        customer_ref = obj.get("customer")
        subscription_ref = obj.get("subscription")
        if not (user_id and customer_ref and subscription_ref):
            logger.error(f"Checkout completed event {event.get('id')} is missing user or payment refs")
            return None
        return PaymentCompleted(
            user_id=user_id,
            customer_ref=customer_ref,
            subscription_ref=subscription_ref,
        )

    if event_type == SUBSCRIPTION_DELETED:
        user_id = _metadata_user_id(obj) or customer_user_id
        if not user_id:
            logger.error(f"Subscription deleted event {event.get('id')} has no resolvable user")
            return None
        return SubscriptionCanceled(user_id=user_id)

    return None


# =============================================================================
# Singleton Instance (Dependency Injection Ready)
# =============================================================================

_stripe_service_instance: Optional[StripeService] = None


def get_stripe_service() -> StripeService:
    """Get or create Stripe service singleton."""
    global _stripe_service_instance

    if _stripe_service_instance is None:
        _stripe_service_instance = StripeService()

    return _stripe_service_instance
