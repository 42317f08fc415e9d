"""
Tier Transition Handler

The only code allowed to change a user's tier. Three triggers drive it:
self-service free-tier selection, a verified payment completion, and a
verified subscription cancellation.

Pro can only be reached through ``on_payment_completed``. The
self-service entry point accepts a ``SelfServiceTier`` whose only member
is ``FREE``, so no request value can map onto Pro.
"""

import logging
from enum import Enum
from typing import Optional, Tuple

from app.domain.interfaces import UserStore
from app.domain.models import SubscriptionStatus, Tier, UserAccount
from app.domain.payment_events import (
    PaymentCompleted,
    PaymentEvent,
    SubscriptionCanceled,
)
from app.infrastructure.exceptions import InvalidTierRequestError, NotFoundError


logger = logging.getLogger(__name__)


class SelfServiceTier(str, Enum):
    """Tiers a user may pick without paying."""
    FREE = "free"


def parse_self_service_tier(raw: Optional[str]) -> SelfServiceTier:
    """
    Parse a requested tier from a client.

    Raises:
        InvalidTierRequestError: for anything but ``"free"``, including ``"pro"``
    """
    try:
        return SelfServiceTier(raw)
    except ValueError:
        raise InvalidTierRequestError(requested=raw)


class TierTransitionHandler:
    """
    Applies tier changes to the user store.

    Each operation is a read-modify-write of a single record. Concurrent
    triggers for the same user resolve last-write-wins.
    """

    def __init__(self, users: UserStore):
        self._users = users

    async def _require_user(self, user_id: str) -> UserAccount:
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError(
                f"User {user_id} not found",
                operation="tier_transition",
                table="users",
            )
        return user

    async def select_free_tier(
        self,
        user_id: str,
        requested: SelfServiceTier = SelfServiceTier.FREE,
    ) -> Tuple[UserAccount, bool]:
        """
        Move a user without a tier onto the free tier.

        Users already on free or pro are left untouched, so this can never
        downgrade a paying user.

        Returns:
            (user after the call, whether the record changed)
        """
        user = await self._require_user(user_id)

        if user.tier != Tier.UNSET:
            logger.info(
                f"Tier selection for user {user_id} ignored, already on {user.tier.value}"
            )
            return user, False

        user.tier = Tier(requested.value)
        saved = await self._users.save(user)
        logger.info(f"User {user_id} selected the {saved.tier.value} tier")
        return saved, True

    async def on_payment_completed(
        self,
        user_id: str,
        customer_ref: str,
        subscription_ref: str,
    ) -> UserAccount:
        """Upgrade to Pro. A pure overwrite, so replays are harmless."""
        user = await self._require_user(user_id)

        user.tier = Tier.PRO
        user.payment_customer_ref = customer_ref
        user.payment_subscription_ref = subscription_ref
        user.subscription_status = SubscriptionStatus.ACTIVE

        saved = await self._users.save(user)
        logger.info(
            f"Activated pro tier for user {user_id} "
            f"(customer={customer_ref}, subscription={subscription_ref})"
        )
        return saved

    async def on_subscription_canceled(self, user_id: str) -> UserAccount:
        """Downgrade to free. Payment references are kept for audit."""
        user = await self._require_user(user_id)

        user.tier = Tier.FREE
        user.subscription_status = SubscriptionStatus.CANCELED

        saved = await self._users.save(user)
        logger.info(f"Subscription canceled, user {user_id} moved to free tier")
        return saved

    async def apply(self, event: PaymentEvent) -> UserAccount:
        """Dispatch a verified payment event to its handler."""
        if isinstance(event, PaymentCompleted):
            return await self.on_payment_completed(
                event.user_id,
                event.customer_ref,
                event.subscription_ref,
            )
        if isinstance(event, SubscriptionCanceled):
            return await self.on_subscription_canceled(event.user_id)
        raise TypeError(f"Unsupported payment event: {type(event).__name__}")
