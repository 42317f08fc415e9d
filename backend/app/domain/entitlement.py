"""
Entitlement Policy

Pure decision logic gating the analysis operation by tier, daily usage
and requested tonality. Nothing in this module touches storage, so the
policy can be exercised with plain values.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.domain.models import Tier, Tonality, UserAccount


UNLIMITED = "unlimited"


class DenialReason(str, Enum):
    """Why an analysis request was refused."""
    TIER_NOT_SELECTED = "tier_not_selected"
    DAILY_LIMIT_REACHED = "daily_limit_reached"
    TONALITY_NOT_ALLOWED = "tonality_not_allowed"


DENIAL_MESSAGES = {
    DenialReason.TIER_NOT_SELECTED: (
        "Please select a tier before using the dashboard. "
        "Visit the pricing page to choose Free or Pro."
    ),
    DenialReason.DAILY_LIMIT_REACHED: (
        "Daily limit reached. Upgrade to Pro for unlimited refinements."
    ),
    DenialReason.TONALITY_NOT_ALLOWED: (
        "Free tier can only use neutral tonality. Upgrade to Pro for full tone control."
    ),
}


@dataclass(frozen=True)
class Decision:
    """Result of an entitlement check: admitted, or denied with a reason."""
    admitted: bool
    reason: Optional[DenialReason] = None

    @classmethod
    def admit(cls) -> "Decision":
        return cls(admitted=True)

    @classmethod
    def deny(cls, reason: DenialReason) -> "Decision":
        return cls(admitted=False, reason=reason)

    @property
    def message(self) -> Optional[str]:
        """Human-readable explanation for a denial."""
        if self.reason is None:
            return None
        return DENIAL_MESSAGES[self.reason]


@dataclass(frozen=True)
class EntitlementPolicy:
    """Free-tier limits. Pro has no limits."""
    free_daily_limit: int = 3
    free_tonality: Tonality = Tonality.NEUTRAL


class EntitlementEvaluator:
    """
    Decides whether a user may run an analysis.

    Rules are checked in order and the first match wins:

    1. no tier selected -> deny (TIER_NOT_SELECTED)
    2. free tier at or over the daily limit -> deny (DAILY_LIMIT_REACHED)
    3. free tier with a tonality other than the free one -> deny (TONALITY_NOT_ALLOWED)
    4. otherwise admit

    The quota check runs before the tonality check so an over-quota user
    sees the quota message whatever tonality they asked for.
    """

    def __init__(self, policy: Optional[EntitlementPolicy] = None):
        self._policy = policy or EntitlementPolicy()

    @property
    def policy(self) -> EntitlementPolicy:
        return self._policy

    def evaluate(
        self,
        user: UserAccount,
        requested_tonality: Tonality,
        today_usage_count: int,
    ) -> Decision:
        """Evaluate one request. Never raises."""
        if user.tier == Tier.UNSET:
            return Decision.deny(DenialReason.TIER_NOT_SELECTED)

        if user.tier == Tier.FREE:
            if today_usage_count >= self._policy.free_daily_limit:
                return Decision.deny(DenialReason.DAILY_LIMIT_REACHED)
            if requested_tonality != self._policy.free_tonality:
                return Decision.deny(DenialReason.TONALITY_NOT_ALLOWED)

        return Decision.admit()


class UsageSummary(BaseModel):
    """Usage report shown to the user. Serialised in camelCase."""
    tier: Optional[Tier]
    usage_count: int
    limit: Union[int, Literal["unlimited"]]
    remaining: Union[int, Literal["unlimited"]]
    can_use: bool

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def summarize_usage(
    user: UserAccount,
    today_usage_count: int,
    policy: EntitlementPolicy,
) -> UsageSummary:
    """
    Build the usage report for a user.

    Pro users report ``unlimited``. Users without a tier report the free
    limit but can never use the analysis until they pick one.
    """
    tier = None if user.tier == Tier.UNSET else user.tier

    if user.tier == Tier.PRO:
        return UsageSummary(
            tier=tier,
            usage_count=today_usage_count,
            limit=UNLIMITED,
            remaining=UNLIMITED,
            can_use=True,
        )

    remaining = max(0, policy.free_daily_limit - today_usage_count)
    return UsageSummary(
        tier=tier,
        usage_count=today_usage_count,
        limit=policy.free_daily_limit,
        remaining=remaining,
        can_use=user.tier == Tier.FREE and remaining > 0,
    )
