"""
Usage and Analysis Services

Business logic around the analysis operation:
- UsageService: today's usage count and the usage report
- SessionRecorder: appends a usage event after a successful analysis
- AnalysisService: validate -> evaluate -> score -> record
"""

import logging
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Awaitable, Callable, Optional, Tuple

from app.domain.entitlement import (
    EntitlementEvaluator,
    UsageSummary,
    summarize_usage,
)
from app.domain.interfaces import SpeechScorer, UsageLedger, UserStore
from app.domain.models import (
    ScoreResult,
    Tier,
    Tonality,
    UsageEvent,
    UserAccount,
)
from app.infrastructure.exceptions import (
    EntitlementDeniedError,
    StorageUnavailableError,
    ValidationError,
)


logger = logging.getLogger(__name__)


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def day_bounds(instant: datetime, tz: tzinfo) -> Tuple[datetime, datetime]:
    """
    Start and end of the calendar day containing ``instant`` in ``tz``.

    The window is half-open: ``[start, start + 24h)``. Naive instants are
    taken as UTC.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    local_date = instant.astimezone(tz).date()
    start = datetime.combine(local_date, time.min, tzinfo=tz)
    return start, start + timedelta(hours=24)


class UsageService:
    """
    Reads the usage ledger for the current day.

    There is no stored counter: the count resets at midnight because the
    new day's window has no events yet.
    """

    def __init__(
        self,
        ledger: UsageLedger,
        evaluator: EntitlementEvaluator,
        tz: tzinfo = timezone.utc,
        clock: Clock = utc_now,
    ):
        self._ledger = ledger
        self._evaluator = evaluator
        self._tz = tz
        self._clock = clock

    async def count_today(self, user_id: str) -> int:
        start, end = day_bounds(self._clock(), self._tz)
        return await self._ledger.count_between(user_id, start, end)

    async def get_usage(self, user: UserAccount) -> UsageSummary:
        """Build the usage report for a user."""
        count = await self.count_today(user.id)
        return summarize_usage(user, count, self._evaluator.policy)


class SessionRecorder:
    """Appends usage events. Only called once scoring has succeeded."""

    def __init__(self, ledger: UsageLedger, clock: Clock = utc_now):
        self._ledger = ledger
        self._clock = clock

    async def record(
        self,
        user_id: str,
        tonality: Tonality,
        rating: Optional[int] = None,
        transcript_length: Optional[int] = None,
    ) -> UsageEvent:
        """
        Record one completed analysis.

        Raises:
            StorageUnavailableError: if the ledger cannot be written
        """
        event = UsageEvent(
            user_id=user_id,
            tonality=tonality,
            rating=rating,
            transcript_length=transcript_length,
            created_at=self._clock(),
        )
        return await self._ledger.append(event)


class AnalysisService:
    """
    Runs the protected analysis operation for one request.

    Usage is recorded only after the scorer succeeds, so a scorer failure
    never consumes quota. Recording is best effort: a storage failure at
    that point is logged and the score is still returned.
    """

    def __init__(
        self,
        users: UserStore,
        usage: UsageService,
        evaluator: EntitlementEvaluator,
        scorer: SpeechScorer,
        recorder: SessionRecorder,
    ):
        self._users = users
        self._usage = usage
        self._evaluator = evaluator
        self._scorer = scorer
        self._recorder = recorder

    async def analyze(
        self,
        user_id: str,
        transcript: Optional[str],
        tonality: Tonality = Tonality.NEUTRAL,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> ScoreResult:
        """
        Analyze a transcript for a user.

        Args:
            user_id: Authenticated user id
            transcript: Speech transcript, must not be blank
            tonality: Requested analysis style
            is_disconnected: Optional check run before recording; when it
                returns True the result is not attributed to the user

        Raises:
            ValidationError: blank transcript (checked before any lookup)
            EntitlementDeniedError: policy refused the request
            StorageUnavailableError: tier or usage lookup failed
            ScorerError: scoring failed
        """
        if not transcript or not transcript.strip():
            raise ValidationError("Transcript is required")

        user = await self._users.get_by_id(user_id)
        if user is None:
            user = UserAccount(id=user_id, tier=Tier.UNSET)

        count = await self._usage.count_today(user_id)
        decision = self._evaluator.evaluate(user, tonality, count)

        if not decision.admitted:
            logger.info(
                f"Analysis denied for user {user_id}: {decision.reason.value} "
                f"(tier={user.tier.value}, today={count}, tonality={tonality.value})"
            )
            raise EntitlementDeniedError(decision.reason.value, decision.message)

        result = await self._scorer.score(transcript, tonality)

        if is_disconnected is not None and await is_disconnected():
            logger.info(f"Client for user {user_id} disconnected, usage not recorded")
            return result

        try:
            await self._recorder.record(
                user_id,
                tonality,
                rating=result.rating,
                transcript_length=len(transcript),
            )
        except StorageUnavailableError as e:
            logger.error(f"Failed to record usage for user {user_id}: {e}")

        return result
