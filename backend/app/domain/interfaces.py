"""
Storage and Scorer Interfaces for Tonr

Abstract collaborators the domain services depend on.
Infrastructure repositories and the Gemini scorer implement these;
tests substitute in-memory versions.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from app.domain.models import (
    Identity,
    ScoreResult,
    Tonality,
    UsageEvent,
    UserAccount,
)


class UserStore(ABC):
    """Persistent user records. Writes are atomic per record."""

    @abstractmethod
    async def get_by_id(self, user_id: str) -> Optional[UserAccount]:
        """Get a user by identity id."""

    @abstractmethod
    async def get_by_payment_customer_ref(self, customer_ref: str) -> Optional[UserAccount]:
        """Get a user by their Stripe customer id."""

    @abstractmethod
    async def get_or_create(self, identity: Identity) -> UserAccount:
        """Return the user for an identity, registering it with no tier if new."""

    @abstractmethod
    async def save(self, user: UserAccount) -> UserAccount:
        """Overwrite the tier and payment fields of an existing user (last write wins)."""

    @abstractmethod
    async def update_name(self, user_id: str, name: Optional[str]) -> UserAccount:
        """Set the display name only; tier and payment fields are untouched."""

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        """Delete a user and, by cascade, their usage events."""


class UsageLedger(ABC):
    """Append-only log of completed analyses."""

    @abstractmethod
    async def append(self, event: UsageEvent) -> UsageEvent:
        """Store a new usage event."""

    @abstractmethod
    async def count_between(self, user_id: str, start: datetime, end: datetime) -> int:
        """Count a user's events with ``start <= created_at < end``."""


class SpeechScorer(ABC):
    """Opaque AI scoring function."""

    @abstractmethod
    async def score(self, transcript: str, tonality: Tonality) -> ScoreResult:
        """Rate a transcript. Raises ScorerError on any failure."""
