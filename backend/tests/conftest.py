"""
Test configuration and fixtures for Tonr.

Provides shared fixtures for unit and integration tests: in-memory
stores standing in for the database, a stub scorer, and signed test tokens.
"""

import os

# Settings are read once at import time; pin the values tests rely on.
os.environ["SUPABASE_URL"] = "https://test-project.supabase.co"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-for-the-tonr-suite-0123456789abcdef"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ.pop("DATABASE_URL", None)

import hashlib
import hmac
import time
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

import jwt
import pytest
from fastapi.testclient import TestClient

from app.domain.interfaces import SpeechScorer, UsageLedger, UserStore
from app.domain.models import (
    Identity,
    ScoreResult,
    Tier,
    Tonality,
    UsageEvent,
    UserAccount,
)
from app.infrastructure.exceptions import NotFoundError, StorageUnavailableError


TEST_USER_ID = "aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee"


# =============================================================================
# In-memory Fakes
# =============================================================================

class InMemoryUsageLedger(UsageLedger):
    """Usage ledger held in a list. Set ``fail_appends`` to simulate an outage."""

    def __init__(self):
        self.events: List[UsageEvent] = []
        self.fail_appends = False

    async def append(self, event: UsageEvent) -> UsageEvent:
        if self.fail_appends:
            raise StorageUnavailableError(
                "usage store down",
                operation="append_usage_event",
                table="usage_events",
            )
        stored = event.model_copy(update={"id": str(uuid.uuid4())})
        self.events.append(stored)
        return stored

    async def count_between(self, user_id: str, start: datetime, end: datetime) -> int:
        return sum(
            1 for e in self.events
            if e.user_id == user_id and start <= e.created_at < end
        )


class InMemoryUserStore(UserStore):
    """User store held in a dict. Returns copies, like a real database."""

    def __init__(self, ledger: Optional[InMemoryUsageLedger] = None):
        self.users: Dict[str, UserAccount] = {}
        self._ledger = ledger

    def add(self, user_id: str, tier: Tier = Tier.UNSET, **fields) -> UserAccount:
        now = datetime.now(timezone.utc)
        user = UserAccount(id=user_id, tier=tier, created_at=now, updated_at=now, **fields)
        self.users[user_id] = user
        return user.model_copy()

    async def get_by_id(self, user_id: str) -> Optional[UserAccount]:
        user = self.users.get(user_id)
        return user.model_copy() if user else None

    async def get_by_payment_customer_ref(self, customer_ref: str) -> Optional[UserAccount]:
        for user in self.users.values():
            if user.payment_customer_ref == customer_ref:
                return user.model_copy()
        return None

    async def get_or_create(self, identity: Identity) -> UserAccount:
        if identity.user_id not in self.users:
            self.add(identity.user_id, email=identity.email, name=identity.name)
        return self.users[identity.user_id].model_copy()

    async def save(self, user: UserAccount) -> UserAccount:
        if user.id not in self.users:
            raise NotFoundError(f"User {user.id} not found", operation="save_user", table="users")
        stored = self.users[user.id].model_copy(update={
            "tier": user.tier,
            "payment_customer_ref": user.payment_customer_ref,
            "payment_subscription_ref": user.payment_subscription_ref,
            "subscription_status": user.subscription_status,
            "updated_at": datetime.now(timezone.utc),
        })
        self.users[user.id] = stored
        return stored.model_copy()

    async def update_name(self, user_id: str, name: Optional[str]) -> UserAccount:
        if user_id not in self.users:
            raise NotFoundError(f"User {user_id} not found", operation="update_user_name", table="users")
        stored = self.users[user_id].model_copy(
            update={"name": name, "updated_at": datetime.now(timezone.utc)}
        )
        self.users[user_id] = stored
        return stored.model_copy()

    async def delete(self, user_id: str) -> bool:
        if self.users.pop(user_id, None) is None:
            return False
        if self._ledger is not None:
            self._ledger.events = [e for e in self._ledger.events if e.user_id != user_id]
        return True


class StubScorer(SpeechScorer):
    """Scorer returning a fixed result, or raising ``error`` when set."""

    def __init__(self, result: Optional[ScoreResult] = None):
        self.result = result or ScoreResult(
            rating=72,
            feedback=["Slow down slightly", "Cut filler words", "End with a clear ask"],
        )
        self.error: Optional[Exception] = None
        self.calls: List[tuple] = []

    async def score(self, transcript: str, tonality: Tonality) -> ScoreResult:
        self.calls.append((transcript, tonality))
        if self.error is not None:
            raise self.error
        return self.result


class InMemoryWebhookEvents:
    """Processed webhook ids held in a dict."""

    def __init__(self):
        self.processed: Dict[str, str] = {}

    async def is_processed(self, event_id: str) -> bool:
        return event_id in self.processed

    async def mark_processed(self, event_id: str, event_type: str) -> None:
        self.processed.setdefault(event_id, event_type)


# =============================================================================
# Fake Fixtures
# =============================================================================

@pytest.fixture
def usage_ledger() -> InMemoryUsageLedger:
    return InMemoryUsageLedger()


@pytest.fixture
def user_store(usage_ledger) -> InMemoryUserStore:
    return InMemoryUserStore(ledger=usage_ledger)


@pytest.fixture
def scorer() -> StubScorer:
    return StubScorer()


@pytest.fixture
def webhook_events() -> InMemoryWebhookEvents:
    return InMemoryWebhookEvents()


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app(user_store, usage_ledger, scorer, webhook_events):
    """Get the FastAPI application wired to the in-memory fakes."""
    from app.api.dependencies import get_speech_scorer
    from app.infrastructure.payments.stripe_service import StripeService, get_stripe_service
    from app.infrastructure.db.repositories import (
        get_usage_event_repository,
        get_user_repository,
        get_webhook_event_repository,
    )
    from app.main import app

    app.dependency_overrides[get_user_repository] = lambda: user_store
    app.dependency_overrides[get_usage_event_repository] = lambda: usage_ledger
    app.dependency_overrides[get_webhook_event_repository] = lambda: webhook_events
    app.dependency_overrides[get_speech_scorer] = lambda: scorer
    # Fresh service per request so tests see patched settings
    app.dependency_overrides[get_stripe_service] = lambda: StripeService()
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Get synchronous test client."""
    return TestClient(app)


# =============================================================================
# Auth Fixtures
# =============================================================================

@pytest.fixture
def make_token():
    """Factory for HS256 access tokens signed like Supabase's."""
    from app.config.settings import get_settings

    settings = get_settings()

    def _make(
        user_id: str = TEST_USER_ID,
        email: Optional[str] = "speaker@example.com",
        name: Optional[str] = None,
        expires_in: int = 3600,
    ) -> str:
        payload = {
            "sub": user_id,
            "aud": "authenticated",
            "iss": f"{settings.supabase_url}/auth/v1",
            "exp": int(time.time()) + expires_in,
            "email": email,
            "user_metadata": {"name": name} if name else {},
        }
        return jwt.encode(payload, settings.supabase_jwt_secret, algorithm="HS256")

    return _make


@pytest.fixture
def mock_user_id() -> str:
    return TEST_USER_ID


@pytest.fixture
def auth_headers(make_token):
    """Authorization header for TEST_USER_ID."""
    return {"Authorization": f"Bearer {make_token()}"}


# =============================================================================
# Payment Fixtures
# =============================================================================

@pytest.fixture
def stripe_signature():
    """Build Stripe-Signature headers the way Stripe signs webhooks."""

    def _sign(payload: str, secret: str = "whsec_test", timestamp: Optional[int] = None) -> str:
        timestamp = timestamp or int(time.time())
        digest = hmac.new(
            secret.encode("utf-8"),
            f"{timestamp}.{payload}".encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
        return f"t={timestamp},v1={digest}"

    return _sign
