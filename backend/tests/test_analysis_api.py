"""
Integration Tests for speech analysis

Covers the HTTP contract of /api/analyze-speech and the end-to-end tier
lifecycle: new user, free quota, tonality gate, upgrade and cancellation.
"""

import json

import pytest

from app.domain.models import Tier, Tonality
from app.infrastructure.exceptions import ScorerError


ANALYZE_URL = "/api/analyze-speech"


@pytest.fixture
def analyze(client, auth_headers):
    def _analyze(tonality: str = "neutral", transcript: str = "Thanks for making the time today."):
        return client.post(
            ANALYZE_URL,
            json={"transcript": transcript, "tonality": tonality},
            headers=auth_headers,
        )

    return _analyze


@pytest.fixture
def send_webhook(client, stripe_signature):
    def _send(event: dict):
        payload = json.dumps(event)
        return client.post(
            "/api/stripe/webhook",
            content=payload,
            headers={"stripe-signature": stripe_signature(payload)},
        )

    return _send


def payment_completed_event(user_id: str) -> dict:
    return {
        "id": "evt_paid",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "customer": "cus_scenario",
                "subscription": "sub_scenario",
                "metadata": {"user_id": user_id},
            }
        },
    }


def subscription_canceled_event() -> dict:
    return {
        "id": "evt_canceled",
        "type": "customer.subscription.deleted",
        "data": {"object": {"customer": "cus_scenario"}},
    }


class TestAnalyzeContract:

    def test_success_response(self, analyze, user_store, mock_user_id):
        user_store.add(mock_user_id, tier=Tier.FREE)

        response = analyze()

        assert response.status_code == 200
        assert response.json() == {
            "rating": 72,
            "feedback": ["Slow down slightly", "Cut filler words", "End with a clear ask"],
        }

    def test_tonality_defaults_to_neutral(self, client, auth_headers, user_store, scorer, mock_user_id):
        user_store.add(mock_user_id, tier=Tier.FREE)

        response = client.post(ANALYZE_URL, json={"transcript": "Hi"}, headers=auth_headers)

        assert response.status_code == 200
        assert scorer.calls == [("Hi", Tonality.NEUTRAL)]

    @pytest.mark.parametrize("transcript", ["", "   "])
    def test_blank_transcript(self, analyze, user_store, scorer, mock_user_id, transcript):
        user_store.add(mock_user_id, tier=Tier.FREE)

        response = analyze(transcript=transcript)

        assert response.status_code == 400
        assert response.json()["message"] == "Transcript is required"
        assert scorer.calls == []

    def test_unknown_tonality(self, analyze, user_store, mock_user_id):
        user_store.add(mock_user_id, tier=Tier.PRO)

        response = analyze(tonality="sarcastic")

        assert response.status_code == 422

    def test_denial_body(self, analyze):
        response = analyze()

        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "EntitlementDeniedError"
        assert body["details"] == {"reason": "tier_not_selected"}
        assert "select a tier" in body["message"]

    def test_scorer_failure(self, analyze, user_store, usage_ledger, scorer, mock_user_id):
        user_store.add(mock_user_id, tier=Tier.FREE)
        scorer.error = ScorerError("Failed to analyze speech", operation="score")

        response = analyze()

        assert response.status_code == 502
        assert usage_ledger.events == []

    def test_recording_outage_still_returns_score(self, analyze, user_store, usage_ledger, mock_user_id):
        user_store.add(mock_user_id, tier=Tier.FREE)
        usage_ledger.fail_appends = True

        response = analyze()

        assert response.status_code == 200
        assert response.json()["rating"] == 72

    def test_records_usage_event(self, analyze, user_store, usage_ledger, mock_user_id):
        user_store.add(mock_user_id, tier=Tier.FREE)

        analyze(transcript="Let's agree on next steps.")

        assert len(usage_ledger.events) == 1
        event = usage_ledger.events[0]
        assert event.user_id == mock_user_id
        assert event.tonality == Tonality.NEUTRAL
        assert event.rating == 72
        assert event.transcript_length == len("Let's agree on next steps.")


class TestScorerNotConfigured:
    """Without a Gemini key, validation and entitlement still answer first."""

    @pytest.fixture
    def unconfigured_scorer(self, app, monkeypatch):
        from app.api.dependencies import get_speech_scorer
        from app.config.settings import get_settings
        from app.infrastructure.ai.speech_scorer import GeminiSpeechScorer

        monkeypatch.setattr(get_settings(), "google_api_key", None)
        app.dependency_overrides[get_speech_scorer] = lambda: GeminiSpeechScorer()

    def test_blank_transcript_is_400(self, analyze, user_store, mock_user_id, unconfigured_scorer):
        user_store.add(mock_user_id, tier=Tier.FREE)

        response = analyze(transcript="   ")

        assert response.status_code == 400

    def test_unset_user_is_403(self, analyze, unconfigured_scorer):
        response = analyze()

        assert response.status_code == 403
        assert response.json()["details"] == {"reason": "tier_not_selected"}

    def test_admitted_call_fails_without_recording(self, analyze, user_store, usage_ledger, mock_user_id, unconfigured_scorer):
        user_store.add(mock_user_id, tier=Tier.FREE)

        response = analyze()

        assert response.status_code == 500
        assert response.json()["error"] == "ConfigurationError"
        assert usage_ledger.events == []


class TestTierLifecycle:
    """End-to-end: the tier drives what the analysis endpoint allows."""

    def test_new_user_must_pick_a_tier(self, client, auth_headers, analyze, scorer):
        # Scenario A
        client.get("/api/user/tier", headers=auth_headers)

        for tonality in ("neutral", "assertive", "composed"):
            response = analyze(tonality=tonality)
            assert response.status_code == 403
            assert response.json()["details"]["reason"] == "tier_not_selected"

        assert scorer.calls == []

    def test_free_daily_quota(self, client, auth_headers, analyze):
        # Scenario B
        client.post("/api/user/tier", json={"tier": "free"}, headers=auth_headers)

        statuses = [analyze().status_code for _ in range(4)]

        assert statuses == [200, 200, 200, 403]
        assert analyze().json()["details"]["reason"] == "daily_limit_reached"
        usage = client.get("/api/user/usage", headers=auth_headers).json()
        assert usage["usageCount"] == 3
        assert usage["canUse"] is False

    def test_free_tonality_gate(self, client, auth_headers, analyze):
        # Scenario C
        client.post("/api/user/tier", json={"tier": "free"}, headers=auth_headers)

        response = analyze(tonality="assertive")

        assert response.status_code == 403
        assert response.json()["details"]["reason"] == "tonality_not_allowed"

    def test_over_quota_reports_quota_before_tonality(self, client, auth_headers, analyze):
        client.post("/api/user/tier", json={"tier": "free"}, headers=auth_headers)
        for _ in range(3):
            analyze()

        response = analyze(tonality="assertive")

        assert response.json()["details"]["reason"] == "daily_limit_reached"

    def test_upgrade_unlocks_everything(self, client, auth_headers, analyze, send_webhook, mock_user_id):
        # Scenario D
        client.post("/api/user/tier", json={"tier": "free"}, headers=auth_headers)
        for _ in range(3):
            analyze()

        send_webhook(payment_completed_event(mock_user_id))

        assert client.get("/api/user/tier", headers=auth_headers).json() == {"tier": "pro"}
        for tonality in ("assertive", "composed", "neutral"):
            assert analyze(tonality=tonality).status_code == 200

    def test_cancellation_restores_free_rules(self, client, auth_headers, analyze, send_webhook, mock_user_id):
        # Scenario E
        client.post("/api/user/tier", json={"tier": "free"}, headers=auth_headers)
        send_webhook(payment_completed_event(mock_user_id))
        assert analyze(tonality="assertive").status_code == 200

        send_webhook(subscription_canceled_event())

        assert client.get("/api/user/tier", headers=auth_headers).json() == {"tier": "free"}
        response = analyze(tonality="assertive")
        assert response.status_code == 403
        assert response.json()["details"]["reason"] == "tonality_not_allowed"

    def test_self_service_cannot_grant_pro(self, client, auth_headers, analyze):
        response = client.post("/api/user/tier", json={"tier": "pro"}, headers=auth_headers)

        assert response.status_code == 400
        assert analyze(tonality="assertive").status_code == 403
