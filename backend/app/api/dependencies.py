"""
API Dependencies

FastAPI dependency injection for authentication and the domain services.

Security: JWT tokens are verified cryptographically using Supabase JWKS (ES256)
or, for legacy HS256 tokens, the JWT secret. Never decode without verification.
"""

import logging
from functools import lru_cache
from typing import Annotated, Optional

import jwt
from jwt import PyJWKClient
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.config.settings import get_settings
from app.domain.entitlement import EntitlementEvaluator, EntitlementPolicy
from app.domain.interfaces import SpeechScorer
from app.domain.models import Identity, Tonality
from app.domain.services import AnalysisService, SessionRecorder, UsageService
from app.domain.tier_transitions import TierTransitionHandler
from app.infrastructure.ai.speech_scorer import GeminiSpeechScorer
from app.infrastructure.db.dependencies import (
    UserRepoDep,
    UsageRepoDep,
    WebhookEventRepoDep,
)


logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

# Cached JWKS client; PyJWKClient caches keys internally.
_jwks_client: Optional[PyJWKClient] = None


def _get_jwks_client() -> PyJWKClient:
    """Return a singleton PyJWKClient for the Supabase JWKS endpoint."""
    global _jwks_client
    if _jwks_client is None:
        settings = get_settings()
        jwks_url = f"{settings.supabase_url}/auth/v1/.well-known/jwks.json"
        _jwks_client = PyJWKClient(jwks_url, cache_keys=True)
    return _jwks_client


def _decode_with_jwks(token: str, issuer: str) -> dict:
    """Verify JWT using Supabase JWKS endpoint (ES256 asymmetric keys)."""
    client = _get_jwks_client()
    signing_key = client.get_signing_key_from_jwt(token)
    return jwt.decode(
        token,
        signing_key.key,
        algorithms=["ES256"],
        issuer=issuer,
        audience="authenticated",
        options={"require": ["exp", "sub", "iss"]},
    )


def _decode_with_secret(token: str, secret: str, issuer: str) -> dict:
    """Verify JWT using HS256 symmetric secret (legacy Supabase signing)."""
    return jwt.decode(
        token,
        secret,
        algorithms=["HS256"],
        issuer=issuer,
        audience="authenticated",
        options={"require": ["exp", "sub", "iss"]},
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Identity:
    """
    Verify a Supabase JWT and return the caller's identity.

    HS256 tokens are checked against ``SUPABASE_JWT_SECRET``; every other
    algorithm goes through the project's JWKS.

    Raises:
        HTTPException 401: token missing, expired, or invalid.
    """
    if not credentials or not credentials.credentials:
        raise _unauthorized("Missing authorization token")

    token = credentials.credentials
    settings = get_settings()
    issuer = f"{settings.supabase_url}/auth/v1"

    try:
        header = jwt.get_unverified_header(token)
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid or unverifiable token")

    try:
        if header.get("alg") == "HS256":
            if not settings.supabase_jwt_secret:
                raise _unauthorized("Invalid or unverifiable token")
            payload = _decode_with_secret(token, settings.supabase_jwt_secret, issuer)
        else:
            payload = _decode_with_jwks(token, issuer)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except (jwt.exceptions.PyJWKClientError, jwt.InvalidTokenError) as e:
        logger.warning("JWT verification failed: %s", e)
        raise _unauthorized("Invalid or unverifiable token")

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token: missing user ID")

    metadata = payload.get("user_metadata") or {}
    return Identity(
        user_id=user_id,
        email=payload.get("email"),
        name=metadata.get("name"),
    )


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]


# =============================================================================
# Domain Service Providers
# =============================================================================

@lru_cache
def get_entitlement_evaluator() -> EntitlementEvaluator:
    """Evaluator configured from settings."""
    settings = get_settings()
    return EntitlementEvaluator(
        EntitlementPolicy(
            free_daily_limit=settings.free_tier_daily_limit,
            free_tonality=Tonality(settings.free_tier_tonality),
        )
    )


@lru_cache
def get_speech_scorer() -> SpeechScorer:
    """Get the Gemini speech scorer."""
    return GeminiSpeechScorer()


def get_usage_service(
    ledger: UsageRepoDep,
    evaluator: EntitlementEvaluator = Depends(get_entitlement_evaluator),
) -> UsageService:
    return UsageService(ledger, evaluator, tz=get_settings().usage_tz)


def get_tier_handler(users: UserRepoDep) -> TierTransitionHandler:
    return TierTransitionHandler(users)


def get_session_recorder(ledger: UsageRepoDep) -> SessionRecorder:
    return SessionRecorder(ledger)


def get_analysis_service(
    users: UserRepoDep,
    usage: UsageService = Depends(get_usage_service),
    evaluator: EntitlementEvaluator = Depends(get_entitlement_evaluator),
    scorer: SpeechScorer = Depends(get_speech_scorer),
    recorder: SessionRecorder = Depends(get_session_recorder),
) -> AnalysisService:
    return AnalysisService(users, usage, evaluator, scorer, recorder)


UsageServiceDep = Annotated[UsageService, Depends(get_usage_service)]
TierHandlerDep = Annotated[TierTransitionHandler, Depends(get_tier_handler)]
AnalysisServiceDep = Annotated[AnalysisService, Depends(get_analysis_service)]


__all__ = [
    "get_current_identity",
    "CurrentIdentity",
    "get_entitlement_evaluator",
    "get_speech_scorer",
    "UserRepoDep",
    "UsageRepoDep",
    "WebhookEventRepoDep",
    "UsageServiceDep",
    "TierHandlerDep",
    "AnalysisServiceDep",
]
