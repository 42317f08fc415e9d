"""
User Routes

Tier selection, usage report, profile and account deletion for the
authenticated user. Every route registers the caller on first sight, so a
brand-new identity starts with no tier.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.api.dependencies import (
    CurrentIdentity,
    TierHandlerDep,
    UsageServiceDep,
    UserRepoDep,
)
from app.domain.entitlement import UsageSummary
from app.domain.models import Tier, UserAccount
from app.domain.tier_transitions import parse_self_service_tier
from app.infrastructure.exceptions import NotFoundError, ValidationError


logger = logging.getLogger(__name__)

router = APIRouter()

NAME_MAX_LENGTH = 100


# ============================================================================
# Request/Response Models
# ============================================================================

class TierResponse(BaseModel):
    """Current tier; ``None`` until the user picks one."""
    tier: Optional[Tier] = None


class SelectTierRequest(BaseModel):
    """Self-service tier request. Only ``"free"`` is accepted."""
    tier: Optional[str] = None


class SelectTierResponse(BaseModel):
    tier: Optional[Tier] = None
    changed: bool


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = None


class ProfileResponse(BaseModel):
    """Profile response model."""
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    tier: Optional[Tier] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def wire_tier(user: UserAccount) -> Optional[Tier]:
    """Unset is reported as null."""
    return None if user.tier == Tier.UNSET else user.tier


def to_profile(user: UserAccount) -> ProfileResponse:
    return ProfileResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        tier=wire_tier(user),
        created_at=user.created_at,
    )


# ============================================================================
# Tier
# ============================================================================

@router.get("/user/tier", response_model=TierResponse)
async def get_tier(identity: CurrentIdentity, users: UserRepoDep):
    """Get the caller's tier."""
    user = await users.get_or_create(identity)
    return TierResponse(tier=wire_tier(user))


@router.post("/user/tier", response_model=SelectTierResponse)
async def select_tier(
    request: SelectTierRequest,
    identity: CurrentIdentity,
    users: UserRepoDep,
    handler: TierHandlerDep,
):
    """
    Pick the free tier.

    Pro is never accepted here, it is granted only by a verified payment.
    Users already on a tier get their current tier back with
    ``changed: false``.
    """
    requested = parse_self_service_tier(request.tier)
    await users.get_or_create(identity)
    user, changed = await handler.select_free_tier(identity.user_id, requested)
    return SelectTierResponse(tier=wire_tier(user), changed=changed)


# ============================================================================
# Usage
# ============================================================================

@router.get(
    "/user/usage",
    response_model=UsageSummary,
    response_model_by_alias=True,
)
async def get_usage(
    identity: CurrentIdentity,
    users: UserRepoDep,
    usage: UsageServiceDep,
):
    """Today's usage against the caller's daily limit."""
    user = await users.get_or_create(identity)
    return await usage.get_usage(user)


# ============================================================================
# Profile
# ============================================================================

@router.get("/user/profile", response_model=ProfileResponse)
async def get_profile(identity: CurrentIdentity, users: UserRepoDep):
    user = await users.get_or_create(identity)
    return to_profile(user)


@router.put("/user/profile", response_model=ProfileResponse)
async def update_profile(
    request: ProfileUpdateRequest,
    identity: CurrentIdentity,
    users: UserRepoDep,
):
    """Update the display name (1-100 characters after trimming)."""
    name = (request.name or "").strip()
    if not name or len(name) > NAME_MAX_LENGTH:
        raise ValidationError(
            f"Name must be between 1 and {NAME_MAX_LENGTH} characters",
            details={"field": "name"},
        )

    await users.get_or_create(identity)
    saved = await users.update_name(identity.user_id, name)
    logger.info(f"Updated profile name for user {identity.user_id}")
    return to_profile(saved)


@router.delete("/user", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(identity: CurrentIdentity, users: UserRepoDep):
    """Delete the caller's record and all of their usage events."""
    deleted = await users.delete(identity.user_id)
    if not deleted:
        raise NotFoundError(
            f"User {identity.user_id} not found",
            operation="delete_user",
            table="users",
        )
    logger.info(f"Deleted account for user {identity.user_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
