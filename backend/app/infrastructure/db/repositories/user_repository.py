"""
User Repository

Data access layer for user records and their entitlement fields.
Follows Repository pattern for Clean Architecture.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlmodel import select

from app.domain.interfaces import UserStore
from app.domain.models import (
    Identity,
    SubscriptionStatus,
    Tier,
    UserAccount,
)
from app.infrastructure.db.database import storage_session
from app.infrastructure.db.models.usage_event import UsageEventModel
from app.infrastructure.db.models.user import UserModel
from app.infrastructure.exceptions import NotFoundError, ValidationError


logger = logging.getLogger(__name__)


def to_uuid(user_id: str) -> UUID:
    """Parse a user id, rejecting anything that is not a UUID."""
    try:
        return UUID(str(user_id))
    except ValueError:
        raise ValidationError(f"Invalid user id: {user_id}")


class UserRepository(UserStore):
    """
    Repository for user data access.

    Each method runs in its own session and commits on exit, so every
    write is atomic for a single record.
    """

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get_by_id(self, user_id: str) -> Optional[UserAccount]:
        """
        Get user by identity id.

        Args:
            user_id: Identity provider user id (UUID string)

        Returns:
            UserAccount or None
        """
        user_uuid = to_uuid(user_id)
        async with storage_session("get_user", "users") as session:
            model = await session.get(UserModel, user_uuid)
            return self._to_domain(model) if model else None

    async def get_by_payment_customer_ref(
        self,
        customer_ref: str,
    ) -> Optional[UserAccount]:
        """
        Get user by Stripe customer ID.

        Args:
            customer_ref: Stripe customer ID

        Returns:
            UserAccount or None
        """
        async with storage_session("get_user_by_customer", "users") as session:
            statement = select(UserModel).where(
                UserModel.stripe_customer_id == customer_ref
            )
            result = await session.execute(statement)
            model = result.scalar_one_or_none()
            return self._to_domain(model) if model else None

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def get_or_create(self, identity: Identity) -> UserAccount:
        """
        Register an identity on first sight.

        New users start with no tier. Existing rows are returned as-is;
        ``ON CONFLICT DO NOTHING`` keeps concurrent first requests safe.
        """
        user_uuid = to_uuid(identity.user_id)
        async with storage_session("register_user", "users") as session:
            now = datetime.now(timezone.utc)
            stmt = pg_insert(UserModel).values(
                id=user_uuid,
                email=identity.email,
                name=identity.name,
                tier=None,
                subscription_status=None,
                created_at=now,
                updated_at=now,
            ).on_conflict_do_nothing(index_elements=["id"])
            result = await session.execute(stmt)
            if result.rowcount:
                logger.info(f"Registered user {identity.user_id}")

            model = await session.get(UserModel, user_uuid)
            return self._to_domain(model)

    async def save(self, user: UserAccount) -> UserAccount:
        """
        Overwrite the entitlement fields of an existing user.

        Raises:
            NotFoundError: if the user does not exist
        """
        user_uuid = to_uuid(user.id)
        async with storage_session("save_user", "users") as session:
            model = await session.get(UserModel, user_uuid)
            if model is None:
                raise NotFoundError(
                    f"User {user.id} not found",
                    operation="save_user",
                    table="users",
                )

            model.tier = None if user.tier == Tier.UNSET else user.tier.value
            model.stripe_customer_id = user.payment_customer_ref
            model.stripe_subscription_id = user.payment_subscription_ref
            model.subscription_status = (
                None
                if user.subscription_status == SubscriptionStatus.NONE
                else user.subscription_status.value
            )
            model.updated_at = datetime.now(timezone.utc)

            session.add(model)
            await session.flush()
            await session.refresh(model)
            return self._to_domain(model)

    async def update_name(self, user_id: str, name: Optional[str]) -> UserAccount:
        """
        Set only the display name of an existing user.

        Entitlement columns are left out of the UPDATE so a concurrent
        tier transition is never overwritten.

        Raises:
            NotFoundError: if the user does not exist
        """
        user_uuid = to_uuid(user_id)
        async with storage_session("update_user_name", "users") as session:
            stmt = (
                update(UserModel)
                .where(UserModel.id == user_uuid)
                .values(name=name, updated_at=datetime.now(timezone.utc))
                .returning(UserModel)
            )
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            if model is None:
                raise NotFoundError(
                    f"User {user_id} not found",
                    operation="update_user_name",
                    table="users",
                )
            return self._to_domain(model)

    async def delete(self, user_id: str) -> bool:
        """
        Delete a user and all of their usage events.

        The foreign key cascades too; the explicit delete keeps both in
        the same transaction regardless of the backend.
        """
        user_uuid = to_uuid(user_id)
        async with storage_session("delete_user", "users") as session:
            model = await session.get(UserModel, user_uuid)
            if model is None:
                return False

            await session.execute(
                delete(UsageEventModel).where(UsageEventModel.user_id == user_uuid)
            )
            await session.delete(model)
            logger.info(f"Deleted user {user_id} and their usage events")
            return True

    # =========================================================================
    # Mapping Methods
    # =========================================================================

    def _to_domain(self, model: UserModel) -> UserAccount:
        """Convert database model to domain entity."""
        return UserAccount(
            id=str(model.id),
            email=model.email,
            name=model.name,
            tier=Tier(model.tier) if model.tier else Tier.UNSET,
            payment_customer_ref=model.stripe_customer_id,
            payment_subscription_ref=model.stripe_subscription_id,
            subscription_status=(
                SubscriptionStatus(model.subscription_status)
                if model.subscription_status
                else SubscriptionStatus.NONE
            ),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


# =============================================================================
# Singleton Instance
# =============================================================================

_user_repo_instance: Optional[UserRepository] = None


def get_user_repository() -> UserRepository:
    """Get or create user repository singleton."""
    global _user_repo_instance

    if _user_repo_instance is None:
        _user_repo_instance = UserRepository()

    return _user_repo_instance
