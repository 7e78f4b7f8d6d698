"""SQLAlchemy implementations of the club directory protocols."""

from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.member import UNKNOWN_MEMBER_NAME, Member, SubscriptionStatus
from infrastructure.database.models import AdminModel, MemberModel


class SQLAlchemyMemberDirectory:
    """SQLAlchemy implementation of IMemberDirectory."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, id: UUID) -> Member | None:
        """Get a member by ID."""
        stmt = select(MemberModel).where(MemberModel.id == id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_by_user_id(self, user_id: UUID) -> Member | None:
        """Get the member linked to an auth account."""
        stmt = select(MemberModel).where(MemberModel.user_id == user_id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_many(self, ids: list[UUID]) -> list[Member]:
        """Get several members by ID."""
        if not ids:
            return []

        stmt = select(MemberModel).where(MemberModel.id.in_(ids))
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def get_active(self) -> list[Member]:
        """Get all members with an active subscription, by name."""
        stmt = (
            select(MemberModel)
            .where(MemberModel.subscription_status == SubscriptionStatus.ACTIVE.value)
            .order_by(MemberModel.name)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def get_display_name(self, id: UUID) -> str:
        """Get a member's name for denormalized display fields."""
        stmt = select(MemberModel.name).where(MemberModel.id == id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() or UNKNOWN_MEMBER_NAME

    def _to_entity(self, model: MemberModel) -> Member:
        """Convert ORM model to domain entity."""
        return Member(
            id=model.id,
            user_id=model.user_id,
            name=model.name,
            email=model.email,
            subscription_status=SubscriptionStatus(model.subscription_status),
            created_at=model.created_at,
        )


class SQLAlchemyAdminRegistry:
    """SQLAlchemy implementation of IAdminRegistry."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def is_admin(self, user_id: UUID) -> bool:
        """Check whether an auth account has an admin record."""
        stmt = select(exists().where(AdminModel.user_id == user_id))
        result = await self._session.execute(stmt)
        return bool(result.scalar())
