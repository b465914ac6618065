"""Repository for organizations and their memberships."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rebound_relay.db.models import (
    OrganizationMembershipModel,
    OrganizationModel,
    PlanModel,
)

# Column names per billing provider, used for customer lookups.
CUSTOMER_ID_COLUMNS = {
    "dodo": OrganizationModel.dodo_customer_id,
    "stripe": OrganizationModel.stripe_customer_id,
    "lemon_squeezy": OrganizationModel.lemon_squeezy_customer_id,
}


class OrganizationsRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, name: str, owner_id: UUID) -> OrganizationModel:
        """Create an organization on the default plan with ``owner_id`` as its owner."""
        default_plan = await self.get_default_plan()
        org = OrganizationModel(
            name=name,
            plan_id=default_plan.id if default_plan else None,
            credits={},
            credits_version=0,
        )
        self._session.add(org)
        await self._session.flush()
        await self.add_member(org.id, owner_id, role="owner")
        return org

    async def get(self, org_id: UUID) -> OrganizationModel | None:
        return await self._session.get(OrganizationModel, org_id)

    async def get_default_plan(self) -> PlanModel | None:
        result = await self._session.execute(select(PlanModel).where(PlanModel.is_default.is_(True)))
        return result.scalars().first()

    async def list_for_user(self, user_id: UUID) -> list[tuple[OrganizationModel, str]]:
        """Organizations the user belongs to, in creation order, with the user's role."""
        result = await self._session.execute(
            select(OrganizationModel, OrganizationMembershipModel.role)
            .join(
                OrganizationMembershipModel,
                OrganizationMembershipModel.organization_id == OrganizationModel.id,
            )
            .where(OrganizationMembershipModel.user_id == user_id)
            .order_by(OrganizationModel.created_at, OrganizationModel.id)
        )
        return [(org, role) for org, role in result.all()]

    async def get_membership(
        self, user_id: UUID, org_id: UUID
    ) -> OrganizationMembershipModel | None:
        result = await self._session.execute(
            select(OrganizationMembershipModel).where(
                OrganizationMembershipModel.user_id == user_id,
                OrganizationMembershipModel.organization_id == org_id,
            )
        )
        return result.scalars().first()

    async def add_member(
        self, org_id: UUID, user_id: UUID, role: str = "user"
    ) -> OrganizationMembershipModel:
        member = OrganizationMembershipModel(organization_id=org_id, user_id=user_id, role=role)
        self._session.add(member)
        await self._session.flush()
        return member

    async def get_by_customer_id(self, provider: str, customer_id: str) -> OrganizationModel | None:
        column = CUSTOMER_ID_COLUMNS[provider]
        result = await self._session.execute(select(OrganizationModel).where(column == customer_id))
        return result.scalars().first()

    async def set_customer_id(
        self, org: OrganizationModel, provider: str, customer_id: str
    ) -> OrganizationModel:
        setattr(org, CUSTOMER_ID_COLUMNS[provider].key, customer_id)
        await self._session.flush()
        return org
