"""Repository for PayPal subscription contexts."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rebound_relay.db.models import PaypalContextModel


class PaypalContextsRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, **kwargs: Any) -> PaypalContextModel:
        ctx = PaypalContextModel(**kwargs)
        self._session.add(ctx)
        await self._session.flush()
        return ctx

    async def get(self, context_id: UUID) -> PaypalContextModel | None:
        return await self._session.get(PaypalContextModel, context_id)

    async def list_for_organization(self, org_id: UUID) -> list[PaypalContextModel]:
        result = await self._session.execute(
            select(PaypalContextModel)
            .where(PaypalContextModel.organization_id == org_id)
            .order_by(PaypalContextModel.created_at.desc())
        )
        return list(result.scalars().all())

    async def exists_for_organization(self, org_id: UUID) -> bool:
        result = await self._session.execute(
            select(PaypalContextModel.id).where(PaypalContextModel.organization_id == org_id).limit(1)
        )
        return result.first() is not None

    async def set_status(self, ctx: PaypalContextModel, status: str) -> None:
        ctx.status = status
        await self._session.flush()
