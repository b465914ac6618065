"""Repository for engagements and their invoices."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rebound_relay.db.models import ConsultantModel, EngagementModel, InvoiceModel


class EngagementsRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, **kwargs: Any) -> EngagementModel:
        engagement = EngagementModel(status="INITIATED", **kwargs)
        self._session.add(engagement)
        await self._session.flush()
        return engagement

    async def get(self, engagement_id: UUID) -> EngagementModel | None:
        return await self._session.get(EngagementModel, engagement_id)

    async def list_for_client(self, client_id: UUID) -> list[EngagementModel]:
        result = await self._session.execute(
            select(EngagementModel)
            .where(EngagementModel.client_id == client_id)
            .order_by(EngagementModel.created_at)
        )
        return list(result.scalars().all())

    async def count_for_consultant(self, consultant_id: UUID) -> int:
        result = await self._session.execute(
            select(func.count())
            .select_from(EngagementModel)
            .where(EngagementModel.consultant_id == consultant_id)
        )
        return result.scalar_one()


class InvoicesRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self, engagement_id: UUID, amount: int, commission_amount: int, description: str | None = None
    ) -> InvoiceModel:
        invoice = InvoiceModel(
            engagement_id=engagement_id,
            amount=amount,
            commission_amount=commission_amount,
            description=description,
            status="PENDING",
        )
        self._session.add(invoice)
        await self._session.flush()
        return invoice

    async def get(self, invoice_id: UUID) -> InvoiceModel | None:
        return await self._session.get(InvoiceModel, invoice_id)

    async def set_checkout_session(self, invoice: InvoiceModel, checkout_session_id: str) -> None:
        invoice.checkout_session_id = checkout_session_id
        await self._session.flush()

    async def mark_paid_if_pending(self, invoice_id: UUID) -> bool:
        """PENDING -> PAID as a single conditional update. False means nothing changed."""
        now = datetime.now(UTC)
        result = await self._session.execute(
            update(InvoiceModel)
            .where(InvoiceModel.id == invoice_id, InvoiceModel.status == "PENDING")
            .values(status="PAID", paid_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def list_for_consultant(self, consultant_id: UUID) -> list[InvoiceModel]:
        result = await self._session.execute(
            select(InvoiceModel)
            .join(EngagementModel, InvoiceModel.engagement_id == EngagementModel.id)
            .where(EngagementModel.consultant_id == consultant_id)
        )
        return list(result.scalars().all())

    async def get_with_consultant(
        self, invoice_id: UUID
    ) -> tuple[InvoiceModel, EngagementModel, ConsultantModel] | None:
        """Resolve invoice -> engagement -> consultant in one query."""
        result = await self._session.execute(
            select(InvoiceModel, EngagementModel, ConsultantModel)
            .join(EngagementModel, InvoiceModel.engagement_id == EngagementModel.id)
            .join(ConsultantModel, EngagementModel.consultant_id == ConsultantModel.id)
            .where(InvoiceModel.id == invoice_id)
        )
        row = result.first()
        return (row[0], row[1], row[2]) if row else None
