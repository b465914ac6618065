"""Repository for credit transactions and the cached per-organization balances."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rebound_relay.db.models import CreditTransactionModel, OrganizationModel

# Transaction types that reduce a balance. Amounts are always stored positive.
NEGATIVE_TYPES = ("debit", "expired")

_signed_amount = case(
    (CreditTransactionModel.transaction_type.in_(NEGATIVE_TYPES), -CreditTransactionModel.amount),
    else_=CreditTransactionModel.amount,
)


class CreditsRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_version(self, org_id: UUID) -> int | None:
        """Current ledger version of the organization, or None if it does not exist."""
        result = await self._session.execute(
            select(OrganizationModel.credits_version)
            .where(OrganizationModel.id == org_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def balances(self, org_id: UUID) -> dict[str, int]:
        """Signed sum of all transactions, grouped by credit type."""
        result = await self._session.execute(
            select(CreditTransactionModel.credit_type, func.sum(_signed_amount))
            .where(CreditTransactionModel.organization_id == org_id)
            .group_by(CreditTransactionModel.credit_type)
        )
        return {credit_type: int(total or 0) for credit_type, total in result.all()}

    async def balance(self, org_id: UUID, credit_type: str) -> int:
        result = await self._session.execute(
            select(func.coalesce(func.sum(_signed_amount), 0)).where(
                CreditTransactionModel.organization_id == org_id,
                CreditTransactionModel.credit_type == credit_type,
            )
        )
        return int(result.scalar_one())

    async def payment_ref_exists(self, payment_ref: str) -> bool:
        result = await self._session.execute(
            select(CreditTransactionModel.id).where(CreditTransactionModel.payment_ref == payment_ref)
        )
        return result.first() is not None

    async def advance_version(
        self, org_id: UUID, seen_version: int, credits: dict[str, int]
    ) -> bool:
        """Compare-and-swap the ledger version, refreshing the cached balances.

        Returns False when another writer advanced the version first.
        """
        result = await self._session.execute(
            update(OrganizationModel)
            .where(
                OrganizationModel.id == org_id,
                OrganizationModel.credits_version == seen_version,
            )
            .values(credits=credits, credits_version=seen_version + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def set_cached_credits(self, org_id: UUID, credits: dict[str, int]) -> None:
        await self._session.execute(
            update(OrganizationModel)
            .where(OrganizationModel.id == org_id)
            .values(credits=credits)
            .execution_options(synchronize_session=False)
        )

    async def get_cached_credits(self, org_id: UUID) -> dict[str, int] | None:
        result = await self._session.execute(
            select(OrganizationModel.credits).where(OrganizationModel.id == org_id)
        )
        row = result.first()
        return dict(row[0] or {}) if row else None

    async def insert(
        self,
        org_id: UUID,
        credit_type: str,
        transaction_type: str,
        amount: int,
        payment_ref: str | None = None,
        reason: str | None = None,
        metadata: dict[str, Any] | None = None,
        expiration_date: datetime | None = None,
    ) -> CreditTransactionModel:
        txn = CreditTransactionModel(
            organization_id=org_id,
            credit_type=credit_type,
            transaction_type=transaction_type,
            amount=amount,
            payment_ref=payment_ref,
            reason=reason,
            metadata_=metadata or {},
            expiration_date=expiration_date,
        )
        self._session.add(txn)
        await self._session.flush()
        return txn

    async def list(
        self, org_id: UUID, limit: int = 10, offset: int = 0
    ) -> tuple[list[CreditTransactionModel], int]:
        query = (
            select(CreditTransactionModel)
            .where(CreditTransactionModel.organization_id == org_id)
            .order_by(CreditTransactionModel.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        count_query = (
            select(func.count())
            .select_from(CreditTransactionModel)
            .where(CreditTransactionModel.organization_id == org_id)
        )
        result = await self._session.execute(query)
        total_result = await self._session.execute(count_query)
        return list(result.scalars().all()), total_result.scalar_one()
