"""Organization credit ledger.

The transaction rows are the source of truth. ``organizations.credits`` is a
derived cache refreshed on every write and rebuildable with ``recalculate``.
Every write bumps ``organizations.credits_version`` with a compare-and-swap in
the same transaction as the row insert, so two concurrent writers can never
both act on the same observed balance.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rebound_relay.db.repositories.audit import AuditRepo
from rebound_relay.db.repositories.credits import NEGATIVE_TYPES, CreditsRepo
from rebound_relay.errors import (
    DuplicatePayment,
    InsufficientCredits,
    InvalidInput,
    LedgerConflict,
    NotFound,
)

logger = structlog.get_logger()

TransactionType = Literal["credit", "debit", "expired"]

CREDIT_TYPES = ("consultation", "document_review", "contact_request")

MAX_ATTEMPTS = 3


class CreditLedger:
    def __init__(self, session: AsyncSession, repo: CreditsRepo | None = None) -> None:
        self._session = session
        self._repo = repo or CreditsRepo(session)
        self._audit = AuditRepo(session)

    async def get_balance(self, organization_id: UUID, credit_type: str | None = None) -> int | dict[str, int]:
        """Live balance from the transaction log, for one credit type or all of them."""
        if credit_type is not None:
            return await self._repo.balance(organization_id, credit_type)
        return await self._repo.balances(organization_id)

    async def append_transaction(
        self,
        organization_id: UUID,
        credit_type: str,
        transaction_type: TransactionType,
        amount: int,
        reason: str | None = None,
        payment_ref: str | None = None,
        metadata: dict[str, Any] | None = None,
        expiration_date: datetime | None = None,
        audit: tuple[str, str] | None = None,
    ) -> dict[str, int]:
        """Append one transaction and return the updated balances by credit type.

        Debits are rejected with InsufficientCredits when they would take the
        balance of ``credit_type`` below zero; expirations are not checked.
        ``audit`` is an ``(actor_id, action)`` pair logged in the same transaction.
        """
        if amount <= 0:
            raise InvalidInput("Credit amount must be positive")
        if credit_type not in CREDIT_TYPES:
            raise InvalidInput(f"Unknown credit type: {credit_type}")
        if transaction_type not in ("credit", "debit", "expired"):
            raise InvalidInput(f"Unknown transaction type: {transaction_type}")

        for attempt in range(1, MAX_ATTEMPTS + 1):
            version = await self._repo.get_version(organization_id)
            if version is None:
                raise NotFound(f"Organization {organization_id} not found")

            if payment_ref and await self._repo.payment_ref_exists(payment_ref):
                raise DuplicatePayment(payment_ref)

            balances = await self._repo.balances(organization_id)
            current = balances.get(credit_type, 0)
            if transaction_type == "debit" and current < amount:
                raise InsufficientCredits(credit_type, current, amount)

            delta = -amount if transaction_type in NEGATIVE_TYPES else amount
            updated = {**balances, credit_type: current + delta}

            if not await self._repo.advance_version(organization_id, version, updated):
                await self._session.rollback()
                logger.warning(
                    "credit_ledger_conflict",
                    organization_id=str(organization_id),
                    attempt=attempt,
                )
                continue

            await self._repo.insert(
                organization_id,
                credit_type,
                transaction_type,
                amount,
                payment_ref=payment_ref,
                reason=reason,
                metadata=metadata,
                expiration_date=expiration_date,
            )
            if audit is not None:
                actor_id, action = audit
                await self._audit.log(
                    actor_id,
                    action,
                    "organization",
                    str(organization_id),
                    {
                        "creditType": credit_type,
                        "transactionType": transaction_type,
                        "amount": amount,
                        "reason": reason,
                        "paymentRef": payment_ref,
                    },
                )
            await self._session.commit()
            logger.info(
                "credit_transaction_recorded",
                organization_id=str(organization_id),
                credit_type=credit_type,
                transaction_type=transaction_type,
                amount=amount,
                balance=updated[credit_type],
            )
            return updated

        raise LedgerConflict()

    async def add_credits(
        self,
        organization_id: UUID,
        credit_type: str,
        amount: int,
        payment_ref: str,
        reason: str | None = None,
        metadata: dict[str, Any] | None = None,
        audit: tuple[str, str] | None = None,
    ) -> dict[str, int]:
        return await self.append_transaction(
            organization_id,
            credit_type,
            "credit",
            amount,
            reason,
            payment_ref,
            metadata,
            audit=audit,
        )

    async def deduct_credits(
        self,
        organization_id: UUID,
        credit_type: str,
        amount: int,
        reason: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, int]:
        return await self.append_transaction(
            organization_id, credit_type, "debit", amount, reason, None, metadata
        )

    async def admin_adjust(
        self,
        organization_id: UUID,
        action: Literal["add", "deduct"],
        credit_type: str,
        amount: int,
        reason: str,
        actor_id: UUID,
        actor_email: str,
    ) -> dict[str, int]:
        metadata = {
            "reason": reason,
            "adminAction": True,
            "adminId": str(actor_id),
            "adminEmail": actor_email,
        }
        transaction_type: TransactionType = "credit" if action == "add" else "debit"
        return await self.append_transaction(
            organization_id,
            credit_type,
            transaction_type,
            amount,
            reason,
            None,
            metadata,
            audit=(str(actor_id), "CREDITS_ADJUSTED"),
        )

    async def cached_credits(self, organization_id: UUID) -> dict[str, int]:
        credits = await self._repo.get_cached_credits(organization_id)
        if credits is None:
            raise NotFound(f"Organization {organization_id} not found")
        return credits

    async def recalculate(self, organization_id: UUID) -> dict[str, int]:
        """Rebuild the cached balances from the transaction log."""
        if await self._repo.get_cached_credits(organization_id) is None:
            raise NotFound(f"Organization {organization_id} not found")
        balances = await self._repo.balances(organization_id)
        await self._repo.set_cached_credits(organization_id, balances)
        await self._session.commit()
        logger.info("credits_recalculated", organization_id=str(organization_id))
        return balances

    async def history(self, organization_id: UUID, page: int = 1, limit: int = 10) -> dict[str, Any]:
        page = max(page, 1)
        limit = max(limit, 1)
        offset = (page - 1) * limit
        transactions, total = await self._repo.list(organization_id, limit=limit, offset=offset)
        return {
            "transactions": transactions,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": -(-total // limit),
                "hasNext": offset + limit < total,
                "hasPrev": page > 1,
            },
        }
