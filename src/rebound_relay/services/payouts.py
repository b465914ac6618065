"""Consultant payout dispatcher.

Invoice payouts move ``amount - commission_amount`` to the consultant's
connected account as a Stripe transfer grouped under ``invoice_<id>``. Every
attempt that reaches Stripe leaves an audit row, success or failure.
"""

from __future__ import annotations

from collections.abc import Collection
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rebound_relay.auth import gate
from rebound_relay.auth.models import Identity
from rebound_relay.billing.stripe_gateway import StripeGateway
from rebound_relay.db.engine import get_session_factory
from rebound_relay.db.repositories.audit import SYSTEM_ACTOR, AuditRepo
from rebound_relay.db.repositories.consultants import ConsultantsRepo
from rebound_relay.db.repositories.engagements import InvoicesRepo
from rebound_relay.errors import Forbidden, InvalidInput, NotFound, ProviderError

logger = structlog.get_logger()


def payout_amount(amount: int, commission_amount: int | None) -> int:
    return amount - (commission_amount or 0)


class PayoutDispatcher:
    def __init__(self, session: AsyncSession, stripe: StripeGateway) -> None:
        self._session = session
        self._stripe = stripe
        self._invoices = InvoicesRepo(session)
        self._consultants = ConsultantsRepo(session)
        self._audit = AuditRepo(session)

    async def payout(self, invoice_id: UUID, actor_id: str = SYSTEM_ACTOR) -> dict[str, Any]:
        """Transfer the consultant's share of a paid invoice.

        Returns ``{"success", "transferId", "amount"}`` or ``{"skipped", "reason"}``.
        Provider failures are audited as PAYOUT_FAILED and re-raised.
        """
        found = await self._invoices.get_with_consultant(invoice_id)
        if found is None:
            raise NotFound("Invoice not found")
        invoice, engagement, consultant = found

        if not consultant.stripe_account_id:
            logger.warning(
                "payout_skipped",
                invoice_id=str(invoice.id),
                consultant_id=str(consultant.id),
                reason="no_connected_account",
            )
            return {"skipped": True, "reason": "No Stripe account connected"}

        amount = payout_amount(invoice.amount, invoice.commission_amount)
        if amount <= 0:
            logger.warning("payout_skipped", invoice_id=str(invoice.id), reason="no_payout_amount")
            return {"skipped": True, "reason": "No payout amount"}

        try:
            transfer = await self._stripe.create_transfer(
                amount=amount,
                destination=consultant.stripe_account_id,
                transfer_group=f"invoice_{invoice.id}",
                metadata={
                    "invoiceId": str(invoice.id),
                    "engagementId": str(engagement.id),
                    "consultantId": str(consultant.id),
                },
            )
        except ProviderError as exc:
            await self._audit.log(
                actor_id,
                "PAYOUT_FAILED",
                "invoice",
                str(invoice.id),
                {"amount": amount, "error": exc.message, "consultantId": str(consultant.id)},
            )
            await self._session.commit()
            logger.error(
                "payout_failed",
                invoice_id=str(invoice.id),
                consultant_id=str(consultant.id),
                amount=amount,
                error=exc.message,
            )
            raise

        await self._audit.log(
            actor_id,
            "PAYOUT_INITIATED",
            "invoice",
            str(invoice.id),
            {"amount": amount, "transferId": transfer.id, "consultantId": str(consultant.id)},
        )
        await self._session.commit()
        logger.info(
            "payout_initiated",
            invoice_id=str(invoice.id),
            transfer_id=transfer.id,
            amount=amount,
        )
        return {"success": True, "transferId": transfer.id, "amount": amount}

    async def manual_payout(self, admin: Identity, consultant_id: UUID, amount: int) -> dict[str, Any]:
        """Pay out from a consultant's connected balance, outside the invoice flow."""
        if amount <= 0:
            raise InvalidInput("Payout amount must be positive")
        consultant = await self._consultants.get(consultant_id)
        if consultant is None or not consultant.stripe_account_id:
            raise NotFound("Consultant Stripe account not found")

        try:
            payout = await self._stripe.create_payout(
                amount=amount,
                account_id=consultant.stripe_account_id,
                metadata={
                    "consultantId": str(consultant_id),
                    "initiatedBy": str(admin.user_id),
                    "manualPayout": "true",
                },
            )
        except ProviderError as exc:
            await self._audit.log(
                str(admin.user_id),
                "PAYOUT_FAILED",
                "consultant",
                str(consultant_id),
                {"amount": amount, "error": exc.message, "manualPayout": True},
            )
            await self._session.commit()
            logger.error(
                "manual_payout_failed",
                consultant_id=str(consultant_id),
                amount=amount,
                error=exc.message,
            )
            raise

        await self._audit.log(
            str(admin.user_id),
            "MANUAL_PAYOUT",
            "consultant",
            str(consultant_id),
            {"amount": amount, "payoutId": payout.id},
        )
        await self._session.commit()
        logger.info("manual_payout_created", consultant_id=str(consultant_id), amount=amount)
        return {"success": True, "payoutId": payout.id}

    async def list_payouts(
        self,
        identity: Identity,
        consultant_id: UUID,
        super_admins: Collection[str],
        limit: int = 20,
    ) -> dict[str, Any]:
        consultant = await self._consultants.get(consultant_id)
        if consultant is None:
            raise NotFound("Consultant profile not found")
        if consultant.user_id != identity.user_id and not gate.is_super_admin(identity, super_admins):
            raise Forbidden()

        if not consultant.stripe_account_id:
            return {"payouts": [], "hasAccount": False}

        try:
            transfers = await self._stripe.list_transfers(consultant.stripe_account_id, limit=limit)
        except ProviderError:
            return {"payouts": [], "hasAccount": True, "error": "Failed to fetch payouts"}

        return {
            "payouts": [
                {
                    "id": t.id,
                    "amount": t.amount,
                    "currency": t.currency,
                    "created": t.created,
                    "description": getattr(t, "description", None),
                    "metadata": dict(getattr(t, "metadata", None) or {}),
                }
                for t in transfers
            ],
            "hasAccount": True,
        }


async def run_payout(invoice_id: UUID, stripe: StripeGateway) -> None:
    """Background entry point: dispatch a payout on a fresh DB session."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            await PayoutDispatcher(session, stripe).payout(invoice_id)
        except ProviderError:
            # Already audited as PAYOUT_FAILED; retrying is left to an operator.
            logger.warning("background_payout_failed", invoice_id=str(invoice_id))
