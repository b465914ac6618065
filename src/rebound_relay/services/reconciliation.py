"""Stripe webhook reconciliation for marketplace invoices and credit purchases.

Stripe delivers at least once. Invoice side effects are keyed on the
PENDING -> PAID compare-and-swap and credit grants on the checkout session id,
so a redelivered event is acknowledged without doing anything twice.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rebound_relay.billing.stripe_gateway import StripeGateway
from rebound_relay.db.repositories.audit import SYSTEM_ACTOR, AuditRepo
from rebound_relay.db.repositories.engagements import InvoicesRepo
from rebound_relay.db.repositories.organizations import OrganizationsRepo
from rebound_relay.errors import DuplicatePayment, InvalidInput
from rebound_relay.services.ledger import CreditLedger

logger = structlog.get_logger()

CHECKOUT_COMPLETED = "checkout.session.completed"


@dataclass
class Reconciliation:
    """What a webhook delivery changed. ``payout_invoice_id`` is set only on a fresh PAID transition."""

    outcome: str
    payout_invoice_id: UUID | None = None


def _parse_uuid(value: Any) -> UUID | None:
    try:
        return UUID(str(value))
    except ValueError:
        return None


class PaymentReconciler:
    def __init__(self, session: AsyncSession, stripe: StripeGateway) -> None:
        self._session = session
        self._stripe = stripe
        self._invoices = InvoicesRepo(session)
        self._audit = AuditRepo(session)
        self._organizations = OrganizationsRepo(session)
        self._ledger = CreditLedger(session)

    async def handle_payment_event(self, payload: bytes, signature: str | None) -> Reconciliation:
        """Verify and apply one webhook delivery. Raises InvalidSignature before touching state."""
        event = self._stripe.construct_event(payload, signature)
        event_type = event["type"]
        log = logger.bind(event_id=event.get("id"), event_type=event_type)

        if event_type != CHECKOUT_COMPLETED:
            log.debug("webhook_event_ignored")
            return Reconciliation(outcome="ignored")

        checkout = event["data"]["object"]
        metadata = dict(checkout.get("metadata") or {})

        if metadata.get("type") == "credits_purchase":
            return await self._grant_purchased_credits(checkout["id"], checkout, metadata)

        invoice_id = metadata.get("invoiceId")
        if not invoice_id:
            log.warning("webhook_missing_invoice_id", checkout_session_id=checkout["id"])
            raise InvalidInput("Missing invoiceId metadata")
        return await self.reconcile_invoice(invoice_id, checkout["id"])

    async def reconcile_invoice(self, invoice_id: str, checkout_session_id: str) -> Reconciliation:
        parsed = _parse_uuid(invoice_id)
        if parsed is None or not await self._invoices.mark_paid_if_pending(parsed):
            await self._session.rollback()
            logger.info(
                "invoice_reconciliation_noop",
                invoice_id=invoice_id,
                checkout_session_id=checkout_session_id,
            )
            return Reconciliation(outcome="noop")

        await self._audit.log(
            SYSTEM_ACTOR,
            "INVOICE_PAID",
            "invoice",
            str(parsed),
            {"checkoutSessionId": checkout_session_id},
        )
        await self._session.commit()
        logger.info("invoice_paid", invoice_id=str(parsed), checkout_session_id=checkout_session_id)
        return Reconciliation(outcome="paid", payout_invoice_id=parsed)

    async def _grant_purchased_credits(
        self, checkout_session_id: str, checkout: Any, metadata: dict[str, Any]
    ) -> Reconciliation:
        organization_id = _parse_uuid(metadata.get("organizationId"))
        credit_type = metadata.get("creditType")
        try:
            amount = int(metadata.get("amount", ""))
        except ValueError:
            amount = 0
        if organization_id is None or not credit_type or amount <= 0:
            logger.error("credits_purchase_invalid_metadata", metadata=metadata)
            raise InvalidInput("Invalid credits purchase metadata")

        if await self._organizations.get(organization_id) is None:
            logger.error(
                "credits_purchase_unknown_organization",
                organization_id=str(organization_id),
                checkout_session_id=checkout_session_id,
            )
            return Reconciliation(outcome="noop")

        try:
            await self._ledger.add_credits(
                organization_id,
                credit_type,
                amount,
                payment_ref=checkout_session_id,
                reason="Purchase via Stripe",
                metadata={
                    "checkoutSessionId": checkout_session_id,
                    "paymentIntentId": checkout.get("payment_intent"),
                    "amountPaid": checkout.get("amount_total"),
                    "currency": checkout.get("currency"),
                    "userId": metadata.get("userId"),
                },
                audit=(SYSTEM_ACTOR, "CREDITS_PURCHASED"),
            )
        except DuplicatePayment:
            await self._session.rollback()
            logger.info("credits_purchase_already_processed", checkout_session_id=checkout_session_id)
            return Reconciliation(outcome="noop")

        return Reconciliation(outcome="credited")
