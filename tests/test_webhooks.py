"""Stripe webhook reconciliation: signature checks and at-least-once delivery."""

from __future__ import annotations

import json
import time
import uuid

import pytest
from _helpers import (
    WEBHOOK_SECRET,
    audit_entries,
    checkout_completed_event,
    reload,
    sign_payload,
)
from sqlalchemy import select

from rebound_relay.db.models import CreditTransactionModel, InvoiceModel
from rebound_relay.services.reconciliation import PaymentReconciler

WEBHOOK = "/api/webhooks/stripe-rebound"


async def _deliver(client, payload: bytes, signature: str | None = None):
    headers = {"content-type": "application/json"}
    if signature is not None:
        headers["stripe-signature"] = signature
    return await client.post(WEBHOOK, content=payload, headers=headers)


@pytest.fixture
async def pending_invoice(seed):
    consultant_user = await seed.user(email="coach@example.edu")
    consultant = await seed.consultant(consultant_user, stripe_account_id="acct_coach")
    org = await seed.organization("Client College")
    engagement = await seed.engagement(org, consultant)
    return await seed.invoice(engagement, amount=500000, commission_amount=50000)


class TestInvoicePaid:
    async def test_redelivery_has_single_effect(
        self, client, session_factory, stripe_gateway, pending_invoice
    ):
        payload = checkout_completed_event({"invoiceId": str(pending_invoice.id)})

        for _ in range(2):
            resp = await _deliver(client, payload, sign_payload(payload))
            assert resp.status_code == 200
            assert resp.json() == {"received": True}

        invoice = await reload(session_factory, InvoiceModel, pending_invoice.id)
        assert invoice.status == "PAID"
        assert invoice.paid_at is not None
        assert len(await audit_entries(session_factory, "INVOICE_PAID")) == 1
        assert len(await audit_entries(session_factory, "PAYOUT_INITIATED")) == 1
        assert len(stripe_gateway.transfers) == 1
        assert stripe_gateway.transfers[0]["amount"] == 450000

    async def test_paid_audit_records_checkout_session(self, client, session_factory, pending_invoice):
        payload = checkout_completed_event({"invoiceId": str(pending_invoice.id)}, session_id="cs_live_9")
        await _deliver(client, payload, sign_payload(payload))
        [entry] = await audit_entries(session_factory, "INVOICE_PAID")
        assert entry.actor_id == "system"
        assert entry.details == {"checkoutSessionId": "cs_live_9"}

    async def test_payout_failure_still_acknowledges(
        self, client, session_factory, stripe_gateway, pending_invoice
    ):
        stripe_gateway.fail_transfers = True
        payload = checkout_completed_event({"invoiceId": str(pending_invoice.id)})
        resp = await _deliver(client, payload, sign_payload(payload))
        assert resp.status_code == 200
        assert (await reload(session_factory, InvoiceModel, pending_invoice.id)).status == "PAID"
        assert len(await audit_entries(session_factory, "PAYOUT_FAILED")) == 1

    async def test_unknown_invoice_is_acknowledged(self, client, session_factory, stripe_gateway):
        payload = checkout_completed_event({"invoiceId": str(uuid.uuid4())})
        resp = await _deliver(client, payload, sign_payload(payload))
        assert resp.status_code == 200
        assert await audit_entries(session_factory) == []
        assert stripe_gateway.transfers == []

    async def test_missing_invoice_id_is_400(self, client, session_factory):
        payload = checkout_completed_event({"engagementId": str(uuid.uuid4())})
        resp = await _deliver(client, payload, sign_payload(payload))
        assert resp.status_code == 400
        assert resp.json()["message"] == "Missing invoiceId metadata"

    async def test_other_event_types_are_ignored(self, client, session_factory, pending_invoice):
        payload = json.dumps(
            {"id": "evt_1", "type": "payment_intent.created", "data": {"object": {"id": "pi_1"}}}
        ).encode()
        resp = await _deliver(client, payload, sign_payload(payload))
        assert resp.status_code == 200
        assert (await reload(session_factory, InvoiceModel, pending_invoice.id)).status == "PENDING"

    async def test_reconcile_already_paid_is_noop(self, session, stripe_gateway, seed, pending_invoice):
        reconciler = PaymentReconciler(session, stripe_gateway)
        first = await reconciler.reconcile_invoice(str(pending_invoice.id), "cs_1")
        second = await reconciler.reconcile_invoice(str(pending_invoice.id), "cs_1")
        assert first.outcome == "paid"
        assert first.payout_invoice_id == pending_invoice.id
        assert second.outcome == "noop"
        assert second.payout_invoice_id is None


class TestSignature:
    async def test_wrong_secret_is_rejected_before_any_state_change(
        self, client, session_factory, stripe_gateway, pending_invoice
    ):
        payload = checkout_completed_event({"invoiceId": str(pending_invoice.id)})
        resp = await _deliver(client, payload, sign_payload(payload, secret="whsec_wrong"))

        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid signature"
        assert (await reload(session_factory, InvoiceModel, pending_invoice.id)).status == "PENDING"
        assert await audit_entries(session_factory) == []
        assert stripe_gateway.transfers == []

    async def test_missing_signature(self, client, pending_invoice):
        payload = checkout_completed_event({"invoiceId": str(pending_invoice.id)})
        resp = await _deliver(client, payload)
        assert resp.status_code == 400
        assert resp.json()["message"] == "No signature"

    async def test_stale_timestamp_is_rejected(self, client, pending_invoice):
        payload = checkout_completed_event({"invoiceId": str(pending_invoice.id)})
        signature = sign_payload(payload, WEBHOOK_SECRET, timestamp=int(time.time()) - 3600)
        resp = await _deliver(client, payload, signature)
        assert resp.status_code == 400

    async def test_body_altered_after_signing(self, client, pending_invoice):
        payload = checkout_completed_event({"invoiceId": str(pending_invoice.id)})
        signature = sign_payload(payload)
        tampered = payload.replace(b"500000", b"1")
        resp = await _deliver(client, tampered, signature)
        assert resp.status_code == 400


class TestCreditsPurchase:
    @pytest.fixture
    async def org(self, seed):
        return await seed.organization("Buyer College")

    async def test_redelivery_grants_once(self, client, session_factory, org):
        metadata = {
            "type": "credits_purchase",
            "organizationId": str(org.id),
            "creditType": "consultation",
            "amount": "5",
            "userId": str(uuid.uuid4()),
        }
        payload = checkout_completed_event(metadata, session_id="cs_credits_1")

        for _ in range(2):
            resp = await _deliver(client, payload, sign_payload(payload))
            assert resp.status_code == 200

        async with session_factory() as s:
            rows = (
                await s.execute(
                    select(CreditTransactionModel).where(CreditTransactionModel.organization_id == org.id)
                )
            ).scalars().all()
        assert len(rows) == 1
        assert rows[0].payment_ref == "cs_credits_1"
        assert rows[0].amount == 5
        assert rows[0].metadata_["checkoutSessionId"] == "cs_credits_1"

    @pytest.mark.parametrize(
        "overrides",
        [{"amount": "0"}, {"amount": "lots"}, {"organizationId": "nope"}, {"creditType": ""}],
    )
    async def test_invalid_metadata_is_400(self, client, org, overrides):
        metadata = {
            "type": "credits_purchase",
            "organizationId": str(org.id),
            "creditType": "consultation",
            "amount": "5",
            **overrides,
        }
        payload = checkout_completed_event(metadata)
        resp = await _deliver(client, payload, sign_payload(payload))
        assert resp.status_code == 400

    async def test_grant_is_audited_as_system(self, client, session_factory, org):
        metadata = {
            "type": "credits_purchase",
            "organizationId": str(org.id),
            "creditType": "document_review",
            "amount": "3",
        }
        payload = checkout_completed_event(metadata, session_id="cs_credits_2")
        for _ in range(2):
            await _deliver(client, payload, sign_payload(payload))

        [entry] = await audit_entries(session_factory, "CREDITS_PURCHASED")
        assert entry.actor_id == "system"
        assert entry.entity_type == "organization"
        assert entry.entity_id == str(org.id)
        assert entry.details["amount"] == 3
        assert entry.details["creditType"] == "document_review"
        assert entry.details["paymentRef"] == "cs_credits_2"

    async def test_unknown_organization_is_acknowledged(self, client, session_factory, org):
        metadata = {
            "type": "credits_purchase",
            "organizationId": str(uuid.uuid4()),
            "creditType": "consultation",
            "amount": "5",
        }
        payload = checkout_completed_event(metadata, session_id="cs_orphan")
        resp = await _deliver(client, payload, sign_payload(payload))
        assert resp.status_code == 200
        assert resp.json() == {"received": True}

        async with session_factory() as s:
            rows = (await s.execute(select(CreditTransactionModel))).scalars().all()
        assert rows == []
        assert await audit_entries(session_factory, "CREDITS_PURCHASED") == []
