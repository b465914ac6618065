"""Consultant profile review workflow, Connect onboarding and earnings."""

from __future__ import annotations

import uuid

import pytest
from _helpers import audit_entries, auth_headers, reload

from rebound_relay.auth.deps import get_super_admins
from rebound_relay.auth.models import Identity
from rebound_relay.db.models import ConsultantModel
from rebound_relay.errors import InvalidInput, NotFound
from rebound_relay.services.connect import ConnectOnboarding
from rebound_relay.services.consultants import ConsultantWorkflow

PROFILE = "/api/rebound/profile"


@pytest.fixture
async def admin(app, seed):
    app.dependency_overrides[get_super_admins] = lambda: frozenset({"root@example.edu"})
    return await seed.user(email="root@example.edu", name="Root Admin")


@pytest.fixture
async def coach(seed):
    return await seed.user(email="coach@example.edu", name="Casey Coach")


class TestProfileWorkflow:
    async def test_new_profile_starts_as_draft(self, client, coach):
        resp = await client.put(
            PROFILE,
            json={"headline": "Enrollment strategy", "expertiseTags": [" retention ", " ", "yield"]},
            headers=auth_headers(coach),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "DRAFT"
        assert body["userId"] == str(coach.id)
        assert body["expertiseTags"] == ["retention", "yield"]

        resp = await client.get(PROFILE, headers=auth_headers(coach))
        assert resp.json()["headline"] == "Enrollment strategy"

    async def test_missing_profile_is_404(self, client, coach):
        assert (await client.get(PROFILE, headers=auth_headers(coach))).status_code == 404
        assert (await client.post(f"{PROFILE}/submit", headers=auth_headers(coach))).status_code == 404

    async def test_submit_then_duplicate_submit(self, client, coach):
        await client.put(PROFILE, json={"headline": "Advising"}, headers=auth_headers(coach))

        resp = await client.post(f"{PROFILE}/submit", headers=auth_headers(coach))
        assert resp.status_code == 200
        assert resp.json()["status"] == "SUBMITTED"

        resp = await client.post(f"{PROFILE}/submit", headers=auth_headers(coach))
        assert resp.status_code == 400
        assert resp.json()["message"] == "Profile is already submitted for review"

    async def test_approve_writes_audit(self, client, session_factory, admin, coach):
        await client.put(PROFILE, json={"headline": "Advising"}, headers=auth_headers(coach))
        consultant_id = (await client.post(f"{PROFILE}/submit", headers=auth_headers(coach))).json()["id"]

        resp = await client.post(
            f"/api/super-admin/consultants/{consultant_id}/approve", headers=auth_headers(admin)
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "ACTIVE"

        [entry] = await audit_entries(session_factory, "APPROVAL")
        assert entry.actor_id == str(admin.id)
        assert entry.entity_type == "consultant"
        assert entry.entity_id == consultant_id
        assert entry.details == {"previousStatus": "SUBMITTED", "newStatus": "ACTIVE"}

    async def test_reject_with_reason_then_resubmit(self, client, session_factory, admin, coach):
        await client.put(PROFILE, json={"headline": "Advising"}, headers=auth_headers(coach))
        consultant_id = (await client.post(f"{PROFILE}/submit", headers=auth_headers(coach))).json()["id"]

        resp = await client.post(
            f"/api/super-admin/consultants/{consultant_id}/reject",
            json={"reason": "Add references"},
            headers=auth_headers(admin),
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "REJECTED"
        [entry] = await audit_entries(session_factory, "REJECTION")
        assert entry.details["reason"] == "Add references"

        # Editing keeps the status; submitting again re-enters review
        resp = await client.put(
            PROFILE, json={"headline": "Advising, with references"}, headers=auth_headers(coach)
        )
        assert resp.json()["status"] == "REJECTED"
        resp = await client.post(f"{PROFILE}/submit", headers=auth_headers(coach))
        assert resp.json()["status"] == "SUBMITTED"

    async def test_approve_requires_submitted(self, client, seed, admin, coach):
        consultant = await seed.consultant(coach, status="DRAFT")
        resp = await client.post(
            f"/api/super-admin/consultants/{consultant.id}/approve", headers=auth_headers(admin)
        )
        assert resp.status_code == 400

    async def test_approve_unknown_is_404(self, client, admin):
        resp = await client.post(
            f"/api/super-admin/consultants/{uuid.uuid4()}/approve", headers=auth_headers(admin)
        )
        assert resp.status_code == 404

    async def test_only_super_admins_review(self, client, seed, admin, coach):
        consultant = await seed.consultant(coach, status="SUBMITTED")
        resp = await client.post(
            f"/api/super-admin/consultants/{consultant.id}/approve", headers=auth_headers(coach)
        )
        assert resp.status_code == 403


class TestReviewService:
    async def test_second_review_is_rejected(self, session, session_factory, seed, coach):
        consultant = await seed.consultant(coach, status="SUBMITTED")
        admin = Identity(user_id=uuid.uuid4(), email="root@example.edu")

        approved = await ConsultantWorkflow(session).approve(admin, consultant.id)
        assert approved.status == "ACTIVE"
        with pytest.raises(InvalidInput):
            await ConsultantWorkflow(session).reject(admin, consultant.id, "late")

        assert (await reload(session_factory, ConsultantModel, consultant.id)).status == "ACTIVE"
        assert await audit_entries(session_factory, "REJECTION") == []

    async def test_submit_without_profile(self, session, coach):
        with pytest.raises(NotFound):
            await ConsultantWorkflow(session).submit(Identity(user_id=coach.id, email=coach.email))


class TestConnectOnboarding:
    async def test_requires_profile(self, client, coach):
        resp = await client.post("/api/rebound/connect/onboarding", headers=auth_headers(coach))
        assert resp.status_code == 404

    async def test_creates_account_once_and_refreshes_link(
        self, client, session_factory, seed, stripe_gateway, coach
    ):
        consultant = await seed.consultant(coach, status="ACTIVE")

        resp = await client.post("/api/rebound/connect/onboarding", headers=auth_headers(coach))
        assert resp.status_code == 200
        assert resp.json() == {
            "url": "https://connect.stripe.test/acct_1/1",
            "accountId": "acct_1",
            "existing": False,
        }

        resp = await client.post("/api/rebound/connect/onboarding", headers=auth_headers(coach))
        assert resp.json() == {
            "url": "https://connect.stripe.test/acct_1/2",
            "accountId": "acct_1",
            "existing": True,
        }
        assert len(stripe_gateway.accounts) == 1

        stored = await reload(session_factory, ConsultantModel, consultant.id)
        assert stored.stripe_account_id == "acct_1"
        assert stored.onboarding_link_url == "https://connect.stripe.test/acct_1/2"

    async def test_concurrent_onboarding_keeps_stored_account(
        self, session, session_factory, seed, stripe_gateway, coach
    ):
        consultant = await seed.consultant(coach, status="ACTIVE")
        create_account = stripe_gateway.create_express_account

        async def create_after_rival(email, website=None):
            # Another request stores its account while this one waits on Stripe
            async with session_factory() as other:
                stored = await other.get(ConsultantModel, consultant.id)
                stored.stripe_account_id = "acct_rival"
                await other.commit()
            return await create_account(email, website)

        stripe_gateway.create_express_account = create_after_rival
        result = await ConnectOnboarding(session, stripe_gateway).create_connected_payout_account(
            Identity(user_id=coach.id, email=coach.email)
        )

        assert result == {
            "url": "https://connect.stripe.test/acct_rival/1",
            "accountId": "acct_rival",
            "existing": True,
        }
        stored = await reload(session_factory, ConsultantModel, consultant.id)
        assert stored.stripe_account_id == "acct_rival"
        assert stored.onboarding_link_url == "https://connect.stripe.test/acct_rival/1"

    async def test_status_refreshes_from_stripe(self, client, session_factory, seed, coach):
        consultant = await seed.consultant(coach, stripe_account_id="acct_9")
        resp = await client.get("/api/rebound/connect/status", headers=auth_headers(coach))
        assert resp.json() == {"hasAccount": True, "onboardingComplete": True, "payoutsEnabled": True}

        stored = await reload(session_factory, ConsultantModel, consultant.id)
        assert stored.stripe_onboarding_complete is True
        assert stored.payouts_enabled is True

    async def test_status_falls_back_to_stored_flags(self, client, seed, stripe_gateway, coach):
        await seed.consultant(
            coach, stripe_account_id="acct_9", stripe_onboarding_complete=True, payouts_enabled=False
        )
        stripe_gateway.fail_retrieve = True
        resp = await client.get("/api/rebound/connect/status", headers=auth_headers(coach))
        assert resp.status_code == 200
        assert resp.json() == {"hasAccount": True, "onboardingComplete": True, "payoutsEnabled": False}

    async def test_status_without_account(self, client, seed, coach):
        await seed.consultant(coach)
        resp = await client.get("/api/rebound/connect/status", headers=auth_headers(coach))
        assert resp.json() == {"hasAccount": False, "onboardingComplete": False, "payoutsEnabled": False}


class TestEarnings:
    async def test_aggregates_invoices(self, client, seed, coach):
        consultant = await seed.consultant(coach)
        org = await seed.organization()
        first = await seed.engagement(org, consultant)
        second = await seed.engagement(org, consultant)
        await seed.invoice(first, amount=100000, commission_amount=15000, status="PAID")
        await seed.invoice(second, amount=50000, commission_amount=7500, status="PENDING")

        resp = await client.get("/api/rebound/earnings", headers=auth_headers(coach))
        assert resp.json() == {
            "totalEarnings": 127500,
            "paidEarnings": 85000,
            "pendingEarnings": 42500,
            "totalCommission": 22500,
            "engagementCount": 2,
            "paidInvoiceCount": 1,
            "pendingInvoiceCount": 1,
        }

    async def test_without_profile_is_all_zero(self, client, coach):
        resp = await client.get("/api/rebound/earnings", headers=auth_headers(coach))
        assert set(resp.json().values()) == {0}
