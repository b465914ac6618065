"""Sign-in bootstrap and the current-user endpoints."""

from __future__ import annotations

import uuid
from types import SimpleNamespace

from _helpers import auth_headers
from sqlalchemy import select

from rebound_relay.db.models import OrganizationMembershipModel, OrganizationModel


def _new_identity(name: str = "Ada Advisor") -> SimpleNamespace:
    return SimpleNamespace(id=uuid.uuid4(), email=f"{uuid.uuid4().hex[:6]}@example.edu", name=name)


async def test_first_sign_in_creates_user_and_personal_org(client, session_factory, seed):
    plan = await seed.plan("free", is_default=True)
    who = _new_identity()

    resp = await client.post("/api/auth/callback", headers=auth_headers(who))
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "userCreated": True, "organizationCreated": True}

    async with session_factory() as s:
        rows = (
            await s.execute(
                select(OrganizationModel, OrganizationMembershipModel.role)
                .join(OrganizationMembershipModel)
                .where(OrganizationMembershipModel.user_id == who.id)
            )
        ).all()
    [(org, role)] = rows
    assert org.name == "Ada Advisor's Organization"
    assert org.plan_id == plan.id
    assert role == "owner"


async def test_second_sign_in_is_a_noop(client):
    who = _new_identity()
    await client.post("/api/auth/callback", headers=auth_headers(who))
    resp = await client.post("/api/auth/callback", headers=auth_headers(who))
    assert resp.json() == {"success": True, "userCreated": False, "organizationCreated": False}


async def test_existing_member_gets_no_personal_org(client, seed):
    user = await seed.user()
    await seed.member(await seed.organization(), user, role="user")
    resp = await client.post("/api/auth/callback", headers=auth_headers(user))
    assert resp.json()["organizationCreated"] is False


async def test_me_and_update(client, seed):
    user = await seed.user(name="Old Name")
    resp = await client.get("/api/app/me", headers=auth_headers(user))
    assert resp.status_code == 200
    assert resp.json()["name"] == "Old Name"
    assert resp.json()["email"] == user.email

    resp = await client.patch(
        "/api/app/me", json={"name": "  New Name  ", "image": "https://img.test/a.png"},
        headers=auth_headers(user),
    )
    assert resp.status_code == 200
    assert resp.json()["name"] == "New Name"
    assert resp.json()["image"] == "https://img.test/a.png"


async def test_blank_padded_name_is_rejected(client, seed):
    user = await seed.user()
    resp = await client.patch("/api/app/me", json={"name": "  a "}, headers=auth_headers(user))
    assert resp.status_code == 400
    assert resp.json()["message"] == "Name must be at least 2 characters"
