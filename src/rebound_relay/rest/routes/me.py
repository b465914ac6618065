"""Current user endpoints and the sign-in callback."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from rebound_relay.auth.deps import CurrentIdentityDep
from rebound_relay.rest.schemas import MeResponse, UpdateMeRequest
from rebound_relay.services.deps import UserServiceDep

router = APIRouter()


@router.get("/app/me", response_model=MeResponse)
async def get_me(identity: CurrentIdentityDep, users: UserServiceDep) -> dict[str, Any]:
    return await users.me(identity)


@router.patch("/app/me", response_model=MeResponse)
async def update_me(
    request: UpdateMeRequest, identity: CurrentIdentityDep, users: UserServiceDep
) -> dict[str, Any]:
    return await users.update_me(identity, request.name, request.image)


@router.post("/auth/callback")
async def auth_callback(identity: CurrentIdentityDep, users: UserServiceDep) -> dict[str, Any]:
    """Called after the identity provider signs the user in."""
    result = await users.sync_identity(identity)
    return {"success": True, **result}
