"""Rebound (consultant side) endpoints."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query

from rebound_relay.auth.deps import CurrentIdentityDep, SuperAdminsDep
from rebound_relay.db.deps import ConsultantsRepoDep
from rebound_relay.errors import NotFound
from rebound_relay.rest.schemas import ConsultantProfileRequest, ConsultantSchema
from rebound_relay.services.deps import (
    ConnectOnboardingDep,
    ConsultantWorkflowDep,
    PayoutDispatcherDep,
)

router = APIRouter(prefix="/rebound")


@router.get("/profile", response_model=ConsultantSchema)
async def get_profile(identity: CurrentIdentityDep, workflow: ConsultantWorkflowDep) -> ConsultantSchema:
    consultant = await workflow.get_profile(identity)
    if consultant is None:
        raise NotFound("Profile not found")
    return ConsultantSchema.model_validate(consultant)


@router.put("/profile", response_model=ConsultantSchema)
async def upsert_profile(
    request: ConsultantProfileRequest,
    identity: CurrentIdentityDep,
    workflow: ConsultantWorkflowDep,
) -> ConsultantSchema:
    consultant = await workflow.upsert_profile(identity, request.model_dump(exclude_unset=True))
    return ConsultantSchema.model_validate(consultant)


@router.post("/profile/submit", response_model=ConsultantSchema)
async def submit_profile(identity: CurrentIdentityDep, workflow: ConsultantWorkflowDep) -> ConsultantSchema:
    consultant = await workflow.submit(identity)
    return ConsultantSchema.model_validate(consultant)


@router.post("/connect/onboarding")
async def connect_onboarding(
    identity: CurrentIdentityDep, onboarding: ConnectOnboardingDep
) -> dict[str, Any]:
    return await onboarding.create_connected_payout_account(identity)


@router.get("/connect/status")
async def connect_status(identity: CurrentIdentityDep, onboarding: ConnectOnboardingDep) -> dict[str, bool]:
    return await onboarding.status(identity)


@router.get("/payouts")
async def list_payouts(
    identity: CurrentIdentityDep,
    super_admins: SuperAdminsDep,
    consultants: ConsultantsRepoDep,
    payouts: PayoutDispatcherDep,
    consultant_id: UUID | None = Query(default=None, alias="consultantId"),
    limit: int = Query(default=20, ge=1, le=100),
) -> dict[str, Any]:
    if consultant_id is None:
        own = await consultants.get_by_user(identity.user_id)
        if own is None:
            raise NotFound("Consultant profile not found")
        consultant_id = own.id
    return await payouts.list_payouts(identity, consultant_id, super_admins, limit=limit)


@router.get("/earnings")
async def earnings(identity: CurrentIdentityDep, workflow: ConsultantWorkflowDep) -> dict[str, int]:
    return await workflow.earnings(identity)
