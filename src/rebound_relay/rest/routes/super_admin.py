"""Super-admin endpoints, gated by the configured email allow-list."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query

from rebound_relay.auth.deps import SuperAdminDep
from rebound_relay.db.deps import AuditRepoDep, OrganizationsRepoDep
from rebound_relay.errors import NotFound
from rebound_relay.rest.schemas import (
    AuditLogListResponse,
    AuditLogSchema,
    ConsultantSchema,
    CreditAdjustmentRequest,
    CreditsResponse,
    CreditTransactionSchema,
    ManualPayoutRequest,
    OrganizationSchema,
    PaginationSchema,
    RejectConsultantRequest,
)
from rebound_relay.services.deps import ConsultantWorkflowDep, LedgerDep, PayoutDispatcherDep

router = APIRouter(prefix="/super-admin")


@router.get("/organizations/{organization_id}/credits", response_model=CreditsResponse)
async def get_organization_credits(
    organization_id: UUID,
    admin: SuperAdminDep,
    organizations: OrganizationsRepoDep,
    ledger: LedgerDep,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> CreditsResponse:
    organization = await organizations.get(organization_id)
    if organization is None:
        raise NotFound("Organization not found")
    balances = await ledger.get_balance(organization_id)
    history = await ledger.history(organization_id, page=page, limit=limit)
    return CreditsResponse(
        organization=OrganizationSchema.model_validate(organization),
        credits=balances,
        transactions=[CreditTransactionSchema.model_validate(t) for t in history["transactions"]],
        pagination=PaginationSchema(**history["pagination"]),
    )


@router.post("/organizations/{organization_id}/credits")
async def adjust_organization_credits(
    organization_id: UUID,
    request: CreditAdjustmentRequest,
    admin: SuperAdminDep,
    ledger: LedgerDep,
) -> dict[str, Any]:
    balances = await ledger.admin_adjust(
        organization_id,
        request.action,
        request.credit_type,
        request.amount,
        request.reason,
        actor_id=admin.user_id,
        actor_email=admin.email,
    )
    verb = "Added" if request.action == "add" else "Deducted"
    return {
        "success": True,
        "message": f"{verb} {request.amount} {request.credit_type} credits",
        "credits": balances,
    }


@router.post("/organizations/{organization_id}/credits/recalculate")
async def recalculate_organization_credits(
    organization_id: UUID, admin: SuperAdminDep, ledger: LedgerDep
) -> dict[str, Any]:
    return {"success": True, "credits": await ledger.recalculate(organization_id)}


@router.post("/consultants/{consultant_id}/approve", response_model=ConsultantSchema)
async def approve_consultant(
    consultant_id: UUID, admin: SuperAdminDep, workflow: ConsultantWorkflowDep
) -> ConsultantSchema:
    consultant = await workflow.approve(admin, consultant_id)
    return ConsultantSchema.model_validate(consultant)


@router.post("/consultants/{consultant_id}/reject", response_model=ConsultantSchema)
async def reject_consultant(
    consultant_id: UUID,
    admin: SuperAdminDep,
    workflow: ConsultantWorkflowDep,
    request: RejectConsultantRequest | None = None,
) -> ConsultantSchema:
    consultant = await workflow.reject(admin, consultant_id, request.reason if request else None)
    return ConsultantSchema.model_validate(consultant)


@router.post("/consultants/{consultant_id}/payouts")
async def manual_payout(
    consultant_id: UUID,
    request: ManualPayoutRequest,
    admin: SuperAdminDep,
    payouts: PayoutDispatcherDep,
) -> dict[str, Any]:
    return await payouts.manual_payout(admin, consultant_id, request.amount)


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def recent_audit_logs(
    admin: SuperAdminDep,
    audit: AuditRepoDep,
    limit: int = Query(default=50, ge=1, le=500),
) -> AuditLogListResponse:
    logs = await audit.list_recent(limit=limit)
    return AuditLogListResponse(logs=[AuditLogSchema.model_validate(entry) for entry in logs])
