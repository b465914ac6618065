"""Relay (client side) endpoints: engagements and invoices."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter

from rebound_relay.auth.deps import CurrentIdentityDep, OrgMemberDep
from rebound_relay.rest.schemas import (
    CreateEngagementRequest,
    CreateInvoiceRequest,
    CreateInvoiceResponse,
    EngagementListResponse,
    EngagementSchema,
)
from rebound_relay.services.deps import EngagementServiceDep

router = APIRouter(prefix="/relay")


@router.post("/engagements", response_model=EngagementSchema, status_code=201)
async def create_engagement(
    request: CreateEngagementRequest,
    context: OrgMemberDep,
    engagements: EngagementServiceDep,
) -> EngagementSchema:
    engagement = await engagements.create_engagement(
        context,
        request.consultant_id,
        request.title,
        description=request.description,
        budget=request.budget,
    )
    return EngagementSchema.model_validate(engagement)


@router.get("/engagements", response_model=EngagementListResponse)
async def list_engagements(context: OrgMemberDep, engagements: EngagementServiceDep) -> EngagementListResponse:
    rows = await engagements.list_engagements(context)
    return EngagementListResponse(engagements=[EngagementSchema.model_validate(e) for e in rows])


@router.post(
    "/engagements/{engagement_id}/invoices", response_model=CreateInvoiceResponse, status_code=201
)
async def create_invoice(
    engagement_id: UUID,
    request: CreateInvoiceRequest,
    identity: CurrentIdentityDep,
    engagements: EngagementServiceDep,
) -> CreateInvoiceResponse:
    result = await engagements.create_invoice(
        identity, engagement_id, request.amount, description=request.description
    )
    return CreateInvoiceResponse(invoice_id=result["invoiceId"], checkout_url=result["checkoutUrl"])
