"""Current organization endpoints: context, switching, billing, PayPal contexts."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Response

from rebound_relay.auth.deps import (
    BrowserSessionDep,
    ContextLoaderDep,
    OptionalIdentityDep,
    OrgMemberDep,
)
from rebound_relay.rest.schemas import (
    BillingPortalResponse,
    CurrentOrganizationResponse,
    OrganizationSchema,
    PaypalActionRequest,
    PaypalContextListResponse,
    PaypalContextSchema,
    PlanSchema,
    SwitchOrganizationRequest,
)
from rebound_relay.services.deps import SubscriptionServiceDep

router = APIRouter(prefix="/app/organizations/current")


@router.get("", response_model=CurrentOrganizationResponse)
async def get_current_organization(context: OrgMemberDep) -> CurrentOrganizationResponse:
    return CurrentOrganizationResponse(
        organization=OrganizationSchema.model_validate(context.organization),
        role=context.role.value,
        plan=PlanSchema.model_validate(context.plan) if context.plan is not None else None,
    )


@router.post("")
async def switch_organization(
    request: SwitchOrganizationRequest,
    response: Response,
    identity: OptionalIdentityDep,
    browser_session: BrowserSessionDep,
    loader: ContextLoaderDep,
) -> dict[str, Any]:
    await loader.switch_organization(identity, browser_session, request.organization_id)
    browser_session.save(response)
    return {"success": True, "organizationId": str(request.organization_id)}


@router.get("/billing", response_model=BillingPortalResponse)
async def billing_portal(
    context: OrgMemberDep, subscriptions: SubscriptionServiceDep
) -> BillingPortalResponse:
    link = await subscriptions.billing_portal(context)
    return BillingPortalResponse(provider=link.provider.value, url=link.url)


@router.get("/paypal", response_model=PaypalContextListResponse)
async def list_paypal_contexts(
    context: OrgMemberDep, subscriptions: SubscriptionServiceDep
) -> PaypalContextListResponse:
    contexts = await subscriptions.list_paypal_contexts(context)
    return PaypalContextListResponse(
        contexts=[
            PaypalContextSchema(
                id=ctx.id,
                created_at=ctx.created_at,
                plan_id=ctx.plan_id,
                plan_name=ctx.plan.name if ctx.plan is not None else None,
                user_id=ctx.user_id,
                organization_id=ctx.organization_id,
                frequency=ctx.frequency,
                paypal_order_id=ctx.paypal_order_id,
                paypal_subscription_id=ctx.paypal_subscription_id,
                status=ctx.status,
            )
            for ctx in contexts
        ]
    )


@router.post("/paypal")
async def paypal_action(
    request: PaypalActionRequest, context: OrgMemberDep, subscriptions: SubscriptionServiceDep
) -> dict[str, Any]:
    await subscriptions.cancel_paypal_subscription(context, request.context_id)
    return {"success": True, "message": "Subscription cancelled"}
