"""Organization billing: portal links and PayPal subscription contexts."""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rebound_relay.auth import gate
from rebound_relay.auth.models import OrganizationContext
from rebound_relay.billing.adapters import BillingAdapters, PortalLink
from rebound_relay.billing.providers import BillingProvider, resolve_billing_provider
from rebound_relay.db.models import PaypalContextModel
from rebound_relay.db.repositories.audit import AuditRepo
from rebound_relay.db.repositories.paypal import PaypalContextsRepo
from rebound_relay.errors import NotFound

logger = structlog.get_logger()


class SubscriptionService:
    def __init__(self, session: AsyncSession, adapters: BillingAdapters) -> None:
        self._session = session
        self._adapters = adapters
        self._paypal = PaypalContextsRepo(session)
        self._audit = AuditRepo(session)

    async def resolve_provider(self, context: OrganizationContext) -> BillingProvider | None:
        has_paypal = await self._paypal.exists_for_organization(context.organization_id)
        return resolve_billing_provider(context.organization, has_paypal)

    async def billing_portal(self, context: OrganizationContext) -> PortalLink:
        provider = await self.resolve_provider(context)
        return await self._adapters.get_billing_portal_link(context.organization, provider)

    async def list_paypal_contexts(self, context: OrganizationContext) -> list[PaypalContextModel]:
        return await self._paypal.list_for_organization(context.organization_id)

    async def cancel_paypal_subscription(
        self, context: OrganizationContext, context_id: UUID
    ) -> PaypalContextModel:
        """Cancel a subscription; allowed for org admins/owners and for whoever created it."""
        paypal_context = await self._paypal.get(context_id)
        if paypal_context is None or paypal_context.organization_id != context.organization_id:
            raise NotFound("Not found or unauthorized")

        gate.require_subscription_manager(context.membership, paypal_context.user_id)

        await self._adapters.cancel_subscription(paypal_context)
        await self._paypal.set_status(paypal_context, "CANCELLED")
        await self._audit.log(
            str(context.membership.user_id),
            "SUBSCRIPTION_CANCELLED",
            "paypal_context",
            str(context_id),
            {
                "provider": "paypal",
                "subscriptionId": paypal_context.paypal_subscription_id,
                "organizationId": str(context.organization_id),
            },
        )
        await self._session.commit()
        logger.info(
            "paypal_subscription_cancel_recorded",
            context_id=str(context_id),
            organization_id=str(context.organization_id),
        )
        return paypal_context
