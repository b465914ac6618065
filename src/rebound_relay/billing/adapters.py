"""Uniform billing operations over the provider-specific clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from rebound_relay.billing.dodo import DodoClient
from rebound_relay.billing.paypal import PaypalClient
from rebound_relay.billing.providers import BillingProvider, customer_id_for
from rebound_relay.billing.stripe_gateway import StripeGateway
from rebound_relay.errors import InvalidInput, NotImplementedByProvider
from rebound_relay.settings import settings

logger = structlog.get_logger()


@dataclass(frozen=True)
class PortalLink:
    provider: BillingProvider
    url: str


class BillingAdapters:
    def __init__(self, stripe: StripeGateway, paypal: PaypalClient, dodo: DodoClient) -> None:
        self.stripe = stripe
        self.paypal = paypal
        self.dodo = dodo

    async def get_billing_portal_link(
        self, organization: Any, provider: BillingProvider | None
    ) -> PortalLink:
        if provider is None:
            raise InvalidInput("Your organization is not subscribed to any plan.")

        if provider is BillingProvider.DODO:
            url = await self.dodo.create_customer_portal_link(customer_id_for(organization, provider))
        elif provider is BillingProvider.STRIPE:
            url = await self.stripe.create_billing_portal_session(
                customer_id_for(organization, provider), return_url=f"{settings.app_url}/app"
            )
        elif provider is BillingProvider.PAYPAL:
            url = f"{settings.app_url}/app/billing/paypal"
        else:
            raise NotImplementedByProvider(
                provider.value, "LemonSqueezy portal integration is not implemented yet."
            )

        logger.info("billing_portal_link_created", provider=provider.value)
        return PortalLink(provider=provider, url=url)

    async def cancel_subscription(self, context: Any) -> bool:
        """Cancel the provider subscription recorded on a PayPal context row."""
        if not context.paypal_subscription_id:
            raise InvalidInput("Subscription has no PayPal subscription id")
        return await self.paypal.cancel_subscription(context.paypal_subscription_id)
