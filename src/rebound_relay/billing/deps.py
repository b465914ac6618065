"""FastAPI dependencies for the payment provider clients."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from rebound_relay.billing.adapters import BillingAdapters
from rebound_relay.billing.dodo import DodoClient
from rebound_relay.billing.paypal import PaypalClient
from rebound_relay.billing.stripe_gateway import StripeGateway


@lru_cache
def get_stripe_gateway() -> StripeGateway:
    return StripeGateway()


@lru_cache
def get_paypal_client() -> PaypalClient:
    return PaypalClient()


@lru_cache
def get_dodo_client() -> DodoClient:
    return DodoClient()


StripeGatewayDep = Annotated[StripeGateway, Depends(get_stripe_gateway)]
PaypalClientDep = Annotated[PaypalClient, Depends(get_paypal_client)]
DodoClientDep = Annotated[DodoClient, Depends(get_dodo_client)]


def get_billing_adapters(
    stripe: StripeGatewayDep, paypal: PaypalClientDep, dodo: DodoClientDep
) -> BillingAdapters:
    return BillingAdapters(stripe, paypal, dodo)


BillingAdaptersDep = Annotated[BillingAdapters, Depends(get_billing_adapters)]
