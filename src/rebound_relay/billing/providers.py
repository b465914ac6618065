"""Billing provider selection for an organization."""

from __future__ import annotations

from enum import Enum
from typing import Any


class BillingProvider(str, Enum):
    DODO = "dodo"
    STRIPE = "stripe"
    LEMON_SQUEEZY = "lemon_squeezy"
    PAYPAL = "paypal"


# Checked in this order; an organization may carry stale ids from several providers.
PROVIDER_PRECEDENCE: tuple[tuple[BillingProvider, str], ...] = (
    (BillingProvider.DODO, "dodo_customer_id"),
    (BillingProvider.STRIPE, "stripe_customer_id"),
    (BillingProvider.LEMON_SQUEEZY, "lemon_squeezy_customer_id"),
)


def resolve_billing_provider(organization: Any, has_paypal_context: bool) -> BillingProvider | None:
    """Pick the organization's billing provider, or None when it has never subscribed."""
    for provider, attr in PROVIDER_PRECEDENCE:
        if getattr(organization, attr, None):
            return provider
    if has_paypal_context:
        return BillingProvider.PAYPAL
    return None


def customer_id_for(organization: Any, provider: BillingProvider) -> str | None:
    for candidate, attr in PROVIDER_PRECEDENCE:
        if candidate is provider:
            return getattr(organization, attr, None)
    return None
