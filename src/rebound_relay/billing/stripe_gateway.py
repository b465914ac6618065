"""Stripe and Stripe Connect calls used by the service.

The stripe SDK is synchronous; every call runs in a worker thread so request
handlers only suspend on it. SDK failures surface as ProviderError.
"""

from __future__ import annotations

import asyncio
import json
from functools import partial
from typing import Any

import stripe
import structlog

from rebound_relay.errors import InvalidSignature, ProviderError
from rebound_relay.settings import settings

logger = structlog.get_logger()

PROVIDER = "stripe"


class StripeGateway:
    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        currency: str | None = None,
    ) -> None:
        self._api_key = api_key or settings.stripe_secret_key
        self._webhook_secret = webhook_secret or settings.stripe_webhook_secret
        self.currency = currency or settings.payout_currency

    async def _call(self, operation: str, fn, **params: Any) -> Any:
        if not self._api_key:
            raise ProviderError(PROVIDER, "Stripe is not configured")
        try:
            return await asyncio.to_thread(
                partial(fn, api_key=self._api_key, stripe_version=settings.stripe_api_version, **params)
            )
        except stripe.StripeError as exc:
            logger.error("stripe_call_failed", operation=operation, error=str(exc))
            raise ProviderError(PROVIDER, str(exc)) from exc

    # -- webhooks -----------------------------------------------------------

    def construct_event(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """Verify the ``stripe-signature`` header and return the event as plain JSON."""
        if not signature:
            raise InvalidSignature("No signature")
        if not self._webhook_secret:
            raise InvalidSignature("Webhook secret is not configured")
        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body, signature, self._webhook_secret, tolerance=stripe.Webhook.DEFAULT_TOLERANCE
            )
            return json.loads(body)
        except (stripe.SignatureVerificationError, ValueError) as exc:
            logger.warning("stripe_webhook_rejected", error=str(exc))
            raise InvalidSignature(str(exc)) from exc

    # -- billing --------------------------------------------------------------

    async def create_billing_portal_session(self, customer_id: str, return_url: str) -> str:
        session = await self._call(
            "billing_portal_session_create",
            stripe.billing_portal.Session.create,
            customer=customer_id,
            return_url=return_url,
        )
        return session.url

    async def create_checkout_session(
        self,
        amount: int,
        description: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> Any:
        return await self._call(
            "checkout_session_create",
            stripe.checkout.Session.create,
            mode="payment",
            payment_method_types=["card"],
            line_items=[
                {
                    "price_data": {
                        "currency": self.currency,
                        "unit_amount": amount,
                        "product_data": {"name": description},
                    },
                    "quantity": 1,
                }
            ],
            metadata=metadata,
            success_url=success_url,
            cancel_url=cancel_url,
        )

    # -- connect --------------------------------------------------------------

    async def create_express_account(self, email: str, website: str | None = None) -> Any:
        business_profile: dict[str, Any] = {"mcc": "5734"}
        if website:
            business_profile["url"] = website
        return await self._call(
            "account_create",
            stripe.Account.create,
            type="express",
            country="US",
            email=email,
            capabilities={
                "transfers": {"requested": True},
                "card_payments": {"requested": True},
            },
            business_type="individual",
            business_profile=business_profile,
        )

    async def create_account_link(self, account_id: str, refresh_url: str, return_url: str) -> str:
        link = await self._call(
            "account_link_create",
            stripe.AccountLink.create,
            account=account_id,
            refresh_url=refresh_url,
            return_url=return_url,
            type="account_onboarding",
        )
        return link.url

    async def retrieve_account(self, account_id: str) -> Any:
        return await self._call("account_retrieve", stripe.Account.retrieve, id=account_id)

    async def create_transfer(
        self,
        amount: int,
        destination: str,
        transfer_group: str,
        metadata: dict[str, str],
    ) -> Any:
        return await self._call(
            "transfer_create",
            stripe.Transfer.create,
            amount=amount,
            currency=self.currency,
            destination=destination,
            transfer_group=transfer_group,
            metadata=metadata,
            idempotency_key=f"payout:{transfer_group}",
        )

    async def list_transfers(self, destination: str, limit: int = 20) -> list[Any]:
        result = await self._call(
            "transfer_list", stripe.Transfer.list, destination=destination, limit=limit
        )
        return list(result.data)

    async def create_payout(self, amount: int, account_id: str, metadata: dict[str, str]) -> Any:
        """Pay out from the connected account's balance to its bank account."""
        return await self._call(
            "payout_create",
            stripe.Payout.create,
            amount=amount,
            currency=self.currency,
            metadata=metadata,
            stripe_account=account_id,
        )
