"""PayPal REST client: OAuth client-credentials token, then subscription calls."""

from __future__ import annotations

import httpx
import structlog

from rebound_relay.errors import ProviderError
from rebound_relay.settings import settings

log = structlog.get_logger(__name__)

PROVIDER = "paypal"


class PaypalClient:
    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        api_base: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client_id = client_id or settings.paypal_client_id
        self._client_secret = client_secret or settings.paypal_client_secret
        self._api_base = (api_base or settings.paypal_api_base).rstrip("/")
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self._api_base, timeout=30.0, transport=self._transport)

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        if not self._client_id or not self._client_secret:
            raise ProviderError(PROVIDER, "PayPal is not configured")
        resp = await client.post(
            "/v1/oauth2/token",
            data={"grant_type": "client_credentials"},
            auth=(self._client_id, self._client_secret),
        )
        resp.raise_for_status()
        return resp.json()["access_token"]

    async def cancel_subscription(self, subscription_id: str, reason: str = "Cancelled by user") -> bool:
        """Cancel a PayPal subscription. PayPal answers 204 on success."""
        try:
            async with self._client() as client:
                token = await self._access_token(client)
                resp = await client.post(
                    f"/v1/billing/subscriptions/{subscription_id}/cancel",
                    json={"reason": reason},
                    headers={"Authorization": f"Bearer {token}"},
                )
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            log.error(
                "paypal_cancel_failed",
                provider=PROVIDER,
                subscription_id=subscription_id,
                error=str(exc),
            )
            raise ProviderError(PROVIDER, "Failed to cancel subscription") from exc

        log.info("paypal_subscription_cancelled", subscription_id=subscription_id)
        return True
