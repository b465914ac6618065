"""Dodo Payments REST client (customer portal only)."""

from __future__ import annotations

import httpx
import structlog

from rebound_relay.errors import ProviderError
from rebound_relay.settings import settings

log = structlog.get_logger(__name__)

PROVIDER = "dodo"


class DodoClient:
    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or settings.dodo_api_key
        self._api_base = (api_base or settings.dodo_api_base).rstrip("/")
        self._transport = transport

    async def create_customer_portal_link(self, customer_id: str) -> str:
        if not self._api_key:
            raise ProviderError(PROVIDER, "Dodo Payments is not configured")
        try:
            async with httpx.AsyncClient(
                base_url=self._api_base, timeout=30.0, transport=self._transport
            ) as client:
                resp = await client.post(
                    f"/customers/{customer_id}/customer-portal/session",
                    headers={"Authorization": f"Bearer {self._api_key}"},
                )
                resp.raise_for_status()
                link: str = resp.json()["link"]
        except (httpx.HTTPError, KeyError) as exc:
            log.error("dodo_portal_failed", provider=PROVIDER, customer_id=customer_id, error=str(exc))
            raise ProviderError(PROVIDER, "Failed to create customer portal session") from exc
        return link
