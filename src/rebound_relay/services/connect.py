"""Stripe Connect onboarding for consultants."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rebound_relay.auth.models import Identity
from rebound_relay.billing.stripe_gateway import StripeGateway
from rebound_relay.db.repositories.consultants import ConsultantsRepo
from rebound_relay.errors import NotFound, ProviderError
from rebound_relay.settings import settings

logger = structlog.get_logger()


class ConnectOnboarding:
    def __init__(self, session: AsyncSession, stripe: StripeGateway) -> None:
        self._session = session
        self._stripe = stripe
        self._repo = ConsultantsRepo(session)

    async def create_connected_payout_account(self, identity: Identity) -> dict[str, Any]:
        """Reuse or create the caller's Express account and issue a fresh onboarding link.

        Both the account id and the latest link are stored on the profile.
        """
        consultant = await self._repo.get_by_user(identity.user_id)
        if consultant is None:
            raise NotFound("Consultant profile not found")

        existing = bool(consultant.stripe_account_id)
        if not existing:
            account = await self._stripe.create_express_account(identity.email, consultant.website)
            claimed = await self._repo.claim_stripe_account(consultant.id, account.id)
            await self._session.commit()
            await self._session.refresh(consultant)
            if claimed:
                logger.info(
                    "connect_account_created",
                    consultant_id=str(consultant.id),
                    account_id=account.id,
                )
            else:
                # A concurrent request stored its account first; the stored one wins.
                existing = True
                logger.warning(
                    "connect_account_discarded",
                    consultant_id=str(consultant.id),
                    account_id=account.id,
                    stored_account_id=consultant.stripe_account_id,
                )

        url = await self._stripe.create_account_link(
            consultant.stripe_account_id,
            refresh_url=f"{settings.app_url}/rebound/onboarding",
            return_url=f"{settings.app_url}/rebound/onboarding?refresh=true",
        )
        await self._repo.update_fields(consultant, onboarding_link_url=url)
        await self._session.commit()
        return {"url": url, "accountId": consultant.stripe_account_id, "existing": existing}

    async def status(self, identity: Identity) -> dict[str, bool]:
        consultant = await self._repo.get_by_user(identity.user_id)
        if consultant is None:
            raise NotFound("Consultant profile not found")
        if not consultant.stripe_account_id:
            return {"hasAccount": False, "onboardingComplete": False, "payoutsEnabled": False}

        try:
            account = await self._stripe.retrieve_account(consultant.stripe_account_id)
        except ProviderError:
            return {
                "hasAccount": True,
                "onboardingComplete": bool(consultant.stripe_onboarding_complete),
                "payoutsEnabled": bool(consultant.payouts_enabled),
            }

        onboarding_complete = bool(account.details_submitted)
        payouts_enabled = bool(account.payouts_enabled)
        await self._repo.update_fields(
            consultant,
            stripe_onboarding_complete=onboarding_complete,
            payouts_enabled=payouts_enabled,
        )
        await self._session.commit()
        return {
            "hasAccount": True,
            "onboardingComplete": onboarding_complete,
            "payoutsEnabled": payouts_enabled,
        }
