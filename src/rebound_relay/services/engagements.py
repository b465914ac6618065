"""Relay engagements and invoice checkout."""

from __future__ import annotations

import math
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rebound_relay.auth import gate
from rebound_relay.auth.models import Identity, OrganizationContext, Role
from rebound_relay.billing.stripe_gateway import StripeGateway
from rebound_relay.db.models import EngagementModel
from rebound_relay.db.repositories.consultants import ConsultantsRepo
from rebound_relay.db.repositories.engagements import EngagementsRepo, InvoicesRepo
from rebound_relay.db.repositories.organizations import OrganizationsRepo
from rebound_relay.errors import InvalidInput, NotFound
from rebound_relay.services.consultants import ACTIVE
from rebound_relay.settings import settings

logger = structlog.get_logger()


def commission_for(amount: int, rate: float | None = None) -> int:
    return math.floor(amount * (settings.platform_commission_rate if rate is None else rate))


class EngagementService:
    def __init__(self, session: AsyncSession, stripe: StripeGateway) -> None:
        self._session = session
        self._stripe = stripe
        self._engagements = EngagementsRepo(session)
        self._invoices = InvoicesRepo(session)
        self._consultants = ConsultantsRepo(session)
        self._organizations = OrganizationsRepo(session)

    async def create_engagement(
        self,
        context: OrganizationContext,
        consultant_id: UUID,
        title: str,
        description: str | None = None,
        budget: int | None = None,
    ) -> EngagementModel:
        consultant = await self._consultants.get(consultant_id)
        if consultant is None or consultant.status != ACTIVE:
            raise NotFound("Consultant not found")
        engagement = await self._engagements.create(
            client_id=context.organization_id,
            consultant_id=consultant_id,
            title=title,
            description=description,
            budget=budget,
        )
        await self._session.commit()
        logger.info(
            "engagement_created",
            engagement_id=str(engagement.id),
            consultant_id=str(consultant_id),
        )
        return engagement

    async def list_engagements(self, context: OrganizationContext) -> list[EngagementModel]:
        return await self._engagements.list_for_client(context.organization_id)

    async def create_invoice(
        self, identity: Identity, engagement_id: UUID, amount: int, description: str | None = None
    ) -> dict[str, Any]:
        """Create a PENDING invoice for the engagement and a Checkout session to pay it.

        The caller must be an admin of the engagement's client organization.
        """
        if amount <= 0:
            raise InvalidInput("Invoice amount must be positive")
        engagement = await self._engagements.get(engagement_id)
        if engagement is None:
            raise NotFound("Engagement not found")
        membership_row = await self._organizations.get_membership(identity.user_id, engagement.client_id)
        gate.authorize(identity, engagement.client_id, membership_row, Role.ADMIN)

        invoice = await self._invoices.create(
            engagement_id,
            amount=amount,
            commission_amount=commission_for(amount),
            description=description,
        )
        await self._session.commit()

        checkout = await self._stripe.create_checkout_session(
            amount=amount,
            description=description or f"Invoice for engagement {engagement.title}",
            metadata={"invoiceId": str(invoice.id), "engagementId": str(engagement_id)},
            success_url=f"{settings.app_url}/relay/invoices/{invoice.id}?success=true",
            cancel_url=f"{settings.app_url}/relay/invoices/{invoice.id}?canceled=true",
        )
        await self._invoices.set_checkout_session(invoice, checkout.id)
        await self._session.commit()
        logger.info(
            "invoice_created",
            invoice_id=str(invoice.id),
            engagement_id=str(engagement_id),
            amount=amount,
            commission_amount=invoice.commission_amount,
        )
        return {"invoiceId": str(invoice.id), "checkoutUrl": checkout.url}
