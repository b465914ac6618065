"""Consultant profile review workflow and earnings.

DRAFT -> SUBMITTED -> {ACTIVE, REJECTED}. Owners move their profile into
SUBMITTED (also from ACTIVE or REJECTED after an edit); only super admins
move it out. Each transition is a conditional update on the source status.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rebound_relay.auth.models import Identity
from rebound_relay.db.models import ConsultantModel
from rebound_relay.db.repositories.audit import AuditRepo
from rebound_relay.db.repositories.consultants import ConsultantsRepo
from rebound_relay.db.repositories.engagements import EngagementsRepo, InvoicesRepo
from rebound_relay.errors import InvalidInput, NotFound

logger = structlog.get_logger()

DRAFT = "DRAFT"
SUBMITTED = "SUBMITTED"
ACTIVE = "ACTIVE"
REJECTED = "REJECTED"

SUBMITTABLE_FROM = (DRAFT, ACTIVE, REJECTED)


class ConsultantWorkflow:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repo = ConsultantsRepo(session)
        self._audit = AuditRepo(session)
        self._invoices = InvoicesRepo(session)
        self._engagements = EngagementsRepo(session)

    async def get_profile(self, identity: Identity) -> ConsultantModel | None:
        return await self._repo.get_by_user(identity.user_id)

    async def upsert_profile(self, identity: Identity, fields: dict[str, Any]) -> ConsultantModel:
        """Create the caller's profile as DRAFT, or update it in place keeping its status."""
        consultant = await self._repo.get_by_user(identity.user_id)
        if consultant is None:
            consultant = await self._repo.create(identity.user_id, **fields)
            logger.info("consultant_profile_created", consultant_id=str(consultant.id))
        else:
            consultant = await self._repo.update_fields(consultant, **fields)
        await self._session.commit()
        await self._session.refresh(consultant)
        return consultant

    async def submit(self, identity: Identity) -> ConsultantModel:
        consultant = await self._repo.get_by_user(identity.user_id)
        if consultant is None:
            raise NotFound("Profile not found")
        if not await self._repo.transition_status(consultant.id, SUBMITTABLE_FROM, SUBMITTED):
            raise InvalidInput("Profile is already submitted for review")
        await self._session.commit()
        await self._session.refresh(consultant)
        logger.info("consultant_profile_submitted", consultant_id=str(consultant.id))
        return consultant

    async def approve(self, admin: Identity, consultant_id: UUID) -> ConsultantModel:
        return await self._review(admin, consultant_id, ACTIVE, "APPROVAL")

    async def reject(self, admin: Identity, consultant_id: UUID, reason: str | None = None) -> ConsultantModel:
        return await self._review(admin, consultant_id, REJECTED, "REJECTION", reason)

    async def _review(
        self,
        admin: Identity,
        consultant_id: UUID,
        to_status: str,
        action: str,
        reason: str | None = None,
    ) -> ConsultantModel:
        consultant = await self._repo.get(consultant_id)
        if consultant is None:
            raise NotFound("Consultant profile not found")
        if not await self._repo.transition_status(consultant_id, (SUBMITTED,), to_status):
            raise InvalidInput("Consultant profile is not awaiting review")

        details: dict[str, Any] = {"previousStatus": SUBMITTED, "newStatus": to_status}
        if reason:
            details["reason"] = reason
        await self._audit.log(str(admin.user_id), action, "consultant", str(consultant_id), details)
        await self._session.commit()
        await self._session.refresh(consultant)
        logger.info(
            "consultant_reviewed",
            consultant_id=str(consultant_id),
            status=to_status,
            admin_id=str(admin.user_id),
        )
        return consultant

    async def earnings(self, identity: Identity) -> dict[str, int]:
        stats = {
            "totalEarnings": 0,
            "paidEarnings": 0,
            "pendingEarnings": 0,
            "totalCommission": 0,
            "engagementCount": 0,
            "paidInvoiceCount": 0,
            "pendingInvoiceCount": 0,
        }
        consultant = await self._repo.get_by_user(identity.user_id)
        if consultant is None:
            return stats

        invoices = await self._invoices.list_for_consultant(consultant.id)
        for invoice in invoices:
            net = invoice.amount - (invoice.commission_amount or 0)
            stats["totalEarnings"] += net
            stats["totalCommission"] += invoice.commission_amount or 0
            if invoice.status == "PAID":
                stats["paidEarnings"] += net
                stats["paidInvoiceCount"] += 1
            elif invoice.status == "PENDING":
                stats["pendingEarnings"] += net
                stats["pendingInvoiceCount"] += 1
        stats["engagementCount"] = await self._engagements.count_for_consultant(consultant.id)
        return stats
