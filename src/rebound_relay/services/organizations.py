"""Organization context loader and switching."""

from __future__ import annotations

from uuid import UUID

import structlog

from rebound_relay.auth import gate
from rebound_relay.auth.models import Identity, OrganizationContext, Role
from rebound_relay.auth.session import BrowserSession
from rebound_relay.db.repositories.organizations import OrganizationsRepo
from rebound_relay.errors import NoOrganization, NotAMember

logger = structlog.get_logger()


class OrganizationContextLoader:
    """Resolves the session's current organization.

    Keeps the sticky selection while the user is still a member of it, otherwise
    falls back to the user's first organization (creation order) and persists
    that choice into the browser session.
    """

    def __init__(self, repo: OrganizationsRepo) -> None:
        self._repo = repo

    async def load_current_organization(
        self,
        identity: Identity | None,
        session: BrowserSession,
        required_role: Role = Role.USER,
    ) -> OrganizationContext:
        identity = gate.require_identity(identity)

        selected = session.current_organization_id
        membership_row = (
            await self._repo.get_membership(identity.user_id, selected) if selected else None
        )
        if membership_row is None:
            organizations = await self._repo.list_for_user(identity.user_id)
            if not organizations:
                raise NoOrganization()
            first, _role = organizations[0]
            if selected is not None:
                logger.info(
                    "organization_selection_reset",
                    user_id=str(identity.user_id),
                    previous=str(selected),
                    selected=str(first.id),
                )
            selected = first.id
            session.select_organization(selected)
            membership_row = await self._repo.get_membership(identity.user_id, selected)

        membership = gate.authorize(identity, selected, membership_row, required_role)
        organization = await self._repo.get(selected)
        structlog.contextvars.bind_contextvars(organization_id=str(selected))
        return OrganizationContext(
            organization=organization,
            membership=membership,
            plan=organization.plan if organization is not None else None,
        )

    async def switch_organization(
        self, identity: Identity | None, session: BrowserSession, organization_id: UUID
    ) -> None:
        identity = gate.require_identity(identity)
        membership_row = await self._repo.get_membership(identity.user_id, organization_id)
        if membership_row is None:
            raise NotAMember("User does not belong to this organization")
        session.select_organization(organization_id)
        logger.info(
            "organization_switched",
            user_id=str(identity.user_id),
            organization_id=str(organization_id),
        )
