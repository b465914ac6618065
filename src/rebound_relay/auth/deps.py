"""FastAPI auth dependencies.

Authentication and organization context are loaded as two explicit steps:
``get_identity`` resolves the caller, ``require_org_role`` then loads and
authorizes the current organization for routes that are organization-scoped.
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import Depends, Request, Response

from rebound_relay.auth import gate
from rebound_relay.auth.identity import resolve_session
from rebound_relay.auth.models import Identity, OrganizationContext, Role
from rebound_relay.auth.session import BrowserSession, load_browser_session
from rebound_relay.db.deps import OrganizationsRepoDep
from rebound_relay.services.organizations import OrganizationContextLoader
from rebound_relay.settings import settings


def get_identity(request: Request) -> Identity | None:
    """Resolve the caller. None means unauthenticated; routes decide what that implies."""
    identity = resolve_session(request)
    if identity is not None:
        structlog.contextvars.bind_contextvars(user_id=str(identity.user_id))
    return identity


OptionalIdentityDep = Annotated[Identity | None, Depends(get_identity)]


def get_current_identity(identity: OptionalIdentityDep) -> Identity:
    return gate.require_identity(identity)


CurrentIdentityDep = Annotated[Identity, Depends(get_current_identity)]


def get_browser_session(request: Request) -> BrowserSession:
    return load_browser_session(request)


BrowserSessionDep = Annotated[BrowserSession, Depends(get_browser_session)]


def get_super_admins() -> frozenset[str]:
    """The super-admin allow-list, parsed once from settings."""
    return settings.super_admins


SuperAdminsDep = Annotated[frozenset[str], Depends(get_super_admins)]


def get_super_admin(identity: OptionalIdentityDep, allow_list: SuperAdminsDep) -> Identity:
    return gate.require_super_admin(identity, allow_list)


SuperAdminDep = Annotated[Identity, Depends(get_super_admin)]


def get_context_loader(repo: OrganizationsRepoDep) -> OrganizationContextLoader:
    return OrganizationContextLoader(repo)


ContextLoaderDep = Annotated[OrganizationContextLoader, Depends(get_context_loader)]


def require_org_role(role: Role = Role.USER):
    """Dependency factory: load the current organization and enforce ``role`` in it.

    A changed sticky selection is written back to the session cookie on the
    route's response.
    """

    async def _load(
        response: Response,
        identity: OptionalIdentityDep,
        browser_session: BrowserSessionDep,
        loader: ContextLoaderDep,
    ) -> OrganizationContext:
        try:
            return await loader.load_current_organization(identity, browser_session, role)
        finally:
            browser_session.save(response)

    return Depends(_load)


OrgMemberDep = Annotated[OrganizationContext, require_org_role(Role.USER)]
OrgAdminDep = Annotated[OrganizationContext, require_org_role(Role.ADMIN)]
OrgOwnerDep = Annotated[OrganizationContext, require_org_role(Role.OWNER)]
