"""FastAPI dependency injection for database sessions and repositories."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rebound_relay.db.engine import get_session_factory
from rebound_relay.db.repositories.audit import AuditRepo
from rebound_relay.db.repositories.consultants import ConsultantsRepo
from rebound_relay.db.repositories.engagements import EngagementsRepo, InvoicesRepo
from rebound_relay.db.repositories.organizations import OrganizationsRepo
from rebound_relay.db.repositories.paypal import PaypalContextsRepo
from rebound_relay.db.repositories.users import UsersRepo


async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield an async DB session, auto-closing on exit."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_users_repo(session: SessionDep) -> UsersRepo:
    return UsersRepo(session)


def get_organizations_repo(session: SessionDep) -> OrganizationsRepo:
    return OrganizationsRepo(session)


def get_paypal_repo(session: SessionDep) -> PaypalContextsRepo:
    return PaypalContextsRepo(session)


def get_consultants_repo(session: SessionDep) -> ConsultantsRepo:
    return ConsultantsRepo(session)


def get_engagements_repo(session: SessionDep) -> EngagementsRepo:
    return EngagementsRepo(session)


def get_invoices_repo(session: SessionDep) -> InvoicesRepo:
    return InvoicesRepo(session)


def get_audit_repo(session: SessionDep) -> AuditRepo:
    return AuditRepo(session)


UsersRepoDep = Annotated[UsersRepo, Depends(get_users_repo)]
OrganizationsRepoDep = Annotated[OrganizationsRepo, Depends(get_organizations_repo)]
PaypalRepoDep = Annotated[PaypalContextsRepo, Depends(get_paypal_repo)]
ConsultantsRepoDep = Annotated[ConsultantsRepo, Depends(get_consultants_repo)]
EngagementsRepoDep = Annotated[EngagementsRepo, Depends(get_engagements_repo)]
InvoicesRepoDep = Annotated[InvoicesRepo, Depends(get_invoices_repo)]
AuditRepoDep = Annotated[AuditRepo, Depends(get_audit_repo)]
