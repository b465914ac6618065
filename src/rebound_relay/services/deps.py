"""FastAPI dependency injection for the domain services."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from rebound_relay.billing.deps import BillingAdaptersDep, StripeGatewayDep
from rebound_relay.db.deps import SessionDep
from rebound_relay.services.connect import ConnectOnboarding
from rebound_relay.services.consultants import ConsultantWorkflow
from rebound_relay.services.engagements import EngagementService
from rebound_relay.services.ledger import CreditLedger
from rebound_relay.services.payouts import PayoutDispatcher
from rebound_relay.services.reconciliation import PaymentReconciler
from rebound_relay.services.subscriptions import SubscriptionService
from rebound_relay.services.users import UserService


def get_ledger(session: SessionDep) -> CreditLedger:
    return CreditLedger(session)


def get_user_service(session: SessionDep) -> UserService:
    return UserService(session)


def get_subscription_service(session: SessionDep, adapters: BillingAdaptersDep) -> SubscriptionService:
    return SubscriptionService(session, adapters)


def get_consultant_workflow(session: SessionDep) -> ConsultantWorkflow:
    return ConsultantWorkflow(session)


def get_connect_onboarding(session: SessionDep, stripe: StripeGatewayDep) -> ConnectOnboarding:
    return ConnectOnboarding(session, stripe)


def get_payout_dispatcher(session: SessionDep, stripe: StripeGatewayDep) -> PayoutDispatcher:
    return PayoutDispatcher(session, stripe)


def get_engagement_service(session: SessionDep, stripe: StripeGatewayDep) -> EngagementService:
    return EngagementService(session, stripe)


def get_reconciler(session: SessionDep, stripe: StripeGatewayDep) -> PaymentReconciler:
    return PaymentReconciler(session, stripe)


LedgerDep = Annotated[CreditLedger, Depends(get_ledger)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
SubscriptionServiceDep = Annotated[SubscriptionService, Depends(get_subscription_service)]
ConsultantWorkflowDep = Annotated[ConsultantWorkflow, Depends(get_consultant_workflow)]
ConnectOnboardingDep = Annotated[ConnectOnboarding, Depends(get_connect_onboarding)]
PayoutDispatcherDep = Annotated[PayoutDispatcher, Depends(get_payout_dispatcher)]
EngagementServiceDep = Annotated[EngagementService, Depends(get_engagement_service)]
ReconcilerDep = Annotated[PaymentReconciler, Depends(get_reconciler)]
