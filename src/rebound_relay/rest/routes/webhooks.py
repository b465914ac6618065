"""Payment provider webhooks."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Request

from rebound_relay.billing.deps import StripeGatewayDep
from rebound_relay.services.deps import ReconcilerDep
from rebound_relay.services.payouts import run_payout

router = APIRouter(prefix="/webhooks")


@router.post("/stripe-rebound")
async def stripe_rebound_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    reconciler: ReconcilerDep,
    stripe: StripeGatewayDep,
) -> dict[str, bool]:
    """Acknowledge promptly; the consultant payout runs after the response is sent."""
    payload = await request.body()
    result = await reconciler.handle_payment_event(payload, request.headers.get("stripe-signature"))
    if result.payout_invoice_id is not None:
        background_tasks.add_task(run_payout, result.payout_invoice_id, stripe)
    return {"received": True}
