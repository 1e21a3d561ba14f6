"""Stripe webhook endpoint."""
from fastapi import APIRouter, Depends, Request

from intellichat.services.reconciler import WebhookReconciler

from .deps import get_reconciler


router = APIRouter(prefix="/api", tags=["webhooks"])


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    reconciler: WebhookReconciler = Depends(get_reconciler),
):
    """Handle Stripe webhook events.

    Ignored events are acknowledged with 200 so Stripe stops redelivering
    them. A bad signature is rejected with 400, and a failure while applying
    the event answers 500 so Stripe retries it.
    """
    payload = await request.body()
    result = await reconciler.handle(payload, request.headers.get("stripe-signature"))

    if result.processed:
        return {"received": True}
    return {"received": True, "message": result.reason}
