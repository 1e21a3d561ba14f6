"""Stripe webhook reconciliation: grants purchased credits exactly once."""
from dataclasses import dataclass
from typing import Optional

from intellichat.db import DatabaseError, Store
from intellichat.errors import PaymentGatewayFailed, WebhookProcessingFailed
from intellichat.logging import get_logger
from intellichat.services.payments import PaymentEvent, PaymentGateway


logger = get_logger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"


@dataclass
class ReconcileResult:
    """Outcome of one webhook delivery. Ignored deliveries are still acknowledged."""
    processed: bool
    reason: str
    transaction_id: Optional[str] = None


class WebhookReconciler:
    """Applies credit grants for completed checkouts."""

    def __init__(self, store: Store, payments: PaymentGateway, app_id: str):
        self.store = store
        self.payments = payments
        self.app_id = app_id

    def _ignored(self, event_id: str, reason: str, transaction_id: Optional[str] = None) -> ReconcileResult:
        logger.info("webhook_ignored", event_id=event_id, reason=reason, transaction_id=transaction_id)
        return ReconcileResult(processed=False, reason=reason, transaction_id=transaction_id)

    async def handle(self, payload: bytes, signature: Optional[str]) -> ReconcileResult:
        """Verify and apply one event.

        Raises InvalidSignature before touching any state if the signature
        does not match. Provider or database failures after verification
        raise WebhookProcessingFailed so Stripe delivers the event again;
        settling is idempotent, so a retry never grants twice.
        """
        event = self.payments.construct_event(payload, signature)

        if event.type != PAYMENT_SUCCEEDED:
            return self._ignored(event.id, f"Unhandled event type {event.type}")

        try:
            return await self._apply(event)
        except (PaymentGatewayFailed, DatabaseError) as e:
            logger.error("webhook_processing_failed", event_id=event.id, error=str(e))
            raise WebhookProcessingFailed() from e

    async def _apply(self, event: PaymentEvent) -> ReconcileResult:
        metadata = await self.payments.find_session_metadata(event.object_id) if event.object_id else None
        if metadata is None:
            return self._ignored(event.id, "Checkout session not found")

        if metadata.get("appId") != self.app_id:
            return self._ignored(event.id, "Ignored event: Invalid app")

        transaction_id = metadata.get("transactionId")
        if not transaction_id:
            return self._ignored(event.id, "Transaction not found or already processed")

        settled = await self.store.settle_transaction(transaction_id)
        if not settled:
            return self._ignored(
                event.id, "Transaction not found or already processed", transaction_id
            )

        transaction = await self.store.get_transaction(transaction_id)
        logger.info(
            "webhook_credited",
            event_id=event.id,
            transaction_id=transaction_id,
            user_id=transaction.user_id if transaction else None,
            credits=transaction.credits if transaction else None,
        )
        return ReconcileResult(processed=True, reason="Credits granted", transaction_id=transaction_id)
