"""Payment gateway: Stripe checkout sessions and webhook events."""
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import stripe

from intellichat.config import Settings
from intellichat.db.models import Plan, Transaction
from intellichat.errors import InvalidSignature, PaymentGatewayFailed
from intellichat.logging import get_logger


logger = get_logger(__name__)


@dataclass
class PaymentEvent:
    """Verified provider event, reduced to what reconciliation needs."""
    id: str
    type: str
    object_id: Optional[str] = None


class PaymentGateway(ABC):
    """Abstract base class for the checkout provider."""

    @abstractmethod
    async def create_checkout(self, transaction: Transaction, plan: Plan, origin: str) -> str:
        """Create a hosted checkout for the transaction and return its URL."""
        pass

    @abstractmethod
    def construct_event(self, payload: bytes, signature: Optional[str]) -> PaymentEvent:
        """Verify the signature over the raw payload and parse the event."""
        pass

    @abstractmethod
    async def find_session_metadata(self, payment_intent_id: str) -> Optional[dict]:
        """Metadata of the checkout session that produced a payment intent."""
        pass


def _to_dict(obj: Any) -> dict:
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


class StripeGateway(PaymentGateway):
    """Stripe Checkout implementation."""

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str,
        app_id: str,
        expiry_minutes: int = 30,
    ):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.app_id = app_id
        self.expiry_minutes = expiry_minutes

    async def create_checkout(self, transaction: Transaction, plan: Plan, origin: str) -> str:
        try:
            session = await stripe.checkout.Session.create_async(
                api_key=self.secret_key,
                line_items=[{
                    "price_data": {
                        "currency": "usd",
                        "unit_amount": plan.price * 100,
                        "product_data": {
                            "name": plan.name,
                        },
                    },
                    "quantity": 1,
                }],
                mode="payment",
                success_url=f"{origin}/loading",
                cancel_url=origin,
                metadata={
                    "transactionId": transaction.id,
                    "appId": self.app_id,
                },
                expires_at=int(time.time()) + self.expiry_minutes * 60,
            )
        except stripe.StripeError as e:
            logger.error("checkout_create_failed", transaction_id=transaction.id, error=str(e))
            raise PaymentGatewayFailed(f"Payment error: {e}") from e

        return session.url

    def construct_event(self, payload: bytes, signature: Optional[str]) -> PaymentEvent:
        if not signature:
            raise InvalidSignature("Missing stripe-signature header")

        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as e:
            raise InvalidSignature(f"Invalid payload: {e}") from e
        except stripe.SignatureVerificationError as e:
            raise InvalidSignature(f"Webhook Error: {e}") from e

        return PaymentEvent(
            id=event["id"],
            type=event["type"],
            object_id=event["data"]["object"]["id"],
        )

    async def find_session_metadata(self, payment_intent_id: str) -> Optional[dict]:
        try:
            sessions = await stripe.checkout.Session.list_async(
                api_key=self.secret_key,
                payment_intent=payment_intent_id,
                limit=1,
            )
        except stripe.StripeError as e:
            raise PaymentGatewayFailed(f"Payment error: {e}") from e

        if not sessions.data:
            return None
        return _to_dict(sessions.data[0].metadata)


def create_payment_gateway(settings: Settings) -> PaymentGateway:
    return StripeGateway(
        secret_key=settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
        app_id=settings.app_id,
        expiry_minutes=settings.checkout_expiry_minutes,
    )
