"""Purchase initiation: pending transaction plus hosted checkout."""
from intellichat.db import Store
from intellichat.db.models import User
from intellichat.logging import get_logger
from intellichat.services.payments import PaymentGateway
from intellichat.services.plans import get_plan


logger = get_logger(__name__)


async def start_purchase(
    store: Store,
    payments: PaymentGateway,
    user: User,
    plan_id: str,
    origin: str,
) -> str:
    """Create an unpaid transaction for the plan and return the checkout URL.

    The transaction id travels in the checkout metadata so the webhook can
    find it again.
    """
    plan = get_plan(plan_id)

    transaction = await store.create_transaction(
        user_id=user.id,
        plan_id=plan.id,
        amount=plan.price,
        credits=plan.credits,
    )
    url = await payments.create_checkout(transaction, plan, origin)

    logger.info("checkout_created", user_id=user.id, plan_id=plan.id, transaction_id=transaction.id)
    return url
