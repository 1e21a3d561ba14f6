"""Webhook reconciliation: signature checks, filtering and idempotency."""
import pytest

from intellichat.errors import InvalidSignature, PlanNotFound, WebhookProcessingFailed
from intellichat.services.purchases import start_purchase
from intellichat.services.reconciler import WebhookReconciler

from .conftest import VALID_SIGNATURE, payment_event


@pytest.fixture
def reconciler(store, payments):
    return WebhookReconciler(store, payments, app_id="intellichat")


@pytest.fixture
async def user(store):
    return await store.create_user("Alice", "alice@example.com", "hash", credits=20)


async def test_purchase_creates_unpaid_transaction(store, payments, user):
    url = await start_purchase(store, payments, user, "basic", "https://app.intellichat.io")

    transaction, plan, origin = payments.checkouts[0]
    assert url == f"https://checkout.stripe.com/c/pay/cs_test_{transaction.id}"
    assert origin == "https://app.intellichat.io"
    assert plan.price == 10 and plan.credits == 100

    stored = await store.get_transaction(transaction.id)
    assert stored.is_paid is False
    assert stored.user_id == user.id
    assert stored.amount == 10
    assert stored.credits == 100


async def test_purchase_unknown_plan(store, payments, user):
    with pytest.raises(PlanNotFound):
        await start_purchase(store, payments, user, "platinum", "https://app.intellichat.io")
    assert payments.checkouts == []


async def test_payment_succeeded_grants_credits_once(store, payments, reconciler, user):
    await start_purchase(store, payments, user, "basic", "https://app.intellichat.io")
    transaction = payments.checkouts[0][0]
    body = payment_event("pi_1")

    results = [await reconciler.handle(body, VALID_SIGNATURE) for _ in range(3)]

    assert [r.processed for r in results] == [True, False, False]
    assert results[1].reason == "Transaction not found or already processed"
    assert (await store.get_user_by_id(user.id)).credits == 120
    assert (await store.get_transaction(transaction.id)).is_paid is True


async def test_invalid_signature_rejected_without_mutation(store, payments, reconciler, user):
    await start_purchase(store, payments, user, "pro", "https://app.intellichat.io")
    transaction = payments.checkouts[0][0]

    with pytest.raises(InvalidSignature):
        await reconciler.handle(payment_event("pi_1"), "t=1,v1=forged")

    assert (await store.get_user_by_id(user.id)).credits == 20
    assert (await store.get_transaction(transaction.id)).is_paid is False


async def test_other_event_types_are_ignored(store, payments, reconciler, user):
    await start_purchase(store, payments, user, "basic", "https://app.intellichat.io")

    result = await reconciler.handle(payment_event("pi_1", event_type="charge.refunded"), VALID_SIGNATURE)

    assert result.processed is False
    assert result.reason == "Unhandled event type charge.refunded"
    assert (await store.get_user_by_id(user.id)).credits == 20


async def test_other_app_sessions_are_ignored(store, payments, reconciler, user):
    await start_purchase(store, payments, user, "basic", "https://app.intellichat.io")
    payments.sessions["pi_1"]["appId"] = "another-app"

    result = await reconciler.handle(payment_event("pi_1"), VALID_SIGNATURE)

    assert result.processed is False
    assert result.reason == "Ignored event: Invalid app"
    assert (await store.get_user_by_id(user.id)).credits == 20


async def test_missing_session_is_ignored(reconciler):
    result = await reconciler.handle(payment_event("pi_unknown"), VALID_SIGNATURE)

    assert result.processed is False
    assert result.reason == "Checkout session not found"


async def test_unknown_transaction_is_ignored(payments, reconciler):
    payments.sessions["pi_9"] = {"transactionId": "missing", "appId": "intellichat"}

    result = await reconciler.handle(payment_event("pi_9"), VALID_SIGNATURE)

    assert result.processed is False
    assert result.transaction_id == "missing"


async def test_session_lookup_failure_is_retryable(store, payments, reconciler, user):
    await start_purchase(store, payments, user, "basic", "https://app.intellichat.io")
    transaction = payments.checkouts[0][0]
    payments.fail_lookup = True

    with pytest.raises(WebhookProcessingFailed) as excinfo:
        await reconciler.handle(payment_event("pi_1"), VALID_SIGNATURE)

    assert excinfo.value.status_code == 500
    assert (await store.get_transaction(transaction.id)).is_paid is False

    payments.fail_lookup = False
    result = await reconciler.handle(payment_event("pi_1"), VALID_SIGNATURE)

    assert result.processed is True
    assert (await store.get_user_by_id(user.id)).credits == 120
