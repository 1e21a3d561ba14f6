import asyncio
import json
import os
from typing import Optional

import pytest

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", ":memory:")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")

from fastapi.testclient import TestClient  # noqa: E402

from intellichat.api.deps import (  # noqa: E402
    get_generation_gateway,
    get_payment_gateway,
    get_uploader,
)
from intellichat.db import Store, get_db  # noqa: E402
from intellichat.db.local import LocalDatabase  # noqa: E402
from intellichat.db.models import Plan, Transaction  # noqa: E402
from intellichat.errors import GenerationFailed, InvalidSignature, PaymentGatewayFailed, UploadFailed  # noqa: E402
from intellichat.main import app  # noqa: E402
from intellichat.services.generation import GeneratedImage, GenerationGateway  # noqa: E402
from intellichat.services.payments import PaymentEvent, PaymentGateway  # noqa: E402
from intellichat.services.uploader import AssetUploader  # noqa: E402


VALID_SIGNATURE = "t=1,v1=valid"


def run_sync(coro):
    """Run a coroutine on a private loop, leaving the test's loop alone."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class FakeGenerator(GenerationGateway):
    def __init__(self):
        self.text_reply = "Hello! How can I help you today?"
        self.image_content_type = "image/png"
        self.fail = False
        self.calls: list[tuple[str, str]] = []

    async def generate_text(self, prompt: str) -> str:
        self.calls.append(("text", prompt))
        if self.fail:
            raise GenerationFailed("provider unavailable")
        return self.text_reply

    async def generate_image(self, prompt: str) -> GeneratedImage:
        self.calls.append(("image", prompt))
        if self.fail:
            raise GenerationFailed("provider unavailable")
        return GeneratedImage(
            data=b"\x89PNG fake",
            content_type=self.image_content_type,
            source_url="https://ik.imagekit.io/demo/gen.png",
        )


class FakeUploader(AssetUploader):
    def __init__(self):
        self.fail = False
        self.uploads: list[tuple[str, str, bytes]] = []

    async def upload(self, data: bytes, file_name: str, folder: str, content_type: str = "image/png") -> str:
        if self.fail:
            raise UploadFailed("hosting unavailable")
        self.uploads.append((folder, file_name, data))
        return f"https://ik.imagekit.io/demo/{folder}/{len(self.uploads)}.png"


class FakePayments(PaymentGateway):
    """Accepts VALID_SIGNATURE only; sessions are registered by tests."""

    def __init__(self, app_id: str = "intellichat"):
        self.app_id = app_id
        self.checkouts: list[tuple[Transaction, Plan, str]] = []
        self.sessions: dict[str, dict] = {}
        self.fail_lookup = False

    async def create_checkout(self, transaction: Transaction, plan: Plan, origin: str) -> str:
        self.checkouts.append((transaction, plan, origin))
        payment_intent = f"pi_{len(self.checkouts)}"
        self.sessions[payment_intent] = {"transactionId": transaction.id, "appId": self.app_id}
        return f"https://checkout.stripe.com/c/pay/cs_test_{transaction.id}"

    def construct_event(self, payload: bytes, signature: Optional[str]) -> PaymentEvent:
        if signature != VALID_SIGNATURE:
            raise InvalidSignature("Webhook Error: No signatures found matching the expected signature")
        event = json.loads(payload)
        return PaymentEvent(id=event["id"], type=event["type"], object_id=event["data"]["object"]["id"])

    async def find_session_metadata(self, payment_intent_id: str) -> Optional[dict]:
        if self.fail_lookup:
            raise PaymentGatewayFailed("Payment error: connection reset")
        return self.sessions.get(payment_intent_id)


def payment_event(payment_intent_id: str, event_type: str = "payment_intent.succeeded", event_id: str = "evt_1") -> bytes:
    return json.dumps({
        "id": event_id,
        "type": event_type,
        "data": {"object": {"id": payment_intent_id, "object": "payment_intent"}},
    }).encode()


@pytest.fixture
def store(tmp_path):
    store = Store(LocalDatabase(str(tmp_path / "intellichat-test.db")))
    run_sync(store.init_schema())
    yield store
    run_sync(store.close())


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def payments():
    return FakePayments()


@pytest.fixture
def client(store, generator, uploader, payments):
    app.dependency_overrides[get_db] = lambda: store
    app.dependency_overrides[get_generation_gateway] = lambda: generator
    app.dependency_overrides[get_uploader] = lambda: uploader
    app.dependency_overrides[get_payment_gateway] = lambda: payments
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Register a user through the API and return its auth headers."""
    def _register(name: str = "Alice", email: str = "alice@intellichat.io", password: str = "secret123") -> dict:
        response = client.post("/api/user/register", json={"name": name, "email": email, "password": password})
        assert response.json()["success"] is True
        return {"Authorization": f"Bearer {response.json()['token']}"}
    return _register
