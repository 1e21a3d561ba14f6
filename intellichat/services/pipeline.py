"""Credit-metered generation pipeline.

A request runs in two phases:

1. ``run``: check the balance and chat ownership, call the generation
   provider (and the uploader for images) and build the reply. Nothing is
   written, so any failure here leaves the chat and the balance untouched.
2. ``commit``: append the [user, assistant] pair to the chat in one
   transaction, then debit the cost.

The HTTP layer decides whether phase 2 runs before or after the response
is sent (``Settings.persist_before_reply``). When it runs after, a crash in
between loses the exchange and its debit; it never debits twice.
"""
import enum
import time
from dataclasses import dataclass

from intellichat.config import Settings
from intellichat.db import Store
from intellichat.db.models import Message, User
from intellichat.errors import ChatNotFound, InsufficientCredits, ValidationError
from intellichat.logging import get_logger
from intellichat.services.generation import GenerationGateway
from intellichat.services.uploader import AssetUploader


logger = get_logger(__name__)


class MessageMode(str, enum.Enum):
    TEXT = "text"
    IMAGE = "image"


CREDIT_COST = {
    MessageMode.TEXT: 1,
    MessageMode.IMAGE: 2,
}

IMAGE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
}


def _now_ms() -> int:
    return int(time.time() * 1000)


def _image_file_name(content_type: str) -> str:
    mime = content_type.split(";")[0].strip().lower()
    return f"{_now_ms()}.{IMAGE_EXTENSIONS.get(mime, 'png')}"


@dataclass
class Exchange:
    """A generated but not yet persisted prompt/reply pair."""
    user_id: str
    chat_id: str
    mode: MessageMode
    prompt: Message
    reply: Message

    @property
    def cost(self) -> int:
        return CREDIT_COST[self.mode]


class CreditPipeline:
    """Runs one generation request end to end against a user's balance."""

    def __init__(
        self,
        store: Store,
        generator: GenerationGateway,
        uploader: AssetUploader,
        settings: Settings,
    ):
        self.store = store
        self.generator = generator
        self.uploader = uploader
        self.settings = settings

    async def run(
        self,
        user: User,
        chat_id: str,
        prompt: str,
        mode: MessageMode,
        publish: bool = False,
    ) -> Exchange:
        """Phase 1: validate and generate, without mutating any state."""
        cost = CREDIT_COST[mode]
        if user.credits < cost:
            raise InsufficientCredits()

        if not prompt or not prompt.strip():
            raise ValidationError("Prompt is required")

        chat = await self.store.get_chat(chat_id, user.id)
        if chat is None:
            raise ChatNotFound()

        prompt_message = Message(
            role="user",
            content=prompt,
            timestamp=_now_ms(),
        )

        if mode is MessageMode.IMAGE:
            image = await self.generator.generate_image(prompt)
            url = await self.uploader.upload(
                image.data,
                file_name=_image_file_name(image.content_type),
                folder=self.settings.image_folder,
                content_type=image.content_type,
            )
            reply = Message(
                role="assistant",
                content=url,
                timestamp=_now_ms(),
                is_image=True,
                is_published=bool(publish),
            )
        else:
            content = await self.generator.generate_text(prompt)
            reply = Message(
                role="assistant",
                content=content,
                timestamp=_now_ms(),
            )

        return Exchange(
            user_id=user.id,
            chat_id=chat.id,
            mode=mode,
            prompt=prompt_message,
            reply=reply,
        )

    async def commit(self, exchange: Exchange) -> None:
        """Phase 2: persist both messages, then debit the cost."""
        await self.store.append_messages(exchange.chat_id, [exchange.prompt, exchange.reply])

        debited = await self.store.debit_credits(exchange.user_id, exchange.cost)
        if debited:
            logger.info(
                "exchange_committed",
                user_id=exchange.user_id,
                chat_id=exchange.chat_id,
                mode=exchange.mode.value,
                cost=exchange.cost,
            )
        else:
            # A concurrent request spent the balance after our check
            logger.warning(
                "debit_skipped_insufficient_balance",
                user_id=exchange.user_id,
                chat_id=exchange.chat_id,
                cost=exchange.cost,
            )

    async def submit(
        self,
        user: User,
        chat_id: str,
        prompt: str,
        mode: MessageMode,
        publish: bool = False,
    ) -> Message:
        """Run both phases inline and return the reply."""
        exchange = await self.run(user, chat_id, prompt, mode, publish)
        await self.commit(exchange)
        return exchange.reply
