"""Messages API - credit-metered text and image generation."""
from fastapi import APIRouter, BackgroundTasks, Depends

from intellichat.auth import get_current_user
from intellichat.config import Settings, get_settings
from intellichat.db.models import CamelModel, User
from intellichat.logging import get_logger
from intellichat.services.pipeline import CreditPipeline, Exchange, MessageMode

from .deps import get_pipeline


logger = get_logger(__name__)

router = APIRouter(prefix="/api/message", tags=["messages"])


class TextMessageRequest(CamelModel):
    chat_id: str
    prompt: str


class ImageMessageRequest(CamelModel):
    chat_id: str
    prompt: str
    is_published: bool = False


async def _commit_after_response(pipeline: CreditPipeline, exchange: Exchange) -> None:
    """Background commit; the client already has its reply, so failures are only logged."""
    try:
        await pipeline.commit(exchange)
    except Exception:
        logger.exception(
            "exchange_commit_failed",
            user_id=exchange.user_id,
            chat_id=exchange.chat_id,
            mode=exchange.mode.value,
        )


async def _reply(
    exchange: Exchange,
    pipeline: CreditPipeline,
    background_tasks: BackgroundTasks,
    settings: Settings,
) -> dict:
    if settings.persist_before_reply:
        await pipeline.commit(exchange)
    else:
        background_tasks.add_task(_commit_after_response, pipeline, exchange)

    return {"success": True, "reply": exchange.reply.model_dump(by_alias=True)}


@router.post("/text")
async def text_message(
    body: TextMessageRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    pipeline: CreditPipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_settings),
):
    """Answer a text prompt. Costs 1 credit."""
    exchange = await pipeline.run(current_user, body.chat_id, body.prompt, MessageMode.TEXT)
    return await _reply(exchange, pipeline, background_tasks, settings)


@router.post("/image")
async def image_message(
    body: ImageMessageRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    pipeline: CreditPipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_settings),
):
    """Generate an image for a prompt. Costs 2 credits."""
    exchange = await pipeline.run(
        current_user, body.chat_id, body.prompt, MessageMode.IMAGE, publish=body.is_published
    )
    return await _reply(exchange, pipeline, background_tasks, settings)
