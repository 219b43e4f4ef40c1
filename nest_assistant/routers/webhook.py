from datetime import timedelta
from functools import lru_cache

from fastapi import APIRouter, Depends

from nest_assistant.config import settings
from nest_assistant.logging_config import get_logger
from nest_assistant.schemas.webhook import InboundMessagePayload, WebhookResponse
from nest_assistant.services.gateway_service import ChatGatewayTransport
from nest_assistant.services.llm import OpenAIProvider
from nest_assistant.services.reply_service import Responder
from nest_assistant.services.router_service import InboundMessage, MessageRouter, RouteAction
from nest_assistant.services.state_service import InMemoryConversationStore

logger = get_logger("webhook")

router = APIRouter()


@lru_cache
def get_message_router() -> MessageRouter:
    """Build the process-wide router. The watermark is taken here, at startup."""
    llm = OpenAIProvider(
        api_key=settings.openai_api_key,
        default_model=settings.openai_model,
        base_url=settings.openai_base_url,
        default_timeout_seconds=settings.llm_timeout_seconds,
    )
    transport = ChatGatewayTransport(settings.gateway_url, settings.gateway_token or None)
    store = InMemoryConversationStore(dedup_ttl_seconds=settings.dedup_ttl_seconds)

    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set, classification will fail open and answers will fail")

    return MessageRouter(
        store=store,
        llm=llm,
        responder=Responder(transport),
        ignored_contacts=settings.get_ignored_contacts(),
        handoff_timeout=timedelta(hours=settings.handoff_timeout_hours),
        intent_timeout_seconds=settings.intent_timeout_seconds,
    )


@router.post("/webhook", response_model=WebhookResponse)
async def handle_webhook(
    payload: InboundMessagePayload,
    message_router: MessageRouter = Depends(get_message_router),
):
    """Receive one inbound chat message from the gateway."""
    result = await message_router.handle(
        InboundMessage(
            sender_id=payload.sender_id,
            text=payload.text,
            message_id=payload.message_id,
            timestamp=payload.timestamp,
            from_self=payload.from_self,
        )
    )
    return WebhookResponse(
        success=result.action != RouteAction.ERROR,
        action=result.action.value,
        intent=result.intent.value if result.intent else None,
        replies=result.replies,
    )
