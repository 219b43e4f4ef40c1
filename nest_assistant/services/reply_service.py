from nest_assistant.logging_config import get_logger
from nest_assistant.services.gateway_service import Transport
from nest_assistant.services.result import Result

logger = get_logger("reply_service")

ESCALATION_FOOTER = "_Need to speak to someone from Nest? Just reply with 'human' and we’ll connect you._"


def format_answer(answer: str) -> str:
    """Append the escalation footer to an AI answer."""
    return f"{answer}\n\n{ESCALATION_FOOTER}"


class Responder:
    """Thin pass-through to the transport. No retries."""

    def __init__(self, transport: Transport):
        self.transport = transport

    async def send(self, recipient_id: str, text: str) -> bool:
        await self.transport.send_text(recipient_id, text)
        logger.debug(f"Sent {len(text)} chars to {recipient_id}")
        return True

    async def send_answer(self, recipient_id: str, answer: str) -> bool:
        return await self.send(recipient_id, format_answer(answer))

    async def try_send(self, recipient_id: str, text: str) -> Result[bool]:
        """Send without raising; failures are logged and returned."""
        try:
            return Result.success(await self.send(recipient_id, text))
        except Exception as exc:
            logger.error(
                "Reply delivery failed",
                extra={"context": {"recipient_id": recipient_id, "error": str(exc)}},
            )
            return Result.from_exception(exc, "send_error")
