from abc import ABC, abstractmethod
from typing import Optional

import httpx

from nest_assistant.logging_config import get_logger

logger = get_logger("gateway_service")


class TransportError(Exception):
    """Raised when an outgoing message could not be handed to the chat gateway."""


class Transport(ABC):
    """Outgoing side of the chat channel."""

    @abstractmethod
    async def send_text(self, recipient_id: str, text: str) -> None:
        """Deliver text to the recipient. Raises TransportError on failure."""


class ChatGatewayTransport(Transport):
    """Sends WhatsApp text messages through an HTTP chat gateway."""

    def __init__(self, url: str, token: Optional[str] = None, timeout_seconds: float = 30.0):
        self.url = url
        self.token = token
        self.timeout_seconds = timeout_seconds

    async def send_text(self, recipient_id: str, text: str) -> None:
        if not recipient_id or not text:
            raise TransportError(f"Missing recipient or text (recipient={recipient_id!r})")

        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(self.url, headers=headers, json={"to": recipient_id, "text": text})
        except httpx.HTTPError as exc:
            raise TransportError(f"Gateway request failed: {exc}") from exc

        logger.info(f"Gateway response: status={response.status_code}, to={recipient_id}, body={response.text[:200]}")
        if not response.is_success:
            raise TransportError(f"Gateway error: {response.status_code} - {response.text[:200]}")
