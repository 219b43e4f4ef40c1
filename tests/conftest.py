import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from nest_assistant.services.gateway_service import Transport, TransportError
from nest_assistant.services.intent_service import CLASSIFY_PROMPT
from nest_assistant.services.llm import LLMProvider, LLMResponse
from nest_assistant.services.reply_service import Responder
from nest_assistant.services.router_service import InboundMessage, MessageRouter
from nest_assistant.services.state_service import InMemoryConversationStore

START = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeLLM(LLMProvider):
    """Answers classification requests with a canned intent and everything else with a canned answer."""

    def __init__(self, intent="assist", answer="Yes, the flat on Main St is still available."):
        self.intent = intent
        self.intents_by_text: dict = {}
        self.answer = answer
        self.answer_error: Optional[Exception] = None
        self.classify_calls: List[str] = []
        self.generate_calls: List[str] = []

    async def generate(self, messages, model=None, temperature=0.7, max_tokens=1000, timeout_seconds=None):
        system = messages[0]["content"]
        user = messages[-1]["content"]
        await asyncio.sleep(0)
        if system == CLASSIFY_PROMPT:
            self.classify_calls.append(user)
            intent = self.intents_by_text.get(user, self.intent)
            if isinstance(intent, Exception):
                raise intent
            return LLMResponse(content=intent, model="test-model")

        self.generate_calls.append(user)
        await asyncio.sleep(0)
        if self.answer_error:
            raise self.answer_error
        return LLMResponse(content=self.answer, model="test-model")


class FakeTransport(Transport):
    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def send_text(self, recipient_id: str, text: str) -> None:
        await asyncio.sleep(0)
        if self.fail:
            raise TransportError("gateway down")
        self.sent.append((recipient_id, text))

    def texts_for(self, recipient_id: str) -> list[str]:
        return [text for recipient, text in self.sent if recipient == recipient_id]


@pytest.fixture
def clock():
    return FakeClock(START)


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def store():
    return InMemoryConversationStore(dedup_ttl_seconds=300)


@pytest.fixture
def message_router(store, llm, transport, clock):
    return MessageRouter(
        store=store,
        llm=llm,
        responder=Responder(transport),
        ignored_contacts={"0000000000"},
        clock=clock,
    )


@pytest.fixture
def make_message(clock):
    counter = {"n": 0}

    def _make(text="Is the flat on Main St still available?", sender_id="447700900001", message_id=None, **kwargs):
        counter["n"] += 1
        return InboundMessage(
            sender_id=sender_id,
            text=text,
            message_id=message_id or f"msg-{counter['n']}",
            timestamp=kwargs.pop("timestamp", clock.now.timestamp()),
            **kwargs,
        )

    return _make


@pytest.fixture
def mock_env(monkeypatch):
    """Set test environment variables."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("GATEWAY_URL", "http://gateway.test/send")
    monkeypatch.setenv("GATEWAY_TOKEN", "gateway-token")
