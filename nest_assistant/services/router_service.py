import asyncio
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Iterable, Optional

from nest_assistant.logging_config import LoggerAdapter, get_logger
from nest_assistant.services.ai_service import generate_answer
from nest_assistant.services.intent_service import (
    INTENT_TIMEOUT_SECONDS,
    Intent,
    classify_intent,
    should_answer,
    should_hand_off,
)
from nest_assistant.services.llm import LLMProvider
from nest_assistant.services.relevance_service import is_relevant
from nest_assistant.services.reply_service import Responder, format_answer
from nest_assistant.services.state_machine import HandoffAction, evaluate_handoff
from nest_assistant.services.state_service import ConversationStore

logger = get_logger("router_service")

HANDOFF_TIMEOUT = timedelta(hours=4)

MSG_RESUMED = "Nest Assistant is back! How can I help you today?"
MSG_CHECK_IN = "Just checking in, I’m back if you still need help! How can I assist?"
MSG_HANDOFF = (
    "📩 Your Request Is Noted 📩 Our team will contact you soon. "
    "Only reply if it’s urgent, replying unnecessarily can slow things down. "
    "If you want me back sooner, just type 'resume'."
)
MSG_APOLOGY = "Sorry, I’m having trouble answering right now."


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class InboundMessage:
    sender_id: str
    text: object
    message_id: str
    timestamp: float  # epoch seconds
    from_self: bool = False


class RouteAction(str, Enum):
    IGNORED_CONTACT = "ignored_contact"
    FROM_SELF = "from_self"
    BEFORE_WATERMARK = "before_watermark"
    NOT_RELEVANT = "not_relevant"
    RESUMED = "resumed"
    HANDOFF_DEFERRED = "handoff_deferred"
    HANDOFF_STARTED = "handoff_started"
    CHIT_CHAT = "chit_chat"
    FLAGGED = "flagged"
    DUPLICATE = "duplicate"
    ANSWERED = "answered"
    ERROR = "error"


@dataclass
class RouteResult:
    action: RouteAction
    replies: list[str] = field(default_factory=list)
    intent: Optional[Intent] = None


class MessageRouter:
    """Decides, per inbound message, whether to answer, hand off to a human or stay silent.

    Messages from one sender are processed one at a time; different senders
    never wait on each other.
    """

    def __init__(
        self,
        store: ConversationStore,
        llm: LLMProvider,
        responder: Responder,
        ignored_contacts: Iterable[str] = (),
        handoff_timeout: timedelta = HANDOFF_TIMEOUT,
        intent_timeout_seconds: float = INTENT_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.llm = llm
        self.responder = responder
        self.ignored_contacts = frozenset(ignored_contacts)
        self.handoff_timeout = handoff_timeout
        self.intent_timeout_seconds = intent_timeout_seconds
        self.clock = clock
        self.watermark = clock().replace(microsecond=0)
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, sender_id: str) -> asyncio.Lock:
        lock = self._locks.get(sender_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[sender_id] = lock
        return lock

    def is_before_watermark(self, timestamp: float) -> bool:
        # Non-finite values cannot be ordered against the watermark
        if not math.isfinite(timestamp):
            return True
        return timestamp < self.watermark.timestamp()

    async def handle(self, message: InboundMessage) -> RouteResult:
        """Route one inbound message. Never raises."""
        log = LoggerAdapter(logger, {"sender_id": message.sender_id, "message_id": message.message_id})
        result = RouteResult(action=RouteAction.ERROR)
        try:
            result = await self._route(message, result, log)
        except Exception as exc:
            await self._apologize(message, result, log, exc)
        log.info("Message routed", context={"action": result.action.value, "replies": len(result.replies)})
        return result

    async def _apologize(
        self, message: InboundMessage, result: RouteResult, log: LoggerAdapter, exc: Exception
    ) -> None:
        log.exception(f"Error handling message: {exc}")
        result.action = RouteAction.ERROR
        sent = await self.responder.try_send(message.sender_id, MSG_APOLOGY)
        if sent.ok:
            result.replies.append(MSG_APOLOGY)

    async def _route(self, message: InboundMessage, result: RouteResult, log: LoggerAdapter) -> RouteResult:
        sender_id = message.sender_id

        if sender_id in self.ignored_contacts:
            result.action = RouteAction.IGNORED_CONTACT
            return result

        if message.from_self:
            result.action = RouteAction.FROM_SELF
            return result

        if self.is_before_watermark(message.timestamp):
            result.action = RouteAction.BEFORE_WATERMARK
            return result

        if not is_relevant(message.text):
            log.info(f"Skipping trivial message from {sender_id}: {message.text!r}")
            result.action = RouteAction.NOT_RELEVANT
            return result

        # Apologies are sent before the sender lock is released
        async with self._lock_for(sender_id):
            try:
                return await self._route_conversation(message, result, log)
            except Exception as exc:
                await self._apologize(message, result, log, exc)
                return result

    async def _route_conversation(
        self, message: InboundMessage, result: RouteResult, log: LoggerAdapter
    ) -> RouteResult:
        sender_id = message.sender_id
        conversation = self.store.get(sender_id)
        decision = evaluate_handoff(conversation, message.text, self.clock(), self.handoff_timeout)

        if decision.action == HandoffAction.RESUME:
            self.store.exit_handoff(sender_id)
            await self._reply(sender_id, MSG_RESUMED, result)
            result.action = RouteAction.RESUMED
            return result

        if decision.action == HandoffAction.TIMEOUT_RESUME:
            log.info(f"Handoff timed out for {sender_id}, returning to bot")
            self.store.exit_handoff(sender_id)
            await self._reply(sender_id, MSG_CHECK_IN, result)

        if not decision.reenter:
            result.action = RouteAction.HANDOFF_DEFERRED
            return result

        return await self._triage(message, result, log)

    async def _triage(self, message: InboundMessage, result: RouteResult, log: LoggerAdapter) -> RouteResult:
        sender_id = message.sender_id

        intent = await classify_intent(self.llm, message.text, timeout_seconds=self.intent_timeout_seconds)
        result.intent = intent

        if should_hand_off(intent):
            self.store.enter_handoff(sender_id, self.clock())
            await self._reply(sender_id, MSG_HANDOFF, result)
            result.action = RouteAction.HANDOFF_STARTED
            return result

        if not should_answer(intent):
            log.info(f"Ignoring chit-chat from {sender_id}", context={"intent": intent.value})
            result.action = RouteAction.CHIT_CHAT
            return result

        if self.store.is_flagged(sender_id):
            log.info(f"Ignoring {sender_id} (waiting for human)")
            result.action = RouteAction.FLAGGED
            return result

        if self.store.is_duplicate(message.message_id, self.clock()):
            result.action = RouteAction.DUPLICATE
            return result

        self.store.mark_dedup(message.message_id, self.clock())

        answer = await generate_answer(self.llm, message.text)
        await self.responder.send_answer(sender_id, answer)
        result.replies.append(format_answer(answer))
        result.action = RouteAction.ANSWERED
        log.info(f"Replied to {sender_id} as Nest Assistant")
        return result

    async def _reply(self, sender_id: str, text: str, result: RouteResult) -> None:
        await self.responder.send(sender_id, text)
        result.replies.append(text)
