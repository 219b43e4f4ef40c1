from abc import ABC, abstractmethod
from datetime import datetime, timedelta

from nest_assistant.logging_config import get_logger
from nest_assistant.services.state_machine import (
    Conversation,
    ConversationMode,
    end_handoff,
    start_handoff,
)

logger = get_logger("state_service")

DEFAULT_DEDUP_TTL_SECONDS = 5 * 60


class ConversationStore(ABC):
    """Per-conversation handoff state plus the dedup ledger of answered message ids."""

    @abstractmethod
    def get(self, sender_id: str) -> Conversation:
        """Return the conversation, creating a ``normal`` one if absent."""

    @abstractmethod
    def enter_handoff(self, sender_id: str, now: datetime) -> Conversation:
        pass

    @abstractmethod
    def exit_handoff(self, sender_id: str) -> Conversation:
        pass

    @abstractmethod
    def is_flagged(self, sender_id: str) -> bool:
        pass

    @abstractmethod
    def mark_dedup(self, message_id: str, now: datetime) -> None:
        pass

    @abstractmethod
    def is_duplicate(self, message_id: str, now: datetime) -> bool:
        pass

    @abstractmethod
    def expire_dedup(self, message_id: str) -> None:
        pass

    @abstractmethod
    def purge_expired(self, now: datetime) -> int:
        """Drop every dedup entry whose retention window has elapsed."""


class InMemoryConversationStore(ConversationStore):
    """Process-local store. Conversations are never evicted."""

    def __init__(self, dedup_ttl_seconds: float = DEFAULT_DEDUP_TTL_SECONDS):
        self.dedup_ttl = timedelta(seconds=dedup_ttl_seconds)
        self._conversations: dict[str, Conversation] = {}
        self._dedup: dict[str, datetime] = {}

    def get(self, sender_id: str) -> Conversation:
        conversation = self._conversations.get(sender_id)
        if conversation is None:
            conversation = Conversation(sender_id=sender_id)
            self._conversations[sender_id] = conversation
        return conversation

    def enter_handoff(self, sender_id: str, now: datetime) -> Conversation:
        conversation = self.get(sender_id)
        conversation.mode = start_handoff(conversation.mode)
        conversation.handoff_entered_at = now
        conversation.flagged_for_follow_up = True
        logger.info(f"Conversation {sender_id} flagged for human follow-up")
        return conversation

    def exit_handoff(self, sender_id: str) -> Conversation:
        conversation = self.get(sender_id)
        conversation.mode = end_handoff(conversation.mode)
        conversation.handoff_entered_at = None
        conversation.flagged_for_follow_up = False
        logger.info(f"Conversation {sender_id} returned to bot")
        return conversation

    def is_flagged(self, sender_id: str) -> bool:
        return self.get(sender_id).flagged_for_follow_up

    def mark_dedup(self, message_id: str, now: datetime) -> None:
        self._dedup[message_id] = now + self.dedup_ttl

    def is_duplicate(self, message_id: str, now: datetime) -> bool:
        expires_at = self._dedup.get(message_id)
        if expires_at is None:
            return False
        if now >= expires_at:
            self.expire_dedup(message_id)
            return False
        return True

    def expire_dedup(self, message_id: str) -> None:
        self._dedup.pop(message_id, None)

    def purge_expired(self, now: datetime) -> int:
        expired = [message_id for message_id, expires_at in self._dedup.items() if now >= expires_at]
        for message_id in expired:
            self.expire_dedup(message_id)
        return len(expired)


def check_invariants(conversation: Conversation) -> list[str]:
    """Check conversation state invariants. Returns a list of violations."""
    violations = []

    if conversation.mode == ConversationMode.HUMAN_HANDOFF and conversation.handoff_entered_at is None:
        violations.append("handoff_without_timestamp")

    if conversation.mode == ConversationMode.NORMAL and conversation.handoff_entered_at is not None:
        violations.append("timestamp_without_handoff")

    if conversation.mode == ConversationMode.NORMAL and conversation.flagged_for_follow_up:
        violations.append("flagged_without_handoff")

    return violations
