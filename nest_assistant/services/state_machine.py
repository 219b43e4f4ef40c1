import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


class ConversationMode(str, Enum):
    NORMAL = "normal"
    HUMAN_HANDOFF = "human_handoff"


# HUMAN_HANDOFF -> HUMAN_HANDOFF is a re-entry that refreshes the timestamp
VALID_TRANSITIONS = {
    ConversationMode.NORMAL: [ConversationMode.HUMAN_HANDOFF],
    ConversationMode.HUMAN_HANDOFF: [ConversationMode.NORMAL, ConversationMode.HUMAN_HANDOFF],
}

RESUME_PATTERN = re.compile(r"resume|back to bot", re.IGNORECASE)


class InvalidTransitionError(Exception):
    def __init__(self, from_mode: ConversationMode, to_mode: ConversationMode):
        self.from_mode = from_mode
        self.to_mode = to_mode
        super().__init__(f"Invalid transition: {from_mode.value} -> {to_mode.value}")


@dataclass
class Conversation:
    sender_id: str
    mode: ConversationMode = ConversationMode.NORMAL
    handoff_entered_at: Optional[datetime] = None
    flagged_for_follow_up: bool = False

    @property
    def in_handoff(self) -> bool:
        return self.mode == ConversationMode.HUMAN_HANDOFF


class HandoffAction(str, Enum):
    CONTINUE = "continue"
    RESUME = "resume"
    TIMEOUT_RESUME = "timeout_resume"
    DEFER = "defer"


@dataclass(frozen=True)
class HandoffDecision:
    action: HandoffAction
    reenter: bool


def can_transition(from_mode: ConversationMode, to_mode: ConversationMode) -> bool:
    """Check if transition is valid."""
    allowed = VALID_TRANSITIONS.get(from_mode, [])
    return to_mode in allowed


def transition(from_mode: ConversationMode, to_mode: ConversationMode) -> ConversationMode:
    """Perform mode transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_mode, to_mode):
        raise InvalidTransitionError(from_mode, to_mode)
    return to_mode


def start_handoff(current_mode: ConversationMode) -> ConversationMode:
    """Hand the conversation to a human (or refresh an ongoing handoff)."""
    return transition(current_mode, ConversationMode.HUMAN_HANDOFF)


def end_handoff(current_mode: ConversationMode) -> ConversationMode:
    """Return the conversation to automated handling."""
    return transition(current_mode, ConversationMode.NORMAL)


def matches_resume(text: str) -> bool:
    return bool(text) and RESUME_PATTERN.search(text) is not None


def evaluate_handoff(
    conversation: Conversation,
    text: str,
    now: datetime,
    timeout: timedelta,
) -> HandoffDecision:
    """Decide what the handoff gate does with an incoming message.

    Pure: the caller applies the decision. ``reenter`` tells the caller
    whether the same message continues through the rest of the pipeline.
    """
    if not conversation.in_handoff:
        return HandoffDecision(HandoffAction.CONTINUE, reenter=True)

    if matches_resume(text):
        return HandoffDecision(HandoffAction.RESUME, reenter=False)

    entered_at = conversation.handoff_entered_at
    if entered_at is None or now - entered_at >= timeout:
        return HandoffDecision(HandoffAction.TIMEOUT_RESUME, reenter=True)

    return HandoffDecision(HandoffAction.DEFER, reenter=False)
