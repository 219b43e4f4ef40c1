import time
from enum import Enum
from typing import Optional

import httpx

from nest_assistant.logging_config import get_logger
from nest_assistant.services.llm import LLMProvider

logger = get_logger("intent_service")

INTENT_TIMEOUT_SECONDS = 15.0


class Intent(str, Enum):
    ASSIST = "assist"  # Question about property, lettings, viewings, rentals, Nest services
    CHIT_CHAT = "chit-chat"  # Casual conversation or greetings
    HUMAN = "human"  # Asking for a real person
    UNRECOGNIZED = "unrecognized"  # Classifier answered with something else


ANSWERABLE_INTENTS = {Intent.ASSIST}

# Fail-open: an unavailable classifier must not silently drop real questions
FALLBACK_INTENT = Intent.ASSIST

CLASSIFY_PROMPT = """You are a message classifier for a property assistant.
Classify the user's message into one of these categories:
- "assist" (user is asking a question about property, lettings, viewings, rentals, Nest services)
- "chit-chat" (casual conversation or greetings)
- "human" (asking for a real person)
Return ONLY one of these words."""


def parse_intent(raw: Optional[str]) -> Intent:
    """Map the classifier's raw answer onto the closed intent set.

    Raises ValueError when there is no answer to parse at all.
    """
    if raw is None:
        raise ValueError("classifier returned no content")

    normalized = raw.strip().lower()
    for intent in (Intent.ASSIST, Intent.CHIT_CHAT, Intent.HUMAN):
        if normalized == intent.value:
            return intent
    return Intent.UNRECOGNIZED


async def classify_intent(
    llm: LLMProvider,
    message: str,
    timeout_seconds: float = INTENT_TIMEOUT_SECONDS,
) -> Intent:
    """Classify user message intent using LLM, falling back to ASSIST on any failure."""
    messages = [
        {"role": "system", "content": CLASSIFY_PROMPT},
        {"role": "user", "content": message},
    ]

    llm_start = time.monotonic()
    try:
        response = await llm.generate(messages, temperature=0.0, max_tokens=10, timeout_seconds=timeout_seconds)
        intent = parse_intent(response.content)
    except httpx.TimeoutException as exc:
        logger.warning(
            f"Intent LLM timeout after {timeout_seconds}s, defaulting to {FALLBACK_INTENT.value}: {exc}",
            extra={"context": {"timeout": True, "timeout_seconds": timeout_seconds}},
        )
        return FALLBACK_INTENT
    except Exception as exc:
        logger.warning(
            f"Classification error, defaulting to {FALLBACK_INTENT.value}: {exc}",
            extra={"context": {"error": str(exc)}},
        )
        return FALLBACK_INTENT

    logger.info(
        "Timing",
        extra={
            "context": {
                "stage": "intent_llm_ms",
                "elapsed_ms": round((time.monotonic() - llm_start) * 1000, 2),
                "intent": intent.value,
            }
        },
    )
    return intent


def should_answer(intent: Intent) -> bool:
    return intent in ANSWERABLE_INTENTS


def should_hand_off(intent: Intent) -> bool:
    return intent == Intent.HUMAN
