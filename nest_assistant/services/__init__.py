from nest_assistant.services.intent_service import Intent, classify_intent
from nest_assistant.services.relevance_service import is_relevant
from nest_assistant.services.reply_service import Responder
from nest_assistant.services.router_service import InboundMessage, MessageRouter, RouteAction, RouteResult
from nest_assistant.services.state_machine import (
    Conversation,
    ConversationMode,
    HandoffAction,
    HandoffDecision,
    InvalidTransitionError,
    evaluate_handoff,
    transition,
)
from nest_assistant.services.state_service import ConversationStore, InMemoryConversationStore
