from nest_assistant.services.llm.base import LLMError, LLMProvider, LLMResponse
from nest_assistant.services.llm.openai_provider import OpenAIProvider

__all__ = ["LLMError", "LLMProvider", "LLMResponse", "OpenAIProvider"]
