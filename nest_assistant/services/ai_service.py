from nest_assistant.logging_config import get_logger
from nest_assistant.services.llm import LLMProvider

logger = get_logger("ai_service")

PERSONA_PROMPT = """You are Nest Assistant, a warm, friendly, and knowledgeable virtual assistant for Nest Homes & Interiors in Cardiff.
Always answer politely, clearly, and in a professional yet approachable way about properties, lettings, and general enquiries.
Keep answers concise but helpful."""

EMPTY_ANSWER_FALLBACK = "Sorry, I couldn't generate a reply just now."


async def generate_answer(llm: LLMProvider, message: str) -> str:
    """Generate the assistant's answer to a customer question.

    Provider errors propagate to the caller.
    """
    messages = [
        {"role": "system", "content": PERSONA_PROMPT},
        {"role": "user", "content": message},
    ]
    response = await llm.generate(messages)

    answer = (response.content or "").strip()
    if not answer:
        logger.warning(f"Empty answer from model {response.model}, using fallback")
        return EMPTY_ANSWER_FALLBACK
    return answer
