import logging

from langchain_core.prompts import ChatPromptTemplate

from croptech.core.genai_client import get_search_grounded_model
from croptech.core.langchain_message_adapter import message_text
from croptech.prompts.live_context_prompt import LIVE_CONTEXT_PROMPT

logger = logging.getLogger(__name__)

NO_LIVE_DATA = "No live data available."
LIVE_DATA_UNAVAILABLE = "Live data unavailable."


async def get_live_context(location_query: str) -> str:
    """
    Summarizes current weather and mandi prices near a location as free text.

    The summary is only used as grounding for the report prompt, so it is never
    parsed and failures degrade to a fixed sentence instead of raising.
    """
    try:
        prompt = ChatPromptTemplate.from_messages([("human", LIVE_CONTEXT_PROMPT)])
        messages = prompt.format_messages(location=location_query)
        response = await get_search_grounded_model().ainvoke(messages)
    except Exception:
        logger.exception("Live context search failed for location=%r", location_query)
        return LIVE_DATA_UNAVAILABLE

    summary = message_text(response).strip()
    return summary or NO_LIVE_DATA
