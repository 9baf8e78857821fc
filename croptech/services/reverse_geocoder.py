import asyncio
import logging
import re
from typing import Optional

from langchain_core.prompts import ChatPromptTemplate

from croptech.core.config import settings
from croptech.core.genai_client import get_maps_grounded_model
from croptech.core.langchain_message_adapter import message_text
from croptech.prompts.reverse_geocode_prompt import REVERSE_GEOCODE_PROMPT

logger = logging.getLogger(__name__)

_STANDALONE_PIN_PATTERN = re.compile(r"\b[0-9]{6}\b")


def extract_pin_code(text: str) -> Optional[str]:
    if not text:
        return None
    match = _STANDALONE_PIN_PATTERN.search(text)
    return match.group(0) if match else None


async def get_pin_from_coordinates(lat: float, lng: float) -> Optional[str]:
    """Looks up the 6-digit PIN code for a coordinate, or None."""
    try:
        prompt = ChatPromptTemplate.from_messages([("human", REVERSE_GEOCODE_PROMPT)])
        messages = prompt.format_messages(lat=lat, lng=lng)
        model = get_maps_grounded_model(latitude=lat, longitude=lng)
        response = await asyncio.wait_for(
            model.ainvoke(messages),
            timeout=settings.REVERSE_GEOCODE_TIMEOUT_SECONDS,
        )
    except Exception:
        logger.exception("Reverse geocoding failed for lat=%s lng=%s", lat, lng)
        return None

    return extract_pin_code(message_text(response))
