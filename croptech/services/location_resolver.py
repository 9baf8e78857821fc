import logging
import re
from typing import Optional

from langchain_core.prompts import ChatPromptTemplate

from croptech.core.genai_client import get_maps_grounded_model
from croptech.core.langchain_message_adapter import message_text
from croptech.models.location import UNKNOWN_PIN_CODE, ResolvedLocation
from croptech.prompts.location_resolution_prompt import LOCATION_RESOLUTION_PROMPT

logger = logging.getLogger(__name__)

_LAT_PATTERN = re.compile(r"LAT:\s*(-?[0-9]+(?:\.[0-9]+)?)")
_LNG_PATTERN = re.compile(r"LNG:\s*(-?[0-9]+(?:\.[0-9]+)?)")
_PIN_PATTERN = re.compile(r"PIN:\s*([0-9]{6})")
_ADDR_PATTERN = re.compile(r"ADDR:\s*(.+)")


def parse_location_line(text: str, fallback_address: str) -> Optional[ResolvedLocation]:
    """
    Extracts a location from a 'LAT: .., LNG: .., PIN: .., ADDR: ..' answer.

    Each field is matched independently. LAT and LNG are required; a missing
    PIN becomes '000000' and a missing ADDR becomes fallback_address.
    """
    if not text:
        return None

    lat_match = _LAT_PATTERN.search(text)
    lng_match = _LNG_PATTERN.search(text)
    if not lat_match or not lng_match:
        return None

    pin_match = _PIN_PATTERN.search(text)
    addr_match = _ADDR_PATTERN.search(text)

    address = fallback_address
    if addr_match:
        address = addr_match.group(1).strip().strip('"').strip() or fallback_address

    return ResolvedLocation(
        lat=float(lat_match.group(1)),
        lng=float(lng_match.group(1)),
        postal_code=pin_match.group(1) if pin_match else UNKNOWN_PIN_CODE,
        address=address,
    )


async def resolve_location(query: str) -> Optional[ResolvedLocation]:
    """Resolves a free-text place in India via a Google Maps grounded call.

    Never raises: any failure is logged and reported as None so the caller can
    continue with a degraded context.
    """
    try:
        prompt = ChatPromptTemplate.from_messages([("human", LOCATION_RESOLUTION_PROMPT)])
        messages = prompt.format_messages(query=query)
        response = await get_maps_grounded_model().ainvoke(messages)
        resolved = parse_location_line(message_text(response), fallback_address=query)
    except Exception:
        logger.exception("Location resolution failed for query=%r", query)
        return None

    if resolved is None:
        logger.warning("Location resolution returned no coordinates for query=%r", query)
    return resolved
