from typing import Optional

from langchain_google_genai import (
    ChatGoogleGenerativeAI,
    HarmBlockThreshold,
    HarmCategory,
)

from .config import settings

DEFAULT_SAFETY_SETTINGS = {
    HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_LOW_AND_ABOVE,
}


def get_chat_model(model: Optional[str] = None, **kwargs) -> ChatGoogleGenerativeAI:
    if "google_api_key" not in kwargs and "api_key" not in kwargs:
        kwargs["google_api_key"] = settings.GEMINI_API_KEY
    if "safety_settings" not in kwargs:
        kwargs["safety_settings"] = DEFAULT_SAFETY_SETTINGS
    return ChatGoogleGenerativeAI(model=model or settings.GEMINI_MODEL, **kwargs)


def get_maps_grounded_model(
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    **kwargs,
):
    """Chat model with the Google Maps grounding tool attached.

    When a coordinate is given, retrieval is biased towards it.
    """
    bind_kwargs = {}
    if latitude is not None and longitude is not None:
        bind_kwargs["tool_config"] = {
            "retrieval_config": {
                "lat_lng": {"latitude": latitude, "longitude": longitude}
            }
        }
    return get_chat_model(**kwargs).bind_tools([{"google_maps": {}}], **bind_kwargs)


def get_search_grounded_model(**kwargs):
    return get_chat_model(**kwargs).bind_tools([{"google_search": {}}])
