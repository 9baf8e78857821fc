from enum import Enum


class Language(str, Enum):
    ENGLISH = "en"
    HINDI = "hi"
    TAMIL = "ta"
    TELUGU = "te"
    KANNADA = "kn"
    MALAYALAM = "ml"


LANGUAGE_NAMES = {
    Language.ENGLISH: "English",
    Language.HINDI: "Hindi",
    Language.TAMIL: "Tamil",
    Language.TELUGU: "Telugu",
    Language.KANNADA: "Kannada",
    Language.MALAYALAM: "Malayalam",
}


def normalize_language(code: str | None) -> Language:
    """Unknown or missing tags fall back to English."""
    try:
        return Language((code or "").strip().lower())
    except ValueError:
        return Language.ENGLISH


def get_language_name(code: str | None) -> str:
    return LANGUAGE_NAMES[normalize_language(code)]
