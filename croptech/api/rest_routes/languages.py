from typing import List

from fastapi import APIRouter
from pydantic import BaseModel

from croptech.models.language import LANGUAGE_NAMES

router = APIRouter(prefix="/languages", tags=["Languages"])


class SupportedLanguage(BaseModel):
    code: str
    name: str


@router.get("", response_model=List[SupportedLanguage])
async def list_languages():
    return [
        SupportedLanguage(code=language.value, name=name)
        for language, name in LANGUAGE_NAMES.items()
    ]
