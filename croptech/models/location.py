import re
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

PIN_CODE_PATTERN = re.compile(r"^[0-9]{6}$")
UNKNOWN_PIN_CODE = "000000"


class Coordinates(BaseModel):
    """A point picked on the map or detected by the device."""

    lat: float
    lng: float


class FreeTextQuery(BaseModel):
    kind: Literal["free_text"] = "free_text"
    text: str


class PostalCodeQuery(BaseModel):
    kind: Literal["postal_code"] = "postal_code"
    code: str


class CoordinatesQuery(BaseModel):
    kind: Literal["coordinates"] = "coordinates"
    lat: float
    lng: float


LocationQuery = Union[FreeTextQuery, PostalCodeQuery, CoordinatesQuery]

# Shape accepted from API callers before classification.
RawLocationQuery = Union[str, Coordinates]


def is_pin_code(value: Optional[str]) -> bool:
    return bool(value) and PIN_CODE_PATTERN.match(value) is not None


def is_known_pin_code(value: Optional[str]) -> bool:
    """A real PIN code, not the placeholder used when none was found."""
    return is_pin_code(value) and value != UNKNOWN_PIN_CODE


class ResolvedLocation(BaseModel):
    lat: float
    lng: float
    postal_code: str = Field(default=UNKNOWN_PIN_CODE)
    address: str


class AnalysisContext(BaseModel):
    context: str = Field(description="Natural-language description of the location")
    location_for_search: str = Field(
        description="Location text handed to the live context search"
    )
    detected_postal_code: Optional[str] = None
    resolved_location: Optional[ResolvedLocation] = None
