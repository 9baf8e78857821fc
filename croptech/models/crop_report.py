from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class YieldTrend(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class PriceTrend(str, Enum):
    UP = "Up"
    DOWN = "Down"
    STABLE = "Stable"


class GeoPoint(BaseModel):
    lat: float
    lng: float


class LocationInfo(BaseModel):
    state: str
    district: str
    tehsil: str = Field(default="")
    soil_type: str
    ph_range: str
    nitrogen: Optional[str] = Field(
        default=None, description="Nitrogen content level (Low/Medium/High)"
    )
    phosphorus: Optional[str] = Field(
        default=None, description="Phosphorus content level (Low/Medium/High)"
    )
    potassium: Optional[str] = Field(
        default=None, description="Potassium content level (Low/Medium/High)"
    )
    organic_matter: Optional[str] = Field(
        default=None, description="Organic matter content (Low/Medium/High)"
    )
    temperature: Optional[str] = Field(
        default=None, description="Current temperature e.g., '32°C'"
    )
    weather_condition: Optional[str] = Field(
        default=None,
        description="Current weather description e.g., 'Sunny', 'Partly Cloudy'",
    )
    coordinates: Optional[GeoPoint] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_optional_fields(cls, values):
        if not isinstance(values, dict):
            return values

        coordinates = values.get("coordinates")
        if isinstance(coordinates, dict) and (
            coordinates.get("lat") is None or coordinates.get("lng") is None
        ):
            values = dict(values)
            values["coordinates"] = None
        if values.get("tehsil") is None and "tehsil" in values:
            values = dict(values)
            values["tehsil"] = ""
        return values


class YearlyData(BaseModel):
    year: str = Field(description="Year (e.g., '2023')")
    price: float = Field(
        allow_inf_nan=False,
        description="Average market price per quintal in INR (numeric value only)",
    )
    yield_trend: YieldTrend


class HistoricalCrop(BaseModel):
    crop: str
    yearly_data: List[YearlyData] = Field(
        description="Data for the past 5 years (e.g., 2020-2024)"
    )


class SeasonalRecommendation(BaseModel):
    season: str = Field(description="Name of the season (Kharif, Rabi, Zaid)")
    crops: List[str]


class FutureRecommendation(BaseModel):
    crop: str
    reason: str
    suitability_score: int = Field(
        ge=0,
        le=100,
        description="A score from 0 to 100 indicating the suitability match percentage.",
    )
    current_price: Optional[float] = Field(
        default=None,
        allow_inf_nan=False,
        description="Current live market price estimate per quintal",
    )
    price_trend: Optional[PriceTrend] = Field(
        default=None, description="Current market trend"
    )


class CropReport(BaseModel):
    """Agronomic report for one location. Keys are always English."""

    pin_code: str
    error: Optional[str] = None
    location_info: LocationInfo
    historical_top_crops: List[HistoricalCrop] = Field(
        description="Top 3-5 historical crops with 5-year revenue data"
    )
    seasonal_calendar: List[SeasonalRecommendation] = Field(
        description="List of 3 seasonal recommendations: Kharif, Rabi, and Zaid"
    )
    future_recommendations: List[FutureRecommendation]

    @property
    def has_error(self) -> bool:
        return bool(self.error and self.error.strip())


class CropAnalysisError(BaseModel):
    """What a caller sees when the location could not be understood."""

    pin_code: str
    error: str
