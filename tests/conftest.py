"""
Shared fixtures. Gemini is never called: every test patches the model factory
or the service it exercises.
"""

import copy
import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-croptech-unit-tests-0123456789")
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")

import pytest
from unittest.mock import AsyncMock, MagicMock

from langchain_core.messages import AIMessage

SAMPLE_REPORT = {
    "pin_code": "400001",
    "location_info": {
        "state": "Maharashtra",
        "district": "Mumbai",
        "tehsil": "Mumbai City",
        "soil_type": "Coastal alluvial",
        "ph_range": "6.5-7.5",
        "nitrogen": "Medium",
        "phosphorus": "Low",
        "potassium": "High",
        "organic_matter": "Medium",
        "temperature": "31°C",
        "weather_condition": "Humid",
        "coordinates": {"lat": 18.9388, "lng": 72.8354},
    },
    "historical_top_crops": [
        {
            "crop": "Rice",
            "yearly_data": [
                {"year": "2020", "price": 1868, "yield_trend": "Medium"},
                {"year": "2021", "price": 1940, "yield_trend": "High"},
                {"year": "2022", "price": 2040, "yield_trend": "High"},
                {"year": "2023", "price": 2183, "yield_trend": "Medium"},
                {"year": "2024", "price": 2300, "yield_trend": "Medium"},
            ],
        },
        {
            "crop": "Groundnut",
            "yearly_data": [
                {"year": "2021", "price": 5550, "yield_trend": "Low"},
                {"year": "2020", "price": 5275, "yield_trend": "Medium"},
                {"year": "2023", "price": 6377, "yield_trend": "Medium"},
            ],
        },
    ],
    "seasonal_calendar": [
        {"season": "Kharif (June-October)", "crops": ["Rice", "Groundnut"]},
        {"season": "Rabi (November-March)", "crops": ["Wheat", "Gram"]},
        {"season": "Zaid (March-June)", "crops": ["Watermelon", "Cucumber"]},
    ],
    "future_recommendations": [
        {
            "crop": "Turmeric",
            "reason": "Good rain and strong mandi demand.",
            "suitability_score": 88,
            "current_price": 14500,
            "price_trend": "Up",
        },
        {
            "crop": "Finger Millet",
            "reason": "Needs little water and sells well.",
            "suitability_score": 74,
        },
    ],
}


@pytest.fixture
def report_payload():
    return copy.deepcopy(SAMPLE_REPORT)


@pytest.fixture
def report(report_payload):
    from croptech.models.crop_report import CropReport

    return CropReport.model_validate(report_payload)


def fake_grounded_model(text=None, error=None):
    """A stand-in for a tool-bound chat model whose ainvoke answers with `text`."""
    model = MagicMock()
    if error is not None:
        model.ainvoke = AsyncMock(side_effect=error)
    else:
        model.ainvoke = AsyncMock(return_value=AIMessage(content=text))
    return model


@pytest.fixture
def make_grounded_model():
    return fake_grounded_model
