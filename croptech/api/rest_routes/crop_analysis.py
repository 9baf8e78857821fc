from typing import Union

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator

from croptech.core.security import verify_jwt
from croptech.models.crop_report import CropAnalysisError, CropReport
from croptech.models.location import Coordinates
from croptech.services.crop_analysis_service import get_crop_analysis
from croptech.services.report_views import ReportViews, build_report_views

router = APIRouter(prefix="/crop-analysis", tags=["Crop Analysis"])


class CropAnalysisRequest(BaseModel):
    query: Union[Coordinates, str] = Field(
        description="Place name, 6-digit PIN code, or a {lat, lng} pair"
    )
    language: str = Field(default="en", description="One of en, hi, ta, te, kn, ml")

    @field_validator("query")
    @classmethod
    def _strip_text_query(cls, value):
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("query must not be empty")
        return value


@router.post(
    "",
    response_model=Union[CropReport, CropAnalysisError],
    status_code=status.HTTP_200_OK,
    summary="Analyze a location",
    response_model_exclude_none=True,
)
async def analyze_location(
    payload: CropAnalysisRequest, user_payload: dict = Depends(verify_jwt)
) -> Union[CropReport, CropAnalysisError]:
    """
    Builds the agronomic report for a location.

    A report whose 'error' field is set is still a 200: the location was not
    understood, and the message is meant for the user. Only the error and
    the PIN code are returned then; the rest of the report is filler.
    """
    report = await get_crop_analysis(
        payload.query,
        payload.language,
        user_id=user_payload.get("sub"),
    )
    if report.has_error:
        return CropAnalysisError(pin_code=report.pin_code, error=report.error.strip())
    return report


@router.post(
    "/views",
    response_model=ReportViews,
    summary="Chart and calendar views of a report",
)
async def get_report_views(
    report: CropReport, user_payload: dict = Depends(verify_jwt)
) -> ReportViews:
    return build_report_views(report)
