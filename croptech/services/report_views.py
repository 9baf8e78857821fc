from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from croptech.models.crop_report import CropReport, HistoricalCrop, SeasonalRecommendation


class SeasonKind(str, Enum):
    KHARIF = "kharif"
    RABI = "rabi"
    ZAID = "zaid"


class SeasonalCalendarEntry(BaseModel):
    season: str
    kind: SeasonKind
    recognized: bool
    crops: List[str]


class ReportViews(BaseModel):
    price_chart: List[Dict[str, Any]]
    seasonal_calendar: List[SeasonalCalendarEntry]


def classify_season(season_name: str) -> Optional[SeasonKind]:
    lower = (season_name or "").lower()
    for kind in (SeasonKind.KHARIF, SeasonKind.RABI, SeasonKind.ZAID):
        if kind.value in lower:
            return kind
    return None


def build_seasonal_calendar(
    seasons: List[SeasonalRecommendation],
) -> List[SeasonalCalendarEntry]:
    entries = []
    for season in seasons:
        kind = classify_season(season.season)
        entries.append(
            SeasonalCalendarEntry(
                season=season.season,
                # Unrecognized names fall through to the summer season.
                kind=kind or SeasonKind.ZAID,
                recognized=kind is not None,
                crops=list(season.crops),
            )
        )
    return entries


def build_price_chart(crops: List[HistoricalCrop]) -> List[Dict[str, Any]]:
    """
    Pivots per-crop yearly prices into one row per year.

    Years are aligned as a set, not by position: a crop with no entry for a
    year is simply absent from that row.
    """
    years = sorted({point.year for crop in crops for point in crop.yearly_data})

    rows = []
    for year in years:
        row: Dict[str, Any] = {"year": year}
        for crop in crops:
            for point in crop.yearly_data:
                if point.year == year:
                    row[crop.crop] = point.price
                    break
        rows.append(row)
    return rows


def build_report_views(report: CropReport) -> ReportViews:
    return ReportViews(
        price_chart=build_price_chart(report.historical_top_crops),
        seasonal_calendar=build_seasonal_calendar(report.seasonal_calendar),
    )
