import asyncio
import logging
from typing import Any, Awaitable, Optional, Union

from fastapi import HTTPException, status
from pydantic import BaseModel

from croptech.core.config import settings
from croptech.models.ai_workflow import WorkflowType
from croptech.models.crop_report import CropReport
from croptech.models.language import get_language_name, normalize_language
from croptech.models.location import (
    AnalysisContext,
    Coordinates,
    CoordinatesQuery,
    FreeTextQuery,
    LocationQuery,
    PostalCodeQuery,
    ResolvedLocation,
    is_known_pin_code,
    is_pin_code,
)
from croptech.prompts.crop_analysis_prompt import CROP_ANALYSIS_PROMPT
from croptech.services.ai_workflow_runtime import (
    StreamEmitter,
    WorkflowRuntime,
    sanitize_http_error_message,
)
from croptech.services.live_context_service import LIVE_DATA_UNAVAILABLE, get_live_context
from croptech.services.location_resolver import resolve_location
from croptech.services.report_generator import generate_crop_report

logger = logging.getLogger(__name__)


class StagePolicy(BaseModel):
    """Timeout and fallback for a pipeline stage whose failure must not abort the run."""

    name: str
    timeout_seconds: float
    fallback: Any = None


def resolver_policy() -> StagePolicy:
    return StagePolicy(
        name="resolve_location",
        timeout_seconds=settings.RESOLVER_TIMEOUT_SECONDS,
        fallback=None,
    )


def live_context_policy() -> StagePolicy:
    return StagePolicy(
        name="fetch_live_context",
        timeout_seconds=settings.LIVE_CONTEXT_TIMEOUT_SECONDS,
        fallback=LIVE_DATA_UNAVAILABLE,
    )


async def run_absorbed_stage(policy: StagePolicy, awaitable: Awaitable[Any]) -> Any:
    try:
        return await asyncio.wait_for(awaitable, timeout=policy.timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning(
            "Stage %s timed out after %ss, using fallback",
            policy.name,
            policy.timeout_seconds,
        )
    except Exception:
        logger.exception("Stage %s failed, using fallback", policy.name)
    return policy.fallback


def classify_query(query: Union[str, dict, Coordinates, LocationQuery]) -> LocationQuery:
    """Free text, a 6-digit PIN code or a coordinate pair, decided by shape."""
    if isinstance(query, (FreeTextQuery, PostalCodeQuery, CoordinatesQuery)):
        return query
    if isinstance(query, dict):
        query = Coordinates.model_validate(query)
    if isinstance(query, Coordinates):
        return CoordinatesQuery(lat=query.lat, lng=query.lng)

    text = str(query).strip()
    if is_pin_code(text):
        return PostalCodeQuery(code=text)
    return FreeTextQuery(text=text)


def build_analysis_context(
    query: LocationQuery,
    resolved: Optional[ResolvedLocation] = None,
) -> AnalysisContext:
    if isinstance(query, CoordinatesQuery):
        return AnalysisContext(
            context=(
                "Specific Coordinates selected by user on map: "
                f"Latitude {query.lat}, Longitude {query.lng}"
            ),
            location_for_search=f"{query.lat},{query.lng} India",
        )

    if isinstance(query, PostalCodeQuery):
        return AnalysisContext(
            context=f"PIN code region: {query.code}",
            location_for_search=f"India PIN Code {query.code}",
            detected_postal_code=query.code,
        )

    if resolved is not None:
        return AnalysisContext(
            context=(
                f"Specific Location: {resolved.address} "
                f"(Coordinates: {resolved.lat}, {resolved.lng}). "
                f"Associated PIN: {resolved.postal_code}"
            ),
            location_for_search=resolved.address,
            detected_postal_code=(
                resolved.postal_code if is_known_pin_code(resolved.postal_code) else None
            ),
            resolved_location=resolved,
        )

    return AnalysisContext(
        context=f'Region named: "{query.text}"',
        location_for_search=query.text,
    )


def build_analysis_prompt(
    analysis_context: AnalysisContext,
    live_context: str,
    language: str = "en",
) -> str:
    return CROP_ANALYSIS_PROMPT.format(
        analysis_context=analysis_context.context,
        live_context=live_context,
        detected_pin=analysis_context.detected_postal_code or "",
        language_name=get_language_name(language),
    )


def _thread_detected_pin(report: CropReport, analysis_context: AnalysisContext) -> CropReport:
    detected = analysis_context.detected_postal_code
    if is_known_pin_code(detected) and not report.pin_code.strip():
        report.pin_code = detected
    return report


async def get_crop_analysis(
    query: Union[str, dict, Coordinates, LocationQuery],
    language: str = "en",
    *,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
    stream_emitter: Optional[StreamEmitter] = None,
) -> CropReport:
    """
    Runs the resolve -> live context -> report pipeline for one location.

    Resolver and live-context failures degrade the context; only a report
    generation failure raises. A report carrying an 'error' is returned as-is.
    """
    language = normalize_language(language).value
    workflow = WorkflowRuntime(
        action="crop_analysis",
        workflow_type=WorkflowType.CROP_ANALYSIS,
        emitter=stream_emitter,
        user_id=user_id,
        request_id=request_id,
        metadata={"language": language},
    )
    await workflow.start()

    try:
        await workflow.start_step("classify_query")
        location_query = classify_query(query)
        await workflow.complete_step("classify_query", {"kind": location_query.kind})

        resolved: Optional[ResolvedLocation] = None
        if isinstance(location_query, FreeTextQuery):
            policy = resolver_policy()
            await workflow.start_step(policy.name)
            resolved = await run_absorbed_stage(policy, resolve_location(location_query.text))
            await workflow.complete_step(policy.name, {"resolved": resolved is not None})
        else:
            await workflow.skip_step("resolve_location", reason=location_query.kind)

        analysis_context = build_analysis_context(location_query, resolved)
        await workflow.emit_chunk(
            step="resolve_location",
            chunk_type="analysis_context",
            data=analysis_context.model_dump(mode="json", exclude_none=True),
        )

        policy = live_context_policy()
        await workflow.start_step(policy.name)
        live_context = await run_absorbed_stage(
            policy, get_live_context(analysis_context.location_for_search)
        )
        await workflow.complete_step(policy.name)

        await workflow.start_step("generate_report")
        prompt = build_analysis_prompt(analysis_context, live_context, language)
        report = await generate_crop_report(prompt)
        report = _thread_detected_pin(report, analysis_context)
        await workflow.complete_step(
            "generate_report",
            {"pin_code": report.pin_code, "in_band_error": report.has_error},
        )

        await workflow.emit_result(report.model_dump(mode="json", exclude_none=True))
        await workflow.complete({"pin_code": report.pin_code})
        return report

    except asyncio.CancelledError:
        await workflow.cancel()
        raise
    except HTTPException as exc:
        await workflow.fail(
            error_message=sanitize_http_error_message(exc.detail),
            step=workflow.current_step,
            payload={"status_code": exc.status_code},
        )
        raise
    except Exception:
        logger.exception("Unexpected crop analysis failure for query=%r", query)
        await workflow.fail(
            error_message="Internal server error in crop analysis",
            step=workflow.current_step,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error in crop analysis",
        )
