import logging
from typing import Any

from fastapi import HTTPException, status
from langchain_core.messages import HumanMessage
from pydantic import ValidationError

from croptech.core.genai_client import get_chat_model
from croptech.core.langchain_message_adapter import message_text
from croptech.models.crop_report import CropReport

logger = logging.getLogger(__name__)

REPORT_UNAVAILABLE_DETAIL = "Crop analysis service could not generate a report."


def _report_unavailable(reason: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"{REPORT_UNAVAILABLE_DETAIL} {reason}",
    )


def _build_report_model():
    # temperature=0 so the same prompt yields the same report.
    return get_chat_model(temperature=0).with_structured_output(
        CropReport, method="json_schema", include_raw=True
    )


def validate_report_response(result: dict[str, Any]) -> CropReport:
    """
    Turns an include_raw structured-output result into a CropReport.

    Empty answers, parser errors and schema violations (missing required
    fields, enum values out of set, non-numeric prices) all raise the same
    503 as a transport failure.
    """
    text = message_text(result.get("raw"))
    if not text.strip():
        raise _report_unavailable("No response from AI.")

    parsing_error = result.get("parsing_error")
    if parsing_error is not None:
        logger.warning("Crop report failed to parse: %s", parsing_error)
        raise _report_unavailable("Response did not match the report schema.")

    parsed = result.get("parsed")
    try:
        if isinstance(parsed, CropReport):
            return parsed
        if isinstance(parsed, dict):
            return CropReport.model_validate(parsed)
        return CropReport.model_validate_json(text)
    except ValidationError as exc:
        logger.warning("Crop report failed validation: %s", exc)
        raise _report_unavailable("Response did not match the report schema.") from exc


async def generate_crop_report(prompt: str) -> CropReport:
    model = _build_report_model()
    try:
        result = await model.ainvoke([HumanMessage(content=prompt)])
    except Exception as model_exc:
        logger.exception("Crop report model invocation failed")
        raise _report_unavailable("Model invocation failed.") from model_exc

    return validate_report_response(result)
