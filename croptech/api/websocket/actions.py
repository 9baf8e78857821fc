# croptech/api/websocket/actions.py
import json

from fastapi import HTTPException, status
from pydantic import ValidationError

from croptech.models.location import Coordinates
from croptech.services.analysis_session import AnalysisSession, AnalysisState

from .manager import manager


def build_stream_emitter(user_id: str):
    async def _emitter(payload: dict):
        await manager.send_to_user(user_id, json.dumps(payload, default=str))

    return _emitter


def build_state_listener(user_id: str):
    async def _listener(state: AnalysisState):
        response = {"action": "analysis_state", "data": state.to_message()}
        await manager.send_to_user(user_id, json.dumps(response, default=str))

    return _listener


def _parse_query(raw_query):
    if isinstance(raw_query, dict):
        try:
            return Coordinates(**raw_query)
        except ValidationError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="query coordinates must contain numeric lat and lng",
            )
    if isinstance(raw_query, str) and raw_query.strip():
        return raw_query.strip()
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="query is required for crop_analysis",
    )


def _parse_coordinates(data: dict) -> Coordinates:
    try:
        return Coordinates(lat=data.get("lat"), lng=data.get("lng"))
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="lat and lng are required for detect_location",
        )


async def crop_analysis_handler(session: AnalysisSession, data: dict):
    query = _parse_query(data.get("query"))
    await session.search(query, data.get("language"))


async def change_language_handler(session: AnalysisSession, data: dict):
    language = data.get("language")
    if not language:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="language is required for change_language",
        )
    await session.change_language(language)


async def detect_location_handler(session: AnalysisSession, data: dict):
    coordinates = _parse_coordinates(data)
    result = await session.detect_location(coordinates.lat, coordinates.lng)
    response = {"action": "detect_location", "data": result.model_dump(mode="json")}
    await manager.send_to_user(session.user_id, json.dumps(response))


async def reset_analysis_handler(session: AnalysisSession, data: dict):
    await session.reset()


actions = {
    "crop_analysis": crop_analysis_handler,
    "change_language": change_language_handler,
    "detect_location": detect_location_handler,
    "reset_analysis": reset_analysis_handler,
}


async def dispatch_action(session: AnalysisSession, action: str, data: dict):
    try:
        await actions[action](session, data)
    except HTTPException as e:
        response = {
            "action": action,
            "error": {"status_code": e.status_code, "message": e.detail},
        }
        await manager.send_to_user(session.user_id, json.dumps(response))
