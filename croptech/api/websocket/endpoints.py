# croptech/api/websocket/endpoints.py
import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from croptech.core.security import decode_access_token
from croptech.services.analysis_session import AnalysisSession

from .actions import actions, build_state_listener, build_stream_emitter, dispatch_action
from .manager import manager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    user_id: str | None = None
    session: AnalysisSession | None = None
    pending: set[asyncio.Task] = set()
    try:
        # Verify the JWT from the WebSocket headers.
        token_header: str | None = websocket.headers.get("Authorization")
        if not token_header or not token_header.startswith("Bearer "):
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        token = token_header.split(" ")[1]
        try:
            user_payload = decode_access_token(token)
        except Exception:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        user_id = user_payload.get("sub")
        language: str = user_payload.get("language", "en")

        if not user_id:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        await manager.connect(websocket, user_id)
        session = AnalysisSession(
            language=language,
            user_id=user_id,
            on_state_change=build_state_listener(user_id),
            stream_emitter=build_stream_emitter(user_id),
        )

        while True:
            raw_data = await websocket.receive_text()
            try:
                message = json.loads(raw_data)
            except json.JSONDecodeError:
                await websocket.send_text("Invalid JSON")
                continue

            action = message.get("action")
            data = message.get("data") or {}
            if action not in actions:
                await websocket.send_text(f"Unknown action: {action}")
                continue

            # Run actions as tasks so a newer search can supersede one in flight.
            task = asyncio.create_task(dispatch_action(session, action, data))
            pending.add(task)
            task.add_done_callback(pending.discard)
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected for user_id=%s", user_id)
    except Exception:
        logger.exception("WebSocket session failed for user_id=%s", user_id)
    finally:
        for task in pending:
            task.cancel()
        if session is not None:
            await session.close()
        if user_id:
            manager.disconnect(websocket, user_id)
