# croptech/api/websocket/manager.py
from fastapi import WebSocket
from typing import Dict, List


class ConnectionManager:
    def __init__(self) -> None:
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, user_id: str) -> None:
        await websocket.accept()
        self.active_connections.setdefault(user_id, []).append(websocket)

    def disconnect(self, websocket: WebSocket, user_id: str) -> None:
        connections = self.active_connections.get(user_id)
        if not connections:
            return
        if websocket in connections:
            connections.remove(websocket)
        if not connections:
            del self.active_connections[user_id]

    async def send_to_user(self, user_id: str, message: str) -> None:
        for connection in list(self.active_connections.get(user_id, [])):
            await connection.send_text(message)


manager = ConnectionManager()
