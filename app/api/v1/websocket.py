from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

UPDATES_ROOM = "updates"

class ConnectionManager:
    def __init__(self):
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, room_id: str):
        await websocket.accept()
        if room_id not in self.active_connections:
            self.active_connections[room_id] = []
        self.active_connections[room_id].append(websocket)

    def disconnect(self, websocket: WebSocket, room_id: str):
        if room_id in self.active_connections:
            if websocket in self.active_connections[room_id]:
                self.active_connections[room_id].remove(websocket)
            if not self.active_connections[room_id]:
                del self.active_connections[room_id]

    def connection_count(self, room_id: str) -> int:
        return len(self.active_connections.get(room_id, []))

    async def broadcast_to_room(self, room_id: str, message: dict):
        stale = []
        for connection in list(self.active_connections.get(room_id, [])):
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.warning(f"Dropping websocket in {room_id}: {e}")
                stale.append(connection)
        for connection in stale:
            self.disconnect(connection, room_id)

manager = ConnectionManager()

@router.websocket("/ws/updates")
async def updates_websocket(websocket: WebSocket):
    """
    WebSocket endpoint for back-office clients
    Receives a data-update event whenever a record changes
    """
    await manager.connect(websocket, UPDATES_ROOM)

    try:
        while True:
            # Keep connection alive
            data = await websocket.receive_json()

            if data.get("type") == "ping":
                await websocket.send_json({"type": "pong"})

    except WebSocketDisconnect:
        manager.disconnect(websocket, UPDATES_ROOM)

# Helper function to broadcast from other parts of the application
async def broadcast_data_update(entity_type: str, action: str, data: Optional[Any] = None):
    """Tell every connected client that a record was created, updated or deleted"""
    await manager.broadcast_to_room(
        UPDATES_ROOM,
        {
            "type": "data-update",
            "entity_type": entity_type,
            "action": action,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    )
