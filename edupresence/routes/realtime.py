# edupresence/routes/realtime.py
import uuid
from typing import Any, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from edupresence.services.notifications import ConnectionHub, Subscriber


router = APIRouter(tags=["Real-time"])

# Control actions; the join_class / leave_class spellings come from older dashboard clients.
JOIN_ACTIONS = {"join_group", "join_class"}
LEAVE_ACTIONS = {"leave_group", "leave_class"}


class WebSocketSubscriber(Subscriber):
    def __init__(self, websocket: WebSocket):
        self.id = uuid.uuid4().hex
        self.websocket = websocket

    async def send_json(self, message: Dict[str, Any]) -> None:
        await self.websocket.send_json(message)


def _class_id(message: Any):
    if not isinstance(message, dict):
        return None
    class_id = message.get("class_id")
    if isinstance(class_id, bool) or not isinstance(class_id, (str, int)):
        return None
    class_id = str(class_id).strip()
    return class_id or None


@router.websocket("/ws")
async def realtime_channel(websocket: WebSocket):
    """
    Dashboard channel. Every client receives ``session_started``; clients that
    send ``{"action": "join_group", "class_id": ...}`` also receive that
    class's ``attendance_marked`` events. Malformed messages are ignored.
    """
    hub: ConnectionHub = websocket.app.state.hub
    await websocket.accept()
    subscriber = WebSocketSubscriber(websocket)
    hub.connect(subscriber)
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                continue  # not JSON

            action = message.get("action") if isinstance(message, dict) else None
            class_id = _class_id(message)
            if class_id is None:
                continue

            if action in JOIN_ACTIONS:
                hub.join_group(subscriber.id, class_id)
                await subscriber.send_json({"event": "group_joined", "data": {"class_id": class_id}})
            elif action in LEAVE_ACTIONS:
                hub.leave_group(subscriber.id, class_id)
                await subscriber.send_json({"event": "group_left", "data": {"class_id": class_id}})
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(subscriber.id)
