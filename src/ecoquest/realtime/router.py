"""WebSocket endpoint with channel multiplexing."""

import json
import uuid

import structlog
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from ecoquest.realtime.manager import manager

logger = structlog.get_logger()

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    user_id: str = Query(..., min_length=1),
) -> None:
    """Single WebSocket endpoint for live views.

    Protocol:
        Client -> Server:
            {"action": "subscribe", "channel": "leaderboard"}
            {"action": "unsubscribe", "channel": "leaderboard"}
            {"action": "ping"}

        Server -> Client:
            {"channel": "leaderboard", "data": {...}}
            {"type": "pong"}
            {"type": "error", "message": "..."}
            {"type": "subscribed", "channel": "leaderboard"}
            {"type": "unsubscribed", "channel": "leaderboard"}
    """
    conn_id = str(uuid.uuid4())
    await manager.connect(websocket, conn_id, user_id)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                continue

            action = msg.get("action") if isinstance(msg, dict) else None

            if action == "subscribe":
                channel = msg.get("channel", "")
                if await manager.subscribe(conn_id, channel):
                    await websocket.send_json({"type": "subscribed", "channel": channel})
                else:
                    await websocket.send_json({
                        "type": "error",
                        "message": f"Invalid channel: {channel}",
                    })

            elif action == "unsubscribe":
                channel = msg.get("channel", "")
                await manager.unsubscribe(conn_id, channel)
                await websocket.send_json({"type": "unsubscribed", "channel": channel})

            elif action == "ping":
                await websocket.send_json({"type": "pong"})

            else:
                await websocket.send_json({
                    "type": "error",
                    "message": f"Unknown action: {action}",
                })

    except WebSocketDisconnect:
        await manager.disconnect(conn_id)
    except Exception:
        logger.exception("ws_error", conn_id=conn_id)
        await manager.disconnect(conn_id)
