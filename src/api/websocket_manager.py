"""WebSocket fan-out for background job updates."""

import logging

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ("completed", "failed")


class WebSocketManager:
    """Connections grouped by job id.

    Late subscribers get the job's current snapshot first, so nobody misses
    the partial state published before they connected.
    """

    def __init__(self):
        self.connections: dict[str, list[WebSocket]] = {}

    async def connect(self, key: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self.connections.setdefault(key, []).append(websocket)

    async def broadcast(self, key: str, message: dict) -> None:
        """Send ``message`` to every client of ``key``; drops clients that fail."""
        disconnected = []
        for ws in self.connections.get(key, []):
            try:
                await ws.send_json(message)
            except Exception as e:
                logger.debug(f"Dropping WebSocket for {key}: {e}")
                disconnected.append(ws)

        for ws in disconnected:
            self.disconnect(key, ws)

    def disconnect(self, key: str, websocket: WebSocket) -> None:
        if websocket in self.connections.get(key, []):
            self.connections[key].remove(websocket)

    def cleanup(self, key: str) -> None:
        self.connections.pop(key, None)

    def ensure_key(self, key: str) -> None:
        self.connections.setdefault(key, [])

    async def serve(self, key: str, websocket: WebSocket, job: dict | None) -> None:
        """Run one job subscription: snapshot, then keepalive until the client leaves."""
        if job is None:
            await websocket.accept()
            await websocket.send_json({"type": "error", "message": "Job not found"})
            await websocket.close()
            return

        await self.connect(key, websocket)
        try:
            await websocket.send_json({"type": "status", "job_id": key, **job})
            if job["status"] in TERMINAL_STATUSES:
                msg_type = "complete" if job["status"] == "completed" else "error"
                await websocket.send_json({"type": msg_type, "job_id": key, **job})

            while True:
                try:
                    data = await websocket.receive_text()
                    if data == "ping":
                        await websocket.send_text("pong")
                except WebSocketDisconnect:
                    break
        except Exception as e:
            logger.error(f"WebSocket error for job {key}: {e}")
        finally:
            self.disconnect(key, websocket)
