from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from tableside.services.broadcaster import broadcaster

router = APIRouter(tags=["realtime"])
logger = logging.getLogger(__name__)

PONG_MESSAGE = json.dumps({"type": "pong", "data": None})


class WebSocketSubscriber:
    """Bridges the synchronous broadcaster onto one socket's event loop."""

    def __init__(self, websocket: WebSocket, loop: asyncio.AbstractEventLoop) -> None:
        self.websocket = websocket
        self.loop = loop

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
            and not self.loop.is_closed()
        )

    def send(self, message: str) -> None:
        future = asyncio.run_coroutine_threadsafe(self.websocket.send_text(message), self.loop)
        future.add_done_callback(self._on_sent)

    def _on_sent(self, future) -> None:
        if future.cancelled() or future.exception() is not None:
            logger.warning("websocket send failed, dropping terminal")
            broadcaster.disconnect(self)


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket):
    await websocket.accept()
    subscriber = WebSocketSubscriber(websocket, asyncio.get_running_loop())
    broadcaster.connect(subscriber)
    try:
        while True:
            message = await websocket.receive_text()
            if message.strip().lower() == "ping":
                await websocket.send_text(PONG_MESSAGE)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("websocket error")
    finally:
        broadcaster.disconnect(subscriber)
