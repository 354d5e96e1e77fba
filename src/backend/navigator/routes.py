# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import asyncio
import json
import logging
from contextlib import suppress

from fastapi import APIRouter, HTTPException, Request, WebSocket, WebSocketDisconnect

from navigator.runtime import Runtime
from navigator.schemas import StateMessage
from navigator.state import StateStore

logger = logging.getLogger(__name__)

router = APIRouter()


def _runtime(app_state: object) -> Runtime:
    runtime = getattr(app_state, "runtime", None)
    if runtime is None:
        raise HTTPException(503, "pipeline not running")
    return runtime


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "service": "navigator"}


@router.get("/state", response_model=StateMessage)
def state(request: Request) -> StateMessage:
    """Latest published state, heat-map included."""
    return StateMessage.from_state(_runtime(request.app.state).store.current)


async def _stream_states(websocket: WebSocket, store: StateStore) -> None:
    queue = store.subscribe()
    try:
        while True:
            published = await queue.get()
            message = StateMessage.from_state(published)
            await websocket.send_text(message.model_dump_json())
    finally:
        store.unsubscribe(queue)


async def _answer_pings(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive_text()
        try:
            data = json.loads(message)
        except json.JSONDecodeError:
            # Ignore malformed messages
            continue
        if isinstance(data, dict) and data.get("type") == "ping":
            await websocket.send_text(json.dumps({"type": "pong"}))


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """
    Streams every published state to the client.

    A slow client skips intermediate states rather than buffering them.
    Clients may send ``{"type": "ping"}`` and get ``{"type": "pong"}`` back.
    """
    runtime = getattr(websocket.app.state, "runtime", None)
    if runtime is None:
        await websocket.close(code=1013)
        return

    await websocket.accept()
    sender = asyncio.create_task(_stream_states(websocket, runtime.store))
    receiver = asyncio.create_task(_answer_pings(websocket))
    try:
        done, _ = await asyncio.wait(
            {sender, receiver}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in done:
            err = task.exception()
            if err is not None and not isinstance(err, WebSocketDisconnect):
                logger.warning("WebSocket stream ended", extra={"error": str(err)})
    finally:
        for task in (sender, receiver):
            task.cancel()
            with suppress(asyncio.CancelledError, WebSocketDisconnect):
                await task
