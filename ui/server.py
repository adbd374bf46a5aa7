"""
Deku Task Tracker API Server

FastAPI-based server providing:
- REST API for tasks and subtasks (create, complete, delete, list)
- Schedule view with overdue status and due-date wording
- Server-Sent Events stream of change signals (/api/updates)
- WebSocket carrying the same change signals (/ws)
"""

import asyncio
import json
from typing import AsyncIterator, Awaitable, Callable, Optional

from fastapi import FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from deku_tracker import __version__
from deku_tracker.config import TrackerConfig
from deku_tracker.core import ChangeSubscription, EventBus, TaskStore, schedule_view
from deku_tracker.models import format_timestamp, utc_now
from deku_tracker.utils import get_logger
from deku_tracker.utils.comprehensive_logger import ComprehensiveLogger
from deku_tracker.utils.exceptions import TrackerError

logger = get_logger(__name__)

HEARTBEAT_SECONDS = 15.0


# ============================================================================
# PYDANTIC MODELS
# ============================================================================

class TaskCreate(BaseModel):
    text: str
    cycle: Optional[str] = None


class StatusUpdate(BaseModel):
    complete: bool


# ============================================================================
# HELPERS
# ============================================================================

def http_error(exc: TrackerError) -> HTTPException:
    """Wrap a tracker exception in the HTTP status its class declares."""
    if exc.http_status >= 500:
        logger.log_exception(f"Request failed: {exc.message}", exc)
    return HTTPException(status_code=exc.http_status, detail=exc.to_dict())


async def update_stream(
    is_disconnected: Callable[[], Awaitable[bool]],
    subscription: ChangeSubscription,
    retry_ms: int = 1000,
    heartbeat: float = HEARTBEAT_SECONDS,
) -> AsyncIterator[str]:
    """
    Server-Sent Events body: one "data: update" frame per change.

    A comment frame is sent when nothing happened for ``heartbeat`` seconds
    so dead connections are noticed. The subscription is released when the
    client goes away.
    """
    try:
        yield f"retry: {retry_ms}\n\n"
        while not await is_disconnected():
            try:
                await subscription.get(timeout=heartbeat)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield "data: update\n\n"
    finally:
        subscription.close()


# ============================================================================
# APP SETUP
# ============================================================================

def create_app(
    config: Optional[TrackerConfig] = None,
    store: Optional[TaskStore] = None,
    event_bus: Optional[EventBus] = None,
) -> FastAPI:
    """
    Build the API application.

    Without arguments the configuration comes from the environment and the
    store persists to the configured JSON file.
    """
    config = config or TrackerConfig.from_env()
    if event_bus is None:
        event_bus = store.event_bus if store is not None and store.event_bus is not None else EventBus()
    if store is None:
        store = TaskStore(config.db_file, event_bus=event_bus)
    elif store.event_bus is None:
        store.event_bus = event_bus

    app = FastAPI(
        title="Deku Task Tracker",
        description="Tasks, subtasks, recurring due dates and live updates",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.store = store
    app.state.event_bus = event_bus

    # ========================================================================
    # TASK API
    # ========================================================================

    @app.get("/api/tasks")
    async def list_tasks(order: Optional[str] = Query(None, pattern="^(insertion|status)$")):
        tasks = store.list_tasks_for_display() if order == "status" else store.list_tasks()
        return [t.to_dict() for t in tasks]

    @app.post("/api/tasks")
    async def create_task(data: TaskCreate):
        try:
            task = store.add_task(data.text, data.cycle)
        except TrackerError as e:
            raise http_error(e) from e
        return task.to_dict()

    @app.get("/api/tasks/schedule")
    async def get_schedule():
        """Tasks with overdue status and due wording evaluated now."""
        return schedule_view(store.list_tasks(), utc_now())

    @app.get("/api/tasks/{task_id}")
    async def get_task(task_id: str):
        try:
            return store.get(task_id).to_dict()
        except TrackerError as e:
            raise http_error(e) from e

    @app.post("/api/tasks/{task_id}/subtask")
    async def create_subtask(task_id: str, data: TaskCreate):
        try:
            subtask = store.add_subtask(task_id, data.text, data.cycle)
        except TrackerError as e:
            raise http_error(e) from e
        return subtask.to_dict()

    @app.patch("/api/tasks/{task_id}/status")
    async def update_status(task_id: str, data: StatusUpdate):
        try:
            store.set_completion(task_id, data.complete)
        except TrackerError as e:
            raise http_error(e) from e
        return {"status": "ok"}

    @app.delete("/api/tasks/{task_id}")
    async def delete_task(task_id: str):
        try:
            store.delete_entity(task_id)
        except TrackerError as e:
            raise http_error(e) from e
        return {"status": "deleted"}

    @app.get("/api/health")
    async def health():
        return {
            "status": "ok",
            "version": __version__,
            "counts": store.counts(),
            "events": event_bus.get_stats(),
        }

    # ========================================================================
    # LIVE UPDATES
    # ========================================================================

    @app.get("/api/updates")
    async def updates(request: Request):
        client = request.client.host if request.client else "unknown"
        subscription = ChangeSubscription(
            event_bus, max_queue=config.queue_size, subscriber_name=f"sse:{client}"
        )
        logger.info(f"Update stream opened for {client} (subscribers={event_bus.subscriber_count})")
        return StreamingResponse(
            update_stream(request.is_disconnected, subscription, int(config.reconnect_delay * 1000)),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        await websocket.accept()
        subscription = ChangeSubscription(
            event_bus, max_queue=config.queue_size, subscriber_name="websocket"
        )
        logger.info(f"WebSocket client connected (subscribers={event_bus.subscriber_count})")

        async def forward_updates():
            while True:
                event = await subscription.get()
                await websocket.send_json({
                    "type": "update",
                    "data": event.to_dict(),
                    "timestamp": format_timestamp(utc_now()),
                })

        sender: Optional[asyncio.Task] = None
        try:
            await websocket.send_json({
                "type": "connected",
                "data": {"counts": store.counts()},
                "timestamp": format_timestamp(utc_now()),
            })
            sender = asyncio.create_task(forward_updates())

            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                data = message.get("text")
                if data is None:
                    continue
                try:
                    msg = json.loads(data)
                except json.JSONDecodeError:
                    continue

                if isinstance(msg, dict) and msg.get("type") == "ping":
                    await websocket.send_json({"type": "pong", "timestamp": format_timestamp(utc_now())})

        except WebSocketDisconnect:
            logger.info("WebSocket client disconnected")
        finally:
            if sender is not None:
                sender.cancel()
                try:
                    await sender
                except asyncio.CancelledError:
                    pass
                except Exception as e:
                    logger.warning(f"WebSocket update forwarding failed: {e}")
            subscription.close()

    return app


# ============================================================================
# ENTRYPOINT
# ============================================================================

def start_server(config: Optional[TrackerConfig] = None, reload: bool = False):
    """Start the API server."""
    import uvicorn

    config = config or TrackerConfig.from_env()
    ComprehensiveLogger.set_level(config.log_level)
    logger.info(f"Server starting on {config.host}:{config.port}", extra=config.to_dict())
    try:
        if reload:
            uvicorn.run(
                "ui.server:create_app", factory=True, host=config.host, port=config.port,
                reload=True, log_level=config.log_level.lower(),
            )
        else:
            uvicorn.run(create_app(config), host=config.host, port=config.port, log_level=config.log_level.lower())
    finally:
        logger.info("Server stopped")
        ComprehensiveLogger.flush()


if __name__ == "__main__":
    start_server()
