"""FastAPI server for the appointment booking form.

A UI drives a booking session by sending form events (practitioner, patient,
day, time slot, submit) either over the ``/ws`` WebSocket or as JSON posts to
``/sessions/{session_id}/events``; every event is answered with a snapshot of
the form.
"""

import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from booking.client import BookingApiClient
from booking.config import settings
from booking.graph_manager import BookingGraphManager, FormEvent, FormSnapshot
from booking.mock_client import MockApiClient

if not settings.is_production:
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)


def build_client():
    if settings.use_mock_api:
        logger.info("Using the in-memory booking API")
        return MockApiClient()
    return BookingApiClient(settings.server_api_endpoint, settings.request_timeout_seconds)


graph_manager = BookingGraphManager(build_client(), settings.tzinfo)

active_connections: dict[str, WebSocket] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    await graph_manager.load_directories()
    yield


app = FastAPI(title="Appointment Booking", lifespan=lifespan)


def _dump(snapshot: FormSnapshot) -> dict:
    return snapshot.model_dump(mode="json", by_alias=True)


def _directory(store) -> dict:
    return {
        "items": [item.model_dump(mode="json", by_alias=True) for item in store.items],
        "isLoading": store.is_loading,
        "lastError": str(store.last_error) if store.last_error else None,
    }


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Handle WebSocket connections and form events.

    Each message is ``{"session_id", "action", "value"}``; the reply is the
    form snapshot or ``{"error": ...}``.
    """
    await websocket.accept()

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message_data = json.loads(data)
            except json.JSONDecodeError:
                await websocket.send_text(json.dumps({"error": "Message is not valid JSON"}))
                continue

            session_id: str | None = message_data.get("session_id")
            action: str | None = message_data.get("action")

            if not session_id or not action:
                await websocket.send_text(json.dumps({"error": "Missing session_id or action"}))
                continue

            try:
                event = FormEvent(action=action, value=message_data.get("value"))
            except ValidationError as e:
                await websocket.send_text(json.dumps({"error": f"Invalid event: {e.errors()[0]['msg']}"}))
                continue

            active_connections[session_id] = websocket

            snapshot = await graph_manager.process_event(session_id, event)
            await websocket.send_text(json.dumps(_dump(snapshot)))

    except WebSocketDisconnect:
        active_connections.pop(
            next((sid for sid, conn in active_connections.items() if conn == websocket), None),
            None,
        )
    except Exception as e:
        logger.exception("WebSocket handler failed: %s", e)
        try:
            await websocket.send_text(json.dumps({"error": f"Internal error: {e}"}))
        except Exception:
            pass


@app.post("/sessions/{session_id}/events")
async def post_event(session_id: str, event: FormEvent) -> dict:
    """Apply one form event and return the resulting snapshot."""
    return _dump(await graph_manager.process_event(session_id, event))


@app.get("/sessions/{session_id}")
async def get_session(session_id: str) -> dict:
    return _dump(await graph_manager.get_snapshot(session_id))


@app.get("/patients")
async def list_patients() -> dict:
    return _directory(graph_manager.patients)


@app.get("/practitioners")
async def list_practitioners() -> dict:
    return _directory(graph_manager.practitioners)


@app.get("/")
async def root():
    """Root endpoint providing basic API information."""
    return {
        "message": "Appointment Booking API: send form events to /ws or /sessions/{session_id}/events."
    }
