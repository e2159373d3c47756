from __future__ import annotations

"""
Thin API surface for the streaming transcript segmenter.

Design intent:
- Keep API orchestration thin and typed.
- Delegate segmentation to asr and lifecycle handling to internal_core.
- Feed each session's messages through one ordered consumer loop.
"""

import json
import logging
from typing import Any, AsyncIterator

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from segmenter.asr.models import UtteranceView
from segmenter.internal_core import audit
from segmenter.internal_core.config import SegmenterConfig, load_config
from segmenter.internal_core.consumer import consume
from segmenter.internal_core.contracts import AuditEvent, SessionState
from segmenter.internal_core.session import ClearNotAllowedError, SessionAttachedError, TranscriptSession
from segmenter.internal_core.session_store import InMemorySessionStore


class SessionCreateResponse(BaseModel):
    session_id: str


class TranscriptSnapshotResponse(BaseModel):
    session_id: str
    status: SessionState
    recording: bool
    error: str | None = None
    utterances: list[UtteranceView] = Field(default_factory=list)
    transcript_text: str = ""
    committed_count: int = Field(ge=0)
    has_pending: bool
    events_received: int = Field(ge=0)
    tokens_received: int = Field(ge=0)
    malformed_events: int = Field(ge=0)


class AuditEventsResponse(BaseModel):
    session_id: str
    events: list[AuditEvent] = Field(default_factory=list)


app = FastAPI(title="segmenter service")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_config() -> SegmenterConfig:
    existing = getattr(app.state, "segmenter_config", None)
    if isinstance(existing, SegmenterConfig):
        return existing
    created = load_config()
    setattr(app.state, "segmenter_config", created)
    logging.getLogger("segmenter").setLevel(created.SEGMENTER_LOG_LEVEL)
    return created


def _get_session_store() -> InMemorySessionStore:
    existing = getattr(app.state, "segmenter_session_store", None)
    if isinstance(existing, InMemorySessionStore):
        return existing
    config = _get_config()
    created = InMemorySessionStore(config.SEGMENTER_SESSION_TTL_SECONDS, config)
    setattr(app.state, "segmenter_session_store", created)
    return created


def _require_session(session_id: str) -> TranscriptSession:
    store = _get_session_store()
    try:
        return store.get_session(session_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _snapshot_response(session: TranscriptSession) -> TranscriptSnapshotResponse:
    return TranscriptSnapshotResponse(**session.status_payload())


@app.post("/sessions", response_model=SessionCreateResponse)
async def create_session() -> SessionCreateResponse:
    store = _get_session_store()
    store.cleanup_expired_sessions()
    session_id = store.create_session()
    audit.log_event(store, session_id, "SESSION_CREATED", "created", "http")
    return SessionCreateResponse(session_id=session_id)


@app.get("/sessions/{session_id}/transcript", response_model=TranscriptSnapshotResponse)
async def get_transcript(session_id: str) -> TranscriptSnapshotResponse:
    return _snapshot_response(_require_session(session_id))


@app.post("/sessions/{session_id}/stop", response_model=TranscriptSnapshotResponse)
async def stop_session(session_id: str) -> TranscriptSnapshotResponse:
    session = _require_session(session_id)
    store = _get_session_store()
    flushed = session.stop()
    audit.log_event(store, session_id, "TRANSPORT_CLOSED", "stopped", "http_stop")
    if flushed is not None:
        audit.log_event(store, session_id, "FORCE_FLUSH", "pending_committed", f"speaker_id={flushed.speaker_id}")
    return _snapshot_response(session)


@app.post("/sessions/{session_id}/clear", response_model=TranscriptSnapshotResponse)
async def clear_session(session_id: str) -> TranscriptSnapshotResponse:
    session = _require_session(session_id)
    store = _get_session_store()
    try:
        session.clear()
    except ClearNotAllowedError as exc:
        audit.log_event(store, session_id, "CLEAR_REJECTED", exc.code, exc.message)
        raise HTTPException(status_code=409, detail=exc.message) from exc
    audit.log_event(store, session_id, "CLEAR", "cleared", "http")
    return _snapshot_response(session)


@app.delete("/sessions/{session_id}", response_model=TranscriptSnapshotResponse)
async def delete_session(session_id: str) -> TranscriptSnapshotResponse:
    _require_session(session_id)
    session = _get_session_store().destroy_session(session_id, reason="http_delete")
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session_id: {session_id}")
    return _snapshot_response(session)


@app.get("/sessions/{session_id}/audit", response_model=AuditEventsResponse)
async def get_audit_events(session_id: str) -> AuditEventsResponse:
    _require_session(session_id)
    return AuditEventsResponse(
        session_id=session_id,
        events=_get_session_store().get_audit_events(session_id),
    )


@app.websocket("/ws/transcript")
async def transcript_ws(websocket: WebSocket) -> None:
    await websocket.accept()
    session_id = str(websocket.query_params.get("session_id", "")).strip()
    if not session_id:
        await websocket.send_json({"type": "error", "detail": "session_id is required."})
        await websocket.close(code=1008)
        return

    config = _get_config()
    store = _get_session_store()
    created = not store.has_session(session_id)
    session = store.ensure_session(session_id)
    if created:
        audit.log_event(store, session_id, "SESSION_CREATED", "created", "websocket")

    connected = True

    async def inbound() -> AsyncIterator[Any]:
        nonlocal connected
        while True:
            try:
                raw = await websocket.receive_text()
            except WebSocketDisconnect as exc:
                connected = False
                if session.recording:
                    yield {"type": "closed", "code": exc.code, "reason": "client_disconnected"}
                return
            try:
                payload = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "detail": "invalid_json"})
                continue
            yield payload

    async def emit(update: dict[str, Any]) -> None:
        if connected:
            await websocket.send_json(update)

    try:
        await consume(
            session,
            inbound(),
            emit,
            store=store,
            normal_close_code=config.SEGMENTER_NORMAL_CLOSE_CODE,
        )
    except SessionAttachedError as exc:
        await websocket.send_json({"type": "error", "code": exc.code, "detail": exc.message})
        await websocket.close(code=1008)
        return
    logger.info("transcript_ws_finished session_id=%s status=%s", session_id, session.status)
