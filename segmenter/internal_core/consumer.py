from __future__ import annotations

"""
Single consumer loop that applies inbound session messages strictly in order.

Design intent:
- One message is fully applied before the next is read; no reordering or buffering.
- Every applied message yields one update frame for the presentation layer.
- Leaving the loop for any reason flushes the pending utterance.
"""

import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from . import audit
from .contracts import AuditEventType
from .session import ClearNotAllowedError, TranscriptSession
from .session_store import InMemorySessionStore

logger = logging.getLogger(__name__)

_OPEN_TYPES = {"opened", "open"}
_EVENT_TYPES = {"results", "event"}
_CLOSE_TYPES = {"closed", "close"}
_ERROR_TYPES = {"errored", "error"}
# Recognizer side-channel messages that carry no words.
_PASSTHROUGH_TYPES = {"metadata", "speechstarted", "utteranceend"}


def _as_int(raw: Any, default: int) -> int:
    if isinstance(raw, bool):
        return default
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            return default
    return default


def _audit(
    store: Optional[InMemorySessionStore],
    session: TranscriptSession,
    event_type: AuditEventType,
    code: str,
    detail: str = "",
) -> None:
    if store is None or not store.has_session(session.session_id):
        return
    audit.log_event(store, session.session_id, event_type, code, detail)


def _transcript_update(session: TranscriptSession, new_utterances: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "type": "transcript",
        **session.status_payload(),
        "new_utterances": new_utterances,
    }


def apply_message(
    session: TranscriptSession,
    message: Any,
    *,
    store: Optional[InMemorySessionStore] = None,
    normal_close_code: int = 1000,
) -> dict[str, Any]:
    if store is not None:
        store.touch(session.session_id)
    if not isinstance(message, dict):
        return {"type": "error", "detail": "unknown_message_type"}

    message_type = str(message.get("type", "")).strip().lower()
    new_utterances: list[dict[str, Any]] = []

    if message_type in _OPEN_TYPES:
        session.on_opened()
        _audit(store, session, "TRANSPORT_OPENED", "opened")
        return _transcript_update(session, new_utterances)

    if message_type in _EVENT_TYPES:
        event = message.get("event")
        payload = event if isinstance(event, dict) else message
        result = session.on_event(payload)
        new_utterances = [
            {"speaker_id": item.speaker_id, "text": item.text, "is_complete": item.is_complete}
            for item in result.committed
        ]
        return _transcript_update(session, new_utterances)

    if message_type in _CLOSE_TYPES or message_type == "stop":
        if message_type == "stop":
            code = normal_close_code
            flushed = session.stop()
        else:
            code = _as_int(message.get("code"), normal_close_code)
            flushed = session.on_closed(code, str(message.get("reason", "") or ""))
        _audit(store, session, "TRANSPORT_CLOSED", str(code), session.error or "")
        if flushed is not None:
            _audit(store, session, "FORCE_FLUSH", "pending_committed", f"speaker_id={flushed.speaker_id}")
            new_utterances = [
                {"speaker_id": flushed.speaker_id, "text": flushed.text, "is_complete": flushed.is_complete}
            ]
        return _transcript_update(session, new_utterances)

    if message_type in _ERROR_TYPES:
        detail = str(message.get("detail", "") or "")
        flushed = session.on_errored(detail)
        _audit(store, session, "TRANSPORT_ERROR", "errored", detail)
        if flushed is not None:
            _audit(store, session, "FORCE_FLUSH", "pending_committed", f"speaker_id={flushed.speaker_id}")
            new_utterances = [
                {"speaker_id": flushed.speaker_id, "text": flushed.text, "is_complete": flushed.is_complete}
            ]
        return _transcript_update(session, new_utterances)

    if message_type == "clear":
        try:
            session.clear()
        except ClearNotAllowedError as exc:
            _audit(store, session, "CLEAR_REJECTED", exc.code, exc.message)
            return {"type": "error", "code": exc.code, "detail": exc.message}
        _audit(store, session, "CLEAR", "cleared")
        return _transcript_update(session, new_utterances)

    if message_type in _PASSTHROUGH_TYPES:
        return _transcript_update(session, new_utterances)

    return {"type": "error", "detail": "unknown_message_type"}


async def consume(
    session: TranscriptSession,
    messages: AsyncIterator[Any],
    emit: Callable[[dict[str, Any]], Awaitable[None]],
    *,
    store: Optional[InMemorySessionStore] = None,
    normal_close_code: int = 1000,
) -> None:
    session.attach()
    try:
        async for message in messages:
            update = apply_message(session, message, store=store, normal_close_code=normal_close_code)
            await emit(update)
    finally:
        flushed = session.force_flush()
        session.detach()
        if flushed is not None:
            logger.info("consumer_teardown_flush session_id=%s", session.session_id)
            _audit(store, session, "FORCE_FLUSH", "teardown", f"speaker_id={flushed.speaker_id}")
