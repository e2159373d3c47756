from __future__ import annotations

import datetime as _dt
import logging
from .contracts import AuditEvent, AuditEventType
from .session_store import InMemorySessionStore

logger = logging.getLogger(__name__)

_MAX_DETAIL_CHARS = 200


def _ts_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat()


def _sanitize_detail(detail: str) -> str:
    # Status metadata only; callers never pass utterance text here.
    flattened = " ".join((detail or "").split())
    if len(flattened) > _MAX_DETAIL_CHARS:
        flattened = flattened[:_MAX_DETAIL_CHARS] + "..."
    return flattened


def log_event(
    store: InMemorySessionStore,
    session_id: str,
    event_type: AuditEventType,
    code: str,
    detail: str,
) -> AuditEvent:
    event = AuditEvent(
        ts_iso=_ts_iso(),
        session_id=session_id,
        type=event_type,
        code=code,
        detail=_sanitize_detail(detail),
    )
    store.append_audit_event(session_id, event)
    logger.debug("audit_event session_id=%s type=%s code=%s", session_id, event_type, code)
    return event
