from __future__ import annotations

import logging
import time
import uuid
from threading import RLock
from typing import Any, Dict, List, Optional

from .config import SegmenterConfig
from .contracts import AuditEvent
from .session import TranscriptSession

logger = logging.getLogger(__name__)


class InMemorySessionStore:
    def __init__(self, ttl_seconds: int, config: Optional[SegmenterConfig] = None):
        self._ttl_seconds = ttl_seconds
        self._config = config or SegmenterConfig()
        self._lock = RLock()
        self._sessions: Dict[str, Dict[str, Any]] = {}

    def _new_entry(self, session_id: str) -> Dict[str, Any]:
        now = time.time()
        return {
            "session": TranscriptSession(session_id, self._config),
            "expires_at": now + self._ttl_seconds,
            "audit_events": [],
        }

    def create_session(self) -> str:
        session_id = uuid.uuid4().hex
        with self._lock:
            self._sessions[session_id] = self._new_entry(session_id)
        return session_id

    def ensure_session(self, session_id: str) -> TranscriptSession:
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                entry = self._new_entry(session_id)
                self._sessions[session_id] = entry
            self._touch(session_id)
            return entry["session"]

    def has_session(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def _touch(self, session_id: str) -> None:
        self._sessions[session_id]["expires_at"] = time.time() + self._ttl_seconds

    def touch(self, session_id: str) -> bool:
        with self._lock:
            if session_id not in self._sessions:
                return False
            self._touch(session_id)
            return True

    def get_session(self, session_id: str) -> TranscriptSession:
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                raise KeyError(f"Unknown session_id: {session_id}")
            self._touch(session_id)
            return entry["session"]

    def list_session_ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions.keys())

    def append_audit_event(self, session_id: str, event: AuditEvent) -> None:
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                raise KeyError(f"Unknown session_id: {session_id}")
            entry["audit_events"].append(event)

    def get_audit_events(self, session_id: str) -> List[AuditEvent]:
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                raise KeyError(f"Unknown session_id: {session_id}")
            return list(entry["audit_events"])

    def destroy_session(self, session_id: str, reason: str) -> Optional[TranscriptSession]:
        with self._lock:
            entry = self._sessions.pop(session_id, None)
        if entry is None:
            return None

        session: TranscriptSession = entry["session"]
        # Teardown never drops an in-progress utterance.
        session.force_flush()
        logger.info("session_destroyed session_id=%s reason=%s", session_id, reason)
        return session

    def cleanup_expired_sessions(self) -> int:
        now = time.time()
        expired = []
        with self._lock:
            for session_id, entry in self._sessions.items():
                session: TranscriptSession = entry["session"]
                # A live stream keeps its session regardless of idle time.
                if session.recording or session.attached:
                    continue
                if entry["expires_at"] <= now:
                    expired.append(session_id)
        for session_id in expired:
            self.destroy_session(session_id, reason="ttl_expired")
        return len(expired)
