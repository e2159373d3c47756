from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

SessionState = Literal["idle", "streaming", "closed", "errored"]


AuditEventType = Literal[
    "SESSION_CREATED",
    "TRANSPORT_OPENED",
    "TRANSPORT_CLOSED",
    "TRANSPORT_ERROR",
    "FORCE_FLUSH",
    "CLEAR",
    "CLEAR_REJECTED",
    "SESSION_DESTROYED",
]


class AuditEvent(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ts_iso: str
    session_id: str
    type: AuditEventType
    code: str
    detail: str
