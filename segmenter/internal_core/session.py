from __future__ import annotations

import logging
from typing import Any, Optional

from segmenter.asr.aggregator import IngestResult, UtteranceAggregator
from segmenter.asr.event_decoder import decode_recognition_event
from segmenter.asr.formatting import format_for_display
from segmenter.asr.models import Utterance, UtteranceView
from segmenter.asr.splitter import split_runs
from segmenter.asr.transcript_log import TranscriptLog

from .config import SegmenterConfig
from .contracts import SessionState

logger = logging.getLogger(__name__)


class SegmenterError(RuntimeError):
    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class ClearNotAllowedError(SegmenterError):
    def __init__(self, session_id: str):
        super().__init__(
            "clear_not_allowed_during_recording",
            "clear not allowed during active recording",
        )
        self.session_id = session_id


class SessionAttachedError(SegmenterError):
    def __init__(self, session_id: str):
        super().__init__(
            "session_already_attached",
            "session already has an active consumer",
        )
        self.session_id = session_id


class TranscriptSession:
    """
    One recording session: a transcript log plus the aggregator feeding it.

    Lifecycle signals are applied here, one at a time and in arrival order.
    Transport failures become a transient `error` message; they never erase
    the transcript.
    """

    def __init__(self, session_id: str, config: Optional[SegmenterConfig] = None):
        self.session_id = session_id
        self._config = config or SegmenterConfig()
        self.log = TranscriptLog()
        self.aggregator = UtteranceAggregator(self.log)
        self.status: SessionState = "idle"
        self.recording = False
        self.error: Optional[str] = None
        self.events_received = 0
        self.tokens_received = 0
        self.malformed_events = 0
        self.attached = False

    def attach(self) -> None:
        if self.attached:
            logger.warning("session_attach_rejected session_id=%s", self.session_id)
            raise SessionAttachedError(self.session_id)
        self.attached = True

    def detach(self) -> None:
        self.attached = False

    def on_opened(self) -> None:
        self.recording = True
        self.status = "streaming"
        self.error = None
        logger.info("session_opened session_id=%s", self.session_id)

    def on_event(self, payload: Any) -> IngestResult:
        self.events_received += 1
        decoded = decode_recognition_event(
            payload, default_speaker=self._config.SEGMENTER_DEFAULT_SPEAKER
        )
        if decoded.malformed:
            self.malformed_events += 1
            return IngestResult(pending=self.aggregator.pending)
        self.tokens_received += len(decoded.tokens)
        return self.aggregator.ingest(split_runs(decoded.tokens))

    def on_closed(self, code: int, reason: str = "") -> Optional[Utterance]:
        flushed = self.aggregator.force_flush()
        self.recording = False
        self.status = "closed"
        if code != self._config.SEGMENTER_NORMAL_CLOSE_CODE:
            self.error = f"Connection closed unexpectedly: {code} {reason}".strip()
            logger.warning(
                "session_closed_unexpectedly session_id=%s code=%s reason=%s",
                self.session_id,
                code,
                reason,
            )
        else:
            logger.info("session_closed session_id=%s code=%s", self.session_id, code)
        return flushed

    def on_errored(self, detail: str) -> Optional[Utterance]:
        flushed = self.aggregator.force_flush()
        self.error = f"Transport error: {detail}".strip() if detail else "Transport error"
        self.status = "errored"
        logger.warning("session_transport_error session_id=%s detail=%s", self.session_id, detail)
        return flushed

    def stop(self) -> Optional[Utterance]:
        return self.on_closed(self._config.SEGMENTER_NORMAL_CLOSE_CODE, "stopped")

    def force_flush(self) -> Optional[Utterance]:
        return self.aggregator.force_flush()

    def clear(self) -> None:
        if self.recording:
            logger.warning("session_clear_rejected session_id=%s", self.session_id)
            raise ClearNotAllowedError(self.session_id)
        self.aggregator.reset()
        self.error = None

    def snapshot(self) -> list[UtteranceView]:
        return self.aggregator.snapshot()

    def transcript_text(self) -> str:
        return format_for_display(
            self.snapshot(),
            split_sentences=self._config.SEGMENTER_SPLIT_SENTENCES,
            label_prefix=self._config.SEGMENTER_SPEAKER_LABEL,
        )

    def status_payload(self) -> dict[str, Any]:
        utterances = self.snapshot()
        return {
            "session_id": self.session_id,
            "status": self.status,
            "recording": self.recording,
            "error": self.error,
            "utterances": [item.model_dump() for item in utterances],
            "transcript_text": format_for_display(
                utterances,
                split_sentences=self._config.SEGMENTER_SPLIT_SENTENCES,
                label_prefix=self._config.SEGMENTER_SPEAKER_LABEL,
            ),
            "committed_count": len(self.log),
            "has_pending": self.aggregator.pending is not None,
            "events_received": self.events_received,
            "tokens_received": self.tokens_received,
            "malformed_events": self.malformed_events,
        }
