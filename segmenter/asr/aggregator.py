from __future__ import annotations

"""
Fold same-speaker runs into utterances and commit them to the transcript log.

Design intent:
- Hold at most one pending utterance, modelled as `Idle | Pending`.
- A speaker change always completes the previous utterance, whatever the
  recognizer said about its finality.
- Every call completes synchronously; callers feed events one at a time.
"""

import logging
from dataclasses import dataclass, field
from typing import Sequence, Union

from segmenter.asr.formatting import format_text, join_words
from segmenter.asr.models import Run, Utterance, UtteranceView
from segmenter.asr.transcript_log import TranscriptLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Pending:
    utterance: Utterance


AggregatorState = Union[Idle, Pending]


@dataclass(frozen=True)
class IngestResult:
    committed: list[Utterance] = field(default_factory=list)
    pending: Utterance | None = None


class UtteranceAggregator:
    def __init__(self, log: TranscriptLog) -> None:
        self._log = log
        self._state: AggregatorState = Idle()

    @property
    def state(self) -> AggregatorState:
        return self._state

    @property
    def pending(self) -> Utterance | None:
        if isinstance(self._state, Pending):
            return self._state.utterance
        return None

    @property
    def log(self) -> TranscriptLog:
        return self._log

    def snapshot(self) -> list[UtteranceView]:
        return self._log.snapshot(self.pending)

    def ingest(self, runs: Sequence[Run]) -> IngestResult:
        if not runs:
            return IngestResult(pending=self.pending)

        committed: list[Utterance] = []
        first = runs[0]
        state = self._state

        if isinstance(state, Pending) and state.utterance.speaker_id == first.speaker_id:
            current = state.utterance.model_copy(
                update={
                    "text": format_text(f"{state.utterance.text} {join_words(first)}"),
                    "is_complete": first.last_token.is_final,
                }
            )
        else:
            if isinstance(state, Pending):
                # Speaker change completes the previous speaker's utterance.
                committed.append(self._commit(state.utterance))
            current = _start_utterance(first)

        # Every run but the last is bounded by a later speaker in this event.
        for run in runs[1:]:
            committed.append(self._commit(current))
            current = _start_utterance(run)

        if current.is_complete:
            committed.append(self._commit(current))
            self._state = Idle()
        else:
            self._state = Pending(current)

        logger.debug(
            "aggregator_ingest runs=%s committed=%s pending=%s",
            len(runs),
            len(committed),
            isinstance(self._state, Pending),
        )
        return IngestResult(committed=committed, pending=self.pending)

    def force_flush(self) -> Utterance | None:
        state = self._state
        if not isinstance(state, Pending):
            return None
        flushed = self._commit(state.utterance)
        self._state = Idle()
        logger.debug("aggregator_force_flush speaker_id=%s", flushed.speaker_id)
        return flushed

    def reset(self) -> None:
        self._log.clear()
        self._state = Idle()

    def _commit(self, utterance: Utterance) -> Utterance:
        return self._log.append(utterance.model_copy(update={"is_complete": True}))


def _start_utterance(run: Run) -> Utterance:
    return Utterance(
        speaker_id=run.speaker_id,
        text=format_text(join_words(run)),
        is_complete=run.last_token.is_final,
        committed=False,
    )
