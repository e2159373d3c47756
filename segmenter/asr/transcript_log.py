from __future__ import annotations

"""
Append-only log of committed utterances for one recording session.

Design intent:
- Entries are stored in completion order and never reordered or edited.
- Display reads go through `snapshot`, which never exposes mutable internals.
"""

from segmenter.asr.models import Utterance, UtteranceView


class TranscriptLog:
    def __init__(self) -> None:
        self._entries: list[Utterance] = []

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[Utterance]:
        return list(self._entries)

    def append(self, utterance: Utterance) -> Utterance:
        committed = utterance if utterance.committed else utterance.model_copy(update={"committed": True})
        self._entries.append(committed)
        return committed

    def snapshot(self, pending: Utterance | None = None) -> list[UtteranceView]:
        views = [UtteranceView.from_utterance(item) for item in self._entries]
        if pending is not None:
            views.append(UtteranceView.from_utterance(pending))
        return views

    def clear(self) -> None:
        self._entries = []
