from __future__ import annotations

"""
Decode streaming recognition results into speaker-tagged tokens.

Design intent:
- Read only `word`, `speaker` and `is_final`; every other field passes through unused.
- Malformed payloads decode to no tokens instead of raising, so one bad frame
  never disturbs transcript state.
"""

import logging
from dataclasses import dataclass
from typing import Any

from segmenter.asr.models import Token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodeResult:
    tokens: list[Token]
    malformed: bool = False
    skipped_words: int = 0


def _extract_words(payload: Any) -> list[Any] | None:
    if not isinstance(payload, dict):
        return None
    channel = payload.get("channel")
    if not isinstance(channel, dict):
        return None
    alternatives = channel.get("alternatives")
    if not isinstance(alternatives, list) or not alternatives:
        return None
    best = alternatives[0]
    if not isinstance(best, dict):
        return None
    words = best.get("words")
    if not isinstance(words, list):
        return None
    return words


def _as_speaker(raw: Any, default_speaker: int) -> int | None:
    if raw is None:
        return default_speaker
    if isinstance(raw, bool) or not isinstance(raw, int):
        return None
    if raw < 0:
        return None
    return raw


def decode_recognition_event(payload: Any, *, default_speaker: int = 0) -> DecodeResult:
    words = _extract_words(payload)
    if words is None:
        logger.debug("recognition_event_malformed payload_type=%s", type(payload).__name__)
        return DecodeResult(tokens=[], malformed=True)

    # Some transports only flag finality on the result, not on each word.
    event_final = payload.get("is_final")
    event_final = event_final if isinstance(event_final, bool) else False

    tokens: list[Token] = []
    skipped = 0
    for item in words:
        if not isinstance(item, dict):
            skipped += 1
            continue
        text = item.get("word")
        if not isinstance(text, str) or not text.strip():
            skipped += 1
            continue
        speaker_id = _as_speaker(item.get("speaker"), default_speaker)
        if speaker_id is None:
            skipped += 1
            continue
        is_final = item.get("is_final")
        tokens.append(
            Token(
                text=text.strip(),
                speaker_id=speaker_id,
                is_final=is_final if isinstance(is_final, bool) else event_final,
            )
        )

    if skipped:
        logger.debug("recognition_event_words_skipped skipped=%s kept=%s", skipped, len(tokens))
    return DecodeResult(tokens=tokens, skipped_words=skipped)
