from __future__ import annotations

"""
Normalize recognized word text and render utterances as transcript lines.

Design intent:
- Keep utterance text deterministic: the same tokens always format the same way.
- Formatting must be idempotent so re-formatting merged text is safe.
"""

import re
from typing import Iterable, Sequence

from segmenter.asr.models import Run, Token, UtteranceView

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_SENTENCE_TERMINALS = ".!?"


def format_text(text: str) -> str:
    """
    Capitalize the first letter of the text and of every sentence.

    A sentence starts after `.`, `!` or `?` followed by whitespace; the first
    alphabetic character from there on is upper-cased. Nothing else changes.
    """
    if not text:
        return ""

    out: list[str] = []
    at_sentence_start = True
    after_terminal = False
    for ch in text:
        if at_sentence_start and ch.isalpha():
            ch = ch.upper()
            at_sentence_start = False
        if ch in _SENTENCE_TERMINALS:
            after_terminal = True
        elif ch.isspace():
            if after_terminal:
                at_sentence_start = True
        else:
            after_terminal = False
        out.append(ch)
    return "".join(out)


def join_words(tokens: Run | Iterable[Token]) -> str:
    items = tokens.tokens if isinstance(tokens, Run) else tokens
    return " ".join(token.text for token in items)


def _split_sentences(text: str, *, split_sentences: bool) -> list[str]:
    normalized = " ".join(text.split()).strip()
    if not normalized:
        return []
    if not split_sentences:
        return [normalized]
    return [part.strip() for part in _SENTENCE_SPLIT_RE.split(normalized) if part.strip()]


def speaker_label(speaker_id: int, *, prefix: str = "Speaker") -> str:
    return f"{prefix} {speaker_id}"


def format_for_display(
    utterances: Sequence[UtteranceView],
    *,
    split_sentences: bool = False,
    label_prefix: str = "Speaker",
) -> str:
    if not utterances:
        return ""

    lines: list[str] = []
    for utterance in utterances:
        label = speaker_label(utterance.speaker_id, prefix=label_prefix)
        for sentence in _split_sentences(utterance.text, split_sentences=split_sentences):
            lines.append(f"{label}: {sentence}")

    return "\n".join(lines)
