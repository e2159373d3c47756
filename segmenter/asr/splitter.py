from __future__ import annotations

"""
Partition one recognition event's tokens into same-speaker runs.

Design intent:
- Only adjacent tokens are grouped; a speaker appearing twice yields two runs.
- Token order is preserved within and across runs.
"""

from typing import Sequence

from segmenter.asr.models import Run, Token


def split_runs(tokens: Sequence[Token]) -> list[Run]:
    runs: list[Run] = []
    current: list[Token] = []

    for token in tokens:
        if current and token.speaker_id != current[-1].speaker_id:
            runs.append(Run(speaker_id=current[0].speaker_id, tokens=tuple(current)))
            current = []
        current.append(token)

    if current:
        runs.append(Run(speaker_id=current[0].speaker_id, tokens=tuple(current)))
    return runs
