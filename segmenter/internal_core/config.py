from __future__ import annotations

import os
from dataclasses import dataclass


def _getenv_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return default if value is None else value


def _getenv_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


def _getenv_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


@dataclass(frozen=True)
class SegmenterConfig:
    SEGMENTER_LOG_LEVEL: str = "INFO"
    SEGMENTER_SESSION_TTL_SECONDS: int = 14400
    SEGMENTER_NORMAL_CLOSE_CODE: int = 1000
    SEGMENTER_SPEAKER_LABEL: str = "Speaker"
    SEGMENTER_SPLIT_SENTENCES: bool = False
    SEGMENTER_DEFAULT_SPEAKER: int = 0


def load_config() -> SegmenterConfig:
    default_speaker = _getenv_int("SEGMENTER_DEFAULT_SPEAKER", 0)
    if default_speaker < 0:
        raise ValueError("SEGMENTER_DEFAULT_SPEAKER must be >= 0")

    return SegmenterConfig(
        SEGMENTER_LOG_LEVEL=_getenv_str("SEGMENTER_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        SEGMENTER_SESSION_TTL_SECONDS=_getenv_int("SEGMENTER_SESSION_TTL_SECONDS", 14400),
        SEGMENTER_NORMAL_CLOSE_CODE=_getenv_int("SEGMENTER_NORMAL_CLOSE_CODE", 1000),
        SEGMENTER_SPEAKER_LABEL=_getenv_str("SEGMENTER_SPEAKER_LABEL", "Speaker"),
        SEGMENTER_SPLIT_SENTENCES=_getenv_bool("SEGMENTER_SPLIT_SENTENCES", False),
        SEGMENTER_DEFAULT_SPEAKER=default_speaker,
    )
