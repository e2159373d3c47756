from .config import SegmenterConfig, load_config
from .session import ClearNotAllowedError, SegmenterError, TranscriptSession
from .session_store import InMemorySessionStore

__all__ = [
    "ClearNotAllowedError",
    "InMemorySessionStore",
    "SegmenterConfig",
    "SegmenterError",
    "TranscriptSession",
    "load_config",
]
