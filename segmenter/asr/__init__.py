"""
Transcript segmentation boundary for the segmenter package.

Design intent:
- Turn word-level, speaker-tagged recognition events into per-speaker utterances.
- Keep transport and session concerns out of the aggregation core.
- Expose an append-only transcript log plus a read-only display snapshot.
"""
from __future__ import annotations
