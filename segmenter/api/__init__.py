"""
API orchestration boundary for the segmenter service.

Design intent:
- Expose thin, typed endpoints for session snapshots and lifecycle control.
- Keep request validation explicit and failure modes predictable.
"""
