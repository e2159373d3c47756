"""
Segmenter package.

Design intent:
- Host the streaming, speaker-aware transcript segmenter and its thin service shell.
- Keep the aggregation core (asr) independent from session and API plumbing.
"""
