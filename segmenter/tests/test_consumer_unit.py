import asyncio
import types

import pytest

from segmenter.internal_core import session_store
from segmenter.internal_core.consumer import apply_message, consume
from segmenter.internal_core.session import SessionAttachedError
from segmenter.internal_core.session_store import InMemorySessionStore


def _results(*words: tuple[str, int, bool]) -> dict:
    return {
        "type": "Results",
        "channel": {
            "alternatives": [
                {"words": [{"word": w, "speaker": s, "is_final": f} for w, s, f in words]}
            ]
        },
    }


def _store_and_session():
    store = InMemorySessionStore(ttl_seconds=60)
    session_id = store.create_session()
    return store, store.get_session(session_id)


def test_apply_message_dispatches_recognition_results() -> None:
    store, session = _store_and_session()
    apply_message(session, {"type": "opened"}, store=store)
    update = apply_message(session, _results(("hi", 1, False), ("there", 0, True)), store=store)

    assert update["type"] == "transcript"
    assert update["new_utterances"] == [
        {"speaker_id": 1, "text": "Hi", "is_complete": True},
        {"speaker_id": 0, "text": "There", "is_complete": True},
    ]
    assert update["has_pending"] is False


def test_apply_message_accepts_wrapped_event() -> None:
    store, session = _store_and_session()
    update = apply_message(session, {"type": "event", "event": _results(("wrapped", 0, False))}, store=store)
    assert update["utterances"] == [{"speaker_id": 0, "text": "Wrapped", "is_complete": False}]


def test_apply_message_unknown_type_is_error_frame() -> None:
    store, session = _store_and_session()
    assert apply_message(session, {"type": "bogus"}, store=store) == {"type": "error", "detail": "unknown_message_type"}
    assert apply_message(session, ["not", "a", "dict"], store=store)["type"] == "error"
    assert session.events_received == 0


def test_apply_message_passthrough_types_do_not_touch_state() -> None:
    store, session = _store_and_session()
    update = apply_message(session, {"type": "Metadata", "request_id": "abc"}, store=store)
    assert update["type"] == "transcript"
    assert session.events_received == 0


def test_apply_message_close_flushes_and_audits() -> None:
    store, session = _store_and_session()
    apply_message(session, {"type": "opened"}, store=store)
    apply_message(session, _results(("partial", 0, False), ("text", 0, False)), store=store)
    update = apply_message(session, {"type": "closed", "code": 1006, "reason": "abnormal"}, store=store)

    assert update["new_utterances"] == [{"speaker_id": 0, "text": "Partial text", "is_complete": True}]
    assert update["error"] == "Connection closed unexpectedly: 1006 abnormal"
    assert update["recording"] is False

    types = [event.type for event in store.get_audit_events(session.session_id)]
    assert types == ["TRANSPORT_OPENED", "TRANSPORT_CLOSED", "FORCE_FLUSH"]


def test_apply_message_clear_rejected_while_recording() -> None:
    store, session = _store_and_session()
    apply_message(session, {"type": "opened"}, store=store)
    apply_message(session, _results(("keep", 0, True)), store=store)

    update = apply_message(session, {"type": "clear"}, store=store)

    assert update == {
        "type": "error",
        "code": "clear_not_allowed_during_recording",
        "detail": "clear not allowed during active recording",
    }
    assert len(session.log) == 1
    assert store.get_audit_events(session.session_id)[-1].type == "CLEAR_REJECTED"


def test_apply_message_error_signal_sets_status() -> None:
    store, session = _store_and_session()
    apply_message(session, {"type": "opened"}, store=store)
    update = apply_message(session, {"type": "error", "detail": "WebSocket error occurred"}, store=store)
    assert update["status"] == "errored"
    assert update["error"] == "Transport error: WebSocket error occurred"


def test_consume_applies_messages_in_order_and_flushes_on_exit() -> None:
    store, session = _store_and_session()
    messages = [
        {"type": "opened"},
        _results(("first", 0, False)),
        _results(("second", 0, False), ("reply", 1, False)),
        _results(("more", 1, False)),
    ]
    emitted: list[dict] = []

    async def source():
        for item in messages:
            yield item

    async def emit(update: dict) -> None:
        emitted.append(update)

    asyncio.run(consume(session, source(), emit, store=store))

    assert len(emitted) == len(messages)
    assert emitted[-1]["utterances"] == [
        {"speaker_id": 0, "text": "First second", "is_complete": True},
        {"speaker_id": 1, "text": "Reply more", "is_complete": False},
    ]
    assert [(u.speaker_id, u.text) for u in session.log.entries] == [(0, "First second"), (1, "Reply more")]
    assert session.aggregator.pending is None
    assert store.get_audit_events(session.session_id)[-1].code == "teardown"
    assert session.attached is False


def test_apply_message_refreshes_session_expiry(monkeypatch: pytest.MonkeyPatch) -> None:
    clock = {"now": 1000.0}
    monkeypatch.setattr(session_store, "time", types.SimpleNamespace(time=lambda: clock["now"]))
    store = InMemorySessionStore(ttl_seconds=1)
    session = store.get_session(store.create_session())
    apply_message(session, {"type": "opened"}, store=store)
    apply_message(session, {"type": "stop"}, store=store)

    clock["now"] = 1000.8
    apply_message(session, {"type": "metadata"}, store=store)
    clock["now"] = 1001.5
    assert store.cleanup_expired_sessions() == 0
    assert store.has_session(session.session_id)


def test_consume_rejects_second_consumer_without_touching_first() -> None:
    store, session = _store_and_session()
    session.attach()
    session.on_opened()
    session.on_event(_results(("hello", 0, False)))
    emitted: list[dict] = []

    async def source():
        yield _results(("intruder", 1, True))

    async def emit(update: dict) -> None:
        emitted.append(update)

    with pytest.raises(SessionAttachedError):
        asyncio.run(consume(session, source(), emit, store=store))

    assert emitted == []
    assert session.attached is True
    assert session.recording is True
    assert [(u.speaker_id, u.text, u.is_complete) for u in session.snapshot()] == [(0, "Hello", False)]
