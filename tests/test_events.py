import logging

import pytest

from versionslot import events
from versionslot.bump import PatchBump
from versionslot.controller import ConcurrencyController
from versionslot.sinks import LogSink
from versionslot.stores.base import WriteOutcome
from versionslot.util import log


def _connect(signal_name, receiver):
    sig = events.signal(signal_name)
    sig.connect(receiver)
    return lambda: sig.disconnect(receiver)


def test_emit_delivers_payload_and_timestamp(clean_event_context):
    captured = []
    disconnect = _connect("test.custom", lambda _s, **kw: captured.append(kw))
    try:
        with events.with_context(operation="bump", operation_id=None):
            events.emit("test.custom", foo="bar")
    finally:
        disconnect()

    assert len(captured) == 1
    assert captured[0]["event"] == "test.custom"
    assert captured[0]["foo"] == "bar"
    assert captured[0]["operation"] == "bump"
    assert "operation_id" not in captured[0]
    assert isinstance(captured[0]["ts"], int)


def test_emit_survives_subscriber_exception(clean_event_context):
    def bad_receiver(_sender, **kw):
        raise RuntimeError("boom")

    disconnect = _connect("test.boom", bad_receiver)
    try:
        assert events.emit("test.boom") == []
    finally:
        disconnect()


def test_operation_span_reports_failure(clean_event_context):
    failed = []
    disconnect = _connect(events.OPERATION_FAILED, lambda _s, **kw: failed.append(kw))
    try:
        with pytest.raises(ValueError):
            with events.operation_span("set", target="1.0.0"):
                raise ValueError("bad")
    finally:
        disconnect()

    assert failed[0]["operation"] == "set"
    assert failed[0]["error_type"] == "ValueError"
    assert failed[0]["target"] == "1.0.0"
    assert events.current_context() == {}


def test_operation_events_share_an_operation_id(make_store, clean_event_context):
    captured = []
    disconnects = [
        _connect(name, lambda _s, **kw: captured.append(kw))
        for name in (events.OPERATION_STARTED, events.SLOT_STATE, events.OPERATION_FINISHED)
    ]
    try:
        ConcurrencyController(make_store(), "version").bump(PatchBump())
    finally:
        for disconnect in disconnects:
            disconnect()

    assert captured[0]["event"] == events.OPERATION_STARTED
    assert captured[-1]["event"] == events.OPERATION_FINISHED
    assert len({kw["operation_id"] for kw in captured}) == 1
    assert {kw["operation"] for kw in captured} == {"bump"}


def test_log_sink_logs_conflicts(make_store, caplog, monkeypatch):
    monkeypatch.setattr(log._logger, "propagate", True)
    sink = LogSink().install()
    store = make_store(script=[WriteOutcome.conflict("[rejected]")])
    try:
        with caplog.at_level(logging.INFO, logger="versionslot"):
            ConcurrencyController(store, "version").bump(PatchBump())
    finally:
        sink.close()

    messages = [r.getMessage() for r in caplog.records]
    assert any("conflict writing 0.0.1" in m and "retrying" in m for m in messages)
    assert any("version is now 0.0.1" in m for m in messages)
