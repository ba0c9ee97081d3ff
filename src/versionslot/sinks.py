from __future__ import annotations

from typing import Callable

from . import events
from .util import log

Disconnect = Callable[[], None]


class BaseSink:
    def __init__(self):
        self._disconnects: list[Disconnect] = []

    def _connect(self, signal_name: str, receiver):
        sig = events.signal(signal_name)
        sig.connect(receiver)
        self._disconnects.append(lambda: sig.disconnect(receiver))

    def close(self):
        for disconnect in reversed(self._disconnects):
            disconnect()
        self._disconnects.clear()


class LogSink(BaseSink):
    """Turns controller events into log lines."""

    def install(self):
        self._connect(events.OPERATION_STARTED, self._on_started)
        self._connect(events.OPERATION_FINISHED, self._on_finished)
        self._connect(events.OPERATION_FAILED, self._on_failed)
        self._connect(events.SLOT_STATE, self._on_state)
        self._connect(events.WRITE_CONFLICT, self._on_conflict)
        return self

    def _on_started(self, _sender, **kw):
        log.debug(f"{kw.get('operation')} started {_describe(kw)}")

    def _on_finished(self, _sender, **kw):
        log.debug(f"{kw.get('operation')} finished in {kw.get('elapsed_ms', 0):.0f}ms")

    def _on_failed(self, _sender, **kw):
        log.debug(f"{kw.get('operation')} failed: {kw.get('error_type')}")

    def _on_state(self, _sender, **kw):
        log.debug(f"attempt {kw.get('attempt')}: {kw.get('state')}")

    def _on_conflict(self, _sender, **kw):
        detail = kw.get("detail") or "remote changed"
        log.info(f"conflict writing {log.plain(kw.get('value'))} ({log.plain(detail)}), retrying")


class AttemptRecorder(BaseSink):
    """Collects state transitions per operation, handy for inspecting a retry sequence."""

    def __init__(self):
        super().__init__()
        self.transitions: list[tuple[int, str]] = []
        self.conflicts: list[dict] = []

    def install(self):
        self._connect(events.SLOT_STATE, self._on_state)
        self._connect(events.WRITE_CONFLICT, self._on_conflict)
        return self

    def _on_state(self, _sender, **kw):
        self.transitions.append((kw.get("attempt"), kw.get("state")))

    def _on_conflict(self, _sender, **kw):
        self.conflicts.append(kw)

    def states(self) -> list[str]:
        return [state for _attempt, state in self.transitions]


def _describe(kw: dict) -> str:
    keys = ("bump", "target", "cursor")
    return " ".join(f"{k}={log.plain(kw[k])}" for k in keys if kw.get(k) is not None)
