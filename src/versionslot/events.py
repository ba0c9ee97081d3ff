from __future__ import annotations

import contextvars
import logging
import time
import uuid
from contextlib import contextmanager
from typing import Any

from blinker import Namespace

_logger = logging.getLogger(__name__)

OPERATION_STARTED = "operation.started"
OPERATION_FINISHED = "operation.finished"
OPERATION_FAILED = "operation.failed"
SLOT_STATE = "slot.state"
WRITE_CONFLICT = "write.conflict"

_ns = Namespace()
_event_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "versionslot_event_context", default={}
)


def now_ms() -> int:
    return int(time.time() * 1000)


def new_operation_id() -> str:
    return uuid.uuid4().hex


def signal(name: str):
    return _ns.signal(name)


def current_context() -> dict[str, Any]:
    return dict(_event_context.get())


@contextmanager
def with_context(**kwargs):
    merged = current_context()
    merged.update({k: v for k, v in kwargs.items() if v is not None})
    token = _event_context.set(merged)
    try:
        yield merged
    finally:
        _event_context.reset(token)


def emit(name: str, **payload):
    msg = current_context()
    msg.update(payload)
    msg.setdefault("ts", now_ms())
    try:
        return signal(name).send(None, event=name, **msg)
    except Exception as e:
        # Receiver failures must not break a version update.
        _logger.debug("Event subscriber error for %s: %s", name, e, exc_info=True)
        return []


@contextmanager
def operation_span(operation: str, **payload):
    start = time.perf_counter()
    with with_context(operation=operation, operation_id=new_operation_id()):
        emit(OPERATION_STARTED, **payload)
        try:
            yield
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            emit(
                OPERATION_FAILED,
                elapsed_ms=elapsed_ms,
                error=str(e),
                error_type=type(e).__name__,
                **payload,
            )
            raise
        else:
            elapsed_ms = (time.perf_counter() - start) * 1000
            emit(OPERATION_FINISHED, elapsed_ms=elapsed_ms, **payload)
