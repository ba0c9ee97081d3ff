"""Optimistic read-modify-write of a single version value held in a remote store.

Every operation runs the same loop::

    SYNCING -> READING -> WRITING -> DONE
                             |
                             +--> RETRYING -> SYNCING ...   (write conflict)
                             +--> FAILED                    (any error)

A conflict means another writer advanced the slot after we synced, so the next
attempt starts over from a fresh sync and recomputes the new value from what is
then stored. There is no attempt limit and no delay between attempts.
"""
from enum import Enum
from typing import Callable, Optional

from versionslot import events
from versionslot.bump import BumpSpec
from versionslot.errors import MalformedStoredValue, TransportError
from versionslot.keys import KeyProvisioner
from versionslot.stores.base import RemoteStore, WriteOutcome, WriteStatus
from versionslot.util import log
from versionslot.version import Version


class State(Enum):
    SYNCING = "syncing"
    READING = "reading"
    WRITING = "writing"
    RETRYING = "retrying"
    DONE = "done"
    FAILED = "failed"


DEFAULT_COMMIT_MESSAGE = "bump to {version}"


class ConcurrencyController:
    def __init__(
        self,
        store: RemoteStore,
        file: str,
        initial_version: Version = Version(0, 0, 0),
        provisioner: Optional[KeyProvisioner] = None,
        private_key: Optional[str] = None,
        commit_message: str = DEFAULT_COMMIT_MESSAGE,
    ):
        self.store = store
        self.file = file
        self.initial_version = initial_version
        self.provisioner = provisioner
        self.private_key = private_key
        self.commit_message = commit_message

    def bump(self, bump: BumpSpec, initial: Optional[Version] = None) -> Version:
        """Applies bump to the stored version (or to initial if nothing is stored yet)
        and returns the version that was written."""
        initial = initial or self.initial_version

        def compute(current: Optional[Version]) -> Version:
            return bump.apply(current if current is not None else initial)

        with events.operation_span("bump", bump=bump):
            return self._update(compute, needs_current=True)

    def set_exact(self, target: Version) -> Version:
        """Stores target regardless of what is currently stored."""
        with events.operation_span("set", target=str(target)):
            return self._update(lambda _current: target, needs_current=False)

    def check(self, cursor: Optional[Version] = None) -> list[Version]:
        """Returns the stored version if it is newer than cursor, as a list of at most one.

        An empty slot reports the initial version so a first-time caller always
        has something to start from.
        """
        with events.operation_span("check", cursor=str(cursor) if cursor else None):
            self._provision()
            try:
                self._transition(State.SYNCING, 1)
                self.store.sync()
                self._transition(State.READING, 1)
                current = self._read_current()
            except Exception:
                self._transition(State.FAILED, 1)
                raise
            self._transition(State.DONE, 1)

        if current is None:
            return [self.initial_version]
        if cursor is None or current > cursor:
            return [current]
        return []

    def _update(self, compute: Callable[[Optional[Version]], Version], needs_current: bool) -> Version:
        self._provision()
        attempt = 1
        state = State.SYNCING
        current = new_version = None
        outcome: Optional[WriteOutcome] = None

        while True:
            self._transition(state, attempt)
            try:
                match state:
                    case State.SYNCING:
                        self.store.sync()
                        state = State.READING if needs_current else State.WRITING
                    case State.READING:
                        current = self._read_current()
                        state = State.WRITING
                    case State.WRITING:
                        new_version = compute(current)
                        outcome = self._write(new_version)
                        state = self._next_state(outcome)
                    case State.RETRYING:
                        events.emit(events.WRITE_CONFLICT, attempt=attempt, value=str(new_version), detail=outcome.detail)
                        attempt += 1
                        current = new_version = outcome = None
                        state = State.SYNCING
                    case State.DONE:
                        log.info(f"{log.plain(self.file)} is now {new_version}")
                        return new_version
                    case State.FAILED:
                        raise outcome.cause or TransportError(outcome.detail or "write failed")
            except Exception:
                if state is not State.FAILED:
                    self._transition(State.FAILED, attempt)
                raise

    def _next_state(self, outcome: WriteOutcome) -> State:
        if outcome.is_written():
            return State.DONE
        match outcome.status:
            case WriteStatus.CONFLICT:
                return State.RETRYING
            case _:
                return State.FAILED

    def _write(self, new_version: Version) -> WriteOutcome:
        value = str(new_version)
        message = self.commit_message.replace("{version}", value).replace("{file}", self.file)
        return self.store.propose_write(self.file, value, message)

    def _read_current(self) -> Optional[Version]:
        raw = self.store.read(self.file)
        if raw is None:
            log.debug(f"{self.file} does not exist yet")
            return None
        try:
            return Version.parse(raw)
        except ValueError:
            raise MalformedStoredValue(raw, self.file) from None

    def _provision(self):
        if self.provisioner is not None:
            self.provisioner.ensure(self.private_key)

    def _transition(self, state: State, attempt: int):
        events.emit(events.SLOT_STATE, state=state.value, attempt=attempt)
