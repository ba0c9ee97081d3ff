from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from versionslot.errors import TransportError


class WriteStatus(Enum):
    ACCEPTED = "accepted"
    CONFLICT = "conflict"
    NOOP_IDENTICAL = "noop_identical"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class WriteOutcome:
    status: WriteStatus
    cause: Optional[TransportError] = None
    detail: str = ""

    @staticmethod
    def accepted(detail: str = "") -> "WriteOutcome":
        return WriteOutcome(WriteStatus.ACCEPTED, detail=detail)

    @staticmethod
    def conflict(detail: str = "") -> "WriteOutcome":
        return WriteOutcome(WriteStatus.CONFLICT, detail=detail)

    @staticmethod
    def noop_identical(detail: str = "") -> "WriteOutcome":
        return WriteOutcome(WriteStatus.NOOP_IDENTICAL, detail=detail)

    @staticmethod
    def failed(cause: TransportError) -> "WriteOutcome":
        return WriteOutcome(WriteStatus.FAILED, cause=cause, detail=str(cause))

    def is_written(self) -> bool:
        return self.status in (WriteStatus.ACCEPTED, WriteStatus.NOOP_IDENTICAL)


class RemoteStore(Protocol):
    """A versioned remote text resource.

    ``sync`` brings the local view to the tip of the configured branch,
    ``read`` returns the stored text for a path (None if absent) and
    ``propose_write`` tries to publish a new value, classifying the result.
    Transport failures in ``sync``/``read`` are raised as TransportError,
    in ``propose_write`` they are returned as a FAILED outcome.
    """

    def sync(self) -> None: ...

    def read(self, path: str) -> Optional[str]: ...

    def propose_write(self, path: str, value: str, message: str) -> WriteOutcome: ...
