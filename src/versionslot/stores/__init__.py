from versionslot.stores.base import RemoteStore, WriteOutcome, WriteStatus

__all__ = ["RemoteStore", "WriteOutcome", "WriteStatus"]
