class VersionSlotError(Exception):
    """Base class for errors surfaced to callers of the controller."""


class ConfigError(VersionSlotError):
    pass


class UnsupportedCredential(VersionSlotError):
    pass


class TransportError(VersionSlotError):
    """The remote could not be reached, synced or written for reasons other than a conflict."""

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output

    def __str__(self):
        msg = super().__str__()
        if self.output:
            return f"{msg}\n{self.output.rstrip()}"
        return msg


class MalformedStoredValue(VersionSlotError):
    def __init__(self, raw: str, path: str = ""):
        where = f" in {path}" if path else ""
        super().__init__(f"Stored value{where} is not a semantic version: {raw!r}")
        self.raw = raw
        self.path = path
