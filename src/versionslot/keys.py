import os
from pathlib import Path

from versionslot.errors import UnsupportedCredential
from versionslot.util import log

ENCRYPTED_MARKER = "ENCRYPTED"


class KeyProvisioner:
    """Writes an ssh private key to ``key_path`` once and exposes the
    environment git needs to use it.

    The environment is kept on the instance (``env``) and handed to the git
    adapter explicitly, the process environment is never modified.
    """

    def __init__(self, key_path):
        self.key_path = Path(key_path)
        self.env: dict[str, str] = {}
        self._provisioned = False

    def ensure(self, material: str | None) -> None:
        if material and ENCRYPTED_MARKER in material:
            raise UnsupportedCredential("private keys with passphrases are not supported")
        if self._provisioned:
            return
        if material:
            if not self.key_path.exists():
                log.debug(f"writing private key to {self.key_path}")
                self.key_path.parent.mkdir(parents=True, exist_ok=True)
                fd = os.open(self.key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
                with os.fdopen(fd, "w") as fp:
                    fp.write(_with_trailing_newline(material))
            self.env["GIT_SSH_COMMAND"] = f"ssh -i {self.key_path}"
        self._provisioned = True

    @property
    def provisioned(self) -> bool:
        return self._provisioned


def _with_trailing_newline(s: str) -> str:
    # openssh refuses keys whose last line is not terminated
    return s if s.endswith("\n") else s + "\n"
