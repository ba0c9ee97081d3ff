"""RemoteStore backed by a git repository, driven through the git command line.

The outcome of a push is only available as human readable tool output, so this
module classifies it by looking for known phrases. Anything that is not
positively recognised is treated as a conflict or a failure, and a push that
looks successful is confirmed by checking that our commit is part of the
remote branch history (other writers may already have built on top of it).
"""
import os
import subprocess
from pathlib import Path
from typing import Optional

from versionslot.errors import TransportError
from versionslot.stores.base import WriteOutcome, WriteStatus
from versionslot.util import log

NOTHING_TO_COMMIT = "nothing to commit"
PUSH_UP_TO_DATE = "Everything up-to-date"
PUSH_REJECTED = "[rejected]"
PUSH_REMOTE_REJECTED = "[remote rejected]"
PUSH_CONFLICT_MARKERS = (PUSH_UP_TO_DATE, PUSH_REJECTED, PUSH_REMOTE_REJECTED)

DEFAULT_USER_NAME = "versionslot"
DEFAULT_USER_EMAIL = "versionslot@localhost"


def classify_commit(returncode: int, output: str) -> Optional[WriteOutcome]:
    """Returns the final outcome if the commit already decides it, None if the change should be pushed."""
    if NOTHING_TO_COMMIT in output:
        return WriteOutcome.noop_identical(NOTHING_TO_COMMIT)
    if returncode != 0:
        return WriteOutcome.failed(TransportError(f"git commit failed (exit {returncode})", output))
    return None


def classify_push(returncode: int, output: str) -> WriteOutcome:
    for marker in PUSH_CONFLICT_MARKERS:
        if marker in output:
            return WriteOutcome.conflict(marker)
    if returncode != 0:
        return WriteOutcome.failed(TransportError(f"git push failed (exit {returncode})", output))
    return WriteOutcome.accepted("pushed")


class GitStore:
    def __init__(
        self,
        uri: str,
        branch: str,
        work_dir,
        env: Optional[dict] = None,
        user_name: str = DEFAULT_USER_NAME,
        user_email: str = DEFAULT_USER_EMAIL,
    ):
        self.uri = uri
        self.branch = branch
        self.work_dir = Path(work_dir)
        # shared with the KeyProvisioner, which fills it in lazily
        self.env = env if env is not None else {}
        self.user_name = user_name
        self.user_email = user_email

    def sync(self) -> None:
        if not (self.work_dir / ".git").exists():
            log.debug(f"cloning {log.plain(self.uri)} ({self.branch}) into {self.work_dir}")
            self.work_dir.parent.mkdir(parents=True, exist_ok=True)
            self._git("clone", self.uri, "--branch", self.branch, str(self.work_dir), in_work_dir=False)
        else:
            self._git("fetch", "origin", self.branch)
        self._git("reset", "--hard", f"origin/{self.branch}")
        # files left behind by an attempt whose push was rejected
        self._git("clean", "-ffdx")

    def read(self, path: str) -> Optional[str]:
        try:
            # invalid UTF-8 reaches the controller and fails to parse as a version
            with open(self.work_dir / path, encoding="utf-8", errors="replace") as fp:
                content = fp.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise TransportError(f"Could not read {path}: {e}") from e
        tokens = content.split()
        return tokens[0] if tokens else ""

    def propose_write(self, path: str, value: str, message: str) -> WriteOutcome:
        try:
            with open(self.work_dir / path, "w", encoding="utf-8") as fp:
                fp.write(value + "\n")
            self._git("add", path)
        except OSError as e:
            return WriteOutcome.failed(TransportError(f"Could not write {path}: {e}"))
        except TransportError as e:
            return WriteOutcome.failed(e)

        commit = self._git(
            "-c", f"user.name={self.user_name}",
            "-c", f"user.email={self.user_email}",
            "commit", "-m", message,
            check=False,
        )
        outcome = classify_commit(commit.returncode, commit.stdout)
        if outcome is not None:
            return outcome

        push = self._git("push", "origin", f"HEAD:{self.branch}", check=False)
        outcome = classify_push(push.returncode, push.stdout)
        if outcome.status is WriteStatus.ACCEPTED:
            return self._confirm_pushed()
        return outcome

    def _confirm_pushed(self) -> WriteOutcome:
        try:
            local = self._git("rev-parse", "HEAD").stdout.strip()
            self._git("fetch", "origin", self.branch)
        except TransportError as e:
            return WriteOutcome.failed(e)
        ancestry = self._git("merge-base", "--is-ancestor", "HEAD", f"origin/{self.branch}", check=False)
        match ancestry.returncode:
            case 0:
                return WriteOutcome.accepted(local)
            case 1:
                return WriteOutcome.conflict(f"{local} is not in the history of origin/{self.branch}")
            case _:
                return WriteOutcome.failed(
                    TransportError(f"git merge-base failed (exit {ancestry.returncode})", ancestry.stdout)
                )

    def _git(self, *args: str, check: bool = True, in_work_dir: bool = True) -> subprocess.CompletedProcess:
        cwd = self.work_dir if in_work_dir else None
        cmd = ["git", *args]
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                env=self._environment(),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as e:
            raise TransportError(f"Could not run git: {e}") from e
        if result.stdout and log.is_debug_enabled():
            log.debug(log.plain(result.stdout.rstrip()))
        if check and result.returncode != 0:
            raise TransportError(f"{' '.join(cmd[:2])} failed (exit {result.returncode})", result.stdout)
        return result

    def _environment(self) -> dict:
        env = dict(os.environ)
        env.update(self.env)
        # the output classification relies on untranslated messages
        env["LC_ALL"] = "C"
        env["GIT_TERMINAL_PROMPT"] = "0"
        return env
