import shutil
import subprocess

import pytest

from versionslot import events
from versionslot.sinks import AttemptRecorder
from versionslot.stores.base import WriteOutcome

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


class FakeRemote:
    """The shared, authoritative copy of a repository: a value plus a revision counter."""

    def __init__(self, value=None):
        self.value = value
        self.revision = 0

    def commit(self, value):
        self.value = value
        self.revision += 1

    def current(self):
        return self.value.strip() if self.value is not None else None


class FakeStore:
    """A replica of a FakeRemote. A write is only accepted when the remote has not
    moved since the last sync, like a fast-forward-only push.

    ``script`` forces the outcome of the first writes (None means "decide normally"),
    ``before_write`` is called with the attempt number right before each write and
    can be used to let a concurrent writer in.
    """

    def __init__(self, remote, script=None, before_write=None):
        self.remote = remote
        self.script = list(script or [])
        self.before_write = before_write
        self.synced_revision = None
        self.replica = None
        self.syncs = 0
        self.writes = []

    def sync(self):
        self.syncs += 1
        self.synced_revision = self.remote.revision
        self.replica = self.remote.value

    def read(self, path):
        if self.replica is None:
            return None
        tokens = self.replica.split()
        return tokens[0] if tokens else ""

    def propose_write(self, path, value, message):
        self.writes.append(value)
        if self.before_write:
            self.before_write(len(self.writes))
        if self.script:
            forced = self.script.pop(0)
            if forced is not None:
                return forced
        if self.remote.revision != self.synced_revision:
            return WriteOutcome.conflict("remote moved")
        if self.remote.value == value + "\n":
            return WriteOutcome.noop_identical()
        self.remote.commit(value + "\n")
        return WriteOutcome.accepted()


@pytest.fixture
def fake_remote():
    return FakeRemote()


@pytest.fixture
def make_store(fake_remote):
    def _make(remote=None, **kwargs):
        return FakeStore(remote or fake_remote, **kwargs)

    return _make


@pytest.fixture
def recorder():
    rec = AttemptRecorder().install()
    yield rec
    rec.close()


@pytest.fixture
def clean_event_context():
    token = events._event_context.set({})
    yield
    events._event_context.reset(token)


def git(*args, cwd=None):
    return subprocess.run(
        ["git", "-c", "user.name=test", "-c", "user.email=test@example.com", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    )


@pytest.fixture
def git_remote(tmp_path):
    """A bare repository with a single commit on main, usable as a clone uri."""
    bare = tmp_path / "remote.git"
    git("init", "--bare", str(bare))
    git("symbolic-ref", "HEAD", "refs/heads/main", cwd=bare)
    seed = tmp_path / "seed"
    git("init", str(seed))
    git("symbolic-ref", "HEAD", "refs/heads/main", cwd=seed)
    (seed / "README").write_text("version slot\n")
    git("add", "README", cwd=seed)
    git("commit", "-m", "initial commit", cwd=seed)
    git("push", str(bare), "HEAD:main", cwd=seed)
    return bare


@pytest.fixture
def remote_file():
    def _read(bare, path="version", branch="main"):
        result = subprocess.run(
            ["git", "show", f"{branch}:{path}"], cwd=bare, capture_output=True, text=True
        )
        return result.stdout if result.returncode == 0 else None

    return _read
