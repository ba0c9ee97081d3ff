"""RemoteStore backed by the GitHub contents API.

Writes carry the blob sha of the file as it was read in the same attempt.
GitHub refuses the update with 409 when the file has changed since, which gives
a structured conflict signal instead of parsed tool output.
"""
import base64
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import requests

from versionslot.errors import TransportError
from versionslot.stores.base import WriteOutcome
from versionslot.util import log

DEFAULT_API_URL = "https://api.github.com"


@dataclass(frozen=True, slots=True)
class _Snapshot:
    """A file as it exists at the synced branch tip."""
    content: Optional[str]
    sha: Optional[str]

    def exists(self) -> bool:
        return self.sha is not None


class GitHubStore:
    def __init__(
        self,
        repository: str,
        branch: str,
        token: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
    ):
        self.repository = repository
        self.branch = branch
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/vnd.github+json"})
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"
        self._tip: Optional[str] = None
        self._snapshots: dict[str, _Snapshot] = {}

    def sync(self) -> None:
        self._snapshots.clear()
        r = self._request("get", f"/repos/{self.repository}/git/ref/heads/{quote(self.branch)}")
        if r.status_code != 200:
            raise _error(f"Could not resolve branch {self.branch}", r)
        self._tip = r.json()["object"]["sha"]
        log.debug(f"{self.repository}@{self.branch} is at {self._tip}")

    def read(self, path: str) -> Optional[str]:
        content = self._snapshot(path).content
        if content is None:
            return None
        tokens = content.split()
        return tokens[0] if tokens else ""

    def propose_write(self, path: str, value: str, message: str) -> WriteOutcome:
        try:
            snapshot = self._snapshot(path)
        except TransportError as e:
            return WriteOutcome.failed(e)
        text = value + "\n"
        if snapshot.content == text:
            return WriteOutcome.noop_identical(snapshot.sha)

        body = {
            "message": message,
            "content": base64.b64encode(text.encode("utf-8")).decode("ascii"),
            "branch": self.branch,
        }
        if snapshot.exists():
            body["sha"] = snapshot.sha
        try:
            r = self._request("put", self._contents_path(path), json=body)
        except TransportError as e:
            return WriteOutcome.failed(e)
        return classify_response(r)

    def _snapshot(self, path: str) -> _Snapshot:
        if path in self._snapshots:
            return self._snapshots[path]
        params = {"ref": self._tip or self.branch}
        r = self._request("get", self._contents_path(path), params=params)
        if r.status_code == 404:
            snapshot = _Snapshot(content=None, sha=None)
        elif r.status_code == 200:
            data = r.json()
            if isinstance(data, list) or data.get("type") != "file":
                raise TransportError(f"{path} is not a file in {self.repository}")
            snapshot = _Snapshot(content=_decode(data), sha=data["sha"])
        else:
            raise _error(f"Could not read {path}", r)
        self._snapshots[path] = snapshot
        return snapshot

    def _contents_path(self, path: str) -> str:
        return f"/repos/{self.repository}/contents/{quote(path.lstrip('/'))}"

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        try:
            return self._session.request(method, self.api_url + path, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise TransportError(f"{method.upper()} {path} failed: {e}") from e


def classify_response(r: requests.Response) -> WriteOutcome:
    match r.status_code:
        case 200 | 201:
            return WriteOutcome.accepted(_json(r).get("commit", {}).get("sha", ""))
        case 409:
            return WriteOutcome.conflict(_message(r) or "file changed")
        case 422 if "sha" in _message(r):
            # the file was created by someone else after we found it missing
            return WriteOutcome.conflict(_message(r))
        case _:
            return WriteOutcome.failed(_error("Could not update file", r))


def _decode(data: dict) -> str:
    encoded = data.get("content") or ""
    if data.get("encoding", "base64") != "base64":
        raise TransportError(f"Unsupported content encoding: {data.get('encoding')}")
    return base64.b64decode(encoded).decode("utf-8", errors="replace")


def _json(r: requests.Response) -> dict:
    try:
        data = r.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _message(r: requests.Response) -> str:
    return str(_json(r).get("message", "")) or r.text


def _error(msg: str, r: requests.Response) -> TransportError:
    return TransportError(f"{msg} (HTTP {r.status_code})", _message(r))
