import re
from dataclasses import dataclass, field
from functools import total_ordering

# https://semver.org/#is-there-a-suggested-regular-expression-regex-to-check-a-semver-string
SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+(?P<build>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$",
    re.ASCII,
)

Identifier = int | str


def _split_identifiers(s: str | None) -> tuple[Identifier, ...]:
    if not s:
        return ()
    return tuple(int(part) if part.isdigit() else part for part in s.split("."))


def _compare_identifier(a: Identifier, b: Identifier) -> int:
    # numeric identifiers always have lower precedence than alphanumeric ones
    match a, b:
        case int(), str():
            return -1
        case str(), int():
            return 1
        case _:
            return (a > b) - (a < b)


def _compare_prerelease(a: tuple, b: tuple) -> int:
    if a == b:
        return 0
    # a release (no prerelease) sorts after any of its prereleases
    if not a:
        return 1
    if not b:
        return -1
    for left, right in zip(a, b):
        result = _compare_identifier(left, right)
        if result:
            return result
    return (len(a) > len(b)) - (len(a) < len(b))


@total_ordering
@dataclass(frozen=True, slots=True, eq=False)
class Version:
    """Immutable semantic version ordered by semver precedence.

    Build metadata is carried along when formatting but ignored when
    comparing, so ``1.0.0+a == 1.0.0+b``.
    """
    major: int
    minor: int = 0
    patch: int = 0
    prerelease: tuple[Identifier, ...] = field(default=())
    build: tuple[str, ...] = field(default=())

    @staticmethod
    def parse(s: str) -> "Version":
        m = SEMVER_RE.match(s.strip()) if isinstance(s, str) else None
        if not m:
            raise ValueError(f"Invalid semantic version: {s!r}")
        build = m.group("build")
        return Version(
            major=int(m.group("major")),
            minor=int(m.group("minor")),
            patch=int(m.group("patch")),
            prerelease=_split_identifiers(m.group("pre")),
            build=tuple(build.split(".")) if build else (),
        )

    def compare(self, other: "Version") -> int:
        """Returns -1, 0 or 1 depending on the precedence of self vs other."""
        mine = (self.major, self.minor, self.patch)
        theirs = (other.major, other.minor, other.patch)
        if mine != theirs:
            return -1 if mine < theirs else 1
        return _compare_prerelease(self.prerelease, other.prerelease)

    def __eq__(self, other):
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) == 0

    def __lt__(self, other):
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) < 0

    def __hash__(self):
        return hash((self.major, self.minor, self.patch, self.prerelease))

    def __str__(self):
        s = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            s += "-" + ".".join(str(p) for p in self.prerelease)
        if self.build:
            s += "+" + ".".join(self.build)
        return s
