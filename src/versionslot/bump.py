"""Bump rules that advance a Version.

Each bump is a small immutable object with an ``apply(version)`` method so that
the controller can re-apply the same bump against whatever value it finds in
the slot on every attempt.
"""
from dataclasses import dataclass
from typing import Protocol

from versionslot.version import Version


class BumpSpec(Protocol):
    def apply(self, v: Version) -> Version: ...


@dataclass(frozen=True)
class MajorBump:
    def apply(self, v: Version) -> Version:
        return Version(v.major + 1, 0, 0)


@dataclass(frozen=True)
class MinorBump:
    def apply(self, v: Version) -> Version:
        return Version(v.major, v.minor + 1, 0)


@dataclass(frozen=True)
class PatchBump:
    def apply(self, v: Version) -> Version:
        return Version(v.major, v.minor, v.patch + 1)


@dataclass(frozen=True)
class FinalBump:
    """Promotes a prerelease to its release (1.0.0-rc.2 -> 1.0.0).
    A version that is already final is returned as-is."""

    def apply(self, v: Version) -> Version:
        return Version(v.major, v.minor, v.patch)


@dataclass(frozen=True)
class PreBump:
    """Starts or advances a named prerelease: 1.0.0 -> 1.0.0-rc.1 -> 1.0.0-rc.2"""
    name: str

    def apply(self, v: Version) -> Version:
        match v.prerelease:
            case (str(current), int(number), *_) if current == self.name:
                prerelease = (self.name, number + 1)
            case _:
                prerelease = (self.name, 1)
        return Version(v.major, v.minor, v.patch, prerelease)


@dataclass(frozen=True)
class MultiBump:
    bumps: tuple

    def apply(self, v: Version) -> Version:
        for bump in self.bumps:
            v = bump.apply(v)
        return v


_levels = {
    "major": MajorBump,
    "minor": MinorBump,
    "patch": PatchBump,
    "final": FinalBump,
}

LEVELS = (*_levels.keys(), "pre")


def bump_from_params(level: str | None, pre: str | None = None) -> BumpSpec:
    """Builds a bump from a level name and an optional prerelease name.

    ``bump_from_params("minor", "rc")`` bumps the minor number and then starts
    an ``rc`` prerelease on top of it.
    """
    bumps = []
    level = (level or "").lower()
    if level and level != "pre":
        if level not in _levels:
            raise ValueError(f"Unknown bump level: {level!r} (expected one of {', '.join(LEVELS)})")
        bumps.append(_levels[level]())
    if pre:
        if not _valid_pre_name(pre):
            raise ValueError(f"Invalid prerelease name: {pre!r}")
        bumps.append(PreBump(pre))
    elif level == "pre":
        raise ValueError("Bump level 'pre' requires a prerelease name")
    if not bumps:
        raise ValueError("Nothing to bump: provide a level and/or a prerelease name")
    if len(bumps) == 1:
        return bumps[0]
    return MultiBump(tuple(bumps))


def _valid_pre_name(name: str) -> bool:
    # must be a single alphanumeric identifier, the counter is appended to it
    try:
        Version.parse(f"0.0.0-{name}")
    except ValueError:
        return False
    return "." not in name and not name.isdigit()
