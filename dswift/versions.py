"""
Semantic versions used by dswift-tools-version headers and package requirements.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Optional, Tuple, Union

_VERSION_RE = re.compile(
    r"^(?P<major>\d+)"
    r"(?:\.(?P<minor>\d+))?"
    r"(?:\.(?P<patch>\d+))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z.-]+))?$"
)


def _pre_key(part: str) -> Tuple[int, Union[int, str]]:
    # numeric identifiers sort before alphanumeric ones
    return (0, int(part)) if part.isdigit() else (1, part)


@total_ordering
@dataclass(frozen=True)
class SingleVersion:
    """
    Версия вида major[.minor[.patch]][-prerelease][+build].

    Отсутствующие minor/patch при сравнении считаются нулями,
    но сохраняются для исходного текстового представления.
    """
    major: int
    minor: Optional[int] = None
    patch: Optional[int] = None
    prerelease: Tuple[str, ...] = field(default_factory=tuple)
    build: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def try_parse(cls, text: str) -> Optional["SingleVersion"]:
        m = _VERSION_RE.match(text.strip())
        if not m:
            return None
        return cls(
            major=int(m.group("major")),
            minor=int(m.group("minor")) if m.group("minor") is not None else None,
            patch=int(m.group("patch")) if m.group("patch") is not None else None,
            prerelease=tuple(m.group("pre").split(".")) if m.group("pre") else (),
            build=tuple(m.group("build").split(".")) if m.group("build") else (),
        )

    @classmethod
    def parse(cls, text: str) -> "SingleVersion":
        v = cls.try_parse(text)
        if v is None:
            raise ValueError(f"Invalid version '{text}'")
        return v

    def _key(self):
        core = (self.major, self.minor or 0, self.patch or 0)
        # a version without prerelease ranks above any of its prereleases
        if not self.prerelease:
            return core + ((1,),)
        return core + ((0, tuple(_pre_key(p) for p in self.prerelease)),)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SingleVersion):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "SingleVersion") -> bool:
        if not isinstance(other, SingleVersion):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        s = str(self.major)
        if self.minor is not None:
            s += f".{self.minor}"
        if self.patch is not None:
            s += f".{self.patch}"
        if self.prerelease:
            s += "-" + ".".join(self.prerelease)
        if self.build:
            s += "+" + ".".join(self.build)
        return s


__all__ = ["SingleVersion"]
