# brewcore/version.py
"""
Version values.

`Version` compares component-wise: runs of digits compare numerically, runs
of letters compare lexically, and a numeric component outranks an alphabetic
one at the same position. Missing trailing components count as numeric zero,
so "1.0" > "1.0rc1" and "1.2.10" > "1.2.9".

`PkgVersion` pairs a Version with a revision and is the identity of one
installed keg ("1.2.3", "1.2.3_1").
"""

from __future__ import annotations

import os
import re
from functools import total_ordering
from typing import List, Optional, Tuple, Union

Token = Union[int, str]

_TOKEN_RE = re.compile(r"\d+|[A-Za-z]+")

HEAD = "HEAD"


def _tokenize(v: str) -> Tuple[Token, ...]:
    return tuple(int(t) if t.isdigit() else t.lower() for t in _TOKEN_RE.findall(v))


def _cmp_token(a: Token, b: Token) -> int:
    if isinstance(a, int) and isinstance(b, int):
        return (a > b) - (a < b)
    if isinstance(a, int):
        return 1
    if isinstance(b, int):
        return -1
    return (a > b) - (a < b)


@total_ordering
class Version:
    __slots__ = ("_raw", "_tokens")

    def __init__(self, raw: str):
        raw = str(raw)
        self._raw = raw
        self._tokens = _tokenize(raw)

    @property
    def raw(self) -> str:
        return self._raw

    @property
    def tokens(self) -> Tuple[Token, ...]:
        return self._tokens

    def is_head(self) -> bool:
        return self._raw == HEAD

    def _compare(self, other: "Version") -> int:
        if self.is_head() or other.is_head():
            if self.is_head() and other.is_head():
                return 0
            return 1 if self.is_head() else -1
        a, b = self._tokens, other._tokens
        for i in range(max(len(a), len(b))):
            c = _cmp_token(a[i] if i < len(a) else 0, b[i] if i < len(b) else 0)
            if c:
                return c
        return 0

    def __eq__(self, other):
        if not isinstance(other, Version):
            return NotImplemented
        return self._raw == other._raw

    def __lt__(self, other):
        if not isinstance(other, Version):
            return NotImplemented
        c = self._compare(other)
        if c:
            return c < 0
        return self._raw < other._raw

    def __hash__(self):
        return hash(self._raw)

    def __str__(self):
        return self._raw

    def __repr__(self):
        return f"Version({self._raw!r})"

    # ----------------------
    # URL autodetection
    # ----------------------
    @classmethod
    def detect(cls, url: str) -> Optional["Version"]:
        found = detect_version(url)
        return cls(found) if found else None


_ARCHIVE_EXT_RE = re.compile(
    r"\.(tar\.gz|tar\.bz2|tar\.xz|tar\.lz|tar\.zst|tgz|tbz2?|txz|zip|tar|gem|jar|7z|rar|xz|gz|bz2)$",
    re.IGNORECASE,
)
_VERSION_PATTERNS: List[re.Pattern] = [
    # v1.2.3 / 1.2.3 as the whole stem (github archives)
    re.compile(r"^v?(\d+(?:\.\d+)+[a-z]?\d*)$", re.IGNORECASE),
    # foo-1.2.3, foo_1.2.3.orig, foo-1.2.3-src
    re.compile(r"[-_]v?(\d+(?:\.\d+)+(?:[-_.]?(?:alpha|beta|rc|pre|p|a|b)\d*)?)(?:[-_.](?:orig|src|source|stable|release))?$",
                re.IGNORECASE),
    # foo-1.2a / foo-20140101
    re.compile(r"[-_]v?(\d+[a-z]?\d*)(?:[-_.](?:orig|src|source))?$", re.IGNORECASE),
    # foo1.2.3
    re.compile(r"[a-z](\d+(?:\.\d+)+)$", re.IGNORECASE),
]


def detect_version(url: str) -> Optional[str]:
    """Guess a version string from an archive URL; None when nothing matches."""
    if not url:
        return None
    path = url.split("?", 1)[0].split("#", 1)[0].rstrip("/")
    stem = _ARCHIVE_EXT_RE.sub("", os.path.basename(path))
    for rx in _VERSION_PATTERNS:
        m = rx.search(stem)
        if m:
            return m.group(1)
    return None


@total_ordering
class PkgVersion:
    """Immutable (version, revision) identity."""

    __slots__ = ("_version", "_revision")

    def __init__(self, version: Union[str, Version], revision: int = 0):
        if revision is None:
            revision = 0
        revision = int(revision)
        if revision < 0:
            raise ValueError(f"revision must be >= 0, got {revision}")
        object.__setattr__(self, "_version", version if isinstance(version, Version) else Version(version))
        object.__setattr__(self, "_revision", revision)

    def __setattr__(self, key, value):
        raise AttributeError("PkgVersion is immutable")

    @classmethod
    def parse(cls, s: str) -> "PkgVersion":
        """Inverse of str(): "1.2_3" -> PkgVersion("1.2", 3)."""
        m = re.match(r"^(.+?)_(\d+)$", s)
        if m:
            return cls(m.group(1), int(m.group(2)))
        return cls(s, 0)

    @property
    def version(self) -> Version:
        return self._version

    @property
    def revision(self) -> int:
        return self._revision

    def is_head(self) -> bool:
        return self._version.is_head()

    def _key_compare(self, other: "PkgVersion") -> int:
        c = self._version._compare(other._version)
        if c:
            return c
        c = (self._revision > other._revision) - (self._revision < other._revision)
        if c:
            return c
        a, b = self._version.raw, other._version.raw
        return (a > b) - (a < b)

    def __eq__(self, other):
        if not isinstance(other, PkgVersion):
            return NotImplemented
        return self._version.raw == other._version.raw and self._revision == other._revision

    def __lt__(self, other):
        if not isinstance(other, PkgVersion):
            return NotImplemented
        return self._key_compare(other) < 0

    def __hash__(self):
        return hash((self._version.raw, self._revision))

    def __str__(self):
        if self._revision > 0:
            return f"{self._version}_{self._revision}"
        return str(self._version)

    def __repr__(self):
        return f"PkgVersion({str(self._version)!r}, {self._revision})"
