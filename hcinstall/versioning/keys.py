# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Core version parsing and ordering for hcinstall.

This module is format-agnostic: it does NOT download or run anything.
It only parses version strings as published by the release index and as
printed by a product's version subcommand, and orders them.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import functools
import re

# ----------------------------
# Parsing
# ----------------------------

_VERSION_RE = re.compile(
    r"""^\s*v?
    (?P<release>[0-9]+(?:\.[0-9]+)*)
    (?:
        -(?P<pre>[0-9A-Za-z~][0-9A-Za-z.\-~]*)
        |(?P<pre_bare>[A-Za-z~][0-9A-Za-z.\-~]*)
    )?
    (?:\+(?P<meta>[0-9A-Za-z.\-~]+))?
    \s*$""",
    re.VERBOSE,
)

_MIN_SEGMENTS = 3


def _normalize_segments(nums: tuple[int, ...]) -> tuple[int, ...]:
    """Pad to three segments and drop trailing zeros beyond the third.

    "1.2" -> (1, 2, 0) and "1.2.0.0" -> (1, 2, 0), so equal versions get
    equal keys regardless of how many zeros were written.
    """
    nums = nums + (0,) * (_MIN_SEGMENTS - len(nums))
    while len(nums) > _MIN_SEGMENTS and nums[-1] == 0:
        nums = nums[:-1]
    return nums


def _split_pre_tokens(pre: str) -> tuple[tuple[int, object], ...]:
    """Split a prerelease suffix into dot-separated, numeric-aware tokens.

    Example: "rc.10" -> ((1, "rc"), (0, 10)), encoded as:
      (0, int) for numeric tokens (sort before text)
      (1, str) for text tokens
    Tuple comparison then gives semver precedence, including "a shorter
    list of equal tokens sorts first" (rc < rc.1).
    """
    out: list[tuple[int, object]] = []
    for t in pre.split("."):
        if not t:
            continue
        if t.isdigit():
            out.append((0, int(t)))
        else:
            out.append((1, t))
    return tuple(out)


# ----------------------------
# Version value type
# ----------------------------


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """Parsed semantic version.

    Equality and ordering ignore build metadata, the same way the release
    index treats "1.9.8" and "1.9.8+ent" as the same point in history with
    different editions.

    Attributes:
        segments: Numeric release segments, at least three.
        prerelease: Prerelease tag without the leading dash ("" if final).
        metadata: Build metadata without the leading plus ("" if none).
        original: The text the version was parsed from.
    """

    segments: tuple[int, ...]
    prerelease: str = ""
    metadata: str = ""
    original: str = field(default="", compare=False)

    def _key(self) -> tuple:
        if not self.prerelease:
            return (self.segments, 1, ())
        return (self.segments, 0, _split_pre_tokens(self.prerelease))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return self.original or self.canonical()

    def __repr__(self) -> str:
        return f"Version({str(self)!r})"

    def canonical(self) -> str:
        """Render as "X.Y.Z[-pre][+meta]" with normalized segments."""
        text = ".".join(str(n) for n in self.segments)
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.metadata:
            text += f"+{self.metadata}"
        return text

    @property
    def core(self) -> str:
        """Release segments only, e.g. "1.9.8" for "1.9.8-rc1+ent"."""
        return ".".join(str(n) for n in self.segments)

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    def with_metadata(self, metadata: str) -> Version:
        """Return a copy with build metadata replaced (e.g. "ent")."""
        bare = replace(self, metadata=metadata, original="")
        return replace(bare, original=bare.canonical())


def parse_version(text: str) -> Version:
    """Parse a version string such as "1.3.7", "v0.15.0-beta2" or "1.9.8+ent".

    Raises:
        ValueError: If the text is not a version.
    """
    m = _VERSION_RE.match(text or "")
    if not m:
        raise ValueError(f"malformed version: {text!r}")
    nums = tuple(int(p) for p in m.group("release").split("."))
    pre = m.group("pre") or m.group("pre_bare") or ""
    return Version(
        segments=_normalize_segments(nums),
        prerelease=pre,
        metadata=m.group("meta") or "",
        original=text.strip(),
    )


def compare_versions(a: str | Version, b: str | Version) -> int:
    """Compare two versions. Returns -1 if a < b, 0 if equal, 1 if a > b."""
    va = a if isinstance(a, Version) else parse_version(a)
    vb = b if isinstance(b, Version) else parse_version(b)
    return (va > vb) - (va < vb)
