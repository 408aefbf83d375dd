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

"""Version constraints and best-version selection.

A constraint string is a comma-separated conjunction of predicates, the
syntax HashiCorp tools use everywhere ("~> 1.0", ">= 1.2, < 2.0", "!= 1.5.1").

Operators:

- ``=`` (or no operator): equal to
- ``!=``: not equal to
- ``>``, ``<``, ``>=``, ``<=``: ordering
- ``~>``: pessimistic; allows the rightmost written segment to grow.
  "~> 1.2" means ">= 1.2, < 2.0"; "~> 1.2.3" means ">= 1.2.3, < 1.3.0".

Prerelease rule: a prerelease version only satisfies an ordering or
pessimistic predicate whose own version is a prerelease of the same
release segments. "~> 1.0" therefore never selects "1.4.0-beta1".

Everything here is a pure function of its arguments.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
import re

from .keys import Version, parse_version

_CONSTRAINT_RE = re.compile(r"^\s*(?P<op>~>|>=|<=|!=|=|>|<)?\s*(?P<version>\S+)\s*$")


def _prerelease_check(v: Version, c: Version) -> bool:
    if v.is_prerelease and c.is_prerelease:
        return v.segments == c.segments
    if v.is_prerelease and not c.is_prerelease:
        return False
    return True


def _segment(v: Version, i: int) -> int:
    return v.segments[i] if i < len(v.segments) else 0


def _equal(v: Version, c: Version, written: int) -> bool:
    return v == c


def _not_equal(v: Version, c: Version, written: int) -> bool:
    return v != c


def _greater(v: Version, c: Version, written: int) -> bool:
    return _prerelease_check(v, c) and v > c


def _less(v: Version, c: Version, written: int) -> bool:
    return _prerelease_check(v, c) and v < c


def _greater_equal(v: Version, c: Version, written: int) -> bool:
    return _prerelease_check(v, c) and v >= c


def _less_equal(v: Version, c: Version, written: int) -> bool:
    return _prerelease_check(v, c) and v <= c


def _pessimistic(v: Version, c: Version, written: int) -> bool:
    if not _prerelease_check(v, c):
        return False
    if c.is_prerelease and not v.is_prerelease:
        return False
    if v < c:
        return False
    # Every written segment but the last is pinned.
    for i in range(written - 1):
        if _segment(v, i) != _segment(c, i):
            return False
    return _segment(v, written - 1) >= _segment(c, written - 1)


_OPERATORS: dict[str, Callable[[Version, Version, int], bool]] = {
    "": _equal,
    "=": _equal,
    "!=": _not_equal,
    ">": _greater,
    "<": _less,
    ">=": _greater_equal,
    "<=": _less_equal,
    "~>": _pessimistic,
}


@dataclass(frozen=True)
class Constraint:
    """One predicate, e.g. ">= 1.2".

    Attributes:
        operator: One of "=", "!=", ">", "<", ">=", "<=", "~>".
        version: The version the operator compares against.
        written_segments: How many release segments were written
            ("~> 1.2" has two); drives the pessimistic operator.
    """

    operator: str
    version: Version
    written_segments: int

    def check(self, version: Version) -> bool:
        return _OPERATORS[self.operator](version, self.version, self.written_segments)

    def __str__(self) -> str:
        return f"{self.operator} {self.version}" if self.operator else str(self.version)


@dataclass(frozen=True)
class Constraints:
    """Conjunction of constraints; an empty set accepts every version."""

    items: tuple[Constraint, ...] = ()

    def check(self, version: Version) -> bool:
        return all(c.check(version) for c in self.items)

    def __str__(self) -> str:
        return ", ".join(str(c) for c in self.items)

    def __bool__(self) -> bool:
        return bool(self.items)


def parse_constraints(text: str) -> Constraints:
    """Parse a comma-separated constraint string.

    Raises:
        ValueError: If any predicate is malformed.

    Example:
        >>> str(parse_constraints("~>1.0"))
        '~> 1.0'
    """
    items: list[Constraint] = []
    for part in text.split(","):
        m = _CONSTRAINT_RE.match(part)
        if not m:
            raise ValueError(f"malformed constraint: {part.strip()!r} in {text!r}")
        raw_version = m.group("version")
        version = parse_version(raw_version)
        release = re.match(r"v?([0-9.]+)", raw_version)
        written = len([p for p in release.group(1).split(".") if p]) if release else 3
        items.append(
            Constraint(
                operator=m.group("op") or "=",
                version=version,
                written_segments=max(1, written),
            )
        )
    return Constraints(tuple(items))


def exact_constraint(version: Version) -> Constraints:
    """Constraint set matching exactly ``version``."""
    return Constraints((Constraint("=", version, len(version.segments)),))


def satisfies(constraints: Constraints | None, version: Version) -> bool:
    """True when ``version`` satisfies every predicate (None accepts all)."""
    if constraints is None:
        return True
    return constraints.check(version)


def select_best(
    candidates: Iterable[Version], constraints: Constraints | None
) -> Version | None:
    """Pick the highest candidate satisfying ``constraints``.

    Returns:
        The maximum satisfying version, or None when no candidate matches.
        "Nothing matched" is not an error at this level.
    """
    matching = [v for v in candidates if satisfies(constraints, v)]
    if not matching:
        return None
    return max(matching)
