"""
Version parsing, comparison and constraint matching for hcinstall.

This package is pure logic: no network, filesystem or subprocess access.
It is shared by every source: the filesystem locator checks a local
binary's self-reported version, the release catalog picks the newest
published version, and the installer CLI parses user input.

Modules
-------
keys : module
    Version value type with semantic-version precedence.
constraints : module
    Constraint parsing (=, !=, >, <, >=, <=, ~>) and best-version selection.

Public API
----------
Version : dataclass
    Parsed version; ordering ignores build metadata.
Constraints : dataclass
    Conjunction of predicates over versions.
parse_version : function
    Parse "1.3.7", "v0.15.0-beta2", "1.9.8+ent".
parse_constraints : function
    Parse "~> 1.0", ">= 1.2, < 2.0".
satisfies : function
    Check a version against constraints.
select_best : function
    Highest candidate satisfying constraints, or None.

Examples
--------
    >>> from hcinstall.versioning import parse_constraints, parse_version, select_best
    >>> c = parse_constraints("~> 1.0")
    >>> str(select_best([parse_version(v) for v in ("0.9.0", "1.4.2", "2.0.0")], c))
    '1.4.2'

Prerelease handling:

    >>> parse_version("1.0.0-rc1") < parse_version("1.0.0")
    True
"""

from .constraints import (
    Constraint,
    Constraints,
    exact_constraint,
    parse_constraints,
    satisfies,
    select_best,
)
from .keys import Version, compare_versions, parse_version

__all__ = [
    "Constraint",
    "Constraints",
    "Version",
    "compare_versions",
    "exact_constraint",
    "parse_constraints",
    "parse_version",
    "satisfies",
    "select_best",
]
