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

"""Search the filesystem for an already-installed product binary.

Directories are searched in order: caller-supplied extra paths first,
then every entry of PATH. The first regular, executable file with the
product's binary name wins, unless a version constraint is given, in
which case the candidate is asked for its version and skipped when it
does not match.

A candidate that runs and reports the wrong version is simply skipped.
A candidate that cannot be run at all is an ExecutionError, because it
means the environment is broken rather than that nothing matched.
"""

from __future__ import annotations

from collections.abc import Iterable
import os
from pathlib import Path

from hcinstall.context import Context
from hcinstall.exceptions import NotFoundError
from hcinstall.logging import Logger, get_global_logger
from hcinstall.product import Product
from hcinstall.versioning import Constraints, satisfies


def search_dirs(extra_paths: Iterable[Path | str] = ()) -> list[Path]:
    """Directories to search: extra paths, then PATH, without duplicates."""
    dirs: list[Path] = []
    seen: set[str] = set()
    path_entries = os.environ.get("PATH", "").split(os.pathsep)
    for entry in [*map(str, extra_paths), *path_entries]:
        if not entry or entry in seen:
            continue
        seen.add(entry)
        dirs.append(Path(entry))
    return dirs


def is_executable_file(path: Path) -> bool:
    """True for a regular file the current user may execute."""
    try:
        return path.is_file() and os.access(path, os.X_OK)
    except OSError:
        return False


def find_executable(
    product: Product,
    ctx: Context,
    *,
    constraints: Constraints | None = None,
    extra_paths: Iterable[Path | str] = (),
    logger: Logger | None = None,
) -> Path:
    """Find the first acceptable binary for ``product``.

    Args:
        product: Product whose binary name and version parser to use.
        ctx: Context bounding version probes.
        constraints: Version constraints the binary must satisfy. None
            accepts the first binary found without running it.
        extra_paths: Directories searched before PATH.
        logger: Logger for progress messages.

    Returns:
        Absolute path to the accepted binary.

    Raises:
        NotFoundError: If no directory holds an acceptable binary.
        ExecutionError: If probing a candidate's version fails.
        CancelledError: If the context is done.
    """
    logger = logger or get_global_logger()
    binary = product.binary_name()
    dirs = search_dirs(extra_paths)

    logger.verbose("FS", f"Looking for {binary} in {len(dirs)} director(y/ies)")
    if constraints:
        logger.verbose("FS", f"Version constraint: {constraints}")

    skipped: list[str] = []
    for directory in dirs:
        ctx.raise_if_done()
        candidate = directory / binary
        if not is_executable_file(candidate):
            continue

        candidate = candidate.absolute()
        logger.debug("FS", f"Candidate: {candidate}")

        if constraints is None:
            logger.verbose("FS", f"Found {candidate}")
            return candidate

        found_version = product.get_version(candidate, ctx)
        if satisfies(constraints, found_version):
            logger.verbose("FS", f"Found {candidate} (version {found_version})")
            return candidate

        logger.verbose(
            "FS",
            f"Skipping {candidate}: version {found_version} does not satisfy {constraints}",
        )
        skipped.append(f"{candidate} ({found_version})")

    message = f"{binary} not found in search path"
    if constraints:
        message = f"no {binary} satisfying {constraints} found in search path"
    if skipped:
        message += f"; skipped: {', '.join(skipped)}"
    raise NotFoundError(message)
