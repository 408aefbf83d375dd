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

"""Shallow checkout of a single git revision.

A full clone is never made. The revision is fetched into a fresh
repository with depth 1 and checked out detached:

    git init
    git fetch --depth 1 <repo> <ref>
    git checkout FETCH_HEAD

Any git failure is a VCSError carrying git's combined output verbatim.
"""

from __future__ import annotations

from pathlib import Path
import subprocess
import time
from typing import Callable, Sequence

from hcinstall.context import Context
from hcinstall.exceptions import VCSError
from hcinstall.io.process import CommandResult, run_command
from hcinstall.logging import Logger, get_global_logger

Runner = Callable[..., CommandResult]

# Keep git from prompting for credentials on a terminal we do not own.
GIT_ENV = {"GIT_TERMINAL_PROMPT": "0"}


def _git(
    args: Sequence[str],
    repo_dir: Path,
    ctx: Context,
    *,
    git_binary: str,
    timeout: float | None,
    runner: Runner,
    logger: Logger,
) -> CommandResult:
    cmd = [git_binary, *args]
    logger.verbose("GIT", f"Running: {' '.join(cmd)}")
    try:
        result = runner(cmd, ctx, cwd=repo_dir, env=GIT_ENV, timeout=timeout)
    except OSError as err:
        raise VCSError(f"failed to run {git_binary}: {err}") from err
    except subprocess.TimeoutExpired as err:
        raise VCSError(f"git {args[0]} timed out after {err.timeout}s") from err

    if not result.ok:
        raise VCSError(
            f"git {args[0]} failed (exit code {result.returncode})", result.output
        )
    for line in result.output.strip().splitlines():
        logger.debug("GIT", f"  {line}")
    return result


def checkout_revision(
    repo_url: str,
    ref: str,
    repo_dir: Path,
    ctx: Context,
    *,
    git_binary: str = "git",
    timeout: float | None = None,
    runner: Runner = run_command,
    logger: Logger | None = None,
) -> None:
    """Check out ``ref`` of ``repo_url`` into ``repo_dir``.

    Args:
        repo_url: Repository URL or local path.
        ref: Branch, tag or commit to fetch.
        repo_dir: Existing empty directory to turn into the checkout.
        ctx: Context bounding every git invocation.
        git_binary: git executable name or path.
        timeout: Limit for the whole checkout, clipped to the deadline.
        runner: Command runner (run_command signature).
        logger: Logger for progress messages.

    Raises:
        VCSError: If git cannot run, times out, or fails.
        CancelledError: If the context is done.
    """
    logger = logger or get_global_logger()
    started_at = time.monotonic()

    logger.verbose("GIT", f"Fetching {ref} from {repo_url}")
    for args in (
        ["init", "--quiet"],
        ["fetch", "--depth", "1", repo_url, ref],
        ["checkout", "--quiet", "FETCH_HEAD"],
    ):
        # The limit covers the whole checkout, not each git invocation.
        left = None
        if timeout is not None:
            left = max(timeout - (time.monotonic() - started_at), 0.0)
        _git(
            args,
            repo_dir,
            ctx,
            git_binary=git_binary,
            timeout=left,
            runner=runner,
            logger=logger,
        )
