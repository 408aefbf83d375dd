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

"""Cancellable subprocess execution.

Version probing, git and the build toolchain are all opaque subprocesses:
their exit status and combined output are the only signal consumed. This
module runs them with a timeout clipped to the caller's Context deadline
and kills them as soon as the Context is cancelled.

Callers translate the raw failures (OSError, subprocess.TimeoutExpired,
non-zero exit codes) into their own error types.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
import os
from pathlib import Path
import subprocess
import time

from hcinstall.context import Context

# How often a running child is checked against the context.
POLL_INTERVAL = 0.1


@dataclass(frozen=True)
class CommandResult:
    """Exit status and combined stdout/stderr of a finished command."""

    args: tuple[str, ...]
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def run_command(
    args: Sequence[str],
    ctx: Context,
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """Run a command to completion, honouring the context.

    Args:
        args: Program and arguments.
        ctx: Context checked before start and while the child runs.
        cwd: Working directory for the child.
        env: Variables added to (not replacing) the current environment.
        timeout: Own time limit in seconds, clipped to the context deadline.

    Returns:
        The exit code and combined output. A non-zero exit is NOT raised.

    Raises:
        OSError: If the program cannot be started (e.g., not installed).
        subprocess.TimeoutExpired: If the time limit elapses.
        CancelledError: If the context is cancelled or its deadline passes.
    """
    ctx.raise_if_done()

    child_env = None
    if env:
        child_env = dict(os.environ)
        child_env.update(env)

    limit = ctx.timeout(timeout)
    started_at = time.monotonic()

    proc = subprocess.Popen(
        [str(a) for a in args],
        cwd=str(cwd) if cwd else None,
        env=child_env,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        errors="replace",
    )
    try:
        while True:
            try:
                output, _ = proc.communicate(timeout=POLL_INTERVAL)
                break
            except subprocess.TimeoutExpired:
                if ctx.done():
                    proc.kill()
                    proc.communicate()
                    ctx.raise_if_done()
                if limit is not None and time.monotonic() - started_at >= limit:
                    proc.kill()
                    proc.communicate()
                    raise subprocess.TimeoutExpired(list(args), limit) from None
    except BaseException:
        if proc.poll() is None:
            proc.kill()
            proc.wait()
        raise

    return CommandResult(
        args=tuple(str(a) for a in args),
        returncode=proc.returncode,
        output=output or "",
    )
