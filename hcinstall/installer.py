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

"""Orchestration of installation sources.

The Installer tries sources and keeps a ledger of everything it installed
so it can be removed again.

Design Principles:

- Sources are plain descriptors; the Installer only calls validate() and
  resolve() on them and never interprets their errors beyond aggregation
- Only removable results (things a source created) enter the ledger;
  binaries found on disk are never tracked for deletion
- A failed install() or ensure() leaves the ledger unchanged
- remove() is best-effort: it attempts every entry and reports the rest

Example:
    Use a local Terraform if it satisfies the constraint, otherwise
    download the newest matching release; clean up on exit:
        ```python
        from hcinstall import Context, Installer, fs, releases
        from hcinstall.product import TERRAFORM

        with Installer() as installer:
            result = installer.ensure(
                Context.with_timeout(300),
                [
                    fs.Version(product=TERRAFORM, constraints="~> 1.0"),
                    releases.LatestVersion(product=TERRAFORM, constraints="~> 1.0"),
                ],
            )
            print(result.path)
        ```
"""

from __future__ import annotations

from pathlib import Path
import shutil
import threading
from typing import Sequence

from hcinstall.context import Context
from hcinstall.exceptions import (
    AggregateError,
    CancelledError,
    ChecksumMismatchError,
    ConfigError,
    VerificationError,
)
from hcinstall.logging import Logger, get_global_logger
from hcinstall.results import InstallResult
from hcinstall.sources import Source, describe, is_installable

SECURITY_ERRORS = (VerificationError, ChecksumMismatchError)


def _remove_path(path: Path) -> None:
    """Delete a file or directory tree. A missing path counts as removed."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink(missing_ok=True)


class Installer:
    """Resolve sources and track what was installed.

    Args:
        logger: Logger for progress messages, also passed to sources.
            Defaults to the global logger.
        stop_on_security_error: When True, ensure() stops at the first
            VerificationError or ChecksumMismatchError instead of falling
            through to the next source.

    The ledger append is synchronized, so install() and ensure() may be
    called from several threads on one instance. remove() must not run
    concurrently with them.
    """

    def __init__(
        self, logger: Logger | None = None, stop_on_security_error: bool = False
    ) -> None:
        self._logger = logger
        self.stop_on_security_error = stop_on_security_error
        self._ledger: list[InstallResult] = []
        self._lock = threading.Lock()

    @property
    def logger(self) -> Logger:
        return self._logger or get_global_logger()

    def set_logger(self, logger: Logger) -> None:
        self._logger = logger

    @property
    def ledger(self) -> list[InstallResult]:
        """Snapshot of the removable results recorded so far."""
        with self._lock:
            return list(self._ledger)

    def _record(self, result: InstallResult) -> None:
        if not result.removable:
            return
        with self._lock:
            self._ledger.append(result)
        self.logger.debug("INSTALL", f"Recorded for removal: {result.path}")

    def install(self, ctx: Context, installables: Sequence[Source]) -> InstallResult:
        """Install from the first source, with no fallback.

        Only the first entry is validated and resolved; further entries are
        ignored.

        Raises:
            ConfigError: If the list is empty or the source cannot install
                (e.g. a filesystem source).
            HCInstallError: Whatever the source raised, unchanged.
        """
        if not installables:
            raise ConfigError("install requires at least one source")
        source = installables[0]
        if not is_installable(source):
            raise ConfigError(f"{describe(source)} cannot be installed (not removable)")

        source.validate()
        self.logger.verbose("INSTALL", f"Installing from {describe(source)}")
        result = source.resolve(ctx, self.logger)
        self._record(result)
        self.logger.verbose("INSTALL", f"Installed {result.path}")
        return result

    def ensure(self, ctx: Context, sources: Sequence[Source]) -> InstallResult:
        """Return the first source that resolves, trying each in order.

        Raises:
            ConfigError: If the list is empty.
            CancelledError: If the context is done; remaining sources are
                not tried.
            VerificationError, ChecksumMismatchError: Only with
                stop_on_security_error.
            AggregateError: If every source failed; names each source with
                its error.
        """
        if not sources:
            raise ConfigError("ensure requires at least one source")

        errors: list[tuple[str, Exception]] = []
        for source in sources:
            label = describe(source)
            ctx.raise_if_done()
            self.logger.verbose("INSTALL", f"Trying {label}")
            try:
                source.validate()
                result = source.resolve(ctx, self.logger)
            except CancelledError:
                raise
            except SECURITY_ERRORS as err:
                if self.stop_on_security_error:
                    raise
                self.logger.warning("INSTALL", f"{label}: {err}")
                errors.append((label, err))
                continue
            except Exception as err:
                self.logger.verbose("INSTALL", f"{label} failed: {err}")
                errors.append((label, err))
                continue

            self._record(result)
            self.logger.verbose("INSTALL", f"Using {result.path} from {label}")
            return result

        raise AggregateError(f"all {len(errors)} source(s) failed", errors)

    def remove(self, ctx: Context) -> None:
        """Delete everything in the ledger, best-effort.

        Every entry is attempted. Entries removed successfully leave the
        ledger; the rest stay so a later call can retry them.

        Raises:
            AggregateError: Naming each path that could not be deleted.
        """
        with self._lock:
            entries = list(self._ledger)

        failed: list[InstallResult] = []
        errors: list[tuple[str, Exception]] = []
        for entry in entries:
            if ctx.done():
                failed.append(entry)
                continue
            ok = True
            for path in entry.remove_paths or (entry.path,):
                try:
                    _remove_path(Path(path))
                    self.logger.verbose("INSTALL", f"Removed {path}")
                except OSError as err:
                    ok = False
                    errors.append((str(path), err))
            if not ok:
                failed.append(entry)

        with self._lock:
            self._ledger = failed

        if ctx.done() and failed:
            ctx.raise_if_done()
        if errors:
            raise AggregateError(f"failed to remove {len(errors)} path(s)", errors)

    def __enter__(self) -> Installer:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.remove(Context.background())
        except AggregateError as err:
            if exc_type is None:
                raise
            # Do not mask the exception that is already unwinding.
            self.logger.warning("INSTALL", f"cleanup failed: {err}")
