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

"""Logging interface for hcinstall.

Library modules report progress through a small Logger protocol instead of
printing directly, so an embedding application decides where output goes.
An Installer carries its own logger (see Installer.set_logger) and hands it
to every source it resolves; code running outside an installer falls back
to the global logger.

Output levels:

- Step: Always printed (coarse progress of a CLI command)
- Warning: Always printed (something the user should know about)
- Verbose: Only printed when verbose mode is enabled
- Debug: Only printed when debug mode is enabled (implies verbose)

Example:
    Give an installer a chatty logger:
        ```python
        from hcinstall import Installer
        from hcinstall.logging import get_logger

        installer = Installer()
        installer.set_logger(get_logger(verbose=True))
        ```

    Use in library code:
        ```python
        def resolve(self, ctx, logger=None):
            logger = logger or get_global_logger()
            logger.verbose("FS", "Searching PATH...")
        ```

Note:
    The default global logger is silent, so library functions print nothing
    unless a logger is configured.
"""

from __future__ import annotations

from typing import Protocol


class Logger(Protocol):
    """Protocol for logger implementations."""

    def step(self, step: int, total: int, message: str) -> None:
        """Print a step indicator.

        Args:
            step: Current step number (1-based).
            total: Total number of steps.
            message: Step description.
        """
        ...

    def warning(self, prefix: str, message: str) -> None:
        """Print a warning regardless of verbosity."""
        ...

    def verbose(self, prefix: str, message: str) -> None:
        """Print a verbose log message.

        Args:
            prefix: Message prefix (e.g., "FS", "RELEASES").
            message: Log message.
        """
        ...

    def debug(self, prefix: str, message: str) -> None:
        """Print a debug log message.

        Args:
            prefix: Message prefix (e.g., "HTTP", "GIT").
            message: Log message.
        """
        ...


class DefaultLogger:
    """Logger that prints to stdout, honouring verbose and debug flags."""

    def __init__(self, verbose: bool = False, debug: bool = False) -> None:
        self._verbose = verbose or debug
        self._debug = debug

    def step(self, step: int, total: int, message: str) -> None:
        print(f"[{step}/{total}] {message}")

    def warning(self, prefix: str, message: str) -> None:
        print(f"[{prefix}] WARNING: {message}")

    def verbose(self, prefix: str, message: str) -> None:
        if self._verbose:
            print(f"[{prefix}] {message}")

    def debug(self, prefix: str, message: str) -> None:
        if self._debug:
            print(f"[{prefix}] {message}")


class SilentLogger:
    """Logger that suppresses all output."""

    def step(self, step: int, total: int, message: str) -> None:
        pass

    def warning(self, prefix: str, message: str) -> None:
        pass

    def verbose(self, prefix: str, message: str) -> None:
        pass

    def debug(self, prefix: str, message: str) -> None:
        pass


_global_logger: Logger = SilentLogger()


def get_logger(verbose: bool = False, debug: bool = False) -> Logger:
    """Get a stdout logger with the given verbosity.

    Args:
        verbose: If True, logger will print verbose messages.
        debug: If True, logger will print debug messages (implies verbose).

    Returns:
        A DefaultLogger configured with the specified verbosity.
    """
    return DefaultLogger(verbose=verbose, debug=debug)


def get_global_logger() -> Logger:
    """Return the global logger instance (silent unless configured)."""
    return _global_logger


def set_global_logger(logger: Logger) -> None:
    """Set the global logger instance.

    Args:
        logger: Logger instance to use as the global logger.

    Note:
        This affects library code that runs without an explicit logger.
        Prefer Installer.set_logger() for isolation.
    """
    global _global_logger
    _global_logger = logger
