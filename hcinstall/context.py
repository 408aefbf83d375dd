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

"""Cancellation and deadlines for blocking operations.

Every installer entry point takes a Context. Network requests, subprocesses
and download loops ask it how much time is left and whether the caller gave
up, so a cancelled or expired call returns promptly instead of finishing an
installation nobody is waiting for.

Example:
    Give up after two minutes:
        ```python
        from hcinstall.context import Context

        ctx = Context.with_timeout(120)
        path = installer.ensure(ctx, sources)
        ```

    Cancel from another thread:
        ```python
        ctx = Context.background()
        threading.Timer(5, ctx.cancel).start()
        ```
"""

from __future__ import annotations

import threading
import time

from hcinstall.exceptions import CancelledError, DeadlineExceededError


class Context:
    """Deadline plus cancellation flag shared by one top-level call.

    Attributes:
        deadline: Monotonic clock value after which the context is done,
            or None for no deadline.
    """

    def __init__(self, deadline: float | None = None) -> None:
        self.deadline = deadline
        self._cancelled = threading.Event()

    @classmethod
    def background(cls) -> Context:
        """Return a context that never expires unless cancelled."""
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float) -> Context:
        """Return a context that expires ``seconds`` from now."""
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        """Mark the context cancelled. Safe to call from any thread."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        """Seconds until the deadline (never negative), or None."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def done(self) -> bool:
        """True once cancelled or past the deadline."""
        if self.cancelled:
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def raise_if_done(self) -> None:
        """Raise CancelledError or DeadlineExceededError if the context is done."""
        if self.cancelled:
            raise CancelledError("operation cancelled")
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise DeadlineExceededError("operation deadline exceeded")

    def timeout(self, default: float | None) -> float | None:
        """Clip a per-operation timeout to the time left on the deadline.

        Args:
            default: Timeout the operation would use on its own, or None.

        Returns:
            The smaller of ``default`` and the remaining time; None only
            when neither bounds the operation.
        """
        remaining = self.remaining()
        if remaining is None:
            return default
        if default is None:
            return remaining
        return min(default, remaining)
