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

"""Source protocol shared by every way of obtaining an executable.

A source is a frozen dataclass describing one strategy: look on disk
(hcinstall.fs), fetch a release (hcinstall.releases), or build a revision
(hcinstall.build). The installer only relies on this contract:

- ``removable``: class attribute; True when the variant creates files the
  installer may delete later. Such sources are "installables".
- ``validate()``: cheap field checks, no I/O. Raises ConfigError.
- ``resolve(ctx, logger=None)``: obtain the executable. Returns an
  InstallResult or raises the most specific hcinstall error.

Design Philosophy:
    - Sources are Protocol classes (structural subtyping, not inheritance)
    - Each variant is a flat data + behavior pair, never subclassed
    - Callers construct sources directly; there is no factory registry

Example:
    A custom source only needs the three members:
        ```python
        @dataclass(frozen=True)
        class Pinned:
            path: Path
            removable: ClassVar[bool] = False

            def validate(self) -> None: ...

            def resolve(self, ctx, logger=None) -> InstallResult:
                return InstallResult(path=self.path, removable=False)
        ```
"""

from __future__ import annotations

from typing import ClassVar, Protocol, runtime_checkable

from hcinstall.context import Context
from hcinstall.logging import Logger
from hcinstall.results import InstallResult


@runtime_checkable
class Source(Protocol):
    """Protocol for all sources."""

    removable: ClassVar[bool]

    def validate(self) -> None:
        """Check the descriptor's fields without touching disk or network.

        Raises:
            ConfigError: If a required field is missing or invalid.
        """
        ...

    def resolve(self, ctx: Context, logger: Logger | None = None) -> InstallResult:
        """Obtain the executable this source describes.

        Raises:
            HCInstallError: The most specific subclass for the failure.
        """
        ...


def is_installable(source: object) -> bool:
    """True for sources whose results the installer owns and can remove."""
    return bool(getattr(source, "removable", False))


def describe(source: object) -> str:
    """Label used in logs and aggregated errors."""
    return str(source)
