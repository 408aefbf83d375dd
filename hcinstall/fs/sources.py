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

"""Sources that find a binary already on disk.

None of these sources create anything, so their results are never
removable and the installer never deletes what they return.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

from hcinstall import versioning
from hcinstall.context import Context
from hcinstall.exceptions import ConfigError, NotFoundError
from hcinstall.logging import Logger
from hcinstall.product import Product
from hcinstall.results import InstallResult

from .locator import find_executable, is_executable_file


def _coerce_paths(paths) -> tuple[Path, ...]:
    if isinstance(paths, (str, Path)):
        return (Path(paths),)
    return tuple(Path(p) for p in paths)


@dataclass(frozen=True)
class AnyVersion:
    """Any installed version of a product, or one exact binary path.

    Configuration example:
        AnyVersion(product=TERRAFORM)
        AnyVersion(exact_bin_path="/opt/tools/terraform")
    """

    product: Product | None = None
    exact_bin_path: Path | None = None
    extra_paths: tuple[Path, ...] = ()

    removable: ClassVar[bool] = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra_paths", _coerce_paths(self.extra_paths))
        if self.exact_bin_path is not None:
            object.__setattr__(self, "exact_bin_path", Path(self.exact_bin_path))

    def validate(self) -> None:
        if self.product is None and self.exact_bin_path is None:
            raise ConfigError("fs.AnyVersion requires either product or exact_bin_path")
        if self.product is not None and self.exact_bin_path is not None:
            raise ConfigError(
                "fs.AnyVersion accepts product or exact_bin_path, not both"
            )

    def resolve(self, ctx: Context, logger: Logger | None = None) -> InstallResult:
        self.validate()
        if self.exact_bin_path is not None:
            ctx.raise_if_done()
            if not is_executable_file(self.exact_bin_path):
                raise NotFoundError(
                    f"{self.exact_bin_path} is not an executable file"
                )
            path = self.exact_bin_path.absolute()
        else:
            path = find_executable(
                self.product, ctx, extra_paths=self.extra_paths, logger=logger
            )
        return InstallResult(path=path, removable=False, source=str(self))

    def __str__(self) -> str:
        if self.exact_bin_path is not None:
            return f"fs:{self.exact_bin_path}"
        return f"fs:{self.product}"


@dataclass(frozen=True)
class ExactVersion:
    """An installed binary reporting exactly ``version``."""

    product: Product
    version: versioning.Version
    extra_paths: tuple[Path, ...] = ()

    removable: ClassVar[bool] = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra_paths", _coerce_paths(self.extra_paths))
        if isinstance(self.version, str):
            try:
                object.__setattr__(
                    self, "version", versioning.parse_version(self.version)
                )
            except ValueError as err:
                raise ConfigError(str(err)) from err

    def validate(self) -> None:
        if self.product is None:
            raise ConfigError("fs.ExactVersion requires a product")
        if self.version is None:
            raise ConfigError("fs.ExactVersion requires a version")

    def resolve(self, ctx: Context, logger: Logger | None = None) -> InstallResult:
        self.validate()
        path = find_executable(
            self.product,
            ctx,
            constraints=versioning.exact_constraint(self.version),
            extra_paths=self.extra_paths,
            logger=logger,
        )
        return InstallResult(path=path, removable=False, source=str(self))

    def __str__(self) -> str:
        return f"fs:{self.product}@{self.version}"


@dataclass(frozen=True)
class Version:
    """An installed binary whose version satisfies ``constraints``."""

    product: Product
    constraints: versioning.Constraints
    extra_paths: tuple[Path, ...] = ()

    removable: ClassVar[bool] = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra_paths", _coerce_paths(self.extra_paths))
        if isinstance(self.constraints, str):
            try:
                object.__setattr__(
                    self, "constraints", versioning.parse_constraints(self.constraints)
                )
            except ValueError as err:
                raise ConfigError(str(err)) from err

    def validate(self) -> None:
        if self.product is None:
            raise ConfigError("fs.Version requires a product")
        if not self.constraints:
            raise ConfigError("fs.Version requires constraints")

    def resolve(self, ctx: Context, logger: Logger | None = None) -> InstallResult:
        self.validate()
        path = find_executable(
            self.product,
            ctx,
            constraints=self.constraints,
            extra_paths=self.extra_paths,
            logger=logger,
        )
        return InstallResult(path=path, removable=False, source=str(self))

    def __str__(self) -> str:
        return f"fs:{self.product} ({self.constraints})"
