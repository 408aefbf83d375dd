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

"""Products hcinstall knows how to locate, fetch and build.

A Product describes what is being installed: its name on the release
service, the executable it ships, how to ask that executable for its
version, and (optionally) how to build it from source.

Two products are registered out of the box, TERRAFORM and VAULT. Callers
may construct their own Product values or register them by name so the
CLI can find them.

Example:
    Use a built-in product:
        ```python
        from hcinstall.product import TERRAFORM

        print(TERRAFORM.binary_name())  # "terraform" ("terraform.exe" on Windows)
        ```

    Describe a custom product:
        ```python
        from hcinstall.product import Product, register_product

        waypoint = Product(
            name="waypoint",
            version_pattern=r"CLI: v(\\S+)",
        )
        register_product(waypoint)
        ```
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import re
import subprocess
import sys

from hcinstall.context import Context
from hcinstall.exceptions import ConfigError, ExecutionError
from hcinstall.io.process import run_command
from hcinstall.versioning import Version, parse_version

VERSION_PROBE_TIMEOUT = 10


@dataclass(frozen=True)
class BuildInstructions:
    """How to build a product from a source checkout.

    Attributes:
        git_repo_url: Repository to fetch the revision from.
        prerequisites: Programs that must be on PATH before building.
        build_args: Build command; "{output}" is replaced with the path
            the executable must be written to.
        env: Extra environment variables for the build command.
    """

    git_repo_url: str
    prerequisites: tuple[str, ...] = ("go",)
    build_args: tuple[str, ...] = ("go", "build", "-o", "{output}")
    env: tuple[tuple[str, str], ...] = (("CGO_ENABLED", "0"),)

    def command(self, output: Path) -> list[str]:
        return [arg.replace("{output}", str(output)) for arg in self.build_args]


@dataclass(frozen=True)
class Product:
    """Identity of an installable product.

    Attributes:
        name: Name on the release service and default executable base name.
        version_args: Arguments that make the executable print its version.
        version_pattern: Regex whose first group captures the version from
            that output.
        executable: Executable base name when it differs from ``name``.
        build: Instructions for building from source, if supported.
    """

    name: str
    version_pattern: str = r"v(\d+\.\d+\.\d+\S*)"
    version_args: tuple[str, ...] = ("version",)
    executable: str | None = None
    build: BuildInstructions | None = None

    def binary_name(self) -> str:
        """Executable file name for the running platform."""
        base = self.executable or self.name
        if sys.platform.startswith("win"):
            return f"{base}.exe"
        return base

    def parse_version(self, output: str) -> Version:
        """Extract the version from the executable's version output.

        Raises:
            ValueError: If the output does not contain a version.
        """
        m = re.search(self.version_pattern, output)
        if not m:
            raise ValueError(
                f"no {self.name} version found in output: {output.strip()[:200]!r}"
            )
        return parse_version(m.group(1))

    def get_version(
        self, exec_path: Path, ctx: Context, timeout: float = VERSION_PROBE_TIMEOUT
    ) -> Version:
        """Run the executable's version subcommand and parse the result.

        Raises:
            ExecutionError: If the binary cannot run, exits non-zero, times
                out, or prints no parseable version.
            CancelledError: If the context is done.
        """
        try:
            result = run_command(
                [str(exec_path), *self.version_args], ctx, timeout=timeout
            )
        except OSError as err:
            raise ExecutionError(f"failed to run {exec_path}: {err}") from err
        except subprocess.TimeoutExpired as err:
            raise ExecutionError(
                f"{exec_path} timed out after {err.timeout}s reporting its version"
            ) from err

        if not result.ok:
            raise ExecutionError(
                f"{exec_path} {' '.join(self.version_args)} exited with code "
                f"{result.returncode}: {result.output.strip()[:200]}"
            )
        try:
            return self.parse_version(result.output)
        except ValueError as err:
            raise ExecutionError(str(err)) from err

    def __str__(self) -> str:
        return self.name


TERRAFORM = Product(
    name="terraform",
    version_pattern=r"Terraform v(\S+)",
    build=BuildInstructions(git_repo_url="https://github.com/hashicorp/terraform.git"),
)

VAULT = Product(
    name="vault",
    version_pattern=r"Vault v(\S+)",
    build=BuildInstructions(git_repo_url="https://github.com/hashicorp/vault.git"),
)


# -------------------------------
# Product Registry
# -------------------------------

_PRODUCT_REGISTRY: dict[str, Product] = {}


def register_product(product: Product) -> None:
    """Register a product by name. Re-registering a name replaces it."""
    _PRODUCT_REGISTRY[product.name] = product


def get_product(name: str) -> Product:
    """Look up a registered product by name.

    Raises:
        ConfigError: If the name is not registered. The message lists the
            available products.
    """
    if name not in _PRODUCT_REGISTRY:
        available = ", ".join(sorted(_PRODUCT_REGISTRY))
        raise ConfigError(
            f"Unknown product: {name!r}. Available: {available or '(none)'}"
        )
    return _PRODUCT_REGISTRY[name]


def list_products() -> list[str]:
    return sorted(_PRODUCT_REGISTRY)


register_product(TERRAFORM)
register_product(VAULT)
