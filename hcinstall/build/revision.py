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

"""Build a product from a git revision.

Workflow:
    1. Create a staging directory and check out the revision into it
    2. Confirm the build prerequisites are on PATH
    3. Run the product's build command, writing into <staging>/bin
    4. Require the binary to exist
    5. With install_dir, move the binary there and drop the staging tree

The result is removable: either the whole staging directory or, with
install_dir, the directory tree created for it (or only the binary when
install_dir already existed).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import shutil
import subprocess
import tempfile
from typing import TYPE_CHECKING, ClassVar

from hcinstall.context import Context
from hcinstall.exceptions import BuildError, ConfigError, StructuralError
from hcinstall.io.paths import make_dirs
from hcinstall.io.process import run_command
from hcinstall.logging import Logger, get_global_logger
from hcinstall.product import Product
from hcinstall.results import InstallResult

from .git import Runner, checkout_revision

if TYPE_CHECKING:
    from hcinstall.config import Settings

DEFAULT_CLONE_TIMEOUT = 5 * 60
DEFAULT_BUILD_TIMEOUT = 10 * 60


@dataclass(frozen=True)
class GitRevision:
    """A product built from ``ref`` of its git repository.

    Configuration example:
        GitRevision(product=TERRAFORM, ref="v1.3.7")
        GitRevision(product=TERRAFORM, ref="main", install_dir="/opt/tf")
    """

    product: Product
    ref: str = "HEAD"
    install_dir: Path | None = None
    clone_timeout: float = DEFAULT_CLONE_TIMEOUT
    build_timeout: float = DEFAULT_BUILD_TIMEOUT
    git_binary: str = "git"
    runner: Runner = field(default=run_command, compare=False, repr=False)

    removable: ClassVar[bool] = True

    def __post_init__(self) -> None:
        if self.install_dir is not None:
            object.__setattr__(self, "install_dir", Path(self.install_dir).absolute())

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        product: Product,
        ref: str = "HEAD",
        install_dir: Path | None = None,
    ) -> GitRevision:
        """Build a source whose timeouts follow the build.* settings."""
        return cls(
            product=product,
            ref=ref,
            install_dir=install_dir,
            clone_timeout=settings.clone_timeout,
            build_timeout=settings.build_timeout,
        )

    def validate(self) -> None:
        if self.product is None:
            raise ConfigError("build.GitRevision requires a product")
        if self.product.build is None:
            raise ConfigError(f"{self.product} has no build instructions")
        if not self.ref:
            raise ConfigError("build.GitRevision requires a ref")
        if self.clone_timeout <= 0 or self.build_timeout <= 0:
            raise ConfigError("build.GitRevision timeouts must be positive")

    def resolve(self, ctx: Context, logger: Logger | None = None) -> InstallResult:
        """Check out, build and return the product binary.

        Raises:
            VCSError: If the checkout fails (git output attached).
            BuildError: If a prerequisite is missing or the build fails
                (toolchain output attached).
            StructuralError: If the build succeeds without producing the
                binary.
            CancelledError: If the context is done.
        """
        self.validate()
        logger = logger or get_global_logger()
        instructions = self.product.build

        staging = Path(tempfile.mkdtemp(prefix=f"hcinstall-build-{self.product}-"))
        logger.verbose("BUILD", f"Staging directory: {staging}")
        created_dir = None
        try:
            repo_dir = staging / "src"
            repo_dir.mkdir()
            logger.step(1, 3, f"Checking out {self.product} {self.ref}")
            checkout_revision(
                instructions.git_repo_url,
                self.ref,
                repo_dir,
                ctx,
                git_binary=self.git_binary,
                timeout=self.clone_timeout,
                runner=self.runner,
                logger=logger,
            )

            for program in instructions.prerequisites:
                if shutil.which(program) is None:
                    raise BuildError(f"build prerequisite {program!r} not found on PATH")

            logger.step(2, 3, f"Building {self.product}")
            binary = staging / "bin" / self.product.binary_name()
            binary.parent.mkdir()
            self._build(repo_dir, binary, ctx, logger)

            if not binary.is_file():
                raise StructuralError(
                    f"build of {self.product} finished but produced no {binary.name}"
                )

            logger.step(3, 3, "Installing build output")
            if self.install_dir is None:
                return InstallResult(
                    path=binary,
                    removable=True,
                    remove_paths=(staging,),
                    source=str(self),
                )

            created_dir = make_dirs(self.install_dir)
            target = self.install_dir / binary.name
            shutil.move(str(binary), str(target))
            shutil.rmtree(staging, ignore_errors=True)
            logger.verbose("BUILD", f"Installed {target}")
            return InstallResult(
                path=target,
                removable=True,
                remove_paths=(created_dir,) if created_dir else (target,),
                source=str(self),
            )
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            if created_dir is not None:
                shutil.rmtree(created_dir, ignore_errors=True)
            raise

    def _build(self, repo_dir: Path, binary: Path, ctx: Context, logger: Logger) -> None:
        instructions = self.product.build
        cmd = instructions.command(binary)
        logger.verbose("BUILD", f"Running: {' '.join(cmd)}")
        try:
            result = self.runner(
                cmd,
                ctx,
                cwd=repo_dir,
                env=dict(instructions.env),
                timeout=self.build_timeout,
            )
        except OSError as err:
            raise BuildError(f"failed to run {cmd[0]}: {err}") from err
        except subprocess.TimeoutExpired as err:
            raise BuildError(
                f"build of {self.product} timed out after {err.timeout}s"
            ) from err

        if not result.ok:
            raise BuildError(
                f"build of {self.product} failed (exit code {result.returncode})",
                result.output,
            )
        for line in result.output.strip().splitlines():
            logger.debug("BUILD", f"  {line}")

    def __str__(self) -> str:
        return f"build:{self.product}@{self.ref}"
