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

"""
hcinstall - locate, fetch or build HashiCorp product binaries.

hcinstall gives a program a path to a runnable executable of a product
(Terraform, Vault, ...) at a version it can use. Callers list candidate
sources in priority order; the first one that works wins, and everything
hcinstall created along the way can be removed again.

Sources
-------
fs : package
    Binaries already on disk (PATH search plus version probe).
releases : package
    Published releases, signature- and checksum-verified before use.
build : package
    Builds from a git revision.

Quick Start
-----------
Find a matching local Terraform, or install the newest matching release:

    >>> from hcinstall import Context, Installer, fs, releases
    >>> from hcinstall.product import TERRAFORM
    >>> with Installer() as installer:
    ...     result = installer.ensure(
    ...         Context.background(),
    ...         [
    ...             fs.Version(product=TERRAFORM, constraints="~> 1.3"),
    ...             releases.LatestVersion(product=TERRAFORM, constraints="~> 1.3"),
    ...         ],
    ...     )

From the command line:

    $ hcinstall ensure terraform --constraint "~> 1.3"

Package Structure
-----------------
installer : module
    Installer orchestration and the removal ledger.
versioning : package
    Version parsing, constraints and selection.
config : package
    YAML settings loading and merging.
io : package
    HTTP transfers and subprocess execution.
cli : module
    Command-line interface with argparse.
"""

__version__ = "0.1.0"
__author__ = "Roger Cibrian"
__license__ = "Apache-2.0"
__description__ = "Locate, download and verify, or build HashiCorp product binaries"

# Re-export commonly used names for convenience
from hcinstall import build, fs, releases
from hcinstall.context import Context
from hcinstall.exceptions import (
    AggregateError,
    BuildError,
    CancelledError,
    ChecksumMismatchError,
    ConfigError,
    DeadlineExceededError,
    ExecutionError,
    HCInstallError,
    NetworkError,
    NotFoundError,
    StructuralError,
    VCSError,
    VerificationError,
)
from hcinstall.installer import Installer
from hcinstall.product import TERRAFORM, VAULT, Product
from hcinstall.results import InstallResult

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "__description__",
    "AggregateError",
    "BuildError",
    "CancelledError",
    "ChecksumMismatchError",
    "ConfigError",
    "Context",
    "DeadlineExceededError",
    "ExecutionError",
    "HCInstallError",
    "InstallResult",
    "Installer",
    "NetworkError",
    "NotFoundError",
    "Product",
    "StructuralError",
    "TERRAFORM",
    "VAULT",
    "VCSError",
    "VerificationError",
    "build",
    "fs",
    "releases",
]
