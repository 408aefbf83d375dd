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

"""Command-line interface for hcinstall.

Commands:

    install: Install an exact published version
    ensure: Use a local binary if it matches, otherwise install the newest
        matching release
    versions: List published versions
    build: Build a product from a git revision

Example:
    Install Terraform 1.3.7 into ./bin:
        ```bash
        $ hcinstall install terraform --version 1.3.7 --path ./bin
        ```

    Find or fetch a Terraform matching a constraint:
        ```bash
        $ hcinstall ensure terraform --constraint "~> 1.3" --path ./bin
        ```

    List published Vault versions:
        ```bash
        $ hcinstall versions vault --constraint ">= 1.12"
        ```

    Enable debug output:
        ```bash
        $ hcinstall install terraform --version 1.3.7 --debug
        ```

Exit Codes:

- 0: Success
- 1: Error (configuration, network, verification or build failure)

Note:
    Each command has its own handler function (cmd_<command>).
    Installed artifacts are left in place; the user asked for them.
    Verbose mode shows full tracebacks on errors for debugging.
"""

from __future__ import annotations

import argparse
from pathlib import Path
import sys
import traceback

import requests

from hcinstall import __version__, build, fs, releases
from hcinstall.config import Settings, load_settings
from hcinstall.context import Context
from hcinstall.exceptions import ConfigError, HCInstallError
from hcinstall.installer import Installer
from hcinstall.io.download import USER_AGENT, make_session
from hcinstall.logging import Logger, get_logger, set_global_logger
from hcinstall.product import get_product, list_products
from hcinstall.results import InstallResult
from hcinstall.versioning import parse_constraints


def _setup(args: argparse.Namespace) -> tuple[Settings, Logger]:
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)
    settings = load_settings(args.config)
    if settings.source_path:
        logger.verbose("CONFIG", f"Loaded settings from {settings.source_path}")
    return settings, logger


def _context(args: argparse.Namespace) -> Context:
    if args.timeout:
        return Context.with_timeout(args.timeout)
    return Context.background()


def _session(settings: Settings) -> requests.Session:
    return make_session(settings.user_agent or USER_AGENT, settings.http_retries)


def _report_error(args: argparse.Namespace, err: Exception) -> int:
    print(f"Error: {err}")
    if args.verbose or args.debug:
        traceback.print_exc()
    return 1


def _print_result(title: str, result: InstallResult) -> None:
    print("=" * 70)
    print(title)
    print("=" * 70)
    print(f"Path:            {result.path}")
    print(f"Source:          {result.source}")
    print(f"Installed:       {'yes' if result.removable else 'no (already on disk)'}")
    print("=" * 70)


def cmd_install(args: argparse.Namespace) -> int:
    """Handler for 'hcinstall install' command.

    Installs one exact published version, verifying the checksum manifest
    signature and the archive digest. With --license-dir the enterprise
    edition is installed and its license files are copied there.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    try:
        settings, logger = _setup(args)
        product = get_product(args.product)
        enterprise = (
            releases.EnterpriseOptions(license_dir=args.license_dir)
            if args.license_dir
            else None
        )
        with _session(settings) as session:
            source = releases.ExactVersion(
                product=product,
                version=args.version,
                install_dir=args.path,
                enterprise=enterprise,
                base_url=settings.releases_base_url,
                session=session,
                verifier=releases.GpgVerifier.from_settings(settings, session),
                timeout=settings.releases_timeout,
            )
            print(f"Installing {source}")
            print()
            result = Installer(logger).install(_context(args), [source])
    except HCInstallError as err:
        return _report_error(args, err)

    _print_result("INSTALL RESULTS", result)
    print()
    print("[SUCCESS] Installed successfully!")
    return 0


def cmd_ensure(args: argparse.Namespace) -> int:
    """Handler for 'hcinstall ensure' command.

    Looks for an installed binary first (matching --constraint when given)
    and falls back to installing the newest matching release.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    try:
        settings, logger = _setup(args)
        product = get_product(args.product)
        if args.constraint:
            local = fs.Version(product=product, constraints=args.constraint)
        else:
            local = fs.AnyVersion(product=product)
        with _session(settings) as session:
            remote = releases.LatestVersion(
                product=product,
                constraints=args.constraint,
                include_prereleases=settings.include_prereleases,
                install_dir=args.path,
                base_url=settings.releases_base_url,
                session=session,
                verifier=releases.GpgVerifier.from_settings(settings, session),
                timeout=settings.releases_timeout,
            )
            result = Installer(logger).ensure(_context(args), [local, remote])
    except HCInstallError as err:
        return _report_error(args, err)

    _print_result("ENSURE RESULTS", result)
    print()
    print("[SUCCESS] Executable available!")
    return 0


def cmd_versions(args: argparse.Namespace) -> int:
    """Handler for 'hcinstall versions' command.

    Prints published versions, newest first, one per line.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    try:
        settings, logger = _setup(args)
        product = get_product(args.product)
        constraints = None
        if args.constraint:
            try:
                constraints = parse_constraints(args.constraint)
            except ValueError as err:
                raise ConfigError(str(err)) from err
        with _session(settings) as session:
            catalog = releases.ReleaseCatalog.from_settings(settings, session, logger)
            found = catalog.list_versions(
                _context(args),
                product,
                constraints,
                include_prereleases=args.prereleases or settings.include_prereleases,
            )
    except HCInstallError as err:
        return _report_error(args, err)

    for v in found:
        print(v)
    if not found:
        print(f"No published {args.product} versions match.")
    return 0


def cmd_build(args: argparse.Namespace) -> int:
    """Handler for 'hcinstall build' command.

    Checks out --ref of the product repository and builds it. Requires git
    and the product's toolchain on PATH.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    try:
        settings, logger = _setup(args)
        product = get_product(args.product)
        source = build.GitRevision.from_settings(
            settings, product, ref=args.ref, install_dir=args.path
        )
        print(f"Building {source}")
        print()
        result = Installer(logger).install(_context(args), [source])
    except HCInstallError as err:
        return _report_error(args, err)

    _print_result("BUILD RESULTS", result)
    print()
    print("[SUCCESS] Built successfully!")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the hcinstall CLI.

    This function is registered as the 'hcinstall' console script in
    pyproject.toml.
    """
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML settings file (default: $HCINSTALL_CONFIG, else built-in defaults)",
    )
    common.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Overall deadline for the command, in seconds",
    )
    common.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )
    common.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show detailed debugging output (implies --verbose)",
    )

    parser = argparse.ArgumentParser(
        prog="hcinstall",
        description="Locate, download and verify, or build HashiCorp product binaries",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"hcinstall {__version__}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )
    products = ", ".join(list_products())

    # 'install' command
    parser_install = subparsers.add_parser(
        "install",
        parents=[common],
        help="Install an exact published version",
        description="Download, verify and extract one published version.",
    )
    parser_install.add_argument("product", help=f"Product name ({products})")
    parser_install.add_argument(
        "--version", required=True, help="Exact version to install (e.g., 1.3.7)"
    )
    parser_install.add_argument(
        "--path",
        type=Path,
        default=None,
        help="Directory to install into (default: a new temporary directory)",
    )
    parser_install.add_argument(
        "--license-dir",
        type=Path,
        default=None,
        help="Install the enterprise edition and copy its license files here",
    )
    parser_install.set_defaults(func=cmd_install)

    # 'ensure' command
    parser_ensure = subparsers.add_parser(
        "ensure",
        parents=[common],
        help="Use an installed binary or install the newest matching release",
        description="Search PATH first; fall back to the newest matching release.",
    )
    parser_ensure.add_argument("product", help=f"Product name ({products})")
    parser_ensure.add_argument(
        "--constraint", default=None, help='Version constraint (e.g., "~> 1.3")'
    )
    parser_ensure.add_argument(
        "--path",
        type=Path,
        default=None,
        help="Directory to install into when downloading",
    )
    parser_ensure.set_defaults(func=cmd_ensure)

    # 'versions' command
    parser_versions = subparsers.add_parser(
        "versions",
        parents=[common],
        help="List published versions",
        description="List published versions, newest first.",
    )
    parser_versions.add_argument("product", help=f"Product name ({products})")
    parser_versions.add_argument(
        "--constraint", default=None, help='Version constraint (e.g., ">= 1.0")'
    )
    parser_versions.add_argument(
        "--prereleases", action="store_true", help="Include prerelease versions"
    )
    parser_versions.set_defaults(func=cmd_versions)

    # 'build' command
    parser_build = subparsers.add_parser(
        "build",
        parents=[common],
        help="Build a product from a git revision",
        description="Shallow-fetch a git ref and run the product's build.",
    )
    parser_build.add_argument("product", help=f"Product name ({products})")
    parser_build.add_argument(
        "--ref", default="HEAD", help="Branch, tag or commit (default: HEAD)"
    )
    parser_build.add_argument(
        "--path",
        type=Path,
        default=None,
        help="Directory to place the built binary in",
    )
    parser_build.set_defaults(func=cmd_build)

    # Parse and dispatch
    args = parser.parse_args(argv)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
