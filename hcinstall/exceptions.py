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

"""Exception hierarchy for hcinstall.

This module defines a custom exception hierarchy that allows library users
to distinguish between the ways an installation can fail:

- NotFoundError: No matching version or binary (expected, not exceptional)
- NetworkError: Transport failures talking to the release service
- VerificationError: Signature check of a checksum manifest failed
- ChecksumMismatchError: Downloaded archive digest differs from the manifest
- StructuralError: Archive or build output lacks the expected files
- VCSError / BuildError: External git or build toolchain failures
- ExecutionError: Probing a local candidate binary failed unexpectedly
- AggregateError: Several failures collected by the installer

All exceptions inherit from HCInstallError, allowing users to catch all
hcinstall errors with a single except clause if needed.

Example:
    Catching specific error types:
        ```python
        from hcinstall import Installer
        from hcinstall.exceptions import NetworkError, VerificationError

        try:
            path = installer.install(ctx, [source])
        except VerificationError as e:
            print(f"Refusing untrusted release: {e}")
        except NetworkError as e:
            print(f"Try again later: {e}")
        ```
"""

from __future__ import annotations

__all__ = [
    "HCInstallError",
    "ConfigError",
    "NotFoundError",
    "NetworkError",
    "VerificationError",
    "ChecksumMismatchError",
    "StructuralError",
    "VCSError",
    "BuildError",
    "ExecutionError",
    "CancelledError",
    "DeadlineExceededError",
    "AggregateError",
]


class HCInstallError(Exception):
    """Base exception for all hcinstall errors.

    All hcinstall-specific exceptions inherit from this class, allowing users
    to catch all hcinstall errors with a single except clause if needed.
    """

    pass


class ConfigError(HCInstallError):
    """Raised for invalid settings files, sources or command arguments.

    This exception is raised when there are problems with:

    - YAML parsing (syntax errors, invalid structure)
    - Wrongly typed configuration values
    - Source descriptors missing required fields
    - Unknown product names
    """

    pass


class NotFoundError(HCInstallError):
    """Raised when no binary or release version satisfies the request.

    This is the "nothing matched" outcome: an unknown product, a version
    the release index does not list, a platform a version was not built
    for, or an empty search path.
    """

    pass


class NetworkError(HCInstallError):
    """Raised for transport failures talking to the release service.

    The library never retries these itself; callers may retry the whole
    operation.
    """

    pass


class VerificationError(HCInstallError):
    """Raised when the checksum manifest signature cannot be verified.

    Always fatal for the resolution attempt. Never downgraded to a warning.
    """

    pass


class ChecksumMismatchError(HCInstallError):
    """Raised when a downloaded archive does not match its manifest digest.

    The downloaded bytes are discarded before this is raised.
    """

    pass


class StructuralError(HCInstallError):
    """Raised when an archive or build output does not contain what it should.

    Covers archives without exactly one executable for the product, build
    outputs without the expected binary, and enterprise archives lacking
    license files.
    """

    pass


class _ToolError(HCInstallError):
    """Failure of an external tool whose output is kept verbatim."""

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output

    def __str__(self) -> str:
        message = super().__str__()
        if self.output:
            return f"{message}\n{self.output}"
        return message


class VCSError(_ToolError):
    """Raised when checking out a source revision fails."""


class BuildError(_ToolError):
    """Raised when the build toolchain is missing or the build fails."""


class ExecutionError(HCInstallError):
    """Raised when running a located binary to read its version fails.

    A binary that runs and reports a non-matching version is not an error;
    it is skipped.
    """

    pass


class CancelledError(HCInstallError):
    """Raised when the caller cancels an operation in progress."""

    pass


class DeadlineExceededError(CancelledError):
    """Raised when an operation's deadline elapses."""

    pass


class AggregateError(HCInstallError):
    """Collection of failures, one per attempted source or removed path.

    Attributes:
        errors: (label, exception) pairs in the order they happened.
    """

    def __init__(self, message: str, errors: list[tuple[str, Exception]]) -> None:
        super().__init__(message)
        self.errors = list(errors)

    def __str__(self) -> str:
        lines = [f"{super().__str__()} ({len(self.errors)} error(s)):"]
        for label, err in self.errors:
            lines.append(f"  * {label}: {err}")
        return "\n".join(lines)
