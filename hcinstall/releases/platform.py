"""Platform identifiers used in release archive names."""

from __future__ import annotations

import platform
import sys

from hcinstall.exceptions import NotFoundError

_ARCH_ALIASES: dict[str, str] = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv8l": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv6l": "arm",
    "armv7l": "arm",
    "arm": "arm",
}

_OS_PREFIXES: tuple[tuple[str, str], ...] = (
    ("linux", "linux"),
    ("darwin", "darwin"),
    ("win", "windows"),
    ("cygwin", "windows"),
    ("freebsd", "freebsd"),
    ("openbsd", "openbsd"),
    ("sunos", "solaris"),
)


def current_os() -> str:
    """Release-service name of the running OS (e.g., "linux", "windows")."""
    for prefix, name in _OS_PREFIXES:
        if sys.platform.startswith(prefix):
            return name
    raise NotFoundError(f"no releases are published for platform {sys.platform!r}")


def current_arch() -> str:
    """Release-service name of the running CPU architecture (e.g., "amd64")."""
    machine = platform.machine().lower()
    try:
        return _ARCH_ALIASES[machine]
    except KeyError:
        raise NotFoundError(
            f"no releases are published for architecture {machine!r}"
        ) from None


def archive_name(
    product: str, version: str, os_name: str | None = None, arch: str | None = None
) -> str:
    """Release archive file name, e.g. "terraform_1.3.7_linux_amd64.zip"."""
    os_name = os_name or current_os()
    arch = arch or current_arch()
    return f"{product}_{version}_{os_name}_{arch}.zip"
