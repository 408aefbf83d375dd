"""
Pytest configuration and shared fixtures for hcinstall tests.

This module provides reusable fixtures and test utilities used across
the test suite: zip archive building, fake executables, a fake signature
verifier and a fake release service backed by requests_mock.
"""

from __future__ import annotations

import hashlib
import io
from pathlib import Path
import sys
from typing import Any, Callable
import zipfile

import pytest
import requests_mock
import yaml

from hcinstall.context import Context
from hcinstall.exceptions import VerificationError
from hcinstall.io.process import CommandResult
from hcinstall.product import BuildInstructions, Product
from hcinstall.releases.platform import archive_name

BASE_URL = "https://releases.example.test"
KEY_ID = "72D7468F"

posix_only = pytest.mark.skipif(
    sys.platform.startswith("win"), reason="uses /bin/sh scripts as executables"
)

TOOL = Product(
    name="tool",
    version_pattern=r"Tool v(\S+)",
    build=BuildInstructions(
        git_repo_url="https://git.example.test/tool.git",
        prerequisites=(),
        build_args=("make", "OUT={output}"),
        env=(("CGO_ENABLED", "0"),),
    ),
)


def sha256_hex(data: bytes) -> str:
    """Helper to compute SHA-256 hash."""
    return hashlib.sha256(data).hexdigest()


def make_zip(
    files: dict[str, bytes],
    mode: int = 0o755,
    modes: dict[str, int] | None = None,
) -> bytes:
    """Build a zip archive in memory; entries get ``modes[name]`` or ``mode``."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, content in files.items():
            info = zipfile.ZipInfo(name)
            info.external_attr = (modes or {}).get(name, mode) << 16
            zf.writestr(info, content)
    return buf.getvalue()


def version_script(banner: str) -> bytes:
    """Shell script that prints ``banner`` for any arguments."""
    return f'#!/bin/sh\necho "{banner}"\n'.encode()


def write_executable(directory: Path, name: str, content: bytes) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_bytes(content)
    path.chmod(0o755)
    return path


class FakeVerifier:
    """Signature verifier that records calls and optionally fails."""

    def __init__(self, fail: bool = False, key_id: str | None = KEY_ID) -> None:
        self.fail = fail
        self._key_id = key_id
        self.calls: list[tuple[bytes, bytes]] = []

    @property
    def key_id(self) -> str | None:
        return self._key_id

    def verify(self, data, signature, ctx, logger=None) -> None:
        self.calls.append((data, signature))
        if self.fail:
            raise VerificationError("bad signature")


class FakeRunner:
    """Command runner for builds; 'make' writes the requested output file."""

    def __init__(
        self,
        fail_on: str | None = None,
        produce: bool = True,
        output: str = "",
    ) -> None:
        self.fail_on = fail_on
        self.produce = produce
        self.output = output
        self.calls: list[tuple[list[str], dict]] = []

    def __call__(self, cmd, ctx, **kwargs) -> CommandResult:
        self.calls.append((list(cmd), kwargs))
        if self.fail_on is not None and self.fail_on in cmd:
            return CommandResult(tuple(cmd), 1, self.output)
        if cmd[0] == "make" and self.produce:
            out = Path(cmd[1].split("=", 1)[1])
            out.write_bytes(b"#!/bin/sh\necho 'Tool v0.0.1'\n")
        return CommandResult(tuple(cmd), 0, "")

    @property
    def commands(self) -> list[list[str]]:
        return [cmd for cmd, _ in self.calls]


class FakeReleaseServer:
    """Registers release-service endpoints on a requests_mock Mocker."""

    def __init__(self, mocker: requests_mock.Mocker, base_url: str = BASE_URL) -> None:
        self.mocker = mocker
        self.base_url = base_url
        self.versions: dict[str, dict[str, Any]] = {}

    def _register_index(self, product: str) -> None:
        def index(request, context):
            return {"name": product, "versions": self.versions.get(product, {})}

        self.mocker.get(f"{self.base_url}/{product}/index.json", json=index)

    def list_only(self, product: str, *versions: str) -> None:
        """Publish versions in the product index without any artifacts."""
        for v in versions:
            self.versions.setdefault(product, {})[v] = {"name": product, "version": v}
        self._register_index(product)

    def publish(
        self,
        product: str,
        version: str,
        files: dict[str, bytes],
        *,
        corrupt: bool = False,
        modes: dict[str, int] | None = None,
    ) -> str:
        """Publish one version with a single platform build.

        Returns:
            The archive file name.
        """
        archive = archive_name(product, version)
        data = make_zip(files, modes=modes)
        digest = sha256_hex(data)
        if corrupt:
            data = data[:-1] + bytes([data[-1] ^ 0xFF])

        base = f"{self.base_url}/{product}/{version}"
        shasums = f"{product}_{version}_SHA256SUMS"
        metadata = {
            "name": product,
            "version": version,
            "shasums": shasums,
            "shasums_signature": f"{shasums}.sig",
            "shasums_signatures": [f"{shasums}.{KEY_ID}.sig", f"{shasums}.sig"],
            "builds": [
                {
                    "name": product,
                    "version": version,
                    "filename": archive,
                    "url": f"{base}/{archive}",
                }
            ],
        }
        self.mocker.get(f"{base}/index.json", json=metadata)
        self.mocker.get(
            f"{base}/{shasums}",
            content=f"{'0' * 64}  other.zip\n{digest}  {archive}\n".encode(),
        )
        self.mocker.get(f"{base}/{shasums}.{KEY_ID}.sig", content=b"keyed-signature")
        self.mocker.get(f"{base}/{shasums}.sig", content=b"legacy-signature")
        self.mocker.get(f"{base}/{archive}", content=data)

        self.versions.setdefault(product, {})[version] = metadata
        self._register_index(product)
        return archive


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def create_yaml_file(tmp_test_dir: Path):
    """
    Factory fixture for creating temporary YAML files.

    Usage:
        yaml_path = create_yaml_file("settings.yaml", {"key": "value"})
    """

    def _create(filename: str, data: dict[str, Any]) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f)
        return path

    return _create


@pytest.fixture
def ctx() -> Context:
    """A context that never expires."""
    return Context.background()


@pytest.fixture
def release_server():
    """Fake release service; every unregistered URL fails the request."""
    with requests_mock.Mocker() as m:
        yield FakeReleaseServer(m)


@pytest.fixture
def fake_verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def isolated_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """PATH containing only an empty directory under tmp_path."""
    bin_dir = tmp_path / "path-bin"
    bin_dir.mkdir()
    monkeypatch.setenv("PATH", str(bin_dir))
    return bin_dir


@pytest.fixture
def executable_factory(tmp_path: Path) -> Callable[..., Path]:
    """Create fake version-printing executables."""

    def factory(banner: str, name: str = "terraform", directory: Path | None = None) -> Path:
        return write_executable(directory or tmp_path / "bin", name, version_script(banner))

    return factory
