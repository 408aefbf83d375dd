"""
Tests for hcinstall.cli module.

Tests command-line handling including:
- versions listing against a configured release service
- install with verification stubbed out
- Exit codes and error reporting
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from conftest import BASE_URL, FakeVerifier, version_script
from hcinstall import __version__, releases
from hcinstall.cli import main
from hcinstall.config import CONFIG_ENV_VAR
from hcinstall.logging import SilentLogger, set_global_logger
from hcinstall.product import TERRAFORM

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _restore_global_logger():
    yield
    set_global_logger(SilentLogger())


@pytest.fixture
def settings_file(create_yaml_file, monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    return create_yaml_file("settings.yaml", {"releases": {"base_url": BASE_URL}})


def run_cli(*argv: str) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(list(argv))
    return exc_info.value.code


class TestVersionFlag:
    """Tests for --version."""

    def test_prints_version(self, capsys):
        """Test that --version prints the package version."""
        assert run_cli("--version") == 0
        assert f"hcinstall {__version__}" in capsys.readouterr().out


class TestVersionsCommand:
    """Tests for 'hcinstall versions'."""

    def test_lists_matching_versions(self, release_server, settings_file, capsys):
        """Test that versions prints newest first, filtered."""
        release_server.list_only("terraform", "0.15.5", "1.0.0", "1.3.7")

        code = run_cli(
            "versions", "terraform", "--constraint", "~> 1.0", "--config", str(settings_file)
        )

        assert code == 0
        assert capsys.readouterr().out.splitlines() == ["1.3.7", "1.0.0"]

    def test_no_matches(self, release_server, settings_file, capsys):
        """Test the message when nothing matches."""
        release_server.list_only("terraform", "0.15.5")
        code = run_cli(
            "versions", "terraform", "--constraint", ">= 9", "--config", str(settings_file)
        )
        assert code == 0
        assert "No published terraform versions match." in capsys.readouterr().out

    def test_bad_constraint(self, settings_file, capsys):
        """Test that a malformed constraint exits 1 with an error."""
        code = run_cli(
            "versions", "terraform", "--constraint", "~> x", "--config", str(settings_file)
        )
        assert code == 1
        assert capsys.readouterr().out.startswith("Error:")

    def test_unknown_product(self, settings_file, capsys):
        """Test that an unknown product exits 1."""
        assert run_cli("versions", "nope", "--config", str(settings_file)) == 1
        assert "Unknown product" in capsys.readouterr().out


class TestInstallCommand:
    """Tests for 'hcinstall install'."""

    def test_install(self, release_server, settings_file, tmp_path, capsys):
        """Test installing an exact version into --path."""
        release_server.publish(
            "terraform",
            "1.3.7",
            {TERRAFORM.binary_name(): version_script("Terraform v1.3.7")},
        )
        install_dir = tmp_path / "bin"

        with patch.object(
            releases.GpgVerifier, "from_settings", return_value=FakeVerifier()
        ):
            code = run_cli(
                "install",
                "terraform",
                "--version",
                "1.3.7",
                "--path",
                str(install_dir),
                "--config",
                str(settings_file),
            )

        assert code == 0
        assert (install_dir / TERRAFORM.binary_name()).is_file()
        assert "[SUCCESS]" in capsys.readouterr().out

    def test_verification_failure_exits_1(
        self, release_server, settings_file, tmp_path, capsys
    ):
        """Test that a bad signature is reported and nothing is installed."""
        release_server.publish("terraform", "1.3.7", {TERRAFORM.binary_name(): b"x"})
        install_dir = tmp_path / "bin"

        with patch.object(
            releases.GpgVerifier, "from_settings", return_value=FakeVerifier(fail=True)
        ):
            code = run_cli(
                "install",
                "terraform",
                "--version",
                "1.3.7",
                "--path",
                str(install_dir),
                "--config",
                str(settings_file),
            )

        assert code == 1
        assert "bad signature" in capsys.readouterr().out
        assert not install_dir.exists()

    def test_missing_settings_file(self, tmp_path, capsys):
        """Test that a missing --config file exits 1."""
        code = run_cli(
            "install",
            "terraform",
            "--version",
            "1.3.7",
            "--config",
            str(tmp_path / "missing.yaml"),
        )
        assert code == 1
        assert "not found" in capsys.readouterr().out
