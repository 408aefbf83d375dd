"""
Tests for hcinstall.installer module.

Tests the Installer including:
- install() with no fallback
- ensure() fall-through, aggregation and cancellation
- The removal ledger and best-effort remove()
- Context manager cleanup
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar

import pytest

from conftest import (
    BASE_URL,
    TOOL,
    FakeRunner,
    FakeVerifier,
    posix_only,
    version_script,
)
from hcinstall import build, fs, releases
from hcinstall.context import Context
from hcinstall.exceptions import (
    AggregateError,
    CancelledError,
    ChecksumMismatchError,
    ConfigError,
    NotFoundError,
)
from hcinstall.installer import Installer
from hcinstall.product import TERRAFORM
from hcinstall.results import InstallResult

pytestmark = pytest.mark.unit

TF_BINARY = TERRAFORM.binary_name()


@dataclass(frozen=True)
class FakeSource:
    """Source that creates a file, or raises ``error``."""

    name: str
    target: Path | None = None
    error: Exception | None = None
    calls: list = field(default_factory=list, compare=False)

    removable: ClassVar[bool] = True

    def validate(self) -> None:
        pass

    def resolve(self, ctx, logger=None) -> InstallResult:
        self.calls.append(ctx)
        if self.error is not None:
            raise self.error
        self.target.write_text(self.name)
        return InstallResult(path=self.target, removable=True, source=self.name)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class FoundSource:
    """Non-removable source returning an existing path."""

    path: Path
    removable: ClassVar[bool] = False

    def validate(self) -> None:
        pass

    def resolve(self, ctx, logger=None) -> InstallResult:
        return InstallResult(path=self.path, removable=False, source="found")

    def __str__(self) -> str:
        return "found"


class TestInstall:
    """Tests for Installer.install."""

    def test_installs_first_source_only(self, tmp_path, ctx):
        """Test that later entries are ignored."""
        first = FakeSource("first", tmp_path / "a")
        second = FakeSource("second", tmp_path / "b")
        installer = Installer()

        result = installer.install(ctx, [first, second])

        assert result.path == tmp_path / "a"
        assert second.calls == []
        assert installer.ledger == [result]

    def test_no_fallback(self, tmp_path, ctx):
        """Test that a failing first source is raised unchanged."""
        second = FakeSource("second", tmp_path / "b")
        installer = Installer()
        with pytest.raises(NotFoundError):
            installer.install(
                ctx, [FakeSource("first", error=NotFoundError("gone")), second]
            )
        assert second.calls == []
        assert installer.ledger == []

    def test_rejects_filesystem_source(self, ctx):
        """Test that a found-on-disk source cannot be installed."""
        with pytest.raises(ConfigError, match="cannot be installed"):
            Installer().install(ctx, [fs.AnyVersion(product=TERRAFORM)])

    def test_rejects_empty_list(self, ctx):
        """Test that an empty source list is a ConfigError."""
        with pytest.raises(ConfigError):
            Installer().install(ctx, [])


class TestEnsure:
    """Tests for Installer.ensure."""

    def test_falls_through_to_next_source(self, tmp_path, ctx):
        """Test that the first success wins after earlier failures."""
        installer = Installer()
        result = installer.ensure(
            ctx,
            [
                FakeSource("missing", error=NotFoundError("nothing here")),
                FakeSource("good", tmp_path / "good"),
                FakeSource("unused", tmp_path / "unused"),
            ],
        )
        assert result.source == "good"
        assert not (tmp_path / "unused").exists()

    def test_all_failing_is_aggregate(self, ctx):
        """Test that every source's failure is reported together."""
        installer = Installer()
        with pytest.raises(AggregateError) as exc_info:
            installer.ensure(
                ctx,
                [
                    FakeSource("a", error=NotFoundError("not on PATH")),
                    FakeSource("b", error=ChecksumMismatchError("bad digest")),
                ],
            )

        err = exc_info.value
        assert [label for label, _ in err.errors] == ["a", "b"]
        assert "not on PATH" in str(err) and "bad digest" in str(err)
        assert installer.ledger == []

    def test_found_result_not_in_ledger(self, tmp_path, ctx):
        """Test that non-removable results are never tracked."""
        existing = tmp_path / "terraform"
        existing.write_text("x")
        installer = Installer()

        installer.ensure(ctx, [FoundSource(existing)])
        installer.remove(ctx)

        assert installer.ledger == []
        assert existing.exists()

    def test_cancellation_propagates(self, tmp_path, ctx):
        """Test that cancellation stops the chain immediately."""
        later = FakeSource("later", tmp_path / "later")
        with pytest.raises(CancelledError):
            Installer().ensure(
                ctx, [FakeSource("first", error=CancelledError("cancelled")), later]
            )
        assert later.calls == []

    def test_done_context_tries_nothing(self, tmp_path):
        """Test that an already-cancelled context fails before any source."""
        ctx = Context.background()
        ctx.cancel()
        source = FakeSource("first", tmp_path / "a")
        with pytest.raises(CancelledError):
            Installer().ensure(ctx, [source])
        assert source.calls == []

    def test_security_error_falls_through_by_default(self, tmp_path, ctx):
        """Test that checksum failures are treated like any other failure."""
        result = Installer().ensure(
            ctx,
            [
                FakeSource("tampered", error=ChecksumMismatchError("bad digest")),
                FakeSource("good", tmp_path / "good"),
            ],
        )
        assert result.source == "good"

    def test_stop_on_security_error(self, tmp_path, ctx):
        """Test that the opt-in flag stops at a security failure."""
        good = FakeSource("good", tmp_path / "good")
        with pytest.raises(ChecksumMismatchError):
            Installer(stop_on_security_error=True).ensure(
                ctx,
                [FakeSource("tampered", error=ChecksumMismatchError("bad")), good],
            )
        assert good.calls == []

    def test_rejects_empty_list(self, ctx):
        """Test that an empty source list is a ConfigError."""
        with pytest.raises(ConfigError):
            Installer().ensure(ctx, [])


class TestRemove:
    """Tests for Installer.remove."""

    def test_removes_everything_installed(self, tmp_path, ctx):
        """Test that remove() deletes each ledger entry."""
        installer = Installer()
        a = installer.install(ctx, [FakeSource("a", tmp_path / "a")])
        b = installer.install(ctx, [FakeSource("b", tmp_path / "b")])

        installer.remove(ctx)

        assert not a.path.exists() and not b.path.exists()
        assert installer.ledger == []

    def test_already_missing_counts_as_removed(self, tmp_path, ctx):
        """Test that a path deleted behind the installer's back is fine."""
        installer = Installer()
        result = installer.install(ctx, [FakeSource("a", tmp_path / "a")])
        result.path.unlink()

        installer.remove(ctx)
        assert installer.ledger == []

    def test_best_effort(self, tmp_path, ctx, monkeypatch):
        """Test that one failing entry does not stop the others."""
        installer = Installer()
        stuck = installer.install(ctx, [FakeSource("stuck", tmp_path / "stuck")])
        other = installer.install(ctx, [FakeSource("other", tmp_path / "other")])

        from hcinstall import installer as installer_module

        real_remove = installer_module._remove_path

        def flaky(path):
            if path == stuck.path:
                raise PermissionError("busy")
            real_remove(path)

        monkeypatch.setattr(installer_module, "_remove_path", flaky)

        with pytest.raises(AggregateError, match="busy"):
            installer.remove(ctx)

        assert not other.path.exists()
        assert installer.ledger == [stuck]

    def test_context_manager_cleans_up(self, tmp_path):
        """Test that leaving the with-block removes installs."""
        with Installer() as installer:
            result = installer.install(
                Context.background(), [FakeSource("a", tmp_path / "a")]
            )
            assert result.path.exists()
        assert not result.path.exists()


class TestEndToEnd:
    """Installer with real sources against the fake release service."""

    def test_install_and_remove_release(self, release_server, ctx):
        """Test that install then remove leaves nothing behind."""
        release_server.publish(
            "terraform", "1.3.7", {TF_BINARY: version_script("Terraform v1.3.7")}
        )
        installer = Installer()
        result = installer.install(
            ctx,
            [
                releases.ExactVersion(
                    product=TERRAFORM,
                    version="1.3.7",
                    base_url=BASE_URL,
                    verifier=FakeVerifier(),
                )
            ],
        )
        install_dir = result.path.parent
        assert result.path.is_file()

        installer.remove(ctx)
        assert not install_dir.exists()

    def test_remove_release_drops_created_parents(self, release_server, ctx, tmp_path):
        """Test that parents created for install_dir are removed too."""
        release_server.publish("terraform", "1.3.7", {TF_BINARY: b"bin"})
        installer = Installer()
        installer.install(
            ctx,
            [
                releases.ExactVersion(
                    product=TERRAFORM,
                    version="1.3.7",
                    install_dir=tmp_path / "a" / "b",
                    base_url=BASE_URL,
                    verifier=FakeVerifier(),
                )
            ],
        )
        assert (tmp_path / "a" / "b" / TF_BINARY).is_file()

        installer.remove(ctx)
        assert not (tmp_path / "a").exists()
        assert tmp_path.exists()

    def test_install_and_remove_build_staging(self, ctx):
        """Test that removing a staged build drops the staging tree."""
        installer = Installer()
        result = installer.install(
            ctx, [build.GitRevision(product=TOOL, runner=FakeRunner())]
        )
        staging = result.path.parent.parent
        assert result.path.is_file()

        installer.remove(ctx)
        assert not staging.exists()

    def test_install_and_remove_build_install_dir(self, ctx, tmp_path):
        """Test that removing a build leaves no created install_dir."""
        install_dir = tmp_path / "out"
        installer = Installer()
        result = installer.install(
            ctx,
            [
                build.GitRevision(
                    product=TOOL, install_dir=install_dir, runner=FakeRunner()
                )
            ],
        )
        assert result.path == install_dir / TOOL.binary_name()

        installer.remove(ctx)
        assert not install_dir.exists()
        assert tmp_path.exists()

    def test_remove_build_keeps_existing_install_dir(self, ctx, tmp_path):
        """Test that only the binary goes when install_dir already existed."""
        neighbour = tmp_path / "keep.txt"
        neighbour.write_text("keep")
        installer = Installer()
        result = installer.install(
            ctx,
            [
                build.GitRevision(
                    product=TOOL, install_dir=tmp_path, runner=FakeRunner()
                )
            ],
        )

        installer.remove(ctx)
        assert not result.path.exists()
        assert neighbour.exists()

    @posix_only
    def test_wrong_local_version_falls_through_to_release(
        self, release_server, isolated_path, executable_factory, ctx, tmp_path
    ):
        """Test ~> 1.0 skipping a local 0.15.5 and installing a release."""
        executable_factory("Terraform v0.15.5", directory=isolated_path)
        release_server.publish(
            "terraform", "1.3.7", {TF_BINARY: version_script("Terraform v1.3.7")}
        )
        installer = Installer()

        result = installer.ensure(
            ctx,
            [
                fs.Version(product=TERRAFORM, constraints="~> 1.0"),
                releases.LatestVersion(
                    product=TERRAFORM,
                    constraints="~> 1.0",
                    install_dir=tmp_path / "install",
                    base_url=BASE_URL,
                    verifier=FakeVerifier(),
                ),
            ],
        )

        assert result.path == tmp_path / "install" / TF_BINARY
        assert result.removable
        assert installer.ledger == [result]
