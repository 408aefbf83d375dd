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

"""Download, verify and unpack one published release.

Workflow:
    1. Fetch the version metadata and derive the platform archive name
    2. Fetch the SHA256SUMS manifest and its signature; verify (fatal on failure)
    3. Parse the verified manifest and find the archive's digest
    4. Stream the archive into a private temporary directory, hashing it
    5. Extract the single product binary into the install directory
    6. Enterprise builds: copy the license files next to the caller's choice
    7. Return a removable InstallResult

Nothing is left behind on failure: the temporary download directory is
always deleted, and files or directories created for the install are
removed before the error propagates.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
import shutil
import tempfile
from typing import TYPE_CHECKING, Any
import zipfile

import requests

from hcinstall.context import Context
from hcinstall.exceptions import NotFoundError, StructuralError
from hcinstall.io.download import DEFAULT_TIMEOUT, download_file, fetch_bytes
from hcinstall.io.paths import make_dirs
from hcinstall.logging import Logger, get_global_logger
from hcinstall.product import Product
from hcinstall.results import InstallResult
from hcinstall.versioning import Version

from .catalog import DEFAULT_BASE_URL, ReleaseCatalog
from .manifest import find_entry, parse_manifest
from .platform import archive_name
from .signature import GpgVerifier, SignatureVerifier

if TYPE_CHECKING:
    from hcinstall.config import Settings

LICENSE_FILES = ("EULA.txt", "TermsOfEvaluation.txt")


@dataclass(frozen=True)
class EnterpriseOptions:
    """Enterprise edition request.

    Attributes:
        license_dir: Directory the license files are copied into.
        meta: Version metadata identifying the edition ("ent" for "+ent").
    """

    license_dir: Path
    meta: str = "ent"

    def __post_init__(self) -> None:
        object.__setattr__(self, "license_dir", Path(self.license_dir))


def signature_name(release: dict[str, Any], key_id: str | None) -> str:
    """Pick the manifest signature file to verify.

    Releases signed by several keys list one signature per key, suffixed
    with the key id; the one for the trusted key wins. Otherwise the
    single legacy signature name is used.

    Raises:
        StructuralError: If the release lists no signature at all.
    """
    names = release.get("shasums_signatures") or []
    if key_id:
        suffix = f".{key_id}.sig".lower()
        for name in names:
            if name.lower().endswith(suffix):
                return name
    legacy = release.get("shasums_signature")
    if legacy:
        return legacy
    if names:
        return names[0]
    raise StructuralError("release metadata lists no checksum signature")


def _single_member(zf: zipfile.ZipFile, name: str, archive: str) -> zipfile.ZipInfo:
    matches = [info for info in zf.infolist() if info.filename == name]
    if not matches:
        raise StructuralError(f"{archive} does not contain {name}")
    if len(matches) > 1:
        raise StructuralError(f"{archive} contains {name} {len(matches)} times")
    return matches[0]


def _single_binary(zf: zipfile.ZipFile, name: str, archive: str) -> zipfile.ZipInfo:
    """The product binary, which must be the only top-level executable."""
    info = _single_member(zf, name, archive)
    others = [
        other.filename
        for other in zf.infolist()
        if other.filename != name
        and other.filename not in LICENSE_FILES
        and "/" not in other.filename
        and not other.is_dir()
        and (other.external_attr >> 16) & 0o111
    ]
    if others:
        raise StructuralError(
            f"{archive} has {len(others) + 1} top-level executables "
            f"({', '.join(sorted([name, *others]))}), expected only {name}"
        )
    return info


def _under(path: Path, roots: list[Path]) -> bool:
    return any(path == root or root in path.parents for root in roots)


def _copy_member(zf: zipfile.ZipFile, info: zipfile.ZipInfo, target: Path) -> None:
    with zf.open(info) as src, target.open("wb") as dst:
        shutil.copyfileobj(src, dst)


def _executable_mode(info: zipfile.ZipInfo) -> int:
    mode = (info.external_attr >> 16) & 0o777
    if not mode:
        mode = 0o755
    return mode | 0o111


class ReleaseFetcher:
    """Install a specific published version of a product.

    Args:
        session: Session used for every request. Owned by the caller.
        base_url: Root of the release service.
        verifier: Signature verifier for the checksum manifest. Defaults to
            a GpgVerifier pinned to HashiCorp's release key.
        timeout: Per-request timeout in seconds.
        logger: Logger for progress messages.
    """

    def __init__(
        self,
        session: requests.Session,
        base_url: str = DEFAULT_BASE_URL,
        verifier: SignatureVerifier | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        logger: Logger | None = None,
    ) -> None:
        self.session = session
        self.logger = logger or get_global_logger()
        self.catalog = ReleaseCatalog(session, base_url, timeout, self.logger)
        self.verifier = verifier or GpgVerifier(session=session)
        self.timeout = timeout

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session: requests.Session,
        verifier: SignatureVerifier | None = None,
        logger: Logger | None = None,
    ) -> ReleaseFetcher:
        """Build a fetcher whose verifier follows the verify.* settings."""
        return cls(
            session,
            settings.releases_base_url,
            verifier or GpgVerifier.from_settings(settings, session),
            settings.releases_timeout,
            logger,
        )

    def _url(self, product: Product, version: Version | str, filename: str) -> str:
        return f"{self.catalog.product_url(product)}/{version}/{filename}"

    def _fetch(self, ctx: Context, url: str) -> bytes:
        return fetch_bytes(
            self.session, url, ctx, timeout=self.timeout, logger=self.logger
        )

    def resolve(
        self,
        ctx: Context,
        product: Product,
        version: Version | str,
        install_dir: Path | None = None,
        enterprise: EnterpriseOptions | None = None,
    ) -> InstallResult:
        """Install ``product`` at ``version``.

        Args:
            ctx: Context bounding the whole operation.
            product: Product to install.
            version: Exact published version, including edition metadata
                (e.g. "1.13.0+ent") for enterprise builds.
            install_dir: Directory to place the binary in (created if
                missing). Defaults to a new temporary directory.
            enterprise: License handling for enterprise builds.

        Returns:
            Removable InstallResult pointing at the extracted binary.

        Raises:
            NotFoundError: If the version or its platform build is not
                published.
            NetworkError: On transport failures.
            VerificationError: If the manifest signature does not verify.
            ChecksumMismatchError: If the archive digest does not match.
            StructuralError: If the archive or metadata is malformed.
            CancelledError: If the context is done.
        """
        logger = self.logger
        release = self.catalog.get_release(ctx, product, version)
        archive = archive_name(product.name, str(version))
        logger.step(1, 4, f"Resolving {archive}")

        build_url = None
        for build in release.get("builds") or []:
            if build.get("filename") == archive:
                build_url = build.get("url") or self._url(product, version, archive)
                break
        if build_url is None:
            raise NotFoundError(f"{product} {version} has no build named {archive}")

        logger.step(2, 4, "Verifying checksum manifest")
        manifest = self._fetch(ctx, self._url(product, version, release["shasums"]))
        sig_name = signature_name(release, self.verifier.key_id)
        signature = self._fetch(ctx, self._url(product, version, sig_name))
        self.verifier.verify(manifest, signature, ctx, logger)
        entry = find_entry(parse_manifest(manifest), archive)

        logger.step(3, 4, f"Downloading {archive}")
        download_dir = Path(tempfile.mkdtemp(prefix="hcinstall-download-"))
        try:
            archive_path, _ = download_file(
                self.session,
                build_url,
                download_dir,
                ctx,
                filename=archive,
                expected_sha256=entry.sha256,
                timeout=self.timeout,
                logger=logger,
            )
            logger.step(4, 4, "Extracting")
            return self._install(ctx, product, archive_path, install_dir, enterprise)
        finally:
            shutil.rmtree(download_dir, ignore_errors=True)

    def _install(
        self,
        ctx: Context,
        product: Product,
        archive_path: Path,
        install_dir: Path | None,
        enterprise: EnterpriseOptions | None,
    ) -> InstallResult:
        created_dirs: list[Path] = []
        written: list[Path] = []

        if install_dir is None:
            target_dir = Path(tempfile.mkdtemp(prefix=f"hcinstall-{product}-"))
            created_dirs.append(target_dir)
        else:
            target_dir = Path(install_dir).absolute()
            created = make_dirs(target_dir)
            if created is not None:
                created_dirs.append(created)

        try:
            ctx.raise_if_done()
            binary = target_dir / product.binary_name()
            with zipfile.ZipFile(archive_path) as zf:
                info = _single_binary(zf, product.binary_name(), archive_path.name)
                written.append(binary)
                _copy_member(zf, info, binary)
                if os.name != "nt":
                    os.chmod(binary, _executable_mode(info))
                self.logger.verbose("FILE", f"Extracted {binary}")

                if enterprise is not None:
                    license_dir = enterprise.license_dir.absolute()
                    created = make_dirs(license_dir)
                    if created is not None:
                        created_dirs.append(created)
                    for name in LICENSE_FILES:
                        member = _single_member(zf, name, archive_path.name)
                        target = license_dir / name
                        written.append(target)
                        _copy_member(zf, member, target)
                        self.logger.verbose("FILE", f"Copied license file {target}")
        except zipfile.BadZipFile as err:
            self._cleanup(written, created_dirs)
            raise StructuralError(
                f"{archive_path.name} is not a valid zip archive: {err}"
            ) from err
        except BaseException:
            self._cleanup(written, created_dirs)
            raise

        # Created trees go whole; into existing directories only our files.
        remove_paths: list[Path] = list(created_dirs)
        if not _under(binary, created_dirs):
            remove_paths.append(binary)
        if enterprise is not None:
            for name in LICENSE_FILES:
                target = enterprise.license_dir.absolute() / name
                if not _under(target, created_dirs):
                    remove_paths.append(target)

        return InstallResult(
            path=binary, removable=True, remove_paths=tuple(remove_paths)
        )

    def _cleanup(self, written: list[Path], created_dirs: list[Path]) -> None:
        for path in written:
            path.unlink(missing_ok=True)
        for directory in reversed(created_dirs):
            shutil.rmtree(directory, ignore_errors=True)
        self.logger.debug("FILE", "Removed partial install")
