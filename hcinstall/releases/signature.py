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

"""Detached signature verification for checksum manifests.

The release service signs each SHA256SUMS manifest with an OpenPGP key.
Verification is delegated to a SignatureVerifier; the default GpgVerifier
runs the ``gpg`` program against a throwaway keyring holding only the
trusted public key, and optionally pins the signing key's fingerprint.

Design Principles:
    - A verifier either returns normally or raises VerificationError. There
      is no "unverified but continue" outcome.
    - The user's own keyring is never read or modified.
    - Missing gpg is a verification failure, not a reason to skip.

Example:
    Pin HashiCorp's release key (the default):
        ```python
        from hcinstall.releases.signature import GpgVerifier

        verifier = GpgVerifier()   # fetches DEFAULT_KEY_URL, pins DEFAULT_FINGERPRINT
        verifier.verify(manifest_bytes, signature_bytes, ctx)
        ```

    Trust a key shipped with your application:
        ```python
        verifier = GpgVerifier(public_key=Path("release-key.asc").read_bytes())
        ```
"""

from __future__ import annotations

from pathlib import Path
import subprocess
import tempfile
from typing import TYPE_CHECKING, Protocol

import requests

from hcinstall.context import Context
from hcinstall.exceptions import NetworkError, NotFoundError, VerificationError
from hcinstall.io.download import fetch_bytes, make_session
from hcinstall.io.process import run_command
from hcinstall.logging import Logger, get_global_logger

if TYPE_CHECKING:
    from hcinstall.config import Settings

DEFAULT_KEY_URL = "https://www.hashicorp.com/.well-known/pgp-key.txt"
DEFAULT_FINGERPRINT = "C874011F0AB405110D02105534365D9472D7468F"

GPG_TIMEOUT = 60


class SignatureVerifier(Protocol):
    """Protocol for manifest signature verifiers."""

    @property
    def key_id(self) -> str | None:
        """Short id of the trusted key (selects among published signatures)."""
        ...

    def verify(
        self,
        data: bytes,
        signature: bytes,
        ctx: Context,
        logger: Logger | None = None,
    ) -> None:
        """Verify ``signature`` over ``data``.

        Raises:
            VerificationError: If the signature is not valid for the
                trusted key, or cannot be checked at all.
        """
        ...


def _normalize_fingerprint(value: str) -> str:
    return value.replace(" ", "").upper()


def _valid_signers(status_output: str) -> set[str]:
    """Fingerprints gpg reported as producing a valid signature.

    VALIDSIG lines carry the signing key fingerprint first and the primary
    key fingerprint last; both are collected.
    """
    signers: set[str] = set()
    for line in status_output.splitlines():
        parts = line.split()
        if len(parts) >= 3 and parts[0] == "[GNUPG:]" and parts[1] == "VALIDSIG":
            signers.add(parts[2].upper())
            if len(parts) >= 12:
                signers.add(parts[-1].upper())
    return signers


class GpgVerifier:
    """Verify detached OpenPGP signatures with the gpg program.

    Args:
        public_key: Armored or binary public key to trust. When omitted the
            key is fetched from ``key_url``.
        key_url: Where to fetch the public key from.
        fingerprint: Fingerprint the signing key must have. None accepts
            any valid signature by the imported key.
        gpg_binary: gpg executable name or path.
        session: Session used to fetch the key.
        timeout: Limit for each gpg invocation and the key fetch.
    """

    def __init__(
        self,
        public_key: bytes | None = None,
        *,
        key_url: str | None = DEFAULT_KEY_URL,
        fingerprint: str | None = DEFAULT_FINGERPRINT,
        gpg_binary: str = "gpg",
        session: requests.Session | None = None,
        timeout: float = GPG_TIMEOUT,
    ) -> None:
        self.public_key = public_key
        self.key_url = key_url
        self.fingerprint = _normalize_fingerprint(fingerprint) if fingerprint else None
        self.gpg_binary = gpg_binary
        self.session = session
        self.timeout = timeout

    @classmethod
    def from_settings(
        cls, settings: Settings, session: requests.Session | None = None
    ) -> GpgVerifier:
        """Build a verifier from the verify.* settings."""
        return cls(
            key_url=settings.key_url,
            fingerprint=settings.key_fingerprint,
            gpg_binary=settings.gpg_binary,
            session=session,
        )

    @property
    def key_id(self) -> str | None:
        if self.fingerprint:
            return self.fingerprint[-8:]
        return None

    def _load_key(self, ctx: Context, logger: Logger) -> bytes:
        if self.public_key:
            return self.public_key
        if not self.key_url:
            raise VerificationError("no trusted public key configured")
        logger.verbose("VERIFY", f"Fetching public key: {self.key_url}")
        session = self.session or make_session()
        try:
            return fetch_bytes(
                session, self.key_url, ctx, timeout=self.timeout, logger=logger
            )
        except (NetworkError, NotFoundError) as err:
            raise VerificationError(
                f"cannot obtain trusted public key from {self.key_url}: {err}"
            ) from err
        finally:
            if self.session is None:
                session.close()

    def _gpg(self, home: Path, args: list[str], ctx: Context) -> str:
        cmd = [self.gpg_binary, "--homedir", str(home), "--batch", "--no-tty", *args]
        try:
            result = run_command(cmd, ctx, timeout=self.timeout)
        except OSError as err:
            raise VerificationError(
                f"cannot run {self.gpg_binary} to verify signature: {err}"
            ) from err
        except subprocess.TimeoutExpired as err:
            raise VerificationError(
                f"{self.gpg_binary} timed out after {err.timeout}s"
            ) from err
        if not result.ok:
            raise VerificationError(
                f"{self.gpg_binary} {args[0]} failed (exit code {result.returncode})\n"
                f"{result.output.strip()}"
            )
        return result.output

    def verify(
        self,
        data: bytes,
        signature: bytes,
        ctx: Context,
        logger: Logger | None = None,
    ) -> None:
        logger = logger or get_global_logger()
        key = self._load_key(ctx, logger)

        with tempfile.TemporaryDirectory(prefix="hcinstall-gpg-") as tmp:
            home = Path(tmp) / "gnupg"
            home.mkdir(mode=0o700)
            key_path = Path(tmp) / "key.asc"
            data_path = Path(tmp) / "SHA256SUMS"
            sig_path = Path(tmp) / "SHA256SUMS.sig"
            key_path.write_bytes(key)
            data_path.write_bytes(data)
            sig_path.write_bytes(signature)

            self._gpg(home, ["--import", str(key_path)], ctx)
            status = self._gpg(
                home,
                ["--status-fd", "1", "--verify", str(sig_path), str(data_path)],
                ctx,
            )

        signers = _valid_signers(status)
        if not signers:
            raise VerificationError("gpg reported no valid signature")
        if self.fingerprint and self.fingerprint not in signers:
            raise VerificationError(
                f"signature made by {', '.join(sorted(signers))}, "
                f"expected {self.fingerprint}"
            )
        logger.verbose("VERIFY", f"Signature OK ({', '.join(sorted(signers))})")
