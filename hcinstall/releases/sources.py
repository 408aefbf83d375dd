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

"""Sources that install a published release.

Every release source creates what it returns, so results are removable.
When no session is supplied, one is created for the duration of resolve()
and closed afterward; a supplied session is used as-is and never closed.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import ClassVar, Iterator

import requests

from hcinstall import versioning
from hcinstall.context import Context
from hcinstall.exceptions import ConfigError
from hcinstall.io.download import DEFAULT_TIMEOUT, ensure_user_agent, make_session
from hcinstall.logging import Logger, get_global_logger
from hcinstall.product import Product
from hcinstall.results import InstallResult

from .catalog import DEFAULT_BASE_URL, ReleaseCatalog
from .fetcher import EnterpriseOptions, ReleaseFetcher
from .signature import SignatureVerifier


def _coerce_dir(value) -> Path | None:
    return None if value is None else Path(value)


def _coerce_constraints(value) -> versioning.Constraints | None:
    if value is None or isinstance(value, versioning.Constraints):
        return value
    try:
        return versioning.parse_constraints(value)
    except ValueError as err:
        raise ConfigError(str(err)) from err


@contextmanager
def _session(session: requests.Session | None) -> Iterator[requests.Session]:
    if session is not None:
        ensure_user_agent(session)
        yield session
        return
    own = make_session()
    try:
        yield own
    finally:
        own.close()


def _validate_enterprise(kind: str, product: Product, enterprise) -> None:
    if product is None:
        raise ConfigError(f"releases.{kind} requires a product")
    if enterprise is not None:
        if not enterprise.license_dir or not str(enterprise.license_dir):
            raise ConfigError(f"releases.{kind}: enterprise requires license_dir")
        if not enterprise.meta:
            raise ConfigError(f"releases.{kind}: enterprise requires meta")


@dataclass(frozen=True)
class ExactVersion:
    """One exact published version.

    With ``enterprise`` set, the edition metadata is appended to the
    version ("1.13.0" becomes "1.13.0+ent") unless it already carries it.
    """

    product: Product
    version: versioning.Version
    install_dir: Path | None = None
    enterprise: EnterpriseOptions | None = None
    base_url: str = DEFAULT_BASE_URL
    session: requests.Session | None = field(default=None, compare=False, repr=False)
    verifier: SignatureVerifier | None = field(default=None, compare=False, repr=False)
    timeout: float = DEFAULT_TIMEOUT

    removable: ClassVar[bool] = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "install_dir", _coerce_dir(self.install_dir))
        if isinstance(self.version, str):
            try:
                object.__setattr__(
                    self, "version", versioning.parse_version(self.version)
                )
            except ValueError as err:
                raise ConfigError(str(err)) from err

    def validate(self) -> None:
        _validate_enterprise("ExactVersion", self.product, self.enterprise)
        if self.version is None:
            raise ConfigError("releases.ExactVersion requires a version")
        if (
            self.enterprise is not None
            and self.version.metadata
            and self.version.metadata != self.enterprise.meta
        ):
            raise ConfigError(
                f"releases.ExactVersion: version {self.version} does not match "
                f"enterprise metadata {self.enterprise.meta!r}"
            )

    def requested_version(self) -> versioning.Version:
        """The version as published, including edition metadata."""
        if self.enterprise is not None and not self.version.metadata:
            return self.version.with_metadata(self.enterprise.meta)
        return self.version

    def resolve(self, ctx: Context, logger: Logger | None = None) -> InstallResult:
        self.validate()
        logger = logger or get_global_logger()
        with _session(self.session) as session:
            fetcher = ReleaseFetcher(
                session, self.base_url, self.verifier, self.timeout, logger
            )
            result = fetcher.resolve(
                ctx,
                self.product,
                self.requested_version(),
                install_dir=self.install_dir,
                enterprise=self.enterprise,
            )
        return replace(result, source=str(self))

    def __str__(self) -> str:
        return f"releases:{self.product}@{self.requested_version()}"


@dataclass(frozen=True)
class LatestVersion:
    """The newest published version, optionally within ``constraints``."""

    product: Product
    constraints: versioning.Constraints | None = None
    include_prereleases: bool = False
    install_dir: Path | None = None
    enterprise: EnterpriseOptions | None = None
    base_url: str = DEFAULT_BASE_URL
    session: requests.Session | None = field(default=None, compare=False, repr=False)
    verifier: SignatureVerifier | None = field(default=None, compare=False, repr=False)
    timeout: float = DEFAULT_TIMEOUT

    removable: ClassVar[bool] = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "install_dir", _coerce_dir(self.install_dir))
        object.__setattr__(self, "constraints", _coerce_constraints(self.constraints))

    def validate(self) -> None:
        _validate_enterprise("LatestVersion", self.product, self.enterprise)

    def resolve(self, ctx: Context, logger: Logger | None = None) -> InstallResult:
        self.validate()
        logger = logger or get_global_logger()
        meta = self.enterprise.meta if self.enterprise is not None else None
        with _session(self.session) as session:
            catalog = ReleaseCatalog(session, self.base_url, self.timeout, logger)
            version = catalog.select_version(
                ctx,
                self.product,
                self.constraints,
                include_prereleases=self.include_prereleases,
                enterprise_meta=meta,
            )
            logger.verbose("RELEASES", f"Latest {self.product} release: {version}")
            fetcher = ReleaseFetcher(
                session, self.base_url, self.verifier, self.timeout, logger
            )
            result = fetcher.resolve(
                ctx,
                self.product,
                version,
                install_dir=self.install_dir,
                enterprise=self.enterprise,
            )
        return replace(result, source=str(self))

    def __str__(self) -> str:
        if self.constraints:
            return f"releases:{self.product} latest ({self.constraints})"
        return f"releases:{self.product} latest"


@dataclass(frozen=True)
class Versions:
    """Every published version within ``constraints``.

    Not a source itself: list() expands it into ExactVersion sources that
    share this descriptor's install settings.
    """

    product: Product
    constraints: versioning.Constraints
    include_prereleases: bool = False
    install_dir: Path | None = None
    enterprise: EnterpriseOptions | None = None
    base_url: str = DEFAULT_BASE_URL
    session: requests.Session | None = field(default=None, compare=False, repr=False)
    verifier: SignatureVerifier | None = field(default=None, compare=False, repr=False)
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        object.__setattr__(self, "install_dir", _coerce_dir(self.install_dir))
        object.__setattr__(self, "constraints", _coerce_constraints(self.constraints))

    def validate(self) -> None:
        _validate_enterprise("Versions", self.product, self.enterprise)
        if not self.constraints:
            raise ConfigError("releases.Versions requires constraints")

    def list(self, ctx: Context, logger: Logger | None = None) -> list[ExactVersion]:
        """Expand into one ExactVersion per matching release, newest first.

        Issues a single index request.
        """
        self.validate()
        logger = logger or get_global_logger()
        meta = self.enterprise.meta if self.enterprise is not None else None
        with _session(self.session) as session:
            catalog = ReleaseCatalog(session, self.base_url, self.timeout, logger)
            versions = catalog.list_versions(
                ctx,
                self.product,
                self.constraints,
                include_prereleases=self.include_prereleases,
                enterprise_meta=meta,
            )
        return [
            ExactVersion(
                product=self.product,
                version=v,
                install_dir=self.install_dir,
                enterprise=self.enterprise,
                base_url=self.base_url,
                session=self.session,
                verifier=self.verifier,
                timeout=self.timeout,
            )
            for v in versions
        ]

    def __str__(self) -> str:
        return f"releases:{self.product} ({self.constraints})"
