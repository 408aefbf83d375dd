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

"""Release index queries.

The release service publishes, per product, an index of every version:

    GET {base}/{product}/index.json
    {"name": "terraform",
     "versions": {"1.3.7": {...}, "1.4.0-beta1": {...}, ...}}

and, per version, the builds and manifest names:

    GET {base}/{product}/{version}/index.json
    {"name": "terraform", "version": "1.3.7",
     "shasums": "terraform_1.3.7_SHA256SUMS",
     "shasums_signature": "terraform_1.3.7_SHA256SUMS.sig",
     "shasums_signatures": ["terraform_1.3.7_SHA256SUMS.72D7468F.sig", ...],
     "builds": [{"os": "linux", "arch": "amd64",
                 "filename": "terraform_1.3.7_linux_amd64.zip",
                 "url": "https://releases.hashicorp.com/..."}]}

Every call issues fresh requests; nothing is cached between calls.

Workflow (latest-version selection):
    1. GET the product index (one request for all versions)
    2. Drop versions of the wrong edition (enterprise metadata) and,
       unless requested, prereleases
    3. Keep versions satisfying the constraints
    4. Return the highest (select_version) or all, newest first (list_versions)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import requests

from hcinstall.context import Context
from hcinstall.exceptions import NetworkError, NotFoundError
from hcinstall.io.download import DEFAULT_TIMEOUT, fetch_json
from hcinstall.logging import Logger, get_global_logger
from hcinstall.product import Product
from hcinstall.versioning import Constraints, Version, parse_version, satisfies, select_best

if TYPE_CHECKING:
    from hcinstall.config import Settings

DEFAULT_BASE_URL = "https://releases.hashicorp.com"


class ReleaseCatalog:
    """Client for the release index.

    Args:
        session: Session used for every request. Owned by the caller.
        base_url: Root of the release service.
        timeout: Per-request timeout in seconds.
        logger: Logger for progress messages.
    """

    def __init__(
        self,
        session: requests.Session,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        logger: Logger | None = None,
    ) -> None:
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = logger or get_global_logger()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session: requests.Session,
        logger: Logger | None = None,
    ) -> ReleaseCatalog:
        return cls(session, settings.releases_base_url, settings.releases_timeout, logger)

    def product_url(self, product: Product | str) -> str:
        return f"{self.base_url}/{product}"

    def _index(self, ctx: Context, product: Product | str) -> dict[str, Any]:
        url = f"{self.product_url(product)}/index.json"
        self.logger.verbose("RELEASES", f"Fetching release index: {url}")
        try:
            data = fetch_json(
                self.session, url, ctx, timeout=self.timeout, logger=self.logger
            )
        except NotFoundError as err:
            raise NotFoundError(f"product {product!s} is not published") from err
        if not isinstance(data, dict) or not isinstance(data.get("versions"), dict):
            raise NetworkError(f"release index for {product} has no 'versions' map")
        return data

    def list_versions(
        self,
        ctx: Context,
        product: Product | str,
        constraints: Constraints | None = None,
        *,
        include_prereleases: bool = False,
        enterprise_meta: str | None = None,
    ) -> list[Version]:
        """List published versions matching the request, newest first.

        Args:
            ctx: Context bounding the request.
            product: Product to list.
            constraints: Constraints versions must satisfy (None: all).
            include_prereleases: Keep prerelease versions.
            enterprise_meta: Edition metadata versions must carry (e.g.
                "ent"). None keeps only versions without metadata.

        Returns:
            Matching versions in descending order; possibly empty.

        Raises:
            NotFoundError: If the product is unknown to the release service.
            NetworkError: On transport failures or a malformed index.
        """
        index = self._index(ctx, product)
        versions: list[Version] = []
        for raw in index["versions"]:
            try:
                v = parse_version(raw)
            except ValueError:
                self.logger.debug("RELEASES", f"Ignoring unparseable version {raw!r}")
                continue
            if v.metadata != (enterprise_meta or ""):
                continue
            if v.is_prerelease and not include_prereleases:
                continue
            if not satisfies(constraints, v):
                continue
            versions.append(v)

        versions.sort(reverse=True)
        self.logger.verbose(
            "RELEASES", f"{len(versions)} {product} version(s) match"
        )
        return versions

    def select_version(
        self,
        ctx: Context,
        product: Product | str,
        constraints: Constraints | None = None,
        *,
        include_prereleases: bool = False,
        enterprise_meta: str | None = None,
    ) -> Version:
        """Pick the newest published version satisfying ``constraints``.

        Raises:
            NotFoundError: If the product is unknown or nothing matches.
            NetworkError: On transport failures or a malformed index.
        """
        candidates = self.list_versions(
            ctx,
            product,
            constraints,
            include_prereleases=include_prereleases,
            enterprise_meta=enterprise_meta,
        )
        best = select_best(candidates, constraints)
        if best is None:
            wanted = f" satisfying {constraints}" if constraints else ""
            raise NotFoundError(f"no published {product} version{wanted}")
        self.logger.verbose("RELEASES", f"Selected {product} {best}")
        return best

    def get_release(
        self, ctx: Context, product: Product | str, version: Version | str
    ) -> dict[str, Any]:
        """Fetch one version's metadata (builds, manifest and signature names).

        Raises:
            NotFoundError: If the version is not published.
            NetworkError: On transport failures or malformed metadata.
        """
        url = f"{self.product_url(product)}/{version}/index.json"
        self.logger.verbose("RELEASES", f"Fetching release metadata: {url}")
        try:
            data = fetch_json(
                self.session, url, ctx, timeout=self.timeout, logger=self.logger
            )
        except NotFoundError as err:
            raise NotFoundError(f"{product} {version} is not published") from err
        if not isinstance(data, dict) or "shasums" not in data:
            raise NetworkError(f"release metadata for {product} {version} is malformed")
        return data
