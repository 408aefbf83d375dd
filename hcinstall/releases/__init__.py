"""Release sources: install a published build from the release service.

Available Sources:
    ExactVersion : one exact version
    LatestVersion : newest version, optionally within constraints
    Versions : expands to one ExactVersion per matching version

Every install verifies the SHA256SUMS manifest signature and the archive
digest before anything is extracted.

Example:

    from hcinstall import releases
    from hcinstall.product import TERRAFORM

    source = releases.LatestVersion(product=TERRAFORM, constraints="~> 1.3")

"""

from .catalog import DEFAULT_BASE_URL, ReleaseCatalog
from .fetcher import LICENSE_FILES, EnterpriseOptions, ReleaseFetcher, signature_name
from .manifest import ManifestEntry, find_entry, parse_manifest
from .platform import archive_name, current_arch, current_os
from .signature import (
    DEFAULT_FINGERPRINT,
    DEFAULT_KEY_URL,
    GpgVerifier,
    SignatureVerifier,
)
from .sources import ExactVersion, LatestVersion, Versions

__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_FINGERPRINT",
    "DEFAULT_KEY_URL",
    "EnterpriseOptions",
    "ExactVersion",
    "GpgVerifier",
    "LICENSE_FILES",
    "LatestVersion",
    "ManifestEntry",
    "ReleaseCatalog",
    "ReleaseFetcher",
    "SignatureVerifier",
    "Versions",
    "archive_name",
    "current_arch",
    "current_os",
    "find_entry",
    "parse_manifest",
    "signature_name",
]
