"""Filesystem sources: use a product binary that is already installed.

Available Sources:
    AnyVersion : first binary on the search path (or one exact path)
    ExactVersion : binary reporting exactly the requested version
    Version : binary whose version satisfies a constraint

Example:

    from hcinstall import fs
    from hcinstall.product import TERRAFORM

    source = fs.Version(product=TERRAFORM, constraints="~> 1.0")

"""

from .locator import find_executable, is_executable_file, search_dirs
from .sources import AnyVersion, ExactVersion, Version

__all__ = [
    "AnyVersion",
    "ExactVersion",
    "Version",
    "find_executable",
    "is_executable_file",
    "search_dirs",
]
