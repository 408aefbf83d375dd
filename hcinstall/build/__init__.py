"""Build sources: compile a product from its git repository.

Available Sources:
    GitRevision : shallow checkout of one ref, then the product build

Example:

    from hcinstall import build
    from hcinstall.product import TERRAFORM

    source = build.GitRevision(product=TERRAFORM, ref="v1.3.7")

"""

from .git import checkout_revision
from .revision import DEFAULT_BUILD_TIMEOUT, DEFAULT_CLONE_TIMEOUT, GitRevision

__all__ = [
    "DEFAULT_BUILD_TIMEOUT",
    "DEFAULT_CLONE_TIMEOUT",
    "GitRevision",
    "checkout_revision",
]
