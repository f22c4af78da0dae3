"""Acquire the platform-specific language server binary.

Platform resolution, the release table and the download/extract/install
sequence.
"""

from .platform import is_windows, resolve_platform, signature_for
from .provisioner import BinaryProvisioner
from .releases import SERVER_PACKAGES, ReleaseRepository, resolve_url

__all__ = [
    "SERVER_PACKAGES",
    "BinaryProvisioner",
    "ReleaseRepository",
    "is_windows",
    "resolve_platform",
    "resolve_url",
    "signature_for",
]
