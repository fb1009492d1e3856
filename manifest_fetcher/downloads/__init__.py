"""
Download Layer.

This package owns the watched download directory: clearing it before a run,
deciding from its listing when the browser has finished writing the
manifest, and sanity-checking the file it produced.
"""

from .integrity import ManifestIntegrityChecker, ManifestSummary
from .watcher import (
    is_download_complete,
    list_entries,
    reset_download_dir,
    wait_for_download,
)

__all__ = [
    "ManifestIntegrityChecker",
    "ManifestSummary",
    "is_download_complete",
    "list_entries",
    "reset_download_dir",
    "wait_for_download",
]
