"""
Provides a sanity check for a downloaded package.xml manifest.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path

import aiofiles

from manifest_fetcher.exceptions import ManifestIntegrityError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManifestSummary:
    """What a manifest declares."""

    metadata_types: int
    members: int
    api_version: str | None


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


class ManifestIntegrityChecker:
    """Validates that a downloaded file is a metadata package manifest."""

    @staticmethod
    def parse(content: bytes) -> ManifestSummary:
        """
        Parses manifest content.

        Raises:
            ManifestIntegrityError: If the content is empty, not XML, or its
            root element is not <Package>.
        """
        if not content.strip():
            raise ManifestIntegrityError("The downloaded manifest is empty.")
        try:
            root = ET.fromstring(content)
        except ET.ParseError as e:
            raise ManifestIntegrityError(
                f"The downloaded manifest is not valid XML: {e}"
            ) from e

        if _local_name(root.tag) != "Package":
            raise ManifestIntegrityError(
                f"Expected a <Package> root element, found <{_local_name(root.tag)}>."
            )

        types = [child for child in root if _local_name(child.tag) == "types"]
        members = sum(
            1
            for t in types
            for child in t
            if _local_name(child.tag) == "members"
        )
        version = next(
            (
                (child.text or "").strip()
                for child in root
                if _local_name(child.tag) == "version"
            ),
            None,
        )
        return ManifestSummary(len(types), members, version or None)

    @classmethod
    async def check_manifest(cls, path: Path) -> ManifestSummary:
        """Reads and validates the manifest at `path`."""
        try:
            async with aiofiles.open(path, "rb") as f:
                content = await f.read()
        except OSError as e:
            raise ManifestIntegrityError(f"Could not read '{path}': {e}") from e

        summary = cls.parse(content)
        log.debug(
            f"Manifest declares {summary.metadata_types} types, "
            f"{summary.members} members (API {summary.api_version or 'unknown'})"
        )
        return summary
