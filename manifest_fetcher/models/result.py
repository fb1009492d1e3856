"""
Dataclass describing the outcome of a successful fetch.
"""

from dataclasses import dataclass
from pathlib import Path

from manifest_fetcher.downloads.integrity import ManifestSummary


@dataclass(frozen=True)
class FetchResult:
    """The downloaded manifest and a few facts about how it was obtained."""

    target: str
    manifest_path: Path
    size_bytes: int
    duration_seconds: float
    instance_url: str
    username: str | None = None
    summary: ManifestSummary | None = None
