"""
Core application engine for a manifest fetch.

`ManifestFetcher` runs the ordered procedure of a fetch: credentials,
directory reset, browser launch, frontdoor login, navigation, control
activation and download completion, tearing the browser down on every path.
"""

from .fetcher import ManifestFetcher

__all__ = ["ManifestFetcher"]
