"""
Data Models Layer.

This package contains the Pydantic models and dataclasses that describe a
fetch run: its configuration, its credentials and its outcome.
"""

from .config import FetcherConfig
from .credentials import Credentials
from .result import FetchResult

__all__ = ["Credentials", "FetcherConfig", "FetchResult"]
