"""
Storage Layer.

This package handles everything the application keeps on disk between runs:
the INI configuration file and the fetch history.
"""

from .config_manager import ConfigManager
from .history import FetchHistory

__all__ = ["ConfigManager", "FetchHistory"]
