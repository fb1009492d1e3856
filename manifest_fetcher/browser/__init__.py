"""
Browser Layer.

This package drives the Chromium session a run authenticates and clicks in.
"""

from .session import EXECUTABLE_ENV_VAR, BrowserSession

__all__ = ["EXECUTABLE_ENV_VAR", "BrowserSession"]
