"""
manifest-fetcher: downloads a Data Cloud Data Kit manifest (package.xml)
through an authenticated browser session.
"""

__version__ = "0.3.0"
