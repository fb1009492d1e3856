"""
Credential Layer.

This package resolves the instance URL and access token a run logs in with,
either from explicit input or from the Salesforce CLI's authenticated orgs.
"""

from .providers import (
    CredentialProvider,
    SalesforceCliCredentialProvider,
    StaticCredentialProvider,
)

__all__ = [
    "CredentialProvider",
    "SalesforceCliCredentialProvider",
    "StaticCredentialProvider",
]
