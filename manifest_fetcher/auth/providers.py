"""
Credential providers: where the instance URL and access token of a run come from.
"""

import asyncio
import json
import logging
from typing import Any, Protocol, runtime_checkable

from manifest_fetcher.exceptions import (
    CredentialResolutionError,
    MissingParameterError,
)
from manifest_fetcher.models.credentials import Credentials, build_credentials

log = logging.getLogger(__name__)


@runtime_checkable
class CredentialProvider(Protocol):
    """Anything that can produce Credentials for a run."""

    async def resolve(self) -> Credentials: ...


class StaticCredentialProvider:
    """Credentials passed explicitly on the command line."""

    def __init__(self, instance_url: str | None, access_token: str | None):
        self._instance_url = instance_url
        self._access_token = access_token

    async def resolve(self) -> Credentials:
        return build_credentials(self._instance_url, self._access_token)


class SalesforceCliCredentialProvider:
    """
    Reads the session of an org the Salesforce CLI is already logged in to.

    Runs `sf org display --json` and picks `instanceUrl`, `accessToken` and
    `username` out of its `result` object.
    """

    def __init__(
        self,
        target_org: str | None = None,
        executable: str = "sf",
        timeout: float = 60.0,
    ):
        self.target_org = target_org or None
        self.executable = executable
        self.timeout = timeout

    @property
    def command(self) -> list[str]:
        cmd = [self.executable, "org", "display", "--json"]
        if self.target_org:
            cmd += ["--target-org", self.target_org]
        return cmd

    async def resolve(self) -> Credentials:
        """
        Runs the CLI and converts its output into Credentials.

        Raises:
            CredentialResolutionError: If the CLI is missing, fails, or reports
            no authenticated session.
        """
        org_label = self.target_org or "default org"
        log.info(f"🔑 Resolving credentials for {org_label} via Salesforce CLI...")
        stdout, returncode = await self._run()
        payload = self._parse(stdout)

        if returncode != 0 or payload.get("status", 0) != 0:
            message = payload.get("message") or f"exit code {returncode}"
            raise CredentialResolutionError(
                f"Salesforce CLI could not display {org_label}: {message}"
            )

        result = payload.get("result") or {}
        if not result.get("accessToken") or not result.get("instanceUrl"):
            raise CredentialResolutionError(
                f"No authenticated session found for {org_label}. "
                "Log in with 'sf org login web' first."
            )

        try:
            credentials = build_credentials(
                result["instanceUrl"], result["accessToken"], result.get("username")
            )
        except MissingParameterError as e:
            raise CredentialResolutionError(str(e)) from e

        log.debug(f"Resolved session for {credentials.username or 'unknown user'}")
        return credentials

    async def _run(self) -> tuple[str, int]:
        try:
            process = await asyncio.create_subprocess_exec(
                *self.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise CredentialResolutionError(
                f"Salesforce CLI executable '{self.executable}' was not found on PATH."
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise CredentialResolutionError(
                f"Salesforce CLI did not respond within {self.timeout:.0f}s."
            ) from e

        if stderr:
            log.debug(f"sf stderr: {stderr.decode(errors='replace').strip()}")
        return stdout.decode(errors="replace"), process.returncode

    @staticmethod
    def _parse(stdout: str) -> dict[str, Any]:
        try:
            payload = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise CredentialResolutionError(
                "Salesforce CLI returned output that is not JSON."
            ) from e
        if not isinstance(payload, dict):
            raise CredentialResolutionError("Unexpected Salesforce CLI output.")
        return payload
