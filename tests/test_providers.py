import json

import pytest
from conftest import FakeProcess, sf_output

from manifest_fetcher.auth.providers import (
    CredentialProvider,
    SalesforceCliCredentialProvider,
    StaticCredentialProvider,
)
from manifest_fetcher.exceptions import (
    CredentialResolutionError,
    MissingParameterError,
)


async def test_static_provider_returns_credentials():
    credentials = await StaticCredentialProvider(
        "https://org.example.com/", "TOKEN"
    ).resolve()

    assert credentials.instance_url == "https://org.example.com"
    assert credentials.access_token == "TOKEN"


async def test_static_provider_reports_missing_fields():
    with pytest.raises(MissingParameterError, match="access token"):
        await StaticCredentialProvider("https://org.example.com", None).resolve()


def test_providers_satisfy_protocol():
    assert isinstance(StaticCredentialProvider("a", "b"), CredentialProvider)
    assert isinstance(SalesforceCliCredentialProvider(), CredentialProvider)


def test_cli_command_includes_target_org():
    assert SalesforceCliCredentialProvider().command == ["sf", "org", "display", "--json"]
    assert SalesforceCliCredentialProvider("dev-org", executable="sfdx").command == [
        "sfdx",
        "org",
        "display",
        "--json",
        "--target-org",
        "dev-org",
    ]


async def test_cli_session_is_converted(fake_sf):
    calls = fake_sf(
        FakeProcess(
            stdout=sf_output(
                instanceUrl="https://org.example.com",
                accessToken="00D!abc",
                username="admin@example.com",
            )
        )
    )

    credentials = await SalesforceCliCredentialProvider("dev-org").resolve()

    assert calls == [["sf", "org", "display", "--json", "--target-org", "dev-org"]]
    assert credentials.instance_url == "https://org.example.com"
    assert credentials.access_token == "00D!abc"
    assert credentials.username == "admin@example.com"


async def test_cli_error_message_is_surfaced(fake_sf):
    fake_sf(
        FakeProcess(
            stdout=json.dumps(
                {"status": 1, "name": "NoOrgFound", "message": "No default org set"}
            ).encode(),
            returncode=1,
        )
    )

    with pytest.raises(CredentialResolutionError, match="No default org set"):
        await SalesforceCliCredentialProvider().resolve()


async def test_cli_without_token_is_rejected(fake_sf):
    fake_sf(FakeProcess(stdout=sf_output(instanceUrl="https://org.example.com")))

    with pytest.raises(CredentialResolutionError, match="sf org login web"):
        await SalesforceCliCredentialProvider().resolve()


async def test_cli_with_malformed_url_is_rejected(fake_sf):
    fake_sf(FakeProcess(stdout=sf_output(instanceUrl="org.example.com", accessToken="t")))

    with pytest.raises(CredentialResolutionError, match="Invalid credentials"):
        await SalesforceCliCredentialProvider().resolve()


async def test_cli_non_json_output_is_rejected(fake_sf):
    fake_sf(FakeProcess(stdout=b"Warning: update available\n"))

    with pytest.raises(CredentialResolutionError, match="not JSON"):
        await SalesforceCliCredentialProvider().resolve()


async def test_missing_cli_executable(fake_sf):
    fake_sf(FileNotFoundError("sf"))

    with pytest.raises(CredentialResolutionError, match="not found on PATH"):
        await SalesforceCliCredentialProvider().resolve()


async def test_hanging_cli_is_killed(fake_sf):
    process = FakeProcess(hang=True)
    fake_sf(process)

    with pytest.raises(CredentialResolutionError, match="did not respond"):
        await SalesforceCliCredentialProvider(timeout=0.05).resolve()

    assert process.killed
