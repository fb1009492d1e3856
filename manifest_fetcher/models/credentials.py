"""
Pydantic model for the credentials of a single run.
Credentials live in memory only and are never written to disk.
"""

from pydantic import BaseModel, Field, ValidationError, field_validator

from manifest_fetcher.exceptions import MissingParameterError


class Credentials(BaseModel):
    """An org's instance URL and the bearer token used for frontdoor login."""

    instance_url: str = Field(..., min_length=1)
    access_token: str = Field(..., min_length=1, repr=False)
    username: str | None = None

    class Config:
        """Pydantic model configuration."""

        frozen = True
        str_strip_whitespace = True

    @field_validator("instance_url")
    @classmethod
    def validate_instance_url(cls, v: str) -> str:
        """Requires an http(s) URL and drops any trailing slash."""
        if not v.startswith(("https://", "http://")):
            raise ValueError(f"Instance URL must start with https://, got: {v}")
        return v.rstrip("/")


def build_credentials(
    instance_url: str | None, access_token: str | None, username: str | None = None
) -> Credentials:
    """
    Builds a Credentials object, reporting absent fields by name.

    Raises:
        MissingParameterError: If a field is empty or the URL is malformed.
    """
    missing = [
        name
        for name, value in (
            ("instance URL", instance_url),
            ("access token", access_token),
        )
        if not value or not value.strip()
    ]
    if missing:
        raise MissingParameterError(f"Please provide {' and '.join(missing)}.")

    try:
        return Credentials(
            instance_url=instance_url, access_token=access_token, username=username
        )
    except ValidationError as e:
        first = e.errors()[0]
        raise MissingParameterError(
            f"Invalid credentials: {first.get('msg', e)}"
        ) from e
