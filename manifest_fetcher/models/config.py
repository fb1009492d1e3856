"""
Pydantic model for application configuration.
Provides robust validation for all settings of a fetch run.
"""

from pathlib import Path

from pathvalidate import ValidationError as PathValidationError
from pathvalidate import validate_filename
from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_AUTH_PATH = "/secur/frontdoor.jsp"
DEFAULT_RESOURCE_TEMPLATE = "/lightning/setup/CdpPackageKits/{target}/view"

# Settings that are positive durations, in seconds
_TIMEOUT_FIELDS = (
    "navigation_timeout_seconds",
    "auth_timeout_seconds",
    "control_timeout_seconds",
    "download_timeout_seconds",
    "poll_interval_seconds",
)


class FetcherConfig(BaseModel):
    """A validated configuration model for a manifest fetch."""

    # Filesystem
    download_dir: Path = Path("downloads")
    user_data_dir: Path = Path("userDataDir")
    screenshot_path: Path = Path("error-screen.png")
    expected_filename: str = "package.xml"
    in_progress_suffix: str = ".crdownload"

    # Browser
    headless: bool = True
    executable_path: str = ""
    viewport_width: int = 1516
    viewport_height: int = 699

    # Target application
    auth_path: str = DEFAULT_AUTH_PATH
    resource_path_template: str = DEFAULT_RESOURCE_TEMPLATE
    # ARIA role of the control; some orgs render it as "link" or "menuitem"
    control_role: str = "button"
    control_name: str = "Download Manifest"

    # Timing
    auth_settle_seconds: float = 2.0
    navigation_settle_seconds: float = 5.0
    navigation_timeout_seconds: float = 60.0
    auth_timeout_seconds: float = 30.0
    control_timeout_seconds: float = 60.0
    download_timeout_seconds: float = 30.0
    poll_interval_seconds: float = 0.5

    # Checks
    verify_login: bool = True
    verify_manifest: bool = True

    # Credential resolution (Salesforce CLI)
    sf_executable: str = "sf"
    target_org: str = ""

    # Internal field not loaded from INI file
    config_path: str = Field("", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator(*_TIMEOUT_FIELDS)
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Timeouts and the polling interval must be positive."""
        if v <= 0:
            raise ValueError("Timeouts and intervals must be greater than zero.")
        return v

    @field_validator("auth_settle_seconds", "navigation_settle_seconds")
    @classmethod
    def validate_settle(cls, v: float) -> float:
        """Settle delays may be zero but never negative."""
        if v < 0:
            raise ValueError("Settle delays cannot be negative.")
        return v

    @field_validator("viewport_width", "viewport_height")
    @classmethod
    def validate_viewport(cls, v: int) -> int:
        if v < 100 or v > 10000:
            raise ValueError("Viewport dimensions must be between 100 and 10000.")
        return v

    @field_validator("expected_filename")
    @classmethod
    def validate_expected_filename(cls, v: str) -> str:
        """The manifest name must be a plain, portable file name."""
        try:
            validate_filename(v, platform="universal")
        except PathValidationError as e:
            raise ValueError(f"Invalid expected filename '{v}': {e}") from e
        return v

    @field_validator("in_progress_suffix")
    @classmethod
    def validate_suffix(cls, v: str) -> str:
        if not v.startswith(".") or len(v) < 2:
            raise ValueError("In-progress suffix must look like '.crdownload'.")
        return v

    @field_validator("auth_path")
    @classmethod
    def validate_auth_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("Auth path must start with '/'.")
        return v

    @field_validator("resource_path_template")
    @classmethod
    def validate_template(cls, v: str) -> str:
        """Validates the resource page path template."""
        if not v.startswith("/"):
            raise ValueError("Resource path template must start with '/'.")
        if "{target}" not in v:
            raise ValueError("Resource path template must contain {target}.")
        return v

    @field_validator("control_role", "control_name", "sf_executable")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Value cannot be empty.")
        return v

    @model_validator(mode="after")
    def validate_polling(self) -> "FetcherConfig":
        """The poller must get at least one look before the download times out."""
        if self.poll_interval_seconds > self.download_timeout_seconds:
            raise ValueError(
                "poll_interval_seconds cannot exceed download_timeout_seconds."
            )
        return self

    @property
    def expected_path(self) -> Path:
        """Absolute path the finished manifest is expected at."""
        return self.download_dir.resolve() / self.expected_filename

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        return {key for key in cls.model_fields if key != "config_path"}
