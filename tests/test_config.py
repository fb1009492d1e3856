import configparser
from pathlib import Path

import pytest
from pydantic import ValidationError

from manifest_fetcher.exceptions import ConfigurationError
from manifest_fetcher.models.config import FetcherConfig
from manifest_fetcher.storage.config_manager import ConfigManager


def test_defaults_match_documented_behaviour():
    config = FetcherConfig()

    assert config.download_dir == Path("downloads")
    assert config.user_data_dir == Path("userDataDir")
    assert config.screenshot_path == Path("error-screen.png")
    assert config.expected_filename == "package.xml"
    assert config.in_progress_suffix == ".crdownload"
    assert (config.viewport_width, config.viewport_height) == (1516, 699)
    assert config.control_role == "button"
    assert config.control_name == "Download Manifest"
    assert config.download_timeout_seconds == 30.0
    assert config.poll_interval_seconds == 0.5
    assert config.headless is True


@pytest.mark.parametrize(
    "field, value",
    [
        ("download_timeout_seconds", 0),
        ("control_timeout_seconds", -1),
        ("auth_settle_seconds", -0.5),
        ("viewport_width", 50),
        ("expected_filename", "sub/package.xml"),
        ("in_progress_suffix", "crdownload"),
        ("auth_path", "secur/frontdoor.jsp"),
        ("resource_path_template", "/lightning/setup/CdpPackageKits/view"),
        ("control_name", "  "),
    ],
)
def test_invalid_values_are_rejected(field, value):
    with pytest.raises(ValidationError):
        FetcherConfig(**{field: value})


def test_poll_interval_cannot_exceed_download_timeout():
    with pytest.raises(ValidationError, match="poll_interval_seconds"):
        FetcherConfig(download_timeout_seconds=1, poll_interval_seconds=2)


def test_ini_keys_exclude_internal_fields():
    keys = FetcherConfig.get_ini_keys()

    assert "config_path" not in keys
    assert {"download_dir", "headless", "control_name"} <= keys


def test_missing_file_yields_defaults(tmp_path):
    config = ConfigManager(tmp_path / "config.ini").load_config()

    assert config.expected_filename == "package.xml"
    assert config.config_path == str(tmp_path)
    assert not (tmp_path / "config.ini").exists()


def test_saved_file_round_trips_with_types(tmp_path):
    manager = ConfigManager(tmp_path / "cfg" / "config.ini")
    manager.save_new_config(
        {"headless": False, "viewport_width": 1920, "download_timeout_seconds": 45.5}
    )

    config = ConfigManager(tmp_path / "cfg" / "config.ini").load_config()

    assert config.headless is False
    assert config.viewport_width == 1920
    assert config.download_timeout_seconds == 45.5
    assert config.download_dir == Path("downloads")


def test_cli_options_override_file_values(tmp_path):
    manager = ConfigManager(tmp_path / "config.ini")
    manager.save_new_config({"target_org": "file-org"})

    config = ConfigManager(tmp_path / "config.ini").load_config(
        {"target_org": "cli-org", "download_dir": tmp_path / "out"}
    )

    assert config.target_org == "cli-org"
    assert config.download_dir == tmp_path / "out"


def test_unparseable_value_raises_configuration_error(tmp_path):
    path = tmp_path / "config.ini"
    path.write_text("[DEFAULT]\nheadless = maybe\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="headless"):
        ConfigManager(path).load_config()


def test_invalid_value_raises_configuration_error(tmp_path):
    path = tmp_path / "config.ini"
    path.write_text("[DEFAULT]\ndownload_timeout_seconds = -3\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="validation failed"):
        ConfigManager(path).load_config()


def test_missing_keys_are_migrated(tmp_path):
    path = tmp_path / "config.ini"
    path.write_text(
        "[DEFAULT]\ncontrol_name = Export Manifest\nlegacy_option = 1\n",
        encoding="utf-8",
    )

    config = ConfigManager(path).load_config()

    assert config.control_name == "Export Manifest"
    parser = configparser.ConfigParser(interpolation=None)
    parser.read(path, encoding="utf-8")
    assert set(FetcherConfig.get_ini_keys()) <= set(parser["DEFAULT"])
    assert parser["DEFAULT"]["control_name"] == "Export Manifest"
