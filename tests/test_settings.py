"""Test loading of user defaults."""

import logging
from unittest.mock import Mock, patch

import pytest

from xzconf.config import settings as settings_module
from xzconf.config.constants import UINT64_MAX
from xzconf.config.settings import (
    Settings,
    default_config_path,
    default_memory_limit,
    default_thread_count,
    get_settings,
    reset_settings,
)
from xzconf.core import Check


@pytest.fixture(autouse=True)
def fresh_settings():
    """Make every test load the settings anew."""
    reset_settings()
    yield
    reset_settings()


def test_missing_file_gives_defaults(tmp_path) -> None:
    """Test that a missing config file yields the built-in defaults."""
    settings = Settings.load_from_file(tmp_path / "absent.yaml")

    assert settings == Settings()
    assert settings.preset == 7
    assert settings.env_var == "LZMA_OPT"


def test_load_from_file(tmp_path) -> None:
    """Test reading every supported key."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        """
preset: 4
check: sha256
memory_limit: 512MiB
threads: 3
env_var: XZ_OPT
"""
    )

    settings = Settings.load_from_file(config_file)

    assert settings.preset == 4
    assert settings.check == Check.SHA256
    assert settings.memory_limit == 512 << 20
    assert settings.threads == 3
    assert settings.env_var == "XZ_OPT"


def test_invalid_values_keep_defaults(tmp_path, caplog: pytest.LogCaptureFixture) -> None:
    """Test that invalid entries are reported and replaced by defaults."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("preset: 12\ncheck: md5\nmemory_limit: lots\nthreads: 0\n")

    with caplog.at_level(logging.WARNING):
        settings = Settings.load_from_file(config_file)

    assert settings == Settings()
    assert "Invalid preset '12'" in caplog.text
    assert "Invalid check 'md5'" in caplog.text
    assert "Invalid memory_limit" in caplog.text
    assert "Invalid threads" in caplog.text


def test_broken_yaml(tmp_path, caplog: pytest.LogCaptureFixture) -> None:
    """Test that unparsable YAML is ignored with a warning."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("preset: [unclosed\n")

    with caplog.at_level(logging.WARNING):
        settings = Settings.load_from_file(config_file)

    assert settings == Settings()
    assert "Failed to load config" in caplog.text


def test_non_mapping_yaml(tmp_path) -> None:
    """Test that a YAML list at top level is ignored."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("- 1\n- 2\n")

    assert Settings.load_from_file(config_file) == Settings()


def test_explicit_values_skip_hardware_detection() -> None:
    """Test that configured limits are used as they are."""
    settings = Settings(memory_limit=1000, threads=2)

    with patch.object(settings_module, "psutil") as mock_psutil:
        assert settings.resolved_memory_limit() == 1000
        assert settings.resolved_threads() == 2

    mock_psutil.virtual_memory.assert_not_called()
    mock_psutil.cpu_count.assert_not_called()


def test_default_memory_limit_is_a_third_of_ram() -> None:
    """Test the psutil based memory budget."""
    with patch.object(settings_module.psutil, "virtual_memory", return_value=Mock(total=3 * 1024)):
        assert default_memory_limit() == 1024
        assert Settings().resolved_memory_limit() == 1024


def test_default_memory_limit_without_psutil_data(caplog: pytest.LogCaptureFixture) -> None:
    """Test that failing memory detection means no limit."""
    with (
        caplog.at_level(logging.WARNING),
        patch.object(settings_module.psutil, "virtual_memory", side_effect=OSError("no /proc")),
    ):
        assert default_memory_limit() == UINT64_MAX

    assert "Failed to detect physical memory" in caplog.text


def test_default_thread_count() -> None:
    """Test the psutil based thread count, including an unknown CPU count."""
    with patch.object(settings_module.psutil, "cpu_count", return_value=8):
        assert default_thread_count() == 8

    with patch.object(settings_module.psutil, "cpu_count", return_value=None):
        assert default_thread_count() == 1


def test_default_config_path(tmp_path) -> None:
    """Test the config file location lookup order."""
    explicit = tmp_path / "explicit.yaml"

    assert default_config_path({"XZCONF_CONFIG": str(explicit)}) == explicit
    assert default_config_path({"XDG_CONFIG_HOME": str(tmp_path)}) == tmp_path / "xzconf" / "config.yaml"


def test_get_settings_is_cached(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that the settings file is read once per process."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("preset: 2\n")
    monkeypatch.setenv("XZCONF_CONFIG", str(config_file))

    first = get_settings()
    config_file.write_text("preset: 8\n")

    assert first.preset == 2
    assert get_settings() is first

    reset_settings()
    assert get_settings().preset == 8
