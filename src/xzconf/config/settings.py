"""User defaults for xzconf, loaded from YAML and the hardware."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import psutil
import yaml

from ..core.base import Check, UsageError
from ..core.options import parse_uint
from .constants import (
    ENV_VARIABLE_DEFAULT,
    MEMORY_LIMIT_DIVISOR,
    PRESET_DEFAULT,
    PRESET_MAX,
    PRESET_MIN,
    SIZE_MAX,
    UINT64_MAX,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

LOG = logging.getLogger(__name__)

CONFIG_ENV_VARIABLE = "XZCONF_CONFIG"


def default_memory_limit() -> int:
    """One third of the physical memory, or no limit if it cannot be determined."""
    try:
        total = psutil.virtual_memory().total
    except (OSError, AttributeError, ValueError) as e:
        LOG.warning("Failed to detect physical memory with psutil: %s. Memory usage is not limited.", e)
        return UINT64_MAX
    return max(1, total // MEMORY_LIMIT_DIVISOR)


def default_thread_count() -> int:
    """Number of logical CPUs."""
    try:
        return psutil.cpu_count(logical=True) or 1
    except (OSError, AttributeError, ValueError) as e:
        LOG.warning("Failed to detect CPU count with psutil: %s. Using 1 thread.", e)
        return 1


def default_config_path(environ: Mapping[str, str] | None = None) -> Path:
    """$XZCONF_CONFIG, else config.yaml under the XDG config directory."""
    environ = os.environ if environ is None else environ
    if environ.get(CONFIG_ENV_VARIABLE):
        return Path(environ[CONFIG_ENV_VARIABLE])
    config_home = environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(config_home) / "xzconf" / "config.yaml"


@dataclass
class Settings:
    """Defaults applied before the invocation name, environment and flags."""

    preset: int = PRESET_DEFAULT
    check: Check = Check.CRC64
    memory_limit: int | None = None
    threads: int | None = None
    env_var: str = ENV_VARIABLE_DEFAULT

    def resolved_memory_limit(self) -> int:
        return self.memory_limit if self.memory_limit is not None else default_memory_limit()

    def resolved_threads(self) -> int:
        return self.threads if self.threads is not None else default_thread_count()

    @classmethod
    def load_from_file(cls, config_path: Path) -> Settings:
        """Load settings from a YAML file. A missing or broken file yields the defaults."""
        if not config_path.exists():
            return cls()

        try:
            with config_path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            LOG.warning("Failed to load config from %s: %s", config_path, e)
            return cls()

        if not isinstance(data, dict):
            LOG.warning("Ignoring config file %s: top level must be a mapping", config_path)
            return cls()

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> Settings:
        """Create settings from a dictionary, keeping built-in values for invalid entries."""
        settings = cls()

        preset = data.get("preset")
        if preset is not None:
            if isinstance(preset, int) and PRESET_MIN <= preset <= PRESET_MAX:
                settings.preset = preset
            else:
                LOG.warning("Invalid preset '%s' in config. Using %d.", preset, settings.preset)

        check = data.get("check")
        if check is not None:
            try:
                settings.check = Check(str(check))
            except ValueError:
                valid = ", ".join(c.value for c in Check)
                LOG.warning("Invalid check '%s' in config. Valid options: %s", check, valid)

        settings.memory_limit = cls._parse_count(data, "memory_limit", UINT64_MAX)
        settings.threads = cls._parse_count(data, "threads", SIZE_MAX)

        env_var = data.get("env_var")
        if env_var is not None:
            if isinstance(env_var, str) and env_var:
                settings.env_var = env_var
            else:
                LOG.warning("Invalid env_var '%s' in config. Using %s.", env_var, settings.env_var)

        return settings

    @staticmethod
    def _parse_count(data: dict[str, Any], key: str, maximum: int) -> int | None:
        value = data.get(key)
        if value is None:
            return None
        try:
            return parse_uint(key, str(value), 1, maximum)
        except UsageError as e:
            LOG.warning("Invalid %s in config: %s", key, e)
            return None


# Settings singleton
class _SettingsSingleton:
    """Settings singleton holder."""

    _instance: Settings | None = None

    @classmethod
    def get_instance(cls) -> Settings:
        if cls._instance is None:
            cls._instance = Settings.load_from_file(default_config_path())
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None


def get_settings() -> Settings:
    """Get the process-wide settings, loading them on first use."""
    return _SettingsSingleton.get_instance()


def reset_settings() -> None:
    _SettingsSingleton.reset()
