"""Configuration management for xzconf."""

from __future__ import annotations

from .constants import *  # noqa: F403
from .settings import Settings, get_settings, reset_settings

__all__ = [
    "Settings",
    "get_settings",
    "reset_settings",
]
