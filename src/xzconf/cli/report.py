"""Rendering of a resolved configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import yaml

if TYPE_CHECKING:
    from ..core.config import RunConfig


def build_report(config: RunConfig) -> dict[str, Any]:
    """
    Collect the configuration and the files it applies to.

    Reading the file list consumes its stream, so this is done once, by
    whoever hands the files to the compressor.
    """
    report = config.summary()
    if config.files_list is not None:
        report["files_from_list"] = list(config.files_list.records())
    return report


def render_report(config: RunConfig) -> str:
    """YAML document describing the resolved configuration."""
    return yaml.safe_dump(build_report(config), sort_keys=False, allow_unicode=True)
