"""The run configuration threaded through parsing and resolution."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import IO, TYPE_CHECKING, Any

from ..config.constants import PRESET_DEFAULT, PRESET_MAX, PRESET_MIN, UINT64_MAX
from .base import Check, Format, Mode, UsageError, Verbosity
from .chain import FilterChain

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .filters import FilterEntry, FilterId

NEWLINE = "\n"
NUL = "\0"


@dataclass(frozen=True)
class FileListSource:
    """An open --files (newline separated) or --files0 (NUL separated) list."""

    name: str
    separator: str
    stream: IO[Any] = field(compare=False, repr=False)

    def records(self) -> Iterator[str]:
        """Yield the non-empty file names in the list."""
        data = self.stream.read()
        if isinstance(data, bytes):
            data = os.fsdecode(data)
        for record in data.split(self.separator):
            if record:
                yield record


@dataclass(frozen=True)
class RunConfig:
    """
    Everything the compressor needs to know about one run.

    Every parsing stage takes a RunConfig and returns a new one; instances
    are never modified in place. ``finalized`` is set once the compression
    settings have been resolved.
    """

    mode: Mode = Mode.COMPRESS
    format: Format = Format.AUTO
    format_compress_auto: Format = Format.XZ
    suffix: str | None = None
    check: Check = Check.CRC64
    verbosity: Verbosity = Verbosity.WARNING
    stdout: bool = False
    force: bool = False
    keep_original: bool = False
    preserve_name: bool = False
    memory_limit: int = UINT64_MAX
    threads_requested: int = 1
    threads_effective: int | None = None
    files_list: FileListSource | None = None
    preset: int = PRESET_DEFAULT
    preset_default: bool = True
    filters: FilterChain = field(default_factory=FilterChain)
    memory_usage: int | None = None
    files: tuple[str, ...] = ()
    finalized: bool = False

    @property
    def needs_compression_settings(self) -> bool:
        """Raw streams carry no header, so even decoding needs a chain."""
        return self.mode == Mode.COMPRESS or self.format == Format.RAW

    def with_preset(self, level: int) -> RunConfig:
        """Select a preset level. An explicit filter chain still takes precedence."""
        if not PRESET_MIN <= level <= PRESET_MAX:
            msg = f"{level}: Preset level must be between {PRESET_MIN} and {PRESET_MAX}"
            raise UsageError(msg, token=str(level))
        return replace(self, preset=level)

    def with_filter(self, filter_id: FilterId, raw_options: str | None = None) -> RunConfig:
        """Append a filter; the chain no longer comes from a preset."""
        return replace(self, filters=self.filters.add(filter_id, raw_options), preset_default=False)

    def with_suffix(self, suffix: str) -> RunConfig:
        # Empty suffixes and ones with a slash would break output naming later
        if not suffix or "/" in suffix:
            msg = f"{suffix}: Invalid filename suffix"
            raise UsageError(msg, token=suffix)
        return replace(self, suffix=suffix)

    def with_files_list(self, source: FileListSource) -> RunConfig:
        return replace(self, files_list=source)

    def quieter(self) -> RunConfig:
        return replace(self, verbosity=self.verbosity.quieter())

    def louder(self) -> RunConfig:
        return replace(self, verbosity=self.verbosity.louder())

    def summary(self) -> dict[str, Any]:
        """Plain data view of the configuration, for reports and logging."""
        return {
            "mode": self.mode.value,
            "format": self.format.value,
            "check": self.check.value,
            "suffix": self.suffix,
            "stdout": self.stdout,
            "force": self.force,
            "keep_original": self.keep_original,
            "preserve_name": self.preserve_name,
            "verbosity": self.verbosity.name.lower(),
            "preset": self.preset,
            "preset_default": self.preset_default,
            "filters": [_describe_entry(entry) for entry in self.filters],
            "memory_limit": self.memory_limit,
            "memory_usage": self.memory_usage,
            "threads_requested": self.threads_requested,
            "threads_effective": self.threads_effective,
            "files_list": self.files_list.name if self.files_list else None,
            "files": list(self.files),
        }


def _describe_entry(entry: FilterEntry) -> dict[str, Any]:
    description: dict[str, Any] = {"id": entry.name}
    if entry.options is not None:
        description["options"] = {
            key: value.name.lower() if isinstance(value, Enum) else value
            for key, value in asdict(entry.options).items()
        }
    return description
