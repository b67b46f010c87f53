"""xzconf - Command-line configuration front-end for an xz/lzma stream compressor."""

from __future__ import annotations

__version__ = "0.1.0"
__description__ = "Command-line configuration front-end for an xz/lzma stream compressor"

# Public API exports
from .cli.args import parse_args
from .config import Settings, get_settings
from .core import (
    Check,
    FilterChain,
    FilterEntry,
    FilterId,
    Format,
    InfeasibleConfigError,
    Mode,
    ResourceLimitError,
    RunConfig,
    UsageError,
    Verbosity,
    XzConfError,
    resolve_compression_settings,
)

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    # Core functionality
    "FilterChain",
    "RunConfig",
    "parse_args",
    "resolve_compression_settings",
    # Enums and data classes
    "Check",
    "FilterEntry",
    "FilterId",
    "Format",
    "Mode",
    "Verbosity",
    # Exceptions
    "InfeasibleConfigError",
    "ResourceLimitError",
    "UsageError",
    "XzConfError",
]
