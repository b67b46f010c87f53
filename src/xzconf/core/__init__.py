"""Core configuration model and resolution."""

from .base import (
    Check,
    FileListError,
    Format,
    HelpRequested,
    InfeasibleConfigError,
    InternalError,
    Mode,
    ResourceLimitError,
    TerminalRequest,
    UsageError,
    Verbosity,
    VersionRequested,
    XzConfError,
)
from .chain import FILTER_REGISTRY, FilterChain, FilterSpec
from .config import FileListSource, RunConfig
from .filters import DeltaOptions, FilterEntry, FilterId, LzmaOptions, MatchFinder, SubblockOptions
from .memusage import DEFAULT_COST_MODEL, CostModel, LzmaCostModel
from .presets import lzma_preset
from .resolver import cap_threads, resolve_compression_settings, synthesize_preset_chain

__all__ = [
    "DEFAULT_COST_MODEL",
    "FILTER_REGISTRY",
    "Check",
    "CostModel",
    "DeltaOptions",
    "FileListError",
    "FileListSource",
    "FilterChain",
    "FilterEntry",
    "FilterId",
    "FilterSpec",
    "Format",
    "HelpRequested",
    "InfeasibleConfigError",
    "InternalError",
    "LzmaCostModel",
    "LzmaOptions",
    "MatchFinder",
    "Mode",
    "ResourceLimitError",
    "RunConfig",
    "SubblockOptions",
    "TerminalRequest",
    "UsageError",
    "Verbosity",
    "VersionRequested",
    "XzConfError",
    "cap_threads",
    "lzma_preset",
    "resolve_compression_settings",
    "synthesize_preset_chain",
]
