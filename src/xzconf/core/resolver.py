"""Resolution of the final filter chain, memory usage and thread count."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from ..config.constants import PRESET_MIN
from .base import Format, InfeasibleConfigError, InternalError, Mode
from .chain import FilterChain
from .filters import FilterEntry, FilterId
from .memusage import DEFAULT_COST_MODEL
from .presets import lzma_preset

if TYPE_CHECKING:
    from .config import RunConfig
    from .memusage import CostModel

LOG = logging.getLogger(__name__)


def _mib(size: int) -> str:
    return f"{(size + (1 << 20) - 1) >> 20} MiB"


def synthesize_preset_chain(level: int, container: Format) -> FilterChain:
    """Single-filter chain for a preset: LZMA1 for .lzma files, LZMA2 otherwise."""
    filter_id = FilterId.LZMA1 if container == Format.LZMA else FilterId.LZMA2
    return FilterChain((FilterEntry(filter_id, lzma_preset(level)),))


def cap_threads(requested: int, memory_limit: int, memory_usage: int) -> int:
    """
    Limit the thread count so that all threads together fit the memory limit.

    At least one thread is always allowed, and the requested count is never
    raised.

    Raises:
        InternalError: if memory_usage is not positive

    """
    if memory_usage <= 0:
        msg = f"Memory usage estimate must be positive, got {memory_usage}"
        raise InternalError(msg)

    thread_limit = max(1, memory_limit // memory_usage)
    return min(requested, thread_limit)


def estimate_memusage(chain: FilterChain, mode: Mode, cost_model: CostModel = DEFAULT_COST_MODEL) -> int:
    """Encoder usage when compressing, decoder usage otherwise (raw decoding and testing)."""
    if mode == Mode.COMPRESS:
        return cost_model.encoder_memusage(chain)
    return cost_model.decoder_memusage(chain)


def resolve_compression_settings(config: RunConfig, cost_model: CostModel = DEFAULT_COST_MODEL) -> RunConfig:
    """
    Build the final filter chain and fit it into the memory limit.

    Without explicit filters a chain is built from the preset level. Such a
    default chain is lowered one preset level at a time until it fits the
    memory limit. An explicit chain is never changed; if it does not fit,
    resolution fails.

    Args:
        config: Configuration with all flags applied
        cost_model: Memory usage estimator for filter chains

    Returns:
        The finalized configuration with ``filters``, ``preset``,
        ``memory_usage`` and ``threads_effective`` filled in

    Raises:
        InfeasibleConfigError: for a non-LZMA1 chain in the .lzma format or
            when the memory limit cannot be met
        InternalError: if called twice or the cost model returns zero

    """
    if config.finalized:
        msg = "Compression settings have already been resolved"
        raise InternalError(msg)

    preset = config.preset
    from_preset = len(config.filters) == 0
    chain = synthesize_preset_chain(preset, config.format) if from_preset else config.filters
    chain = chain.terminate()

    if config.format == Format.LZMA and not chain.is_single_lzma1():
        msg = "With --format=lzma only the LZMA1 filter is supported"
        raise InfeasibleConfigError(msg)

    memory_usage = estimate_memusage(chain, config.mode, cost_model)
    LOG.debug("Filter chain %s needs %s", [entry.name for entry in chain], _mib(memory_usage))

    if from_preset and config.preset_default:
        while memory_usage > config.memory_limit:
            if preset == PRESET_MIN:
                msg = "Memory usage limit is too small for any internal filter preset"
                raise InfeasibleConfigError(msg)

            preset -= 1
            chain = synthesize_preset_chain(preset, config.format).terminate()
            memory_usage = estimate_memusage(chain, config.mode, cost_model)

        if preset != config.preset:
            LOG.info(
                "Adjusted the preset level from %d to %d to fit the memory usage limit of %s",
                config.preset,
                preset,
                _mib(config.memory_limit),
            )

    elif memory_usage > config.memory_limit:
        msg = (
            f"Memory usage limit is too small for the given filter setup "
            f"({_mib(memory_usage)} needed, limit is {_mib(config.memory_limit)})"
        )
        raise InfeasibleConfigError(msg)

    threads = cap_threads(config.threads_requested, config.memory_limit, memory_usage)
    if threads < config.threads_requested:
        LOG.info(
            "Reducing the number of threads from %d to %d to not exceed the memory usage limit of %s",
            config.threads_requested,
            threads,
            _mib(config.memory_limit),
        )

    return replace(
        config,
        preset=preset,
        filters=chain,
        memory_usage=memory_usage,
        threads_effective=threads,
        finalized=True,
    )
