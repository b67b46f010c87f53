"""Memory usage estimation for filter chains."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from .filters import FilterEntry, FilterId, LzmaOptions, SubblockOptions

if TYPE_CHECKING:
    from .chain import FilterChain

# Fixed per-filter overhead of a coder in the chain
MEMUSAGE_BASE = 1 << 15
# Filters without a dedicated estimate (branch converters, delta)
DEFAULT_FILTER_MEMUSAGE = 1024

# Approximate sizes of the LZMA coder state (probability and price tables)
LZMA_ENCODER_STATE_SIZE = 1 << 18
LZMA_DECODER_STATE_SIZE = 1 << 15
LZMA2_CHUNK_MAX = 1 << 16
SUBBLOCK_STATE_SIZE = 1 << 10

# LZ encoder window sizing
_OPTS = 1 << 12
_MATCH_LEN_MAX = 273
_HASH_2_SIZE = 1 << 10
_HASH_3_SIZE = 1 << 16


class CostModel(Protocol):
    """Estimates peak memory usage of a filter chain."""

    def encoder_memusage(self, chain: FilterChain) -> int: ...

    def decoder_memusage(self, chain: FilterChain) -> int: ...


def lz_encoder_memusage(options: LzmaOptions) -> int:
    """Memory needed by the LZ window and match finder for the given options."""
    dict_size = options.dict_size
    before_size = _OPTS
    after_size = _OPTS + 1

    reserve = dict_size // 2
    if reserve > (1 << 30):
        reserve //= 2
    reserve += (before_size + _MATCH_LEN_MAX + after_size) // 2 + (1 << 19)
    window_size = (before_size + dict_size) + reserve + (after_size + _MATCH_LEN_MAX)

    hash_bytes = options.mf.hash_bytes
    if hash_bytes == 2:
        hash_size = 0xFFFF
    else:
        hash_size = dict_size - 1
        for shift in (1, 2, 4, 8, 16):
            hash_size |= hash_size >> shift
        hash_size >>= 1
        hash_size |= 0xFFFF
        if hash_size > (1 << 24):
            hash_size = (1 << 24) - 1 if hash_bytes == 3 else hash_size >> 1

    hash_count = hash_size + 1
    if hash_bytes > 2:
        hash_count += _HASH_2_SIZE
    if hash_bytes > 3:
        hash_count += _HASH_3_SIZE

    sons_count = dict_size + 1
    if options.mf.is_binary_tree:
        sons_count *= 2

    # Hash table and sons array entries are 32-bit
    return (hash_count + sons_count) * 4 + window_size


class LzmaCostModel:
    """Cost model following liblzma's coder memory accounting."""

    def encoder_memusage(self, chain: FilterChain) -> int:
        return sum(MEMUSAGE_BASE + self._filter_encoder(entry) for entry in chain)

    def decoder_memusage(self, chain: FilterChain) -> int:
        return sum(MEMUSAGE_BASE + self._filter_decoder(entry) for entry in chain)

    @staticmethod
    def _filter_encoder(entry: FilterEntry) -> int:
        if entry.id.is_lzma and isinstance(entry.options, LzmaOptions):
            usage = LZMA_ENCODER_STATE_SIZE + lz_encoder_memusage(entry.options)
            if entry.id == FilterId.LZMA2:
                usage += LZMA2_CHUNK_MAX
            return usage
        if entry.id == FilterId.SUBBLOCK and isinstance(entry.options, SubblockOptions):
            return SUBBLOCK_STATE_SIZE + entry.options.subblock_data_size
        return DEFAULT_FILTER_MEMUSAGE

    @staticmethod
    def _filter_decoder(entry: FilterEntry) -> int:
        if entry.id.is_lzma and isinstance(entry.options, LzmaOptions):
            return LZMA_DECODER_STATE_SIZE + entry.options.dict_size
        return DEFAULT_FILTER_MEMUSAGE


DEFAULT_COST_MODEL = LzmaCostModel()
