"""Filter registry and the ordered filter chain."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from ..config.constants import FILTER_CHAIN_CAPACITY, MAX_FILTERS
from .base import InternalError, ResourceLimitError, UsageError
from .filters import BRANCH_CONVERTERS, TERMINATOR, FilterEntry, FilterId, FilterOptions
from .options import parse_delta_options, parse_lzma_options, parse_subblock_options

if TYPE_CHECKING:
    from collections.abc import Iterator

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterSpec:
    """Static metadata about one filter kind."""

    id: FilterId
    parse_options: Callable[[str | None], FilterOptions] | None = None
    max_chain_length: int = MAX_FILTERS


FILTER_REGISTRY: dict[FilterId, FilterSpec] = {
    FilterId.SUBBLOCK: FilterSpec(FilterId.SUBBLOCK, parse_subblock_options),
    FilterId.DELTA: FilterSpec(FilterId.DELTA, parse_delta_options),
    FilterId.LZMA1: FilterSpec(FilterId.LZMA1, parse_lzma_options),
    FilterId.LZMA2: FilterSpec(FilterId.LZMA2, parse_lzma_options),
    **{filter_id: FilterSpec(filter_id) for filter_id in BRANCH_CONVERTERS},
}


@dataclass(frozen=True)
class FilterChain:
    """
    Ordered filter chain. Instances are immutable, ``add`` returns a new chain.

    Up to seven filters are held. ``terminate`` closes the chain; the
    terminated form as seen by a codec is ``as_array()``, which ends with the
    ``FilterId.UNKNOWN`` sentinel.
    """

    entries: tuple[FilterEntry, ...] = ()
    terminated: bool = False

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[FilterEntry]:
        return iter(self.entries)

    @property
    def ids(self) -> tuple[FilterId, ...]:
        return tuple(entry.id for entry in self.entries)

    def add(self, filter_id: FilterId, raw_options: str | None = None) -> FilterChain:
        """
        Append a filter, parsing its option string.

        Raises:
            ResourceLimitError: if the chain already holds seven filters
            UsageError: on a malformed option string, or options given to a
                filter that takes none
            InternalError: if the chain has already been terminated

        """
        if self.terminated:
            msg = "Cannot add filters to a terminated chain"
            raise InternalError(msg)

        spec = FILTER_REGISTRY.get(filter_id)
        if spec is None:
            msg = f"Unknown filter: {filter_id!r}"
            raise UsageError(msg)

        if len(self.entries) >= spec.max_chain_length:
            msg = "Maximum number of filters is seven"
            raise ResourceLimitError(msg)

        if spec.parse_options is None:
            if raw_options is not None:
                msg = f"The {filter_id.name.lower()} filter does not take options"
                raise UsageError(msg, token=raw_options)
            options = None
        else:
            options = spec.parse_options(raw_options)

        LOG.debug("Adding filter %s at position %d", filter_id.name, len(self.entries))
        return replace(self, entries=(*self.entries, FilterEntry(filter_id, options)))

    def terminate(self) -> FilterChain:
        """Return the closed form of this chain."""
        return replace(self, terminated=True)

    def as_array(self) -> tuple[FilterEntry, ...]:
        """Entries followed by the terminator."""
        array = (*self.entries, TERMINATOR)
        if len(array) > FILTER_CHAIN_CAPACITY:
            msg = f"Filter chain holds {len(self.entries)} filters"
            raise InternalError(msg)
        return array

    def is_single_lzma1(self) -> bool:
        return self.ids == (FilterId.LZMA1,)

    def to_filter_specs(self) -> list[dict[str, Any]]:
        """Filter specifiers for ``lzma.LZMACompressor`` and friends."""
        return [entry.to_filter_spec() for entry in self.entries]
