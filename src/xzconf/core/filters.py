"""Filter identifiers and their typed option records."""

from __future__ import annotations

import lzma
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Union

from ..config.constants import VLI_UNKNOWN
from .base import InfeasibleConfigError


class FilterId(IntEnum):
    """Filter identifiers as used in .xz block headers."""

    SUBBLOCK = 0x01
    DELTA = lzma.FILTER_DELTA
    X86 = lzma.FILTER_X86
    POWERPC = lzma.FILTER_POWERPC
    IA64 = lzma.FILTER_IA64
    ARM = lzma.FILTER_ARM
    ARMTHUMB = lzma.FILTER_ARMTHUMB
    SPARC = lzma.FILTER_SPARC
    LZMA2 = lzma.FILTER_LZMA2
    LZMA1 = lzma.FILTER_LZMA1
    UNKNOWN = VLI_UNKNOWN

    @property
    def is_lzma(self) -> bool:
        return self in (FilterId.LZMA1, FilterId.LZMA2)

    @property
    def is_branch_converter(self) -> bool:
        return self in BRANCH_CONVERTERS


BRANCH_CONVERTERS = frozenset(
    {
        FilterId.X86,
        FilterId.POWERPC,
        FilterId.IA64,
        FilterId.ARM,
        FilterId.ARMTHUMB,
        FilterId.SPARC,
    }
)


class MatchFinder(IntEnum):
    """LZ match finders. Low nibble is the hash length, 0x10 marks binary trees."""

    HC3 = lzma.MF_HC3
    HC4 = lzma.MF_HC4
    BT2 = lzma.MF_BT2
    BT3 = lzma.MF_BT3
    BT4 = lzma.MF_BT4

    @property
    def hash_bytes(self) -> int:
        return self & 0x0F

    @property
    def is_binary_tree(self) -> bool:
        return bool(self & 0x10)


class LzmaMode(IntEnum):
    """LZMA encoder mode."""

    FAST = lzma.MODE_FAST
    NORMAL = lzma.MODE_NORMAL


@dataclass(frozen=True)
class LzmaOptions:
    """Options shared by the LZMA1 and LZMA2 filters."""

    dict_size: int
    lc: int = 3
    lp: int = 0
    pb: int = 2
    mode: LzmaMode = LzmaMode.NORMAL
    nice_len: int = 64
    mf: MatchFinder = MatchFinder.BT4
    depth: int = 0


@dataclass(frozen=True)
class DeltaOptions:
    """Delta filter options. Only byte-wise delta exists."""

    dist: int = 1


@dataclass(frozen=True)
class SubblockOptions:
    """Subblock filter options."""

    subblock_data_size: int = 4096
    rle: int = 0
    alignment: int = 4


FilterOptions = Union[LzmaOptions, DeltaOptions, SubblockOptions, None]


@dataclass(frozen=True)
class FilterEntry:
    """One stage of a filter chain."""

    id: FilterId
    options: FilterOptions = None

    @property
    def name(self) -> str:
        return self.id.name.lower()

    def to_filter_spec(self) -> dict[str, Any]:
        """
        Convert to a filter specifier accepted by the ``lzma`` module.

        Raises:
            InfeasibleConfigError: for the subblock filter and the terminator,
                which have no counterpart there

        """
        if self.id in (FilterId.SUBBLOCK, FilterId.UNKNOWN):
            msg = f"The {self.name} filter cannot be handed to the lzma module"
            raise InfeasibleConfigError(msg)

        spec: dict[str, Any] = {"id": int(self.id)}
        if isinstance(self.options, LzmaOptions):
            spec.update(
                dict_size=self.options.dict_size,
                lc=self.options.lc,
                lp=self.options.lp,
                pb=self.options.pb,
                mode=int(self.options.mode),
                nice_len=self.options.nice_len,
                mf=int(self.options.mf),
                depth=self.options.depth,
            )
        elif isinstance(self.options, DeltaOptions):
            spec["dist"] = self.options.dist
        return spec


TERMINATOR = FilterEntry(FilterId.UNKNOWN)
