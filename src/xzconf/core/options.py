"""Parsing of integer values and filter-specific option strings."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, TypeVar

from ..config.constants import (
    DELTA_DIST_MAX,
    DELTA_DIST_MIN,
    LZMA_DICT_SIZE_MAX,
    LZMA_DICT_SIZE_MIN,
    LZMA_LCLP_MAX,
    LZMA_NICE_LEN_MAX,
    LZMA_NICE_LEN_MIN,
    LZMA_PB_MAX,
    PRESET_MAX,
    PRESET_OPTIONS_DEFAULT,
    SUBBLOCK_ALIGNMENT_MAX,
    SUBBLOCK_ALIGNMENT_MIN,
    SUBBLOCK_DATA_SIZE_MAX,
    SUBBLOCK_DATA_SIZE_MIN,
    SUBBLOCK_RLE_MAX,
    UINT32_MAX,
)
from .base import UsageError
from .filters import DeltaOptions, LzmaMode, LzmaOptions, MatchFinder, SubblockOptions
from .presets import lzma_preset

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

LOG = logging.getLogger(__name__)

T = TypeVar("T")

_MULTIPLIERS = {
    "k": 1 << 10,
    "kB": 1 << 10,
    "Ki": 1 << 10,
    "KiB": 1 << 10,
    "M": 1 << 20,
    "MB": 1 << 20,
    "Mi": 1 << 20,
    "MiB": 1 << 20,
    "G": 1 << 30,
    "GB": 1 << 30,
    "Gi": 1 << 30,
    "GiB": 1 << 30,
}

_LZMA_MODES = {"fast": LzmaMode.FAST, "normal": LzmaMode.NORMAL}
_MATCH_FINDERS = {mf.name.lower(): mf for mf in MatchFinder}


def parse_uint(name: str, value: str, minimum: int, maximum: int) -> int:
    """
    Parse a non-negative decimal integer with an optional binary multiplier.

    ``max`` stands for ``maximum``. Accepted suffixes are k, kB, Ki, KiB and
    the M and G equivalents, all powers of 1024.

    Args:
        name: Option name used in the range diagnostic
        value: Text to parse
        minimum: Smallest accepted value
        maximum: Largest accepted value

    Raises:
        UsageError: on malformed text or a value outside [minimum, maximum]

    """
    text = value.lstrip(" ")
    if text == "max":
        return maximum

    digits = len(text) - len(text.lstrip("0123456789"))
    if digits == 0:
        msg = f"{value}: Value is not a non-negative decimal integer"
        raise UsageError(msg, token=value)

    result = int(text[:digits])
    suffix = text[digits:]
    if suffix:
        if suffix not in _MULTIPLIERS:
            msg = f"{suffix}: Invalid multiplier suffix. Valid suffixes: KiB (2^10), MiB (2^20), GiB (2^30)"
            raise UsageError(msg, token=value)
        result *= _MULTIPLIERS[suffix]

    if not minimum <= result <= maximum:
        msg = f"Value of the option `{name}' must be in the range [{minimum}, {maximum}]"
        raise UsageError(msg, token=value)

    return result


def _pairs(text: str | None) -> Iterator[tuple[str, str]]:
    """Split ``name=value,name=value`` into pairs. Empty items are skipped."""
    if not text:
        return
    for item in text.split(","):
        if not item:
            continue
        name, sep, value = item.partition("=")
        if not sep:
            msg = f"{text}: Options must be `name=value' pairs separated with commas"
            raise UsageError(msg, token=text)
        yield name, value


def _lookup(name: str, value: str, table: Mapping[str, T]) -> T:
    try:
        return table[value]
    except KeyError:
        msg = f"{value}: Invalid value for option `{name}'"
        raise UsageError(msg, token=value) from None


def _unknown_option(name: str) -> UsageError:
    return UsageError(f"{name}: Invalid option name", token=name)


def parse_lzma_options(text: str | None) -> LzmaOptions:
    """
    Parse an LZMA1/LZMA2 option string.

    Parsing starts from preset 6. ``preset=N`` replaces every field with the
    preset values, so options placed after it refine that preset.

    Raises:
        UsageError: on unknown names, bad values or inconsistent options

    """
    options = lzma_preset(PRESET_OPTIONS_DEFAULT)

    for name, value in _pairs(text):
        if name == "preset":
            options = lzma_preset(parse_uint(name, value, 0, PRESET_MAX))
        elif name == "dict":
            options = replace(options, dict_size=parse_uint(name, value, LZMA_DICT_SIZE_MIN, LZMA_DICT_SIZE_MAX))
        elif name in ("lc", "lp"):
            options = replace(options, **{name: parse_uint(name, value, 0, LZMA_LCLP_MAX)})
        elif name == "pb":
            options = replace(options, pb=parse_uint(name, value, 0, LZMA_PB_MAX))
        elif name == "mode":
            options = replace(options, mode=_lookup(name, value, _LZMA_MODES))
        elif name == "nice":
            options = replace(options, nice_len=parse_uint(name, value, LZMA_NICE_LEN_MIN, LZMA_NICE_LEN_MAX))
        elif name == "mf":
            options = replace(options, mf=_lookup(name, value, _MATCH_FINDERS))
        elif name == "depth":
            options = replace(options, depth=parse_uint(name, value, 0, UINT32_MAX))
        else:
            raise _unknown_option(name)

    if options.lc + options.lp > LZMA_LCLP_MAX:
        msg = f"The sum of lc and lp must be at maximum of {LZMA_LCLP_MAX}"
        raise UsageError(msg, token=text)

    if options.nice_len < options.mf.hash_bytes:
        msg = f"The selected match finder requires at least nice={options.mf.hash_bytes}"
        raise UsageError(msg, token=text)

    LOG.debug("LZMA options from %r: %s", text, options)
    return options


def parse_delta_options(text: str | None) -> DeltaOptions:
    """Parse a delta option string (``dist=N``)."""
    options = DeltaOptions()
    for name, value in _pairs(text):
        if name != "dist":
            raise _unknown_option(name)
        options = replace(options, dist=parse_uint(name, value, DELTA_DIST_MIN, DELTA_DIST_MAX))
    return options


def parse_subblock_options(text: str | None) -> SubblockOptions:
    """Parse a subblock option string (``size``, ``rle`` and ``align``)."""
    options = SubblockOptions()
    for name, value in _pairs(text):
        if name == "size":
            size = parse_uint(name, value, SUBBLOCK_DATA_SIZE_MIN, SUBBLOCK_DATA_SIZE_MAX)
            options = replace(options, subblock_data_size=size)
        elif name == "rle":
            options = replace(options, rle=parse_uint(name, value, 0, SUBBLOCK_RLE_MAX))
        elif name == "align":
            alignment = parse_uint(name, value, SUBBLOCK_ALIGNMENT_MIN, SUBBLOCK_ALIGNMENT_MAX)
            options = replace(options, alignment=alignment)
        else:
            raise _unknown_option(name)
    return options
