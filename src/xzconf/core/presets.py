"""Numeric compression presets."""

from __future__ import annotations

from ..config.constants import PRESET_MAX
from .filters import LzmaMode, LzmaOptions, MatchFinder

# Dictionary size is 2**n bytes, indexed by level 0-9
_DICT_POW2 = (18, 20, 21, 22, 22, 23, 23, 24, 25, 26)
_FAST_DEPTHS = (4, 8, 24, 48)


def lzma_preset(level: int) -> LzmaOptions:
    """
    Return the canonical LZMA options for a preset level.

    Levels 0-3 use the fast mode with hash chains, 4-9 the normal mode with
    a binary tree match finder. Level 0 is only reachable through option
    strings; the command line offers 1-9.

    Raises:
        ValueError: if level is outside 0-9

    """
    if not 0 <= level <= PRESET_MAX:
        msg = f"Unsupported preset level: {level}"
        raise ValueError(msg)

    dict_size = 1 << _DICT_POW2[level]

    if level <= 3:
        return LzmaOptions(
            dict_size=dict_size,
            mode=LzmaMode.FAST,
            mf=MatchFinder.HC3 if level == 0 else MatchFinder.HC4,
            nice_len=128 if level <= 1 else 273,
            depth=_FAST_DEPTHS[level],
        )

    return LzmaOptions(
        dict_size=dict_size,
        mode=LzmaMode.NORMAL,
        mf=MatchFinder.BT4,
        nice_len={4: 16, 5: 32}.get(level, 64),
        depth=0,
    )
