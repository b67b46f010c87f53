"""
System constants that should never change.

These are format and codec limits, not user preferences.
User-configurable defaults go in config.yaml instead.
"""

import sys

# Filter chain limits
MAX_FILTERS = 7  # Non-terminator entries in one chain
FILTER_CHAIN_CAPACITY = MAX_FILTERS + 1  # Including the terminator
VLI_UNKNOWN = 2**63 - 1  # Terminator id, "unknown/end"

# Preset levels
PRESET_MIN = 1
PRESET_MAX = 9
PRESET_DEFAULT = 7  # Used when neither a level nor a filter is given
PRESET_OPTIONS_DEFAULT = 6  # Base for --lzma1/--lzma2 option strings

# Integer limits
UINT64_MAX = 2**64 - 1
SIZE_MAX = sys.maxsize * 2 + 1

# Environment argument source
ENV_VARIABLE_DEFAULT = "LZMA_OPT"
ENV_MAX_ARGS = 2**31 - 1  # INT_MAX, argc must fit in an int

# Name used for standard input in diagnostics and file lists
STDIN_FILENAME = "(stdin)"

# Exit statuses
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130

# Fraction of physical memory used as the default memory budget
MEMORY_LIMIT_DIVISOR = 3

# LZMA option limits
LZMA_DICT_SIZE_MIN = 4096
LZMA_DICT_SIZE_MAX = (1 << 30) + (1 << 29)
LZMA_LCLP_MAX = 4
LZMA_PB_MAX = 4
LZMA_NICE_LEN_MIN = 2
LZMA_NICE_LEN_MAX = 273
UINT32_MAX = 2**32 - 1

# Delta and subblock option limits
DELTA_DIST_MIN = 1
DELTA_DIST_MAX = 256
SUBBLOCK_DATA_SIZE_MIN = 1
SUBBLOCK_DATA_SIZE_MAX = 1 << 28
SUBBLOCK_RLE_MAX = 256
SUBBLOCK_ALIGNMENT_MIN = 1
SUBBLOCK_ALIGNMENT_MAX = 32
