"""Base enumerations and exceptions for configuration resolution."""

from __future__ import annotations

import lzma
from enum import Enum, IntEnum


class Mode(Enum):
    """Operation mode of the compressor."""

    COMPRESS = "compress"
    DECOMPRESS = "decompress"
    LIST = "list"
    TEST = "test"


class Format(Enum):
    """Container format."""

    AUTO = "auto"
    XZ = "xz"
    LZMA = "lzma"
    RAW = "raw"

    @property
    def lzma_format(self) -> int:
        """Matching ``lzma.FORMAT_*`` constant."""
        return {
            Format.AUTO: lzma.FORMAT_AUTO,
            Format.XZ: lzma.FORMAT_XZ,
            Format.LZMA: lzma.FORMAT_ALONE,
            Format.RAW: lzma.FORMAT_RAW,
        }[self]


class Check(Enum):
    """Integrity check stored in .xz containers."""

    NONE = "none"
    CRC32 = "crc32"
    CRC64 = "crc64"
    SHA256 = "sha256"

    @property
    def lzma_check(self) -> int:
        """Matching ``lzma.CHECK_*`` constant."""
        return {
            Check.NONE: lzma.CHECK_NONE,
            Check.CRC32: lzma.CHECK_CRC32,
            Check.CRC64: lzma.CHECK_CRC64,
            Check.SHA256: lzma.CHECK_SHA256,
        }[self]


class Verbosity(IntEnum):
    """Message verbosity, ordered from quietest to noisiest."""

    SILENT = 0
    ERROR = 1
    WARNING = 2
    VERBOSE = 3
    DEBUG = 4

    def quieter(self) -> Verbosity:
        """One step quieter, saturating at SILENT."""
        return Verbosity(max(self - 1, Verbosity.SILENT))

    def louder(self) -> Verbosity:
        """One step louder, saturating at DEBUG."""
        return Verbosity(min(self + 1, Verbosity.DEBUG))


class XzConfError(Exception):
    """Base exception for configuration errors. All of them are fatal to the run."""

    def __init__(
        self,
        message: str,
        *,
        token: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.token = token
        self.cause = cause


class UsageError(XzConfError):
    """Malformed input: unknown flag, bad value, invalid suffix or option string."""


class ResourceLimitError(XzConfError):
    """Too many filters or too many arguments in the environment variable."""


class InfeasibleConfigError(XzConfError):
    """The configuration cannot be honoured (memory budget, format/filter mismatch)."""


class FileListError(XzConfError):
    """The --files/--files0 source cannot be opened."""


class InternalError(XzConfError):
    """An internal invariant was violated."""


class TerminalRequest(Exception):  # noqa: N818
    """A flag that ends parsing successfully after printing ``text``."""

    def __init__(self, text: str) -> None:
        super().__init__(text)
        self.text = text


class HelpRequested(TerminalRequest):
    """-h/--help was given."""


class VersionRequested(TerminalRequest):
    """-V/--version was given."""
