"""Interpretation of the invocation name, the environment and command-line flags."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, NoReturn

from .. import __version__
from ..config.constants import ENV_MAX_ARGS, ENV_VARIABLE_DEFAULT, SIZE_MAX, STDIN_FILENAME
from ..config.settings import Settings, get_settings
from ..core.base import (
    Check,
    FileListError,
    Format,
    HelpRequested,
    Mode,
    ResourceLimitError,
    UsageError,
    VersionRequested,
)
from ..core.config import NEWLINE, NUL, FileListSource, RunConfig
from ..core.filters import FilterId
from ..core.memusage import DEFAULT_COST_MODEL
from ..core.options import parse_uint
from ..core.resolver import resolve_compression_settings

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping, Sequence

    from ..core.memusage import CostModel

LOG = logging.getLogger(__name__)

PROG = "xzconf"

FORMAT_NAMES = {
    "auto": Format.AUTO,
    "xz": Format.XZ,
    # "alone" is what LZMA Utils 4.32.x called the .lzma format
    "lzma": Format.LZMA,
    "alone": Format.LZMA,
    "raw": Format.RAW,
}

CHECK_NAMES = {check.value: check for check in Check}

# Flags whose value is optional and must be attached with "="
OPTIONAL_VALUE_FLAGS = frozenset({"--lzma1", "--lzma2", "--delta", "--subblock", "--files", "--files0"})

# Flags whose value may itself start with a dash
DASH_VALUE_FLAGS = frozenset({"-S", "--suffix"})

FILES_LIST_TWICE = "Only one file can be specified with `--files' or `--files0'."


class ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting the process."""

    # While set, actions only consume their values
    dry_run = False

    def error(self, message: str) -> NoReturn:
        raise UsageError(message)

    @property
    def long_options(self) -> list[str]:
        return [option for action in self._actions for option in action.option_strings if option.startswith("--")]

    def check_known(self, args: Sequence[str]) -> None:
        """
        Reject unknown options before any flag takes effect.

        Raises:
            UsageError: on unknown options or missing values

        """
        self.dry_run = True
        try:
            _, extras = self.parse_known_intermixed_args(args)
        finally:
            self.dry_run = False

        if extras:
            self.error(f"unrecognized arguments: {' '.join(extras)}")


class ConfigAction(argparse.Action):
    """Fold one flag into the RunConfig kept in ``namespace.config``."""

    def __init__(self, option_strings: list[str], dest: str = argparse.SUPPRESS, **kwargs: Any) -> None:
        kwargs.setdefault("nargs", 0)
        kwargs.setdefault("default", argparse.SUPPRESS)
        super().__init__(option_strings, dest, **kwargs)

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: Any,
        option_string: str | None = None,
    ) -> None:
        if getattr(parser, "dry_run", False):
            return
        namespace.config = self.apply(namespace.config, values)

    def apply(self, config: RunConfig, values: Any) -> RunConfig:
        raise NotImplementedError


class SetFieldAction(ConfigAction):
    """Set a RunConfig field to ``const``."""

    def __init__(self, option_strings: list[str], field: str, **kwargs: Any) -> None:
        super().__init__(option_strings, **kwargs)
        self.field = field

    def apply(self, config: RunConfig, values: Any) -> RunConfig:
        return replace(config, **{self.field: self.const})


class PresetAction(ConfigAction):
    def apply(self, config: RunConfig, values: Any) -> RunConfig:
        return config.with_preset(self.const)


class QuietAction(ConfigAction):
    def apply(self, config: RunConfig, values: Any) -> RunConfig:
        return config.quieter()


class VerboseAction(ConfigAction):
    def apply(self, config: RunConfig, values: Any) -> RunConfig:
        return config.louder()


class CountAction(ConfigAction):
    """Parse a positive integer with multiplier suffixes into ``field``."""

    def __init__(self, option_strings: list[str], field: str, name: str, **kwargs: Any) -> None:
        kwargs.setdefault("nargs", None)
        super().__init__(option_strings, **kwargs)
        self.field = field
        self.name = name

    def apply(self, config: RunConfig, values: Any) -> RunConfig:
        return replace(config, **{self.field: parse_uint(self.name, values, 1, SIZE_MAX)})


class SuffixAction(ConfigAction):
    def __init__(self, option_strings: list[str], **kwargs: Any) -> None:
        kwargs.setdefault("nargs", None)
        super().__init__(option_strings, **kwargs)

    def apply(self, config: RunConfig, values: Any) -> RunConfig:
        return config.with_suffix(values)


class LookupAction(ConfigAction):
    """Map a name through ``table`` into ``field``."""

    def __init__(
        self, option_strings: list[str], field: str, table: Mapping[str, Any], error: str, **kwargs: Any
    ) -> None:
        kwargs.setdefault("nargs", None)
        super().__init__(option_strings, **kwargs)
        self.field = field
        self.table = table
        self.error = error

    def apply(self, config: RunConfig, values: Any) -> RunConfig:
        if values not in self.table:
            msg = f"{values}: {self.error}"
            raise UsageError(msg, token=values)
        return replace(config, **{self.field: self.table[values]})


class FilterAction(ConfigAction):
    """Append a filter. Filters with options accept an optional option string."""

    def __init__(self, option_strings: list[str], filter_id: FilterId, **kwargs: Any) -> None:
        super().__init__(option_strings, **kwargs)
        self.filter_id = filter_id

    def apply(self, config: RunConfig, values: Any) -> RunConfig:
        return config.with_filter(self.filter_id, values if self.nargs else None)


class FilesAction(ConfigAction):
    """--files and --files0: read file names from a file or standard input."""

    def __init__(self, option_strings: list[str], separator: str, **kwargs: Any) -> None:
        kwargs.setdefault("nargs", "?")
        super().__init__(option_strings, **kwargs)
        self.separator = separator

    def apply(self, config: RunConfig, values: Any) -> RunConfig:
        if config.files_list is not None:
            raise UsageError(FILES_LIST_TWICE)
        return config.with_files_list(open_files_list(values or None, self.separator))


class HelpAction(ConfigAction):
    def __call__(self, parser: argparse.ArgumentParser, *args: Any, **kwargs: Any) -> None:
        if not getattr(parser, "dry_run", False):
            raise HelpRequested(parser.format_help())


class VersionAction(ConfigAction):
    def __call__(self, parser: argparse.ArgumentParser, *args: Any, **kwargs: Any) -> None:
        if not getattr(parser, "dry_run", False):
            raise VersionRequested(f"{parser.prog} {__version__}")


def open_files_list(path: str | None, separator: str) -> FileListSource:
    """
    Open the source of a file list.

    Newline separated lists are opened in text mode, NUL separated ones in
    binary mode. Without a path, standard input is used.

    Raises:
        FileListError: if the file cannot be opened

    """
    if path is None:
        stream = sys.stdin if separator == NEWLINE else getattr(sys.stdin, "buffer", sys.stdin)
        return FileListSource(STDIN_FILENAME, separator, stream)

    try:
        if separator == NEWLINE:
            stream = Path(path).open("r", encoding=sys.getfilesystemencoding(), errors="surrogateescape")
        else:
            stream = Path(path).open("rb")
    except OSError as e:
        msg = f"{path}: {e.strerror}"
        raise FileListError(msg, token=path, cause=e) from e

    LOG.debug("Reading file names from %s", path)
    return FileListSource(path, separator, stream)


def build_parser(prog: str = PROG) -> ArgumentParser:
    """Build the argument parser. The same parser serves the environment and the command line."""
    parser = ArgumentParser(
        prog=prog,
        description="Compress or decompress FILEs in the .xz or .lzma format.",
        add_help=False,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
With no FILE, or when FILE is -, read standard input.
Options from the environment variable {ENV_VARIABLE_DEFAULT} are read first.

Examples:
  # Compress with the highest preset, limited to 512 MiB of memory
  {prog} -9 -M 512MiB file.tar

  # Custom filter chain for x86 executables
  {prog} --x86 --lzma2=preset=9,dict=32MiB program

  # Compress the files listed in files.txt
  {prog} --files=files.txt
        """,
    )

    # Operation mode
    mode = parser.add_argument_group("Operation mode")
    mode.add_argument(
        "-z", "--compress", action=SetFieldAction, field="mode", const=Mode.COMPRESS, help="force compression"
    )
    mode.add_argument(
        "-d",
        "--decompress",
        "--uncompress",
        action=SetFieldAction,
        field="mode",
        const=Mode.DECOMPRESS,
        help="force decompression",
    )
    mode.add_argument(
        "-t", "--test", action=SetFieldAction, field="mode", const=Mode.TEST, help="test compressed file integrity"
    )
    mode.add_argument(
        "-l",
        "--list",
        "--info",
        action=SetFieldAction,
        field="mode",
        const=Mode.LIST,
        help="list information about .xz files",
    )

    # Operation modifiers
    modifiers = parser.add_argument_group("Operation modifiers")
    modifiers.add_argument(
        "-k", "--keep", action=SetFieldAction, field="keep_original", const=True, help="keep (don't delete) input files"
    )
    modifiers.add_argument(
        "-f", "--force", action=SetFieldAction, field="force", const=True, help="force overwrite of output file"
    )
    modifiers.add_argument(
        "-c",
        "--stdout",
        "--to-stdout",
        action=SetFieldAction,
        field="stdout",
        const=True,
        help="write to standard output and don't delete input files",
    )
    modifiers.add_argument("-S", "--suffix", action=SuffixAction, metavar=".SUF", help="use suffix .SUF")
    modifiers.add_argument(
        "-N", "--name", action=SetFieldAction, field="preserve_name", const=True, help="save or restore the filename"
    )
    modifiers.add_argument(
        "-n",
        "--no-name",
        action=SetFieldAction,
        field="preserve_name",
        const=False,
        help="do not save or restore the filename",
    )
    modifiers.add_argument(
        "--files",
        action=FilesAction,
        separator=NEWLINE,
        metavar="FILE",
        help="read filenames to process from FILE (=FILE, default standard input), one per line",
    )
    modifiers.add_argument(
        "--files0",
        action=FilesAction,
        separator=NUL,
        metavar="FILE",
        help="like --files but use the null character as terminator",
    )

    # Compression presets
    presets = parser.add_argument_group("Compression presets and basic compression options")
    presets.add_argument("-1", "--fast", action=PresetAction, const=1, help="fastest compression")
    for level in range(2, 9):
        presets.add_argument(f"-{level}", action=PresetAction, const=level, help=argparse.SUPPRESS)
    presets.add_argument(
        "-9", "--best", action=PresetAction, const=9, help="best compression; -2 to -8 are in between"
    )
    presets.add_argument(
        "-M",
        "--memory",
        action=CountAction,
        field="memory_limit",
        name="memory",
        metavar="NUM",
        help="use roughly NUM bytes of memory at maximum",
    )
    presets.add_argument(
        "-T",
        "--threads",
        action=CountAction,
        field="threads_requested",
        name="threads",
        metavar="NUM",
        help="use at maximum of NUM threads",
    )

    # Custom filter chain
    filters = parser.add_argument_group(
        "Custom filter chain for compression",
        "Filters are applied in the order given. OPTS is a comma-separated list of name=value pairs "
        "and must be attached with '='.",
    )
    filters.add_argument(
        "--lzma1",
        action=FilterAction,
        filter_id=FilterId.LZMA1,
        nargs="?",
        metavar="OPTS",
        help="LZMA1 (preset, dict, lc, lp, pb, mode, nice, mf, depth)",
    )
    filters.add_argument(
        "--lzma2",
        action=FilterAction,
        filter_id=FilterId.LZMA2,
        nargs="?",
        metavar="OPTS",
        help="LZMA2, same options as LZMA1",
    )
    branch_converters = (
        (("--x86", "--bcj"), FilterId.X86, "x86 branch converter"),
        (("--powerpc", "--ppc"), FilterId.POWERPC, "PowerPC branch converter (big endian only)"),
        (("--ia64", "--itanium"), FilterId.IA64, "IA64 (Itanium) branch converter"),
        (("--arm",), FilterId.ARM, "ARM branch converter (little endian only)"),
        (("--armthumb",), FilterId.ARMTHUMB, "ARM-Thumb branch converter (little endian only)"),
        (("--sparc",), FilterId.SPARC, "SPARC branch converter"),
    )
    for option_strings, filter_id, help_text in branch_converters:
        filters.add_argument(*option_strings, action=FilterAction, filter_id=filter_id, help=help_text)
    filters.add_argument(
        "--delta",
        action=FilterAction,
        filter_id=FilterId.DELTA,
        nargs="?",
        metavar="OPTS",
        help="delta filter (dist=1-256)",
    )
    filters.add_argument(
        "--subblock",
        action=FilterAction,
        filter_id=FilterId.SUBBLOCK,
        nargs="?",
        metavar="OPTS",
        help="subblock filter (size, rle, align)",
    )

    # Other options
    other = parser.add_argument_group("Other options")
    other.add_argument(
        "-F",
        "--format",
        action=LookupAction,
        field="format",
        table=FORMAT_NAMES,
        error="Unknown file format type",
        metavar="FMT",
        help="file format to encode or decode; one of auto, xz, lzma, alone, raw",
    )
    other.add_argument(
        "-C",
        "--check",
        action=LookupAction,
        field="check",
        table=CHECK_NAMES,
        error="Unknown integrity check type",
        metavar="CHECK",
        help="integrity check type: none, crc32, crc64 (default), sha256",
    )
    other.add_argument("-q", "--quiet", action=QuietAction, help="suppress warnings; twice to suppress errors too")
    other.add_argument("-v", "--verbose", action=VerboseAction, help="be verbose; twice for even more verbose")
    other.add_argument("-h", "--help", action=HelpAction, help="display this help and exit")
    other.add_argument("-V", "--version", action=VersionAction, help="display the version number and exit")

    parser.add_argument("files", nargs="*", default=[], metavar="FILE", help=argparse.SUPPRESS)

    return parser


def expand_long_option(arg: str, long_options: Collection[str]) -> str:
    """Complete a unique abbreviation of a long option without an attached value."""
    if not arg.startswith("--") or "=" in arg or arg in long_options:
        return arg
    matches = [option for option in long_options if option.startswith(arg)]
    return matches[0] if len(matches) == 1 else arg


def attach_flag_values(args: Sequence[str], long_options: Collection[str] = ()) -> list[str]:
    """
    Attach values to flags that argparse would otherwise split wrongly.

    ``--lzma2 file`` must add a default LZMA2 filter and keep ``file`` as a
    file name, so optional values are only taken when attached with ``=``.
    ``-S -x`` uses ``-x`` as the suffix.
    """
    result: list[str] = []
    tokens = iter(args)
    for arg in tokens:
        name = expand_long_option(arg, long_options)
        if name in OPTIONAL_VALUE_FLAGS:
            result.append(f"{name}=")
        elif name in DASH_VALUE_FLAGS:
            value = next(tokens, None)
            result.append(arg if value is None else f"--suffix={value}")
        else:
            result.append(arg)
    return result


def interpret(config: RunConfig, args: Sequence[str], *, prog: str = PROG) -> tuple[RunConfig, list[str]]:
    """
    Apply flags in order on top of ``config``.

    Options and file names may be intermixed. Later flags override earlier
    ones. Everything after ``--`` is a file name.

    Returns:
        The updated configuration and the positional file names

    Raises:
        UsageError: on unknown flags or malformed values
        TerminalRequest: for --help and --version

    """
    args = list(args)
    trailing: list[str] = []
    if "--" in args:
        index = args.index("--")
        args, trailing = args[:index], args[index + 1 :]

    parser = build_parser(prog)
    args = attach_flag_values(args, parser.long_options)
    parser.check_known(args)

    namespace = argparse.Namespace(config=config)
    parser.parse_intermixed_args(args, namespace)
    return namespace.config, [*getattr(namespace, "files", []), *trailing]


def tokenize_environment(
    value: str,
    program_name: str,
    *,
    variable: str = ENV_VARIABLE_DEFAULT,
    max_args: int = ENV_MAX_ARGS,
) -> list[str]:
    """
    Split an environment variable into an argument vector.

    Any run of whitespace separates arguments. The program name is the first
    element so the result has the shape of ``sys.argv``.

    Raises:
        ResourceLimitError: if the vector would exceed ``max_args`` entries

    """
    tokens = value.split()
    if len(tokens) + 1 > max_args:
        msg = f"The environment variable {variable} contains too many arguments"
        raise ResourceLimitError(msg)
    return [program_name, *tokens]


def apply_environment(
    config: RunConfig,
    environ: Mapping[str, str],
    program_name: str,
    *,
    variable: str = ENV_VARIABLE_DEFAULT,
) -> RunConfig:
    """Apply the flags found in the environment variable, if it is set."""
    value = environ.get(variable)
    if value is None:
        return config

    argv = tokenize_environment(value, program_name, variable=variable)
    LOG.debug("Arguments from %s: %s", variable, argv[1:])

    config, files = interpret(config, argv[1:], prog=_prog_name(program_name))
    if files:
        msg = f"{variable}: Non-option arguments are not allowed: {' '.join(files)}"
        raise UsageError(msg, token=files[0])
    return config


def apply_invocation_name(config: RunConfig, argv0: str | None) -> RunConfig:
    """
    Derive defaults from the name the program was started as.

    Names containing "lz" compress to .lzma by default. Names containing
    "cat" decompress to standard output, other names containing "un"
    decompress.
    """
    name = os.path.basename(argv0) if argv0 else ""
    if not name:
        return config

    changes: dict[str, Any] = {}
    if "lz" in name:
        changes["format_compress_auto"] = Format.LZMA

    if "cat" in name:
        changes.update(mode=Mode.DECOMPRESS, stdout=True)
    elif "un" in name:
        changes["mode"] = Mode.DECOMPRESS

    if changes:
        LOG.debug("Defaults from invocation name %s: %s", name, changes)
    return replace(config, **changes)


def initial_config(settings: Settings) -> RunConfig:
    """Configuration before the invocation name, environment and flags are applied."""
    return RunConfig(
        preset=settings.preset,
        check=settings.check,
        memory_limit=settings.resolved_memory_limit(),
        threads_requested=settings.resolved_threads(),
    )


def collect_args(
    argv: Sequence[str],
    environ: Mapping[str, str] | None = None,
    settings: Settings | None = None,
) -> RunConfig:
    """Apply the invocation name, the environment variable and the command line, in that order."""
    environ = os.environ if environ is None else environ
    settings = get_settings() if settings is None else settings
    program_name = argv[0] if argv else PROG

    config = initial_config(settings)
    config = apply_invocation_name(config, program_name)
    config = apply_environment(config, environ, program_name, variable=settings.env_var)

    config, files = interpret(config, argv[1:], prog=_prog_name(program_name))
    return replace(config, files=tuple(files))


def finalize(config: RunConfig, cost_model: CostModel = DEFAULT_COST_MODEL) -> RunConfig:
    """
    Settle everything that depends on the complete set of flags.

    Standard output and test mode never delete input files. Compressing with
    format "auto" uses the invocation-name default. Compression and raw
    streams get their filter chain resolved. Without file names, standard
    input is used.
    """
    if config.stdout or config.mode == Mode.TEST:
        config = replace(config, keep_original=True, stdout=True)

    if config.mode == Mode.COMPRESS and config.format == Format.AUTO:
        config = replace(config, format=config.format_compress_auto)

    if config.needs_compression_settings:
        config = resolve_compression_settings(config, cost_model)
    else:
        config = replace(config, threads_effective=config.threads_requested, finalized=True)

    if not config.files and config.files_list is None:
        config = replace(config, files=("-",))

    return config


def parse_args(
    argv: Sequence[str],
    environ: Mapping[str, str] | None = None,
    settings: Settings | None = None,
    cost_model: CostModel = DEFAULT_COST_MODEL,
) -> RunConfig:
    """Turn a full argument vector into a finalized RunConfig."""
    return finalize(collect_args(argv, environ, settings), cost_model)


def _prog_name(program_name: str) -> str:
    return os.path.basename(program_name) or PROG
