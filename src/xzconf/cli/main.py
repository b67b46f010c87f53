"""Main CLI interface for xzconf."""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

from ..config.constants import EXIT_ERROR, EXIT_INTERRUPTED, EXIT_SUCCESS
from ..core.base import TerminalRequest, UsageError, Verbosity, XzConfError
from .args import PROG, collect_args, finalize
from .report import render_report

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from ..config.settings import Settings

LOG = logging.getLogger(__name__)

LEVEL_MAP = {
    Verbosity.SILENT: logging.CRITICAL + 10,
    Verbosity.ERROR: logging.ERROR,
    Verbosity.WARNING: logging.WARNING,
    Verbosity.VERBOSE: logging.INFO,
    Verbosity.DEBUG: logging.DEBUG,
}


def setup_logging(verbosity: Verbosity, prog: str = PROG) -> None:
    """Setup logging based on verbosity level."""
    level = LEVEL_MAP[verbosity]

    # Include logger names when debugging
    if verbosity >= Verbosity.DEBUG:
        log_format = f"{prog}: %(levelname)s: %(name)s: %(message)s"
    else:
        log_format = f"{prog}: %(message)s"

    logging.basicConfig(level=level, format=log_format, handlers=[logging.StreamHandler(sys.stderr)], force=True)


def run(
    argv: Sequence[str],
    environ: Mapping[str, str] | None = None,
    settings: Settings | None = None,
) -> int:
    """Resolve the configuration for ``argv`` and print it. Returns the exit status."""
    prog = os.path.basename(argv[0]) if argv and argv[0] else PROG
    setup_logging(Verbosity.WARNING, prog)

    try:
        config = collect_args(argv, environ, settings)

        # Messages from resolution already honour -q and -v
        setup_logging(config.verbosity, prog)
        config = finalize(config)

        sys.stdout.write(render_report(config))

    except TerminalRequest as e:
        print(e.text.rstrip("\n"))
        return EXIT_SUCCESS
    except UsageError as e:
        LOG.error("%s", e)  # noqa: TRY400
        LOG.error("Try `%s --help' for more information.", prog)  # noqa: TRY400
        return EXIT_ERROR
    except XzConfError as e:
        LOG.error("%s", e)  # noqa: TRY400
        return EXIT_ERROR
    except KeyboardInterrupt:
        LOG.info("Operation cancelled by user")
        return EXIT_INTERRUPTED

    return EXIT_SUCCESS


def main() -> int:
    """Entry point for the CLI."""
    return run(sys.argv)


if __name__ == "__main__":
    sys.exit(main())
