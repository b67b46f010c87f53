"""CLI module for xzconf."""

from .args import (
    apply_environment,
    apply_invocation_name,
    build_parser,
    collect_args,
    finalize,
    interpret,
    parse_args,
    tokenize_environment,
)
from .main import run

__all__ = [
    "apply_environment",
    "apply_invocation_name",
    "build_parser",
    "collect_args",
    "finalize",
    "interpret",
    "parse_args",
    "run",
    "tokenize_environment",
]
