"""Sandbox configuration and CLI argument parsing."""

import argparse
import os
from dataclasses import dataclass, field

from sandboxfs.domain.resolver import MAX_SYMLINKS


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: list[str]) -> list[str]:
    value = os.getenv(name)
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


DEFAULT_ROOTS = _env_list("SANDBOXFS_ROOTS", [])
DEFAULT_MAX_SYMLINKS = _env_int("SANDBOXFS_MAX_SYMLINKS", MAX_SYMLINKS)
DEFAULT_LOG_JSON = _env_bool("SANDBOXFS_LOG_JSON", True)


@dataclass
class SandboxConfig:
    """Roots and resolver limits for one sandbox activation."""

    roots: list[str] = field(default_factory=list)
    max_symlinks: int = DEFAULT_MAX_SYMLINKS


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for the sandbox tools."""
    parser = argparse.ArgumentParser(description="Filesystem sandbox path checks")
    default_log_level = os.getenv("SANDBOXFS_LOG_LEVEL", "INFO").upper()
    default_destination = os.getenv("SANDBOXFS_LOG_DESTINATION", "stderr")
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=default_destination,
        help="stderr, stdout or a file path",
    )
    parser.add_argument(
        "--log-json",
        action=argparse.BooleanOptionalAction,
        default=DEFAULT_LOG_JSON,
        help="Emit structured JSON log lines",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser(
        "check", help="Verify paths against the sandbox roots"
    )
    check.add_argument(
        "--root",
        dest="roots",
        action="append",
        default=None,
        help="Permitted root directory (repeatable, default: $SANDBOXFS_ROOTS)",
    )
    check.add_argument(
        "--expects-link",
        action="store_true",
        help="Check only the parent directory of each path",
    )
    check.add_argument(
        "--max-symlinks",
        type=int,
        default=DEFAULT_MAX_SYMLINKS,
        help="Symlinks followed per path before giving up",
    )
    check.add_argument("paths", nargs="+", metavar="PATH")

    subparsers.add_parser("operations", help="List the intercepted operations")

    args = parser.parse_args(argv)
    if args.command == "check" and args.roots is None:
        args.roots = list(DEFAULT_ROOTS)
    return args
