"""Command line checks against the filesystem sandbox."""

import logging
import sys
from typing import Optional

from sandboxfs.bootstrap.config import SandboxConfig, parse_cli_args
from sandboxfs.bootstrap.logging_setup import configure_logging
from sandboxfs.domain.call_context import SandboxLoggerAdapter, call_scope
from sandboxfs.domain.resolver import resolve
from sandboxfs.domain.schema import OPERATION_SCHEMAS
from sandboxfs.pipeline.gate import evaluate

CLI_LOGGER = SandboxLoggerAdapter(logging.getLogger("sandboxfs.cli"), {})

EXIT_ALLOWED = 0
EXIT_DENIED = 1
EXIT_USAGE = 2


def run_check(config: SandboxConfig, paths: list[str], expects_link: bool) -> int:
    """Verify each path, print a verdict line per path and return the exit code."""
    try:
        roots = tuple(
            dict.fromkeys(resolve(root, config.max_symlinks) for root in config.roots)
        )
    except OSError as exc:
        print(f"error: cannot resolve sandbox root: {exc}", file=sys.stderr)
        return EXIT_USAGE
    if not roots:
        print("error: at least one --root is required", file=sys.stderr)
        return EXIT_USAGE

    exit_code = EXIT_ALLOWED
    for path in paths:
        with call_scope():
            try:
                resolved, violation = evaluate(
                    path, roots, expects_link, config.max_symlinks
                )
            except OSError as exc:
                print(f"ERROR {path}: {exc}")
                exit_code = EXIT_DENIED
                continue
            if violation is not None:
                CLI_LOGGER.info(
                    "Path denied",
                    extra={
                        "event": "check_denied",
                        "path": violation.path,
                        "verdict": violation.kind,
                    },
                )
                print(f"{violation.kind} {violation.message}")
                exit_code = EXIT_DENIED
                continue
            CLI_LOGGER.info(
                "Path allowed",
                extra={"event": "check_allowed", "path": resolved, "verdict": "allowed"},
            )
            print(f"allowed {resolved}")
    return exit_code


def list_operations() -> int:
    """Print the intercepted operations and their path arguments."""
    for name, schema in OPERATION_SCHEMAS.items():
        described = ", ".join(
            f"{argument.index}:{argument.keyword}"
            + (" (leaf)" if argument.expects_link else "")
            for argument in schema.arguments
        )
        gated = " [write intent only]" if schema.write_intent is not None else ""
        print(f"{name}\t{described}{gated}")
    return EXIT_ALLOWED


def main(argv: Optional[list[str]] = None) -> int:
    """Parse arguments, configure logging and run the requested command."""
    args = parse_cli_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.log_level, args.log_destination, args.log_json)

    if args.command == "operations":
        return list_operations()

    config = SandboxConfig(roots=args.roots, max_symlinks=args.max_symlinks)
    CLI_LOGGER.info(
        "Checking paths",
        extra={
            "roots": tuple(config.roots),
            "root_count": len(config.roots),
            "max_symlinks": config.max_symlinks,
            "log_destination": args.log_destination,
            "log_level": args.log_level,
        },
    )
    return run_check(config, args.paths, args.expects_link)


if __name__ == "__main__":
    sys.exit(main())
