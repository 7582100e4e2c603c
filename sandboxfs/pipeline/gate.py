"""Verification gate combining resolution and containment checks."""

import logging
import os
from typing import Any, Iterable, Optional

from sandboxfs.domain.call_context import SandboxLoggerAdapter
from sandboxfs.domain.containment import is_in_any_root
from sandboxfs.domain.resolver import MAX_SYMLINKS, resolve, resolve_parent
from sandboxfs.domain.violation import OutsideSandboxError, SymlinkLoopError, Violation

GATE_LOGGER = SandboxLoggerAdapter(logging.getLogger("sandboxfs.pipeline.gate"), {})

DESCRIPTOR_DIRECTORY = "/proc/self/fd"


def is_path_value(value: Any) -> bool:
    """Return True for values naming a path rather than an open descriptor."""
    return isinstance(value, (str, bytes, os.PathLike))


def anchor_path(path: Any, dir_fd: Any = None) -> str:
    """Return ``path`` made absolute against the directory ``dir_fd`` refers to.

    Without an integer descriptor, or for an absolute path, the path is
    returned unchanged. Raises ``OSError`` when the descriptor's directory
    cannot be read back.
    """
    text = os.fsdecode(os.fspath(path))
    if not isinstance(dir_fd, int) or isinstance(dir_fd, bool):
        return text
    if os.path.isabs(text):
        return text
    directory = os.readlink(os.path.join(DESCRIPTOR_DIRECTORY, str(dir_fd)))
    return os.path.join(directory, text)


def resolve_argument(
    path: Any, expects_link: bool = False, max_symlinks: int = MAX_SYMLINKS
) -> str:
    """Resolve the location a path argument must be checked at."""
    if expects_link:
        return resolve_parent(path, max_symlinks)
    return resolve(path, max_symlinks)


def evaluate(
    path: Any,
    roots: Iterable[str],
    expects_link: bool = False,
    max_symlinks: int = MAX_SYMLINKS,
    dir_fd: Any = None,
) -> tuple[Optional[str], Optional[Violation]]:
    """Resolve ``path`` once and return ``(resolved, violation)``.

    ``resolved`` is None when the value is not a path and was skipped.
    A relative path given with a descriptor whose directory cannot be
    determined is reported as a violation.
    """
    if not is_path_value(path):
        if GATE_LOGGER.logger.isEnabledFor(logging.DEBUG):
            GATE_LOGGER.debug(
                "Verification skipped for non-path argument",
                extra={
                    "event": "verification_skipped",
                    "error_type": type(path).__name__,
                },
            )
        return None, None

    roots = tuple(roots)
    try:
        anchored = anchor_path(path, dir_fd)
    except OSError as exc:
        text = os.fsdecode(os.fspath(path))
        GATE_LOGGER.warning(
            "Descriptor directory unavailable",
            extra={
                "event": "dir_fd_unresolved",
                "path": text,
                "dir_fd": dir_fd,
                "errno": exc.errno,
            },
        )
        return text, Violation.outside_sandbox(text, roots)

    try:
        resolved = resolve_argument(anchored, expects_link, max_symlinks)
    except SymlinkLoopError as exc:
        GATE_LOGGER.warning(
            "Symlink loop while resolving path",
            extra={
                "event": "symlink_loop",
                "path": exc.filename,
                "max_symlinks": exc.max_symlinks,
                "errno": exc.errno,
            },
        )
        raise

    if is_in_any_root(resolved, roots):
        if GATE_LOGGER.logger.isEnabledFor(logging.DEBUG):
            GATE_LOGGER.debug(
                "Path verified",
                extra={
                    "event": "path_verified",
                    "path": resolved,
                    "expects_link": expects_link,
                },
            )
        return resolved, None

    GATE_LOGGER.warning(
        "Path outside sandbox",
        extra={
            "event": "outside_sandbox",
            "path": resolved,
            "roots": roots,
            "expects_link": expects_link,
        },
    )
    return resolved, Violation.outside_sandbox(resolved, roots)


def check(
    path: Any,
    roots: Iterable[str],
    expects_link: bool = False,
    max_symlinks: int = MAX_SYMLINKS,
    dir_fd: Any = None,
) -> Optional[Violation]:
    """Return the violation for ``path``, or None when it may be used.

    Descriptors and file objects are never checked. With ``expects_link``
    only the directory that would hold the leaf has to be inside a root.
    """
    return evaluate(path, roots, expects_link, max_symlinks, dir_fd)[1]


def verify(
    path: Any,
    roots: Iterable[str],
    expects_link: bool = False,
    max_symlinks: int = MAX_SYMLINKS,
    dir_fd: Any = None,
) -> None:
    """Raise ``OutsideSandboxError`` unless ``path`` resolves inside a root."""
    violation = check(path, roots, expects_link, max_symlinks, dir_fd)
    if violation is not None:
        raise OutsideSandboxError(violation)
