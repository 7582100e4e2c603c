"""Canonical path resolution that tolerates missing trailing components."""

import logging
import os
import stat

from sandboxfs.domain.call_context import SandboxLoggerAdapter
from sandboxfs.domain.violation import SymlinkLoopError

RESOLVER_LOGGER = SandboxLoggerAdapter(logging.getLogger("sandboxfs.resolver"), {})

# Matches the Linux kernel MAXSYMLINKS limit.
MAX_SYMLINKS = 40


def _components(path: str) -> list[str]:
    """Split ``path`` into components, returned as a stack (last item first out)."""
    if os.altsep:
        path = path.replace(os.altsep, os.sep)
    parts = [part for part in path.split(os.sep) if part and part != os.curdir]
    parts.reverse()
    return parts


def _absolute(path: str) -> str:
    # os.path.abspath would collapse "link/.." before the link is followed.
    if os.path.isabs(path):
        return path
    return os.path.join(os.getcwd(), path)


def resolve(path, max_symlinks: int = MAX_SYMLINKS) -> str:
    """Return the canonical absolute form of ``path``.

    Existing components are resolved through symlinks. The first component
    that does not exist, and everything after it, is appended as written; a
    later ``..`` drops those literal components again and resolution against
    the filesystem resumes once all of them are consumed.

    Raises ``SymlinkLoopError`` after ``max_symlinks`` links have been
    followed. Any other ``OSError`` from the filesystem is propagated.
    """
    absolute = _absolute(os.fsdecode(os.fspath(path)))
    drive, tail = os.path.splitdrive(absolute)
    anchor = drive + os.sep
    pending = _components(tail)
    resolved = anchor
    unresolved = 0
    hops = 0

    while pending:
        name = pending.pop()
        if name == os.pardir:
            resolved = os.path.dirname(resolved)
            if unresolved:
                unresolved -= 1
            continue

        candidate = os.path.join(resolved, name)
        if unresolved:
            resolved = candidate
            unresolved += 1
            continue

        try:
            mode = os.lstat(candidate).st_mode
        except FileNotFoundError:
            resolved = candidate
            unresolved = 1
            continue

        if not stat.S_ISLNK(mode):
            resolved = candidate
            continue

        hops += 1
        if hops > max_symlinks:
            raise SymlinkLoopError(candidate, max_symlinks)
        target = os.readlink(candidate)
        if RESOLVER_LOGGER.logger.isEnabledFor(logging.DEBUG):
            RESOLVER_LOGGER.debug(
                "Symlink followed",
                extra={"event": "symlink_followed", "path": candidate},
            )
        if os.path.isabs(target):
            target_drive, target = os.path.splitdrive(target)
            resolved = (target_drive or drive) + os.sep
        pending.extend(_components(target))

    return resolved


def resolve_parent(path, max_symlinks: int = MAX_SYMLINKS) -> str:
    """Resolve the directory that would hold ``path``, ignoring its leaf.

    A leaf of ``.`` or ``..``, or a trailing separator, names the directory
    the path points at rather than an entry in its parent, so those paths
    are resolved in full.
    """
    text = os.fsdecode(os.fspath(path))
    if os.path.basename(text) in ("", os.curdir, os.pardir):
        return resolve(text, max_symlinks)
    parent = os.path.dirname(text) or os.curdir
    return resolve(parent, max_symlinks)
