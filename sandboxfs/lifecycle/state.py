"""Sandbox activation state and the currently bound operation set."""

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Iterable, Optional

from sandboxfs.domain.call_context import SandboxLoggerAdapter
from sandboxfs.domain.resolver import MAX_SYMLINKS, resolve
from sandboxfs.pipeline.operations import (
    REAL_OPERATIONS,
    GuardedOperations,
    OperationSet,
)

LIFECYCLE_LOGGER = SandboxLoggerAdapter(logging.getLogger("sandboxfs.lifecycle"), {})


@dataclass(frozen=True)
class SandboxSession:
    """Snapshot of one activation; replaced as a whole, never mutated."""

    roots: tuple[str, ...]
    operations: OperationSet
    activation_id: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return bool(self.roots)


class SandboxState:
    """Owns the active root set and swaps it atomically on enable/disable."""

    def __init__(self, real: OperationSet = REAL_OPERATIONS) -> None:
        self._lock = threading.Lock()
        self._real = real
        self._session = SandboxSession((), real)

    @property
    def session(self) -> SandboxSession:
        """Return the current session; readers never need the lock."""
        return self._session

    def enable(
        self, root_directories: Iterable[str], max_symlinks: int = MAX_SYMLINKS
    ) -> SandboxSession:
        """Activate the sandbox for ``root_directories``, replacing any previous set."""
        roots = tuple(
            dict.fromkeys(resolve(root, max_symlinks) for root in root_directories)
        )
        if not roots:
            raise ValueError("At least one sandbox root is required")
        session = SandboxSession(
            roots,
            GuardedOperations(roots, self._real, max_symlinks),
            str(uuid.uuid4()),
        )
        with self._lock:
            self._session = session
        LIFECYCLE_LOGGER.info(
            "Sandbox enabled",
            extra={
                "event": "sandbox_enabled",
                "roots": roots,
                "root_count": len(roots),
                "activation_id": session.activation_id,
            },
        )
        return session

    def disable(self) -> None:
        """Deactivate the sandbox and bind the real operations again."""
        with self._lock:
            previous = self._session
            self._session = SandboxSession((), self._real)
        if previous.enabled:
            LIFECYCLE_LOGGER.info(
                "Sandbox disabled",
                extra={
                    "event": "sandbox_disabled",
                    "activation_id": previous.activation_id,
                },
            )

    def is_enabled(self) -> bool:
        return self._session.enabled

    def active_roots(self) -> tuple[str, ...]:
        return self._session.roots

    def operations(self) -> OperationSet:
        return self._session.operations


_DEFAULT_STATE = SandboxState()


def default_state() -> SandboxState:
    """Return the process-wide sandbox state."""
    return _DEFAULT_STATE


def enable(
    root_directories: Iterable[str], max_symlinks: int = MAX_SYMLINKS
) -> SandboxSession:
    """Activate the process-wide sandbox."""
    return _DEFAULT_STATE.enable(root_directories, max_symlinks)


def disable() -> None:
    """Deactivate the process-wide sandbox."""
    _DEFAULT_STATE.disable()


def is_enabled() -> bool:
    """Return True while the process-wide sandbox is active."""
    return _DEFAULT_STATE.is_enabled()


def active_roots() -> tuple[str, ...]:
    """Return the roots of the process-wide sandbox."""
    return _DEFAULT_STATE.active_roots()


def operations() -> OperationSet:
    """Return the operation set currently bound for the process."""
    return _DEFAULT_STATE.operations()
