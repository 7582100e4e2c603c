"""Real and guarded implementations of the intercepted filesystem operations."""

import builtins
import functools
import io
import logging
import os
import shutil
from typing import Any, Callable, Iterable, Iterator

from sandboxfs.domain.call_context import SandboxLoggerAdapter, call_scope
from sandboxfs.domain.resolver import MAX_SYMLINKS
from sandboxfs.domain.schema import OPERATION_SCHEMAS, is_scheduled, path_arguments
from sandboxfs.pipeline.gate import verify

OPERATIONS_LOGGER = SandboxLoggerAdapter(
    logging.getLogger("sandboxfs.pipeline.operations"), {}
)

_NAMESPACES = {
    "builtins": builtins,
    "io": io,
    "os": os,
    "shutil": shutil,
}


class UnknownOperationError(KeyError):
    """Raised when an operation name is not provided by an operation set."""


def _lookup(name: str) -> Callable[..., Any]:
    """Find the standard library callable behind a schema operation name."""
    if not is_scheduled(name):
        raise UnknownOperationError(name)
    namespace_name, _, attribute = name.rpartition(".")
    namespace = _NAMESPACES[namespace_name or "builtins"]
    function = getattr(namespace, attribute, None)
    if function is None:
        # e.g. os.lchmod or os.mkfifo on platforms without them
        raise UnknownOperationError(name)
    return function


class OperationSet:
    """Common interface of the real and guarded operation sets."""

    def call(self, name: str, *args: Any, **kwargs: Any) -> Any:
        raise NotImplementedError

    def bind(self, name: str) -> Callable[..., Any]:
        """Return a callable that runs ``name`` through this operation set."""
        target = _lookup(name)

        @functools.wraps(target)
        def bound(*args: Any, **kwargs: Any) -> Any:
            return self.call(name, *args, **kwargs)

        return bound

    def names(self) -> Iterator[str]:
        """Yield the operation names available on this platform."""
        for name in OPERATION_SCHEMAS:
            if name in self:
                yield name

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        try:
            _lookup(name)
        except UnknownOperationError:
            return False
        return True

    def __getitem__(self, name: str) -> Callable[..., Any]:
        return self.bind(name)


class RealOperations(OperationSet):
    """Runs operations directly against the filesystem."""

    def call(self, name: str, *args: Any, **kwargs: Any) -> Any:
        return _lookup(name)(*args, **kwargs)

    def __repr__(self) -> str:
        return "RealOperations()"


class GuardedOperations(OperationSet):
    """Verifies every path argument before delegating to another set."""

    def __init__(
        self,
        roots: Iterable[str],
        real: OperationSet,
        max_symlinks: int = MAX_SYMLINKS,
    ) -> None:
        self.roots = tuple(roots)
        if not self.roots:
            raise ValueError("At least one sandbox root is required")
        self.real = real
        self.max_symlinks = max_symlinks

    def call(self, name: str, *args: Any, **kwargs: Any) -> Any:
        if not is_scheduled(name):
            return self.real.call(name, *args, **kwargs)

        with call_scope():
            for value, expects_link, dir_fd in path_arguments(name, args, kwargs):
                try:
                    verify(value, self.roots, expects_link, self.max_symlinks, dir_fd)
                except OSError as exc:
                    OPERATIONS_LOGGER.warning(
                        "Operation blocked",
                        extra={
                            "event": "operation_blocked",
                            "operation": name,
                            "error_type": type(exc).__name__,
                            "errno": exc.errno,
                        },
                    )
                    raise
            if OPERATIONS_LOGGER.logger.isEnabledFor(logging.DEBUG):
                OPERATIONS_LOGGER.debug(
                    "Operation delegated",
                    extra={"event": "operation_delegated", "operation": name},
                )
            return self.real.call(name, *args, **kwargs)

    def __repr__(self) -> str:
        return f"GuardedOperations(roots={self.roots!r})"


REAL_OPERATIONS = RealOperations()
