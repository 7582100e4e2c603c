"""Per-call identifiers for guarded operations, using contextvars."""

import contextvars
import logging
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, MutableMapping, Optional

_call_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "call_id", default=None
)


def generate_call_id() -> str:
    """Generate a new call ID using UUID4."""
    return str(uuid.uuid4())


def get_call_id() -> Optional[str]:
    """Retrieve the ID of the guarded call running in this context."""
    return _call_id_var.get()


@contextmanager
def call_scope(call_id: Optional[str] = None) -> Iterator[str]:
    """Bind a call ID for the duration of one intercepted operation.

    Nested scopes restore the outer ID on exit.
    """
    token = _call_id_var.set(call_id or generate_call_id())
    try:
        yield _call_id_var.get()
    finally:
        _call_id_var.reset(token)


class SandboxLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that injects the call ID and component into log records."""

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        """Add call_id and component to the extra dict."""
        if "extra" not in kwargs:
            kwargs["extra"] = {}
        else:
            kwargs["extra"] = dict(kwargs["extra"])

        call_id = get_call_id()
        kwargs["extra"]["call_id"] = call_id if call_id is not None else "-"

        logger_name = self.logger.name
        if logger_name.startswith("sandboxfs."):
            component = logger_name[len("sandboxfs.") :]
        else:
            component = logger_name
        kwargs["extra"]["component"] = component

        return msg, kwargs
