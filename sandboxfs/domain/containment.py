"""Pure containment checks between resolved paths and sandbox roots."""

import os
from typing import Iterable

PARENT_REFERENCE = os.pardir


def is_contained(candidate: str, root: str, inclusive: bool = False) -> bool:
    """Return True when ``candidate`` lies inside ``root``.

    ``inclusive`` also accepts ``candidate == root``. Both arguments are
    expected to be resolved already; no filesystem access happens here.
    """
    try:
        relative = os.path.relpath(candidate, root)
    except ValueError:
        # Paths on different drives have no relative form.
        return False
    if relative == os.curdir:
        relative = ""
    return (
        bool(relative or inclusive)
        and relative != PARENT_REFERENCE
        and not relative.startswith(PARENT_REFERENCE + os.sep)
        and not os.path.isabs(relative)
    )


def is_in_any_root(candidate: str, roots: Iterable[str]) -> bool:
    """Return True when any root contains ``candidate`` (root itself included)."""
    return any(is_contained(candidate, root, inclusive=True) for root in roots)
