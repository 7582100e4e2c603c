"""Structured sandbox violations and the errors that carry them."""

import errno
from dataclasses import dataclass

OUTSIDE_SANDBOX = "OUTSIDE_SANDBOX"


@dataclass(frozen=True)
class Violation:
    """Describes a path that resolved outside every configured root."""

    kind: str
    path: str
    roots: tuple[str, ...]
    message: str

    @classmethod
    def outside_sandbox(cls, path: str, roots: tuple[str, ...]) -> "Violation":
        """Build the violation reported when no root contains ``path``."""
        message = f"{path} is outside the sandbox directories ({', '.join(roots)})"
        return cls(OUTSIDE_SANDBOX, path, tuple(roots), message)


class OutsideSandboxError(PermissionError):
    """Raised in place of a guarded operation whose path escapes the sandbox."""

    def __init__(self, violation: Violation) -> None:
        super().__init__(errno.EACCES, violation.message, violation.path)
        self.violation = violation

    @property
    def kind(self) -> str:
        return self.violation.kind

    @property
    def path(self) -> str:
        return self.violation.path

    @property
    def roots(self) -> tuple[str, ...]:
        return self.violation.roots

    def __str__(self) -> str:
        return f"{self.violation.kind}: {self.violation.message}"


class SymlinkLoopError(OSError):
    """Raised when resolving a path follows more symlinks than allowed."""

    def __init__(self, path: str, max_symlinks: int) -> None:
        super().__init__(
            errno.ELOOP,
            f"Too many levels of symbolic links (limit {max_symlinks})",
            path,
        )
        self.max_symlinks = max_symlinks
