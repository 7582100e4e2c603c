"""Static table of filesystem operations and the path arguments they take."""

import os
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence


@dataclass(frozen=True)
class PathArgument:
    """One path argument of an operation.

    ``expects_link`` marks a leaf that may not exist yet (a file or link
    being created, or a link being removed); only its parent is checked.
    ``dir_fd_keyword`` names the keyword whose descriptor anchors the path
    when it is relative.
    """

    index: int
    keyword: str
    expects_link: bool = False
    dir_fd_keyword: Optional[str] = None


WriteIntent = Callable[[Sequence[Any], Mapping[str, Any]], bool]


@dataclass(frozen=True)
class OperationSchema:
    """Path arguments of one operation, plus an optional write-intent gate."""

    name: str
    arguments: tuple[PathArgument, ...]
    write_intent: Optional[WriteIntent] = None


_OPEN_WRITE_CHARACTERS = frozenset("wax+")
_OPEN_WRITE_FLAGS = (
    os.O_WRONLY | os.O_RDWR | os.O_CREAT | os.O_APPEND | os.O_TRUNC
)


def access_implies_write(mode: Any) -> bool:
    """Return True when an ``os.access`` mode asks about write permission."""
    return isinstance(mode, int) and bool(mode & os.W_OK)


def open_implies_write(mode: Any) -> bool:
    """Return True when an open mode string or flag word creates or writes."""
    if isinstance(mode, int):
        return bool(mode & _OPEN_WRITE_FLAGS)
    if isinstance(mode, bytes):
        mode = mode.decode("ascii", "replace")
    if isinstance(mode, str):
        return not _OPEN_WRITE_CHARACTERS.isdisjoint(mode.lower())
    return False


def _argument(args: Sequence[Any], kwargs: Mapping[str, Any], index: int, keyword: str):
    if len(args) > index:
        return args[index]
    return kwargs.get(keyword)


def _open_write_intent(args: Sequence[Any], kwargs: Mapping[str, Any]) -> bool:
    return open_implies_write(_argument(args, kwargs, 1, "mode"))


def _os_open_write_intent(args: Sequence[Any], kwargs: Mapping[str, Any]) -> bool:
    return open_implies_write(_argument(args, kwargs, 1, "flags"))


def _access_write_intent(args: Sequence[Any], kwargs: Mapping[str, Any]) -> bool:
    return access_implies_write(_argument(args, kwargs, 1, "mode"))


def _schema(name: str, *arguments: PathArgument, write_intent=None) -> OperationSchema:
    return OperationSchema(name, tuple(arguments), write_intent)


def _target(
    keyword: str = "path", index: int = 0, dir_fd: Optional[str] = None
) -> PathArgument:
    return PathArgument(index, keyword, False, dir_fd)


def _leaf(
    keyword: str = "path", index: int = 0, dir_fd: Optional[str] = None
) -> PathArgument:
    return PathArgument(index, keyword, True, dir_fd)


FD = "dir_fd"

# os.removedirs and os.renames prune empty parent directories without any
# bound, so they are not offered at all.
_TABLE = (
    _schema("open", _target("file"), write_intent=_open_write_intent),
    _schema("io.open", _target("file"), write_intent=_open_write_intent),
    _schema("os.open", _target(dir_fd=FD), write_intent=_os_open_write_intent),
    _schema("os.access", _target(dir_fd=FD), write_intent=_access_write_intent),
    _schema("os.mkdir", _target(dir_fd=FD)),
    _schema("os.makedirs", _target("name")),
    _schema("os.rmdir", _target(dir_fd=FD)),
    _schema("os.remove", _leaf(dir_fd=FD)),
    _schema("os.unlink", _leaf(dir_fd=FD)),
    _schema(
        "os.rename", _leaf("src", 0, "src_dir_fd"), _leaf("dst", 1, "dst_dir_fd")
    ),
    _schema(
        "os.replace", _leaf("src", 0, "src_dir_fd"), _leaf("dst", 1, "dst_dir_fd")
    ),
    _schema("os.symlink", _leaf("dst", 1, FD)),
    _schema(
        "os.link", _target("src", 0, "src_dir_fd"), _leaf("dst", 1, "dst_dir_fd")
    ),
    _schema("os.chmod", _target(dir_fd=FD)),
    _schema("os.lchmod", _leaf()),
    _schema("os.chown", _target(dir_fd=FD)),
    _schema("os.lchown", _leaf()),
    _schema("os.utime", _target(dir_fd=FD)),
    _schema("os.truncate", _target()),
    _schema("os.mkfifo", _leaf(dir_fd=FD)),
    _schema("os.mknod", _leaf(dir_fd=FD)),
    _schema("os.setxattr", _target()),
    _schema("os.removexattr", _target()),
    _schema("shutil.copyfile", _target("dst", 1)),
    _schema("shutil.copy", _target("dst", 1)),
    _schema("shutil.copy2", _target("dst", 1)),
    _schema("shutil.copytree", _target("dst", 1)),
    _schema("shutil.copymode", _target("dst", 1)),
    _schema("shutil.copystat", _target("dst", 1)),
    _schema("shutil.move", _leaf("src"), _target("dst", 1)),
    _schema("shutil.rmtree", _target(dir_fd=FD)),
    _schema("shutil.chown", _target(dir_fd=FD)),
)

OPERATION_SCHEMAS: Mapping[str, OperationSchema] = {
    schema.name: schema for schema in _TABLE
}


def is_scheduled(operation_name: str) -> bool:
    """Return True when ``operation_name`` is intercepted at all."""
    return operation_name in OPERATION_SCHEMAS


def descriptors_for(operation_name: str) -> tuple[PathArgument, ...]:
    """Return the path arguments of an operation; empty when not intercepted."""
    schema = OPERATION_SCHEMAS.get(operation_name)
    if schema is None:
        return ()
    return schema.arguments


def requires_verification(
    operation_name: str, args: Sequence[Any], kwargs: Mapping[str, Any]
) -> bool:
    """Decide whether this particular call must have its paths verified."""
    schema = OPERATION_SCHEMAS.get(operation_name)
    if schema is None:
        return False
    if schema.write_intent is None:
        return True
    return schema.write_intent(args, kwargs)


def path_arguments(
    operation_name: str, args: Sequence[Any], kwargs: Mapping[str, Any]
) -> Iterator[tuple[Any, bool, Any]]:
    """Yield ``(value, expects_link, dir_fd)`` for each path argument to verify.

    ``dir_fd`` is the descriptor the call passed for that argument, or None.
    """
    if not requires_verification(operation_name, args, kwargs):
        return
    for argument in descriptors_for(operation_name):
        dir_fd = None
        if argument.dir_fd_keyword is not None:
            dir_fd = kwargs.get(argument.dir_fd_keyword)
        if len(args) > argument.index:
            yield args[argument.index], argument.expects_link, dir_fd
        elif argument.keyword in kwargs:
            yield kwargs[argument.keyword], argument.expects_link, dir_fd
