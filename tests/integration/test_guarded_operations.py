"""Integration tests running guarded operations against real directories."""

import os

import pytest

from sandboxfs.domain.violation import OUTSIDE_SANDBOX, OutsideSandboxError
from sandboxfs.pipeline.operations import UnknownOperationError

pytestmark = pytest.mark.integration


@pytest.fixture(name="fs")
def fs_fixture(state, layout):
    """Enable the sandbox on the layout's sandbox directory."""
    state.enable([str(layout["sandbox"])])
    return state.operations()


def test_write_inside_sandbox(fs, layout) -> None:
    """Writing a new file inside the sandbox reaches the real open."""
    target = layout["sandbox"] / "good"

    with fs.call("open", str(target), "w") as handle:
        handle.write("written")

    assert target.read_text() == "written"


def test_write_outside_sandbox(fs, layout) -> None:
    """Writing outside raises and never creates the file."""
    target = layout["outside"] / "bad"

    with pytest.raises(OutsideSandboxError) as excinfo:
        fs.call("open", str(target), "w")

    assert excinfo.value.kind == OUTSIDE_SANDBOX
    assert excinfo.value.path == str(target)
    assert not target.exists()


def test_read_outside_sandbox_is_allowed(fs, layout) -> None:
    """Reads are not gated."""
    with fs.call("open", str(layout["bad_file"])) as handle:
        assert handle.read() == "bad"


def test_access_read_only_is_not_verified(fs, layout) -> None:
    """Read-only access checks bypass verification."""
    assert fs.call("os.access", str(layout["bad_file"]), os.R_OK) is True


def test_access_write_is_verified(fs, layout) -> None:
    """Write access checks are verified against the roots."""
    assert fs.call("os.access", str(layout["good_file"]), os.W_OK) in (True, False)
    with pytest.raises(OutsideSandboxError):
        fs.call("os.access", str(layout["bad_file"]), os.W_OK)


def test_os_open_with_create_flags(fs, layout) -> None:
    """Low-level opens creating files are gated by their flags."""
    inside = layout["sandbox"] / "raw"
    descriptor = fs.call("os.open", str(inside), os.O_WRONLY | os.O_CREAT)
    os.close(descriptor)
    assert inside.exists()

    with pytest.raises(OutsideSandboxError):
        fs.call("os.open", str(layout["outside"] / "raw"), os.O_WRONLY | os.O_CREAT)
    descriptor = fs.call("os.open", str(layout["bad_file"]), os.O_RDONLY)
    os.close(descriptor)


def test_makedirs_under_missing_directories(fs, layout) -> None:
    """Nested directories that do not exist yet can be created."""
    target = layout["sandbox"] / "a" / "b" / "c"

    fs.call("os.makedirs", str(target))

    assert target.is_dir()


def test_remove_and_rename_inside_sandbox(fs, layout) -> None:
    """Moving and deleting entries inside the sandbox works."""
    moved = layout["sandbox"] / "moved"

    fs.call("os.rename", str(layout["good_file"]), str(moved))
    fs.call("os.remove", str(moved))

    assert not moved.exists()


def test_rename_out_of_sandbox_is_blocked(fs, layout) -> None:
    """Files cannot be moved out of the sandbox."""
    with pytest.raises(OutsideSandboxError):
        fs.call("os.rename", str(layout["good_file"]), str(layout["outside"] / "x"))
    assert layout["good_file"].exists()


def test_copy_into_sandbox_from_outside(fs, layout) -> None:
    """Copies only check their destination."""
    destination = layout["sandbox"] / "copied"

    fs.call("shutil.copyfile", str(layout["bad_file"]), str(destination))

    assert destination.read_text() == "bad"
    with pytest.raises(OutsideSandboxError):
        fs.call("shutil.copy", str(layout["good_file"]), str(layout["outside"]))


def test_rmtree_outside_is_blocked(fs, layout) -> None:
    """Recursive deletion outside the sandbox never starts."""
    with pytest.raises(OutsideSandboxError):
        fs.call("shutil.rmtree", str(layout["outside"]))
    assert layout["bad_file"].exists()


def test_symlink_escape_is_blocked(fs, layout, symlink) -> None:
    """Writing through a link that points outside is rejected."""
    link = symlink(layout["sandbox"] / "escape", layout["bad_file"])

    with pytest.raises(OutsideSandboxError) as excinfo:
        fs.call("open", str(link), "w")

    assert excinfo.value.path == str(layout["bad_file"])
    assert layout["bad_file"].read_text() == "bad"


def test_symlinked_directory_escape_is_blocked(fs, layout, symlink) -> None:
    """New files below a directory link pointing outside are rejected."""
    escape = symlink(layout["sandbox"] / "escape-dir", layout["outside"])

    with pytest.raises(OutsideSandboxError):
        fs.call("open", str(escape / "new-file"), "x")
    assert not (layout["outside"] / "new-file").exists()


def test_links_can_point_anywhere(fs, layout) -> None:
    """Creating and removing a link only checks where the link lives."""
    if "os.symlink" not in fs:
        pytest.skip("os.symlink is not available")
    link = layout["sandbox"] / "to-outside"
    try:
        fs.call("os.symlink", str(layout["bad_file"]), str(link))
    except OSError:
        pytest.skip("symlinks are not supported here")

    assert os.path.islink(link)
    fs.call("os.unlink", str(link))
    assert not os.path.lexists(link)
    assert layout["bad_file"].exists()


def test_bound_callable_checks_paths(fs, layout) -> None:
    """Callables returned by bind go through the same gate."""
    mkdir = fs.bind("os.mkdir")

    mkdir(str(layout["sandbox"] / "bound"))
    with pytest.raises(OutsideSandboxError):
        mkdir(str(layout["outside"] / "bound"))


def test_disable_restores_real_operations(state, layout) -> None:
    """After disabling, writes outside the former sandbox succeed."""
    state.enable([str(layout["sandbox"])])
    state.disable()
    target = layout["outside"] / "free"

    with state.operations().call("open", str(target), "w") as handle:
        handle.write("free")

    assert target.read_text() == "free"


def test_parent_leaf_of_root_is_blocked(fs, layout) -> None:
    """Link-level calls on 'root/..' act on the root's parent and are refused."""
    if "os.lchown" not in fs:
        pytest.skip("os.lchown is not available")
    parent = str(layout["sandbox"]) + os.sep + os.pardir
    before = os.stat(layout["base"])

    with pytest.raises(OutsideSandboxError) as excinfo:
        fs.call("os.lchown", parent, os.getuid(), os.getgid())

    assert excinfo.value.path == str(layout["base"])
    after = os.stat(layout["base"])
    assert (after.st_uid, after.st_gid) == (before.st_uid, before.st_gid)


def test_directory_descriptor_outside_is_blocked(fs, layout, monkeypatch) -> None:
    """A relative path is checked against the directory its dir_fd names."""
    if os.mkdir not in os.supports_dir_fd:
        pytest.skip("os.mkdir does not accept dir_fd here")
    monkeypatch.chdir(layout["sandbox"])
    outside_fd = os.open(str(layout["outside"]), os.O_RDONLY)
    sandbox_fd = os.open(str(layout["sandbox"]), os.O_RDONLY)
    try:
        with pytest.raises(OutsideSandboxError):
            fs.call("os.mkdir", "evil", dir_fd=outside_fd)
        fs.call("os.mkdir", "fine", dir_fd=sandbox_fd)
    finally:
        os.close(outside_fd)
        os.close(sandbox_fd)

    assert not (layout["outside"] / "evil").exists()
    assert (layout["sandbox"] / "fine").is_dir()


def test_rename_between_descriptors(fs, layout, monkeypatch) -> None:
    """Each side of a rename is anchored at its own descriptor."""
    if os.rename not in os.supports_dir_fd:
        pytest.skip("os.rename does not accept dir_fd here")
    monkeypatch.chdir(layout["outside"])
    sandbox_fd = os.open(str(layout["sandbox"]), os.O_RDONLY)
    outside_fd = os.open(str(layout["outside"]), os.O_RDONLY)
    try:
        with pytest.raises(OutsideSandboxError):
            fs.call(
                "os.rename",
                "good-file",
                "stolen",
                src_dir_fd=sandbox_fd,
                dst_dir_fd=outside_fd,
            )
        fs.call(
            "os.rename",
            "good-file",
            "renamed",
            src_dir_fd=sandbox_fd,
            dst_dir_fd=sandbox_fd,
        )
    finally:
        os.close(sandbox_fd)
        os.close(outside_fd)

    assert not (layout["outside"] / "stolen").exists()
    assert (layout["sandbox"] / "renamed").exists()


@pytest.mark.parametrize("name", ["os.removedirs", "os.renames"])
def test_parent_pruning_operations_are_refused(state, layout, name) -> None:
    """Operations that prune empty parents are not available while guarded."""
    holder = layout["base"] / "holder"
    root = holder / "root"
    (root / "a").mkdir(parents=True)
    state.enable([str(root)])

    with pytest.raises(UnknownOperationError):
        state.operations().call(name, str(root / "a"), str(root / "b"))

    assert (root / "a").is_dir()
    assert holder.is_dir()
