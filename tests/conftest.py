"""Shared pytest fixtures for unit and integration tests."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Generator, TypedDict

import pytest

from sandboxfs.lifecycle.state import SandboxState

PROJECT_ROOT = Path(__file__).resolve().parent.parent
CLI_ENTRYPOINT = PROJECT_ROOT / "main.py"


class SandboxLayout(TypedDict):
    """Paths of a temporary sandbox tree used across tests."""

    base: Path
    sandbox: Path
    good_file: Path
    outside: Path
    bad_file: Path


def _can_symlink(directory: Path) -> bool:
    trial_link = directory / ".symlink-check"
    try:
        os.symlink(directory, trial_link)
    except (OSError, NotImplementedError, AttributeError):
        return False
    trial_link.unlink()
    return True


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Expose the repository root path to tests."""

    return PROJECT_ROOT


@pytest.fixture(name="layout")
def _layout(tmp_path: Path) -> SandboxLayout:
    """Create a sandbox directory with one file inside and one file outside."""

    base = tmp_path.resolve()
    sandbox = base / "the-sandbox"
    outside = base / "outside"
    sandbox.mkdir()
    outside.mkdir()
    good_file = sandbox / "good-file"
    bad_file = outside / "bad-file"
    good_file.write_text("good", encoding="utf8")
    bad_file.write_text("bad", encoding="utf8")
    return {
        "base": base,
        "sandbox": sandbox,
        "good_file": good_file,
        "outside": outside,
        "bad_file": bad_file,
    }


@pytest.fixture(name="symlink")
def _symlink(tmp_path: Path) -> Callable[[Path, Path], Path]:
    """Return a helper creating symlinks, skipping when the platform forbids them."""

    if not _can_symlink(tmp_path.resolve()):
        pytest.skip("symlinks are not supported here")

    def make(link: Path, target: Path) -> Path:
        os.symlink(target, link)
        return link

    return make


@pytest.fixture(name="state")
def _state() -> Generator[SandboxState, None, None]:
    """Provide an isolated sandbox state that is disabled afterwards."""

    state = SandboxState()
    yield state
    state.disable()
