"""
Shared fixtures: in-memory stand-ins for git and the go command.
"""

import os
import zipfile
from datetime import datetime, timezone

import pytest

from gomodpack.domain import ModuleIdentity
from gomodpack.errors import DirtyWorkingCopyError, NotARepositoryError

HEAD_HASH = "abcdef1234567890abcdef1234567890abcdef12"
COMMIT_TIME = datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)


class FakeVCS:
    """VCSProcess implementation backed by plain attributes."""

    def __init__(
        self,
        refs=None,
        commit_time=COMMIT_TIME,
        head_hash=HEAD_HASH,
        dirty=False,
        not_repo=False,
        files=None,
    ):
        if refs is None:
            refs = [("HEAD", head_hash), ("refs/heads/main", head_hash)]
        self.refs = refs
        self.commit_time = commit_time
        self.head_hash = head_hash
        self.dirty = dirty
        self.not_repo = not_repo
        self.files = files if files is not None else {"go.mod": b"module example.com/foo\n"}
        self.calls = []
        self.fail_export = None

    def check_clean(self, path):
        self.calls.append(("check_clean", path))
        if self.not_repo:
            raise NotARepositoryError(path)
        if self.dirty:
            raise DirtyWorkingCopyError(path)

    def list_refs(self, path):
        self.calls.append(("list_refs", path))
        return list(self.refs)

    def head_commit_time(self, path):
        self.calls.append(("head_commit_time", path))
        return self.commit_time

    def head_abbrev_hash(self, path, length=12):
        self.calls.append(("head_abbrev_hash", path))
        return self.head_hash[:length]

    def export_archive(self, path, output):
        self.calls.append(("export_archive", path))
        if self.fail_export:
            raise self.fail_export
        with zipfile.ZipFile(output, "w") as zf:
            for name, data in self.files.items():
                zf.writestr(name, data)


class FakeGo:
    """GoClient stand-in returning a fixed module."""

    def __init__(self, module, env=None):
        self.module = module
        self.environment = env or {}

    def list_module(self, cwd=None):
        return self.module

    def env(self, *names):
        return {k: v for k, v in self.environment.items() if not names or k in names}


@pytest.fixture
def fake_vcs():
    return FakeVCS()


@pytest.fixture
def module_dir(tmp_path):
    """A module source folder with a go.mod file."""
    src = tmp_path / "src"
    src.mkdir()
    (src / "go.mod").write_bytes(b"module example.com/foo\n\ngo 1.21\n")
    return src


@pytest.fixture
def module_identity(module_dir):
    return ModuleIdentity(
        path="example.com/foo",
        dir=str(module_dir),
        go_mod=str(module_dir / "go.mod"),
    )


@pytest.fixture
def fake_go(module_identity):
    return FakeGo(module_identity)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from the real ~/.gomodpack and GOMODPACK_* settings."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for key in list(os.environ):
        if key.startswith("GOMODPACK_"):
            monkeypatch.delenv(key, raising=False)
    return home
