"""
Integration tests against a real git working copy.

The go command is not required: module identity comes from a fake.
"""

import os
import shutil
import subprocess
import zipfile

import pytest

from conftest import FakeGo
from gomodpack.domain import ModuleIdentity
from gomodpack.errors import DirtyWorkingCopyError, UnrecognizedRepositoryError
from gomodpack.infra.git_client import GitClient
from gomodpack.proxy_folder import ModuleProxyFolder
from gomodpack.resolver import GitRepository, open_repository
from gomodpack.services.packaging_service import PackagingService

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")

COMMIT_DATE = "2024-05-01T10:00:00+00:00"


def git(cwd, *args):
    cmd = [
        "git",
        "-c", "user.name=Test User",
        "-c", "user.email=test@example.com",
        "-c", "commit.gpgsign=false",
        "-c", "tag.gpgsign=false",
        *args,
    ]
    return subprocess.run(cmd, cwd=cwd, check=True, capture_output=True, text=True).stdout.strip()


@pytest.fixture
def repo(tmp_path, monkeypatch):
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
    monkeypatch.setenv("GIT_AUTHOR_DATE", COMMIT_DATE)
    monkeypatch.setenv("GIT_COMMITTER_DATE", COMMIT_DATE)
    for key in ("GIT_DIR", "GIT_WORK_TREE", "GIT_INDEX_FILE"):
        monkeypatch.delenv(key, raising=False)

    path = tmp_path / "repo"
    path.mkdir()
    git(path, "init", "-q")
    (path / "go.mod").write_text("module example.com/foo\n\ngo 1.21\n")
    (path / "foo.go").write_text("package foo\n")
    (path / "run.sh").write_text("#!/bin/sh\n")
    os.chmod(path / "run.sh", 0o755)
    (path / "tools").mkdir()
    (path / "tools" / "go.mod").write_text("module example.com/foo/tools\n")
    (path / "tools" / "tools.go").write_text("package tools\n")
    os.symlink("foo.go", path / "link.go")
    git(path, "add", "-A")
    git(path, "commit", "-q", "-m", "initial")
    return path


@pytest.fixture
def head(repo):
    return git(repo, "rev-parse", "HEAD")


@pytest.fixture
def service(repo):
    module = ModuleIdentity("example.com/foo", str(repo), str(repo / "go.mod"))
    return PackagingService(git_client=GitClient(), go_client=FakeGo(module))


class TestResolveWithGit:
    """Version resolution against real refs."""

    def test_pseudo_version(self, repo, head):
        assert GitRepository(str(repo)).resolve() == f"v0.0.0-20240501100000-{head[:12]}"

    def test_lightweight_tag(self, repo):
        git(repo, "tag", "v1.0.0")
        assert GitRepository(str(repo)).resolve() == "v1.0.0"

    def test_greatest_annotated_tag(self, repo):
        git(repo, "tag", "v1.0.0")
        git(repo, "tag", "-a", "v1.1.0", "-m", "release")
        git(repo, "tag", "not-a-version")
        assert GitRepository(str(repo)).resolve() == "v1.1.0"

    def test_commit_time(self, repo):
        assert GitRepository(str(repo)).commit_time().isoformat() == COMMIT_DATE

    def test_modified_file_is_dirty(self, repo):
        (repo / "foo.go").write_text("package foo\n\nvar X = 1\n")
        with pytest.raises(DirtyWorkingCopyError):
            GitRepository(str(repo))

    def test_staged_file_is_dirty(self, repo):
        (repo / "new.go").write_text("package foo\n")
        git(repo, "add", "new.go")
        with pytest.raises(DirtyWorkingCopyError):
            GitRepository(str(repo))

    def test_untracked_file_is_clean(self, repo):
        (repo / "scratch.txt").write_text("notes\n")
        GitRepository(str(repo))

    def test_plain_folder(self, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()
        with pytest.raises(UnrecognizedRepositoryError):
            open_repository(str(plain))


class TestPackWithGit:
    """Full packaging pass against real git."""

    def test_pack(self, service, repo, head, tmp_path):
        cache = tmp_path / "cache"
        result = service.pack(cache_dir=str(cache))
        version = f"v0.0.0-20240501100000-{head[:12]}"
        assert result.version == version

        folder = ModuleProxyFolder(str(cache), "example.com/foo")
        assert folder.load_version_list() == [version]
        assert folder.version_file_path(version, "info").read_text() == (
            f'{{"Version":"{version}","Time":"2024-05-01T10:00:00Z"}}'
        )

        prefix = f"example.com/foo@{version}/"
        with zipfile.ZipFile(folder.version_file_path(version, "zip")) as zf:
            names = sorted(zf.namelist())
            assert names == [prefix + "foo.go", prefix + "go.mod", prefix + "run.sh"]
            assert zf.getinfo(prefix + "run.sh").external_attr >> 16 & 0o777 == 0o755

    def test_same_commit_same_bytes(self, service, tmp_path):
        first = service.pack(cache_dir=str(tmp_path / "one"))
        second = service.pack(cache_dir=str(tmp_path / "two"))
        assert first.version == second.version

        one = ModuleProxyFolder(str(tmp_path / "one"), "example.com/foo")
        two = ModuleProxyFolder(str(tmp_path / "two"), "example.com/foo")
        for suffix in ("info", "mod", "zip"):
            assert (one.version_file_path(first.version, suffix).read_bytes()
                    == two.version_file_path(second.version, suffix).read_bytes())

    def test_skip_then_new_commit(self, service, repo, tmp_path):
        cache = str(tmp_path / "cache")
        first = service.pack(cache_dir=cache)
        assert service.pack(cache_dir=cache).skipped

        (repo / "bar.go").write_text("package foo\n")
        git(repo, "add", "bar.go")
        git(repo, "commit", "-q", "-m", "second")
        git(repo, "tag", "v0.1.0")

        second = service.pack(cache_dir=cache)
        assert second.version == "v0.1.0"
        folder = ModuleProxyFolder(cache, "example.com/foo")
        assert folder.load_version_list() == [first.version, "v0.1.0"]
