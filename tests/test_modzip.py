"""
Tests for module zip transcoding.
"""

import io
import stat
import zipfile

import pytest

from gomodpack import modzip
from gomodpack.errors import ModuleZipError, SourceArchiveUnreadableError
from gomodpack.modzip import ModuleArchiveEntry, create_module_zip, select_files, source_entries, transcode

MODULE = "example.com/foo"
VERSION = "v1.0.0"
PREFIX = f"{MODULE}@{VERSION}/"


def unix_info(name, mode):
    zi = zipfile.ZipInfo(name, date_time=(2024, 5, 1, 10, 0, 0))
    zi.create_system = 3
    zi.external_attr = mode << 16
    return zi


def raw_archive(tmp_path, files, name="raw.zip"):
    """Write a git-archive style zip; values are bytes or (ZipInfo, bytes)."""
    path = tmp_path / name
    with zipfile.ZipFile(path, "w") as zf:
        for entry_name, data in files.items():
            if isinstance(data, tuple):
                zf.writestr(data[0], data[1])
            else:
                zf.writestr(entry_name, data)
    return path


def pack(tmp_path, files, version=VERSION):
    sink = io.BytesIO()
    written = transcode(str(raw_archive(tmp_path, files)), sink, MODULE, version)
    sink.seek(0)
    return written, zipfile.ZipFile(sink)


class TestTranscode:
    """Test layout of the produced module zip."""

    def test_prefix_rewrite(self, tmp_path):
        written, zf = pack(tmp_path, {
            "go.mod": b"module example.com/foo\n",
            "main.go": b"package main\n",
            "pkg/util/util.go": b"package util\n",
        })
        assert written == [PREFIX + "go.mod", PREFIX + "main.go", PREFIX + "pkg/util/util.go"]
        assert zf.namelist() == written
        assert zf.read(PREFIX + "pkg/util/util.go") == b"package util\n"

    def test_no_directory_entries(self, tmp_path):
        _, zf = pack(tmp_path, {
            "pkg/": b"",
            "pkg/a.go": b"package pkg\n",
            "empty/": (unix_info("empty/", stat.S_IFDIR | 0o755), b""),
        })
        assert zf.namelist() == [PREFIX + "pkg/a.go"]

    def test_fixed_timestamp_and_deflate(self, tmp_path):
        _, zf = pack(tmp_path, {"go.mod": b"module example.com/foo\n"})
        info = zf.getinfo(PREFIX + "go.mod")
        assert info.date_time == modzip.ZIP_EPOCH
        assert info.compress_type == zipfile.ZIP_DEFLATED

    def test_executable_bit_kept(self, tmp_path):
        _, zf = pack(tmp_path, {
            "run.sh": (unix_info("run.sh", stat.S_IFREG | 0o775), b"#!/bin/sh\n"),
            "plain.txt": (unix_info("plain.txt", stat.S_IFREG | 0o664), b"hello\n"),
        })
        assert zf.getinfo(PREFIX + "run.sh").external_attr >> 16 & 0o777 == 0o755
        assert zf.getinfo(PREFIX + "plain.txt").external_attr >> 16 & 0o777 == 0o644

    def test_deterministic_output(self, tmp_path):
        files = {"go.mod": b"module example.com/foo\n", "a.go": b"package foo\n"}
        first, second = io.BytesIO(), io.BytesIO()
        transcode(str(raw_archive(tmp_path, files, "one.zip")), first, MODULE, VERSION)
        transcode(str(raw_archive(tmp_path, files, "two.zip")), second, MODULE, VERSION)
        assert first.getvalue() == second.getvalue()

    def test_pseudo_version_prefix(self, tmp_path):
        version = "v0.0.0-20240501100000-abcdef123456"
        written, _ = pack(tmp_path, {"go.mod": b"module example.com/foo\n"}, version=version)
        assert written == [f"{MODULE}@{version}/go.mod"]


class TestFiltering:
    """Test the module zip content rules."""

    def test_symlink_omitted(self, tmp_path):
        _, zf = pack(tmp_path, {
            "go.mod": b"module example.com/foo\n",
            "link": (unix_info("link", stat.S_IFLNK | 0o777), b"go.mod"),
        })
        assert zf.namelist() == [PREFIX + "go.mod"]

    def test_vcs_directories_omitted(self, tmp_path):
        _, zf = pack(tmp_path, {
            "go.mod": b"module example.com/foo\n",
            ".git/config": b"[core]\n",
            "sub/.hg/hgrc": b"",
        })
        assert zf.namelist() == [PREFIX + "go.mod"]

    def test_nested_module_omitted(self, tmp_path):
        _, zf = pack(tmp_path, {
            "go.mod": b"module example.com/foo\n",
            "a.go": b"package foo\n",
            "tools/go.mod": b"module example.com/foo/tools\n",
            "tools/gen/gen.go": b"package gen\n",
        })
        assert zf.namelist() == [PREFIX + "go.mod", PREFIX + "a.go"]

    def test_vendored_packages_omitted(self, tmp_path):
        _, zf = pack(tmp_path, {
            "go.mod": b"module example.com/foo\n",
            "vendor/modules.txt": b"# example.com/bar v1.0.0\n",
            "vendor/example.com/bar/bar.go": b"package bar\n",
        })
        assert zf.namelist() == [PREFIX + "go.mod", PREFIX + "vendor/modules.txt"]

    def test_unicode_file_name_kept(self, tmp_path):
        written, zf = pack(tmp_path, {
            "go.mod": b"module example.com/foo\n",
            "docs/über.md": b"# \xc3\xbcber\n",
        })
        assert written == [PREFIX + "go.mod", PREFIX + "docs/über.md"]
        assert zf.read(PREFIX + "docs/über.md") == b"# \xc3\xbcber\n"

    def test_shell_special_file_name_rejected(self, tmp_path):
        with pytest.raises(ModuleZipError):
            pack(tmp_path, {"go.mod": b"m", "it's.txt": b"quote\n"})

    def test_select_files_reports_omitted(self, tmp_path):
        path = raw_archive(tmp_path, {"go.mod": b"m", ".git/HEAD": b"ref"})
        with zipfile.ZipFile(path) as zf:
            kept, omitted = select_files(source_entries(zf))
        assert [e.path for e in kept] == ["go.mod"]
        assert omitted == [".git/HEAD"]


class TestErrors:
    """Test rejected inputs."""

    def test_case_insensitive_duplicates(self, tmp_path):
        with pytest.raises(ModuleZipError, match="case-insensitive"):
            pack(tmp_path, {"README.md": b"a", "readme.md": b"b"})

    def test_invalid_file_path(self, tmp_path):
        with pytest.raises(ModuleZipError):
            pack(tmp_path, {"a\\b.go": b"package a\n"})

    @pytest.mark.parametrize("version", ["v1.2", "v1.0.0+build", "1.0.0"])
    def test_non_canonical_version(self, tmp_path, version):
        with pytest.raises(ModuleZipError):
            pack(tmp_path, {"go.mod": b"m"}, version=version)

    def test_invalid_module_path(self):
        with pytest.raises(ModuleZipError):
            create_module_zip(io.BytesIO(), "/abs/path", VERSION, [])

    def test_go_mod_too_large(self):
        info = zipfile.ZipInfo("go.mod")
        info.file_size = modzip.MAX_GO_MOD_SIZE + 1
        entry = ModuleArchiveEntry(path="go.mod", info=info, opener=lambda: io.BytesIO(b""))
        with pytest.raises(ModuleZipError, match="too large"):
            select_files([entry])

    def test_total_size_limit(self):
        entries = []
        for i in range(2):
            info = zipfile.ZipInfo(f"blob{i}.bin")
            info.file_size = modzip.MAX_ZIP_FILE_SIZE // 2 + 1
            entries.append(ModuleArchiveEntry(path=info.filename, info=info, opener=lambda: io.BytesIO(b"")))
        with pytest.raises(ModuleZipError, match="too large"):
            select_files(entries)

    def test_corrupt_archive(self, tmp_path):
        bad = tmp_path / "bad.zip"
        bad.write_bytes(b"this is not a zip archive")
        with pytest.raises(SourceArchiveUnreadableError):
            transcode(str(bad), io.BytesIO(), MODULE, VERSION)

    def test_missing_archive(self, tmp_path):
        with pytest.raises(SourceArchiveUnreadableError):
            transcode(str(tmp_path / "missing.zip"), io.BytesIO(), MODULE, VERSION)
