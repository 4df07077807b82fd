"""
Module proxy folder maintenance.

A ModuleProxyFolder owns the cache directory of one module inside a Go
module download cache (``GOMODCACHE/cache/download``), which can be served
as-is with ``GOPROXY=file://...``:

    <base>/<escaped module path>/@v/list
    <base>/<escaped module path>/@v/<escaped version>.info
    <base>/<escaped module path>/@v/<escaped version>.mod
    <base>/<escaped module path>/@v/<escaped version>.zip

The version list is kept sorted by semver and deduplicated. It is rewritten
atomically (temp file + rename), but there is no locking: two processes
adding versions to the same module at once can lose an update.
"""

import os
import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, List, Optional, Tuple
import logging

from . import semver
from .domain import VersionInfo
from .errors import ArchiveIOError, EmptyVersionError, ProcessFailureError
from .infra.go_client import GoClient
from .module_path import escape_path, escape_version

logger = logging.getLogger(__name__)

MODULE_VERS_FOLDER_NAME = "@v"
MODULE_LIST_FILE_NAME = "list"
MODULE_INFO_FILE_SUFFIX = "info"
MODULE_MOD_FILE_SUFFIX = "mod"
MODULE_ZIP_FILE_SUFFIX = "zip"

ARTIFACT_FILE_MODE = 0o644


def default_base_folder(go_client: Optional[GoClient] = None) -> str:
    """
    Default module proxy base folder, from ``go env``.

    Uses ``$GOMODCACHE/cache/download``, falling back to
    ``<first GOPATH entry>/pkg/mod/cache/download``.
    """
    go_client = go_client or GoClient()
    env = go_client.env("GOMODCACHE", "GOPATH")
    if env.get("GOMODCACHE"):
        return os.path.join(env["GOMODCACHE"], "cache", "download")
    gopath = env.get("GOPATH", "").split(os.pathsep)[0]
    if not gopath:
        raise ProcessFailureError("go env reports neither GOMODCACHE nor GOPATH")
    return os.path.join(gopath, "pkg", "mod", "cache", "download")


def _write_atomic(path: Path, data: bytes) -> None:
    """Write data atomically using temp file and rename."""
    fd, temp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp"
    )

    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        os.chmod(temp_path, ARTIFACT_FILE_MODE)
        os.replace(temp_path, path)

    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


class ModuleProxyFolder:
    """
    Cache folder of a single module.

    Example:
        folder = ModuleProxyFolder("/home/me/go/pkg/mod/cache/download", "example.com/foo")
        if not folder.contains_version("v1.0.0"):
            ...
            folder.add_version("v1.0.0")
    """

    def __init__(self, base_folder: str, module_path: str):
        """
        Args:
            base_folder: Module proxy base folder (use ``open`` to default it)
            module_path: Module path, e.g. ``example.com/foo``

        Raises:
            ModuleZipError: if the module path is malformed
        """
        self.base_folder = str(base_folder)
        self.module_path = module_path
        self.folder_path = Path(self.base_folder) / escape_path(module_path)
        self._has_vers_folder = False

    @classmethod
    def open(
        cls,
        module_path: str,
        base_folder: Optional[str] = None,
        go_client: Optional[GoClient] = None,
    ) -> 'ModuleProxyFolder':
        """Create a folder, resolving the base folder from ``go env`` if not given."""
        if not base_folder:
            base_folder = default_base_folder(go_client)
        return cls(os.path.expanduser(base_folder), module_path)

    @property
    def vers_folder(self) -> Path:
        return self.folder_path / MODULE_VERS_FOLDER_NAME

    @property
    def list_file_path(self) -> Path:
        return self.vers_folder / MODULE_LIST_FILE_NAME

    def version_file_path(self, version: str, suffix: str) -> Path:
        """Path of a per-version artifact."""
        if not version:
            raise EmptyVersionError(path=str(self.vers_folder))
        return self.vers_folder / f"{escape_version(version)}.{suffix}"

    def _prepare_vers_folder(self) -> None:
        if self._has_vers_folder:
            return
        try:
            self.vers_folder.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ArchiveIOError(f"cannot create folder: {e}", path=str(self.vers_folder)) from e
        self._has_vers_folder = True

    def load_version_list(self) -> List[str]:
        """
        Read versions from the list file, in file order.

        Returns:
            Version strings; empty if the list file does not exist yet

        Raises:
            ArchiveIOError: if the list file exists but cannot be read
        """
        try:
            text = self.list_file_path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError) as e:
            raise ArchiveIOError(f"cannot read version list: {e}", path=str(self.list_file_path)) from e

        versions = []
        for line in text.splitlines():
            v = line.strip()
            if v:
                versions.append(v)
        return versions

    def save_version_list(self, versions: Iterable[str]) -> List[str]:
        """
        Sort versions by semver and rewrite the list file.

        Duplicates are not removed here; callers pass a deduplicated list.

        Returns:
            The sorted versions as written
        """
        ordered = semver.sort_versions(versions)
        self._prepare_vers_folder()
        data = "".join(v + "\n" for v in ordered).encode('utf-8')
        try:
            _write_atomic(self.list_file_path, data)
        except OSError as e:
            raise ArchiveIOError(f"cannot write version list: {e}", path=str(self.list_file_path)) from e
        return ordered

    def add_version(self, version: str) -> bool:
        """
        Add a version to the list file.

        Returns:
            True if added, False if it was already listed
        """
        if not version:
            raise EmptyVersionError(path=str(self.list_file_path))
        versions = self.load_version_list()
        if version in versions:
            return False
        versions.append(version)
        self.save_version_list(versions)
        logger.debug(f"Added {version} to {self.list_file_path}")
        return True

    def import_versions(self, versions: Iterable[str]) -> List[str]:
        """
        Merge several version strings into the list file.

        Returns:
            The versions that were not listed before, in input order
        """
        current = self.load_version_list()
        known = set(current)
        added = []
        for v in versions:
            v = v.strip()
            if not v or v in known:
                continue
            known.add(v)
            added.append(v)
        self.save_version_list(current + added)
        return added

    def contains_version(self, version: str) -> bool:
        """Check if a version is in the list file."""
        return version in self.load_version_list()

    def _create_versioned_file(self, version: str, suffix: str) -> BinaryIO:
        path = self.version_file_path(version, suffix)
        self._prepare_vers_folder()
        try:
            return open(path, 'wb')
        except OSError as e:
            raise ArchiveIOError(f"cannot create file: {e}", path=str(path), version=version) from e

    def save_info(self, info: VersionInfo) -> Path:
        """Write the ``.info`` file of a version."""
        if not info.version:
            raise EmptyVersionError(path=str(self.vers_folder))
        path = self.version_file_path(info.version, MODULE_INFO_FILE_SUFFIX)
        with self._create_versioned_file(info.version, MODULE_INFO_FILE_SUFFIX) as fp:
            try:
                fp.write(info.to_json().encode('utf-8'))
            except OSError as e:
                raise ArchiveIOError(f"cannot write info: {e}", path=str(path), version=info.version) from e
        return path

    def create_info_file(self, version: str, commit_time: datetime) -> Path:
        """Write ``{"Version": version, "Time": commit_time}`` as the version's info file."""
        return self.save_info(VersionInfo(version=version, time=commit_time))

    def create_definition_sink(self, version: str) -> BinaryIO:
        """Open the ``.mod`` file of a version for writing."""
        if not version:
            raise EmptyVersionError(path=str(self.vers_folder))
        return self._create_versioned_file(version, MODULE_MOD_FILE_SUFFIX)

    def create_archive_sink(self, version: str) -> BinaryIO:
        """Open the ``.zip`` file of a version for writing."""
        if not version:
            raise EmptyVersionError(path=str(self.vers_folder))
        return self._create_versioned_file(version, MODULE_ZIP_FILE_SUFFIX)

    def load_info(self, version: str) -> Optional[VersionInfo]:
        """Read the ``.info`` file of a version, or None if missing or unparsable."""
        path = self.version_file_path(version, MODULE_INFO_FILE_SUFFIX)
        try:
            return VersionInfo.from_json(path.read_text(encoding='utf-8'))
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError) as e:
            logger.warning(f"Error reading {path}: {e}")
            return None

    def list_versions_info(self) -> List[Tuple[str, Optional[VersionInfo]]]:
        """Listed versions paired with their info records."""
        return [(v, self.load_info(v)) for v in self.load_version_list()]

    def stage_version(self, version: str) -> 'PendingVersion':
        """
        Start writing the artifacts of a version under temporary names.

        Use as a context manager: the files are renamed into place when the
        block exits normally and removed when it raises.
        """
        if not version:
            raise EmptyVersionError(path=str(self.vers_folder))
        return PendingVersion(self, version)


class PendingVersion:
    """
    Artifact triplet of one version, staged under temporary names.

    Example:
        with folder.stage_version(version) as pending:
            pending.write_info(commit_time)
            pending.copy_definition("/src/go.mod")
            with pending.open_archive() as fp:
                repo.zip(fp, module_path, version)
        folder.add_version(version)
    """

    # Archive first, info last: a published .info implies the rest is there
    PUBLISH_ORDER = (MODULE_ZIP_FILE_SUFFIX, MODULE_MOD_FILE_SUFFIX, MODULE_INFO_FILE_SUFFIX)

    def __init__(self, folder: ModuleProxyFolder, version: str):
        self.folder = folder
        self.version = version
        self._staged: Dict[str, str] = {}
        self.published = False

    def _stage(self, suffix: str) -> BinaryIO:
        target = self.folder.version_file_path(self.version, suffix)
        self.folder._prepare_vers_folder()
        if suffix in self._staged:
            raise ArchiveIOError(f"{suffix} file staged twice", path=str(target), version=self.version)
        try:
            fd, temp_path = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
        except OSError as e:
            raise ArchiveIOError(f"cannot create file: {e}", path=str(target), version=self.version) from e
        self._staged[suffix] = temp_path
        return os.fdopen(fd, 'wb')

    def write_info(self, commit_time: datetime) -> None:
        info = VersionInfo(version=self.version, time=commit_time)
        try:
            with self._stage(MODULE_INFO_FILE_SUFFIX) as fp:
                fp.write(info.to_json().encode('utf-8'))
        except OSError as e:
            raise ArchiveIOError(
                f"cannot write info: {e}", path=str(self.folder.vers_folder), version=self.version
            ) from e

    def open_definition(self) -> BinaryIO:
        return self._stage(MODULE_MOD_FILE_SUFFIX)

    def copy_definition(self, source: str) -> None:
        """Copy a go.mod file verbatim as the version's ``.mod`` file."""
        try:
            with open(source, 'rb') as src, self.open_definition() as dst:
                shutil.copyfileobj(src, dst)
        except OSError as e:
            raise ArchiveIOError(f"copy go.mod failed: {e}", path=source, version=self.version) from e

    def open_archive(self) -> BinaryIO:
        return self._stage(MODULE_ZIP_FILE_SUFFIX)

    def publish(self) -> None:
        """Rename all staged files into place."""
        missing = [s for s in self.PUBLISH_ORDER if s not in self._staged]
        if missing:
            raise ArchiveIOError(
                f"incomplete artifacts for {self.version}: missing {', '.join(missing)}",
                path=str(self.folder.vers_folder), version=self.version
            )
        for suffix in self.PUBLISH_ORDER:
            temp_path = self._staged[suffix]
            target = self.folder.version_file_path(self.version, suffix)
            try:
                os.chmod(temp_path, ARTIFACT_FILE_MODE)
                os.replace(temp_path, target)
            except OSError as e:
                raise ArchiveIOError(f"cannot publish file: {e}", path=str(target), version=self.version) from e
            del self._staged[suffix]
        self.published = True

    def discard(self) -> None:
        """Remove staged files that were not published."""
        for temp_path in self._staged.values():
            try:
                os.unlink(temp_path)
            except FileNotFoundError:
                pass
        self._staged.clear()

    def __enter__(self) -> 'PendingVersion':
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None:
                self.publish()
        finally:
            self.discard()
        return False
