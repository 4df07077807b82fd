"""
Module zip creation.

Rewrites the zip produced by ``git archive`` into the module zip layout
used by the Go module cache: every file lives under
``<module path>@<version>/``, there are no directory entries, and only
regular files that belong to the module are kept.

Filtering follows the module zip rules of the go command:
- symlinks and other non-regular files are omitted
- VCS metadata directories (.git, .hg, .svn, .bzr) are omitted
- files of nested modules (subdirectories with their own go.mod) are omitted
- vendored packages are omitted, except vendor/modules.txt
- invalid paths, case-insensitive duplicates and oversized content are errors
"""

import shutil
import stat
import zipfile
from dataclasses import dataclass
from typing import IO, BinaryIO, Callable, Iterable, List, Set, Tuple
import logging

from . import semver
from .errors import ArchiveIOError, ModuleZipError, SourceArchiveUnreadableError
from .module_path import check_file_path, check_path

logger = logging.getLogger(__name__)

MAX_ZIP_FILE_SIZE = 500 << 20
MAX_GO_MOD_SIZE = 16 << 20
MAX_LICENSE_SIZE = 16 << 20

VCS_DIRECTORIES = {'.bzr', '.git', '.hg', '.svn'}

# Fixed timestamp (earliest representable in zip) so output is reproducible
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


@dataclass(frozen=True)
class ModuleArchiveEntry:
    """A file to place into a module zip: path, file info and content opener."""
    path: str
    info: zipfile.ZipInfo
    opener: Callable[[], IO[bytes]]

    @property
    def mode(self) -> int:
        return self.info.external_attr >> 16

    @property
    def size(self) -> int:
        return self.info.file_size

    def is_regular(self) -> bool:
        """True unless the entry records a non-regular Unix file type."""
        mode = self.mode
        if self.info.create_system != 3 or stat.S_IFMT(mode) == 0:
            return not self.info.is_dir()
        return stat.S_ISREG(mode)

    def open(self) -> IO[bytes]:
        return self.opener()


def source_entries(zf: zipfile.ZipFile) -> List[ModuleArchiveEntry]:
    """Entries of a raw archive, minus directories and empty names."""
    entries = []
    for info in zf.infolist():
        if not info.filename or info.filename.endswith('/'):
            continue
        if info.create_system == 3 and stat.S_ISDIR(info.external_attr >> 16):
            continue
        entries.append(ModuleArchiveEntry(
            path=info.filename,
            info=info,
            opener=lambda info=info: zf.open(info, 'r'),
        ))
    return entries


def _is_vendored_package(name: str) -> bool:
    if name.startswith('vendor/'):
        rest = name[len('vendor/'):]
    elif '/vendor/' in name:
        rest = name[name.index('/vendor/') + len('/vendor/'):]
    else:
        return False
    return '/' in rest


def _nested_module_dirs(paths: Iterable[str]) -> Set[str]:
    dirs = set()
    for p in paths:
        if p.endswith('/go.mod'):
            dirs.add(p[:-len('/go.mod')])
    return dirs


def _in_dirs(path: str, dirs: Set[str]) -> bool:
    parts = path.split('/')
    for i in range(1, len(parts)):
        if '/'.join(parts[:i]) in dirs:
            return True
    return False


def select_files(entries: Iterable[ModuleArchiveEntry]) -> Tuple[List[ModuleArchiveEntry], List[str]]:
    """
    Apply the module zip filtering rules.

    Returns:
        (kept entries, omitted paths)

    Raises:
        ModuleZipError: on invalid paths, duplicates or size limit violations
    """
    entries = list(entries)
    nested = _nested_module_dirs(e.path for e in entries)
    kept: List[ModuleArchiveEntry] = []
    omitted: List[str] = []
    seen: Set[str] = set()
    total_size = 0

    for entry in entries:
        path = entry.path
        parts = path.split('/')
        if any(part in VCS_DIRECTORIES for part in parts[:-1]):
            omitted.append(path)
            continue
        if _in_dirs(path, nested):
            omitted.append(path)
            continue
        if _is_vendored_package(path):
            omitted.append(path)
            continue
        if not entry.is_regular():
            logger.debug(f"Skipping non-regular file: {path}")
            omitted.append(path)
            continue

        check_file_path(path)
        folded = path.lower()
        if folded in seen:
            raise ModuleZipError(f"multiple files contain path {path!r} (case-insensitive)", path=path)
        seen.add(folded)

        if path == 'go.mod' and entry.size > MAX_GO_MOD_SIZE:
            raise ModuleZipError(f"go.mod file too large ({entry.size} bytes)", path=path)
        if path == 'LICENSE' and entry.size > MAX_LICENSE_SIZE:
            raise ModuleZipError(f"LICENSE file too large ({entry.size} bytes)", path=path)
        total_size += entry.size
        if total_size > MAX_ZIP_FILE_SIZE:
            raise ModuleZipError(f"module source tree too large (more than {MAX_ZIP_FILE_SIZE} bytes)")

        kept.append(entry)

    if omitted:
        logger.debug(f"Omitted {len(omitted)} file(s) from module zip")
    return kept, omitted


def _zipinfo(name: str, mode: int) -> zipfile.ZipInfo:
    zi = zipfile.ZipInfo(filename=name, date_time=ZIP_EPOCH)
    zi.compress_type = zipfile.ZIP_DEFLATED
    zi.create_system = 3
    zi.external_attr = (stat.S_IFREG | (0o755 if mode & 0o111 else 0o644)) << 16
    return zi


def create_module_zip(
    sink: BinaryIO,
    module_path: str,
    version: str,
    entries: Iterable[ModuleArchiveEntry],
) -> List[str]:
    """
    Write a module zip for ``module_path@version`` to ``sink``.

    Args:
        sink: Writable binary stream
        module_path: Module path, used as the archive prefix
        version: Module version, used as the archive prefix
        entries: Candidate files relative to the module root

    Returns:
        Archive names written, in order

    Raises:
        ModuleZipError: if the module path, version or content is invalid
        ArchiveIOError: on read or write failure
    """
    check_path(module_path)
    if not semver.is_canonical(version):
        raise ModuleZipError(f"version {version!r} is not canonical", version=version)

    kept, _ = select_files(entries)
    prefix = f"{module_path}@{version}/"
    written = []

    try:
        with zipfile.ZipFile(sink, mode='w') as zw:
            for entry in kept:
                name = prefix + entry.path
                with entry.open() as src, zw.open(_zipinfo(name, entry.mode), 'w') as dst:
                    shutil.copyfileobj(src, dst)
                written.append(name)
    except zipfile.BadZipFile as e:
        raise SourceArchiveUnreadableError(f"corrupt source archive entry: {e}", version=version) from e
    except OSError as e:
        raise ArchiveIOError(f"writing module zip failed: {e}", version=version) from e

    return written


def transcode(raw_archive: str, sink: BinaryIO, module_path: str, version: str) -> List[str]:
    """
    Convert a raw repository zip (e.g. from ``git archive``) into a module zip.

    Raises:
        SourceArchiveUnreadableError: if the raw archive cannot be opened
        ModuleZipError: if the content violates module zip rules
        ArchiveIOError: on I/O failure while copying
    """
    try:
        zf = zipfile.ZipFile(raw_archive, mode='r')
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as e:
        raise SourceArchiveUnreadableError(
            f"cannot open source archive: {e}", path=str(raw_archive), version=version
        ) from e

    with zf:
        entries = source_entries(zf)
        written = create_module_zip(sink, module_path, version, entries)

    logger.debug(f"Wrote {len(written)} file(s) into module zip {module_path}@{version}")
    return written
