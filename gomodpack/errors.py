"""
Error taxonomy for gomodpack.

Every failure raised by the packaging core is a PackError carrying an
ErrorKind tag plus structured fields, so callers can branch on ``err.kind``
instead of matching message strings.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Kinds of packaging failure."""
    DIRTY_WORKING_COPY = "dirty_working_copy"
    NOT_A_REPOSITORY = "not_a_repository"
    UNRECOGNIZED_REPOSITORY = "unrecognized_repository"
    PROCESS_FAILURE = "process_failure"
    EMPTY_VERSION = "empty_version"
    SOURCE_ARCHIVE_UNREADABLE = "source_archive_unreadable"
    IO_FAILURE = "io_failure"
    MODULE_ZIP = "module_zip"
    MODULE_IDENTITY = "module_identity"
    CONFIG = "config"


class PackError(Exception):
    """
    Base class for packaging errors.

    Attributes:
        kind: ErrorKind tag
        path: Filesystem path involved, if any
        version: Module version involved, if any
        vcs: Version control system name, if any
        detail: Extra diagnostic text (e.g. command stderr)
    """

    kind: ErrorKind = ErrorKind.PROCESS_FAILURE

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        version: Optional[str] = None,
        vcs: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.path = path
        self.version = version
        self.vcs = vcs
        self.detail = detail

    def to_dict(self) -> dict:
        return {
            'kind': self.kind.value,
            'message': self.message,
            'path': self.path,
            'version': self.version,
            'vcs': self.vcs,
            'detail': self.detail,
        }


class DirtyWorkingCopyError(PackError):
    """Working copy has uncommitted modifications."""
    kind = ErrorKind.DIRTY_WORKING_COPY

    def __init__(self, path: str, vcs: str = "git"):
        super().__init__(f"dirty work copy: [{path}]", path=path, vcs=vcs)


class NotARepositoryError(PackError):
    """Path is not a repository of the given VCS."""
    kind = ErrorKind.NOT_A_REPOSITORY

    def __init__(self, path: str, vcs: str = "git", detail: Optional[str] = None):
        super().__init__(f"not {vcs} repo: [{path}]", path=path, vcs=vcs, detail=detail)


class UnrecognizedRepositoryError(PackError):
    """No supported VCS recognized the folder."""
    kind = ErrorKind.UNRECOGNIZED_REPOSITORY

    def __init__(self, path: str):
        super().__init__(f"cannot recognize repository type: [{path}]", path=path)


class ProcessFailureError(PackError):
    """An external tool failed or produced output we cannot use."""
    kind = ErrorKind.PROCESS_FAILURE


class EmptyVersionError(PackError):
    """An empty version string was given to a versioned-artifact operation."""
    kind = ErrorKind.EMPTY_VERSION

    def __init__(self, path: Optional[str] = None):
        super().__init__("given version is empty", path=path)


class SourceArchiveUnreadableError(PackError):
    """The raw repository archive is corrupt or cannot be indexed."""
    kind = ErrorKind.SOURCE_ARCHIVE_UNREADABLE


class ArchiveIOError(PackError):
    """Filesystem or archive I/O fault while transcoding or storing."""
    kind = ErrorKind.IO_FAILURE


class ModuleZipError(PackError):
    """Archive content violates module zip constraints."""
    kind = ErrorKind.MODULE_ZIP


class ModuleIdentityError(PackError):
    """Module listing returned nothing usable."""
    kind = ErrorKind.MODULE_IDENTITY


class ConfigError(PackError):
    """Invalid configuration value."""
    kind = ErrorKind.CONFIG
