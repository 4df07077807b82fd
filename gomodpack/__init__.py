"""
gomodpack - Pack a Go module working copy into a module proxy folder.

gomodpack writes the current commit of a Go module into the module download
cache layout (``<module>/@v/list``, ``<version>.info``, ``.mod``, ``.zip``),
so other modules can depend on it through ``GOPROXY=file://...`` before a
release is tagged and pushed.

Quick Start:
    from gomodpack import PackagingService, load_config

    service = PackagingService(config=load_config())
    result = service.pack()
    print(result.module_path, result.version)

Lower-level pieces:
    GitRepository - version resolution and module zip of a git working copy
    ModuleProxyFolder - version list and per-version artifacts
    modzip.transcode - raw repository zip to module zip
"""

__version__ = "0.3.0"

# Domain objects
from .domain import (
    RepositorySnapshot,
    TagRef,
    ModuleIdentity,
    VersionInfo,
    PackResult,
)

# Core
from .resolver import GitRepository, open_repository, format_pseudo_version
from .proxy_folder import ModuleProxyFolder, PendingVersion, default_base_folder
from .module_path import escape_path, escape_version, unescape_path, unescape_version

# Services
from .services import PackagingService

# Errors
from .errors import (
    ErrorKind,
    PackError,
    DirtyWorkingCopyError,
    NotARepositoryError,
    UnrecognizedRepositoryError,
    ProcessFailureError,
    EmptyVersionError,
    SourceArchiveUnreadableError,
    ArchiveIOError,
    ModuleZipError,
    ModuleIdentityError,
    ConfigError,
)

# Configuration
from .config import load_config, save_config

__all__ = [
    "__version__",
    # Domain objects
    "RepositorySnapshot",
    "TagRef",
    "ModuleIdentity",
    "VersionInfo",
    "PackResult",
    # Core
    "GitRepository",
    "open_repository",
    "format_pseudo_version",
    "ModuleProxyFolder",
    "PendingVersion",
    "default_base_folder",
    "escape_path",
    "escape_version",
    "unescape_path",
    "unescape_version",
    # Services
    "PackagingService",
    # Errors
    "ErrorKind",
    "PackError",
    "DirtyWorkingCopyError",
    "NotARepositoryError",
    "UnrecognizedRepositoryError",
    "ProcessFailureError",
    "EmptyVersionError",
    "SourceArchiveUnreadableError",
    "ArchiveIOError",
    "ModuleZipError",
    "ModuleIdentityError",
    "ConfigError",
    # Configuration
    "load_config",
    "save_config",
]
