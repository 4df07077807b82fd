"""
Domain layer for gomodpack.

Contains pure domain objects with no I/O or side effects:
- RepositorySnapshot: Version-control state of a working copy
- ModuleIdentity: The module being packaged
- VersionInfo: The ``.info`` record of a cached version
- PackResult: Outcome of a packaging run
"""

from .snapshot import RepositorySnapshot, TagRef
from .module import ModuleIdentity, VersionInfo, PackResult, format_time, parse_time

__all__ = [
    'RepositorySnapshot',
    'TagRef',
    'ModuleIdentity',
    'VersionInfo',
    'PackResult',
    'format_time',
    'parse_time',
]
