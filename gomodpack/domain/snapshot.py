"""
Repository snapshot domain object.

A RepositorySnapshot captures the version-control state needed to derive a
module version: head commit, its time, and the release tags in the
repository. It is built from live repository state and never persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, Optional

from .. import semver


@dataclass(frozen=True)
class TagRef:
    """A release tag and the commit hash it points at."""
    name: str
    hash: str


@dataclass(frozen=True)
class RepositorySnapshot:
    """
    Immutable view of a working copy's version-control state.

    Attributes:
        clean: Working copy has no uncommitted modifications
        head_hash: Full hash of the commit referenced by HEAD ("" if none)
        head_time: Head commit time in UTC, if read
        tags: Release tags (``v<semver>`` only)
    """
    clean: bool
    head_hash: str
    head_time: Optional[datetime] = None
    tags: FrozenSet[TagRef] = field(default_factory=frozenset)

    def tags_at_head(self) -> FrozenSet[TagRef]:
        """Tags whose commit hash equals HEAD's."""
        if not self.head_hash:
            return frozenset()
        return frozenset(t for t in self.tags if t.hash == self.head_hash)

    def working_tag(self) -> Optional[str]:
        """Greatest release tag aliasing HEAD, or None."""
        return semver.max_version(t.name for t in self.tags_at_head())
