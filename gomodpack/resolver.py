"""
Version resolution for a module working copy.

A GitRepository derives the version to publish for the commit checked out
in a working copy:
- the greatest ``v<semver>`` tag pointing at HEAD, if any
- otherwise a pseudo-version ``v0.0.0-<UTC commit time>-<12-char hash>``

The pseudo-version is built from commit metadata only, so packaging the
same commit twice always gives the same version.
"""

import os
import tempfile
from datetime import datetime, timezone
from typing import BinaryIO, Callable, Iterable, List, Optional, Sequence, Tuple
import logging

from . import modzip, semver
from .domain import RepositorySnapshot, TagRef
from .errors import NotARepositoryError, ProcessFailureError, UnrecognizedRepositoryError
from .infra.git_client import GitClient, VCSProcess

logger = logging.getLogger(__name__)

TAG_REF_PREFIX = "refs/tags/"
PEELED_SUFFIX = "^{}"
PSEUDO_VERSION_BASE = "v0.0.0"
PSEUDO_TIME_FORMAT = "%Y%m%d%H%M%S"
ABBREV_HASH_LENGTH = 12


def parse_refs(refs: Iterable[Tuple[str, str]]) -> Tuple[str, List[TagRef]]:
    """
    Split ``ls-remote`` style refs into the HEAD hash and release tags.

    Tags must be named ``refs/tags/v<semver>``; a trailing ``^{}`` (peeled
    annotated tag) is stripped before validation. Other refs are ignored.

    Returns:
        (head hash or "", release tags)
    """
    head_hash = ""
    tags = []
    for name, ref_hash in refs:
        if name == "HEAD":
            head_hash = ref_hash
        elif name.startswith(TAG_REF_PREFIX + "v"):
            tag = name[len(TAG_REF_PREFIX):]
            if tag.endswith(PEELED_SUFFIX):
                tag = tag[:-len(PEELED_SUFFIX)]
            if not semver.is_valid(tag):
                continue
            tags.append(TagRef(name=tag, hash=ref_hash))
    return head_hash, tags


def format_pseudo_version(commit_time: datetime, abbrev_hash: str) -> str:
    """Assemble ``v0.0.0-YYYYMMDDHHMMSS-<hash>`` from a commit time and hash."""
    if commit_time.tzinfo is None:
        commit_time = commit_time.replace(tzinfo=timezone.utc)
    stamp = commit_time.astimezone(timezone.utc).strftime(PSEUDO_TIME_FORMAT)
    return f"{PSEUDO_VERSION_BASE}-{stamp}-{abbrev_hash}"


class GitRepository:
    """
    Git working copy of a module.

    Construction checks that the working copy is clean, so a dirty tree
    never yields a version.

    Example:
        repo = GitRepository("/path/to/module")
        version = repo.resolve()
    """

    vcs_name = "git"

    def __init__(self, path: str, client: Optional[VCSProcess] = None):
        """
        Args:
            path: Module folder inside the working copy
            client: VCS process implementation (default: GitClient())

        Raises:
            DirtyWorkingCopyError: if there are uncommitted modifications
            NotARepositoryError: if path is not a git working copy
            ProcessFailureError: on any other git failure
        """
        self.path = str(path)
        self.client = client if client is not None else GitClient()
        self.client.check_clean(self.path)

    def snapshot(self) -> RepositorySnapshot:
        """Read the current repository state, including head commit time."""
        head_hash, tags = parse_refs(self.client.list_refs(self.path))
        head_time = self.client.head_commit_time(self.path) if head_hash else None
        return RepositorySnapshot(clean=True, head_hash=head_hash, head_time=head_time, tags=frozenset(tags))

    def working_tag(self) -> Optional[str]:
        """
        Greatest release tag pointing at HEAD, or None.

        Raises:
            ProcessFailureError: if HEAD does not resolve to a commit
        """
        snapshot = self.snapshot()
        if not snapshot.head_hash:
            raise ProcessFailureError("HEAD does not point at a commit", path=self.path, vcs=self.vcs_name)
        return snapshot.working_tag()

    def pseudo_version(self) -> str:
        """Synthesize a pseudo-version from the head commit."""
        commit_time = self.client.head_commit_time(self.path)
        abbrev = self.client.head_abbrev_hash(self.path, ABBREV_HASH_LENGTH)
        return format_pseudo_version(commit_time, abbrev)

    def resolve(self) -> str:
        """
        Version to publish for HEAD: the working tag, else a pseudo-version.
        """
        tag = self.working_tag()
        if tag:
            logger.debug(f"HEAD is tagged {tag}")
            return tag
        return self.pseudo_version()

    def commit_time(self) -> datetime:
        """Commit time of HEAD in UTC."""
        return self.client.head_commit_time(self.path)

    def zip(self, sink: BinaryIO, module_path: str, version: str) -> List[str]:
        """
        Write the module zip of HEAD into ``sink``.

        HEAD is exported with ``git archive`` into a temporary directory and
        then rewritten into the module zip layout.
        """
        with tempfile.TemporaryDirectory(prefix="gomodpack-codehost-git-") as tmpdir:
            raw_archive = os.path.join(tmpdir, "git-archive.zip")
            self.client.export_archive(self.path, raw_archive)
            return modzip.transcode(raw_archive, sink, module_path, version)


RepositoryFactory = Callable[[str, Optional[VCSProcess]], GitRepository]

RECOGNIZERS: Sequence[RepositoryFactory] = (GitRepository,)


def open_repository(
    path: str,
    client: Optional[VCSProcess] = None,
    recognizers: Optional[Sequence[RepositoryFactory]] = None,
) -> GitRepository:
    """
    Open the repository holding a module folder.

    Each recognizer is tried in turn; only "not a repository" moves on to
    the next one, every other error is raised as is.

    Raises:
        UnrecognizedRepositoryError: if no recognizer accepts the folder
    """
    for factory in (recognizers if recognizers is not None else RECOGNIZERS):
        try:
            return factory(path, client)
        except NotARepositoryError as e:
            logger.debug(f"Recognizer skipped: {e}")
            continue
    raise UnrecognizedRepositoryError(str(path))
