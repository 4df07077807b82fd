"""
Git client infrastructure for gomodpack.

Provides a clean abstraction over git command execution.
All git operations go through this client, making them:
- Easy to replace with a fake for testing (see VCSProcess)
- Consistent in error handling
- Isolated from version derivation logic
"""

import os
import shutil
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol, Tuple
import logging

from ..errors import DirtyWorkingCopyError, NotARepositoryError, ProcessFailureError

logger = logging.getLogger(__name__)

GIT_COMMAND_NAME = "git"

# Exit statuses git uses for "not a git repository" and usage errors
_NOT_REPO_EXIT_CODES = (128, 129)


class VCSProcess(Protocol):
    """
    Capability interface the version resolver needs from a VCS.

    GitClient implements it by running git; tests use in-memory fakes.
    """

    def check_clean(self, path: str) -> None:
        ...

    def list_refs(self, path: str) -> List[Tuple[str, str]]:
        ...

    def head_commit_time(self, path: str) -> datetime:
        ...

    def head_abbrev_hash(self, path: str, length: int = 12) -> str:
        ...

    def export_archive(self, path: str, output: str) -> None:
        ...


@dataclass
class GitResult:
    """Result of a git command."""
    stdout: str
    stderr: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def prepare_git_env() -> Dict[str, str]:
    """Copy of the process environment with TZ forced to UTC."""
    env = {k: v for k, v in os.environ.items() if k != 'TZ'}
    env['TZ'] = 'UTC'
    return env


class GitClient:
    """
    Abstraction over git commands.

    The git executable and environment are resolved once, on first use, and
    kept on the instance. A GitClient is not safe for concurrent use from
    several threads without external locking.

    Example:
        client = GitClient()
        client.check_clean("/path/to/repo")
        refs = client.list_refs("/path/to/repo")
    """

    vcs_name = "git"

    def __init__(self, executable: str = GIT_COMMAND_NAME, timeout: Optional[float] = None):
        """
        Initialize GitClient.

        Args:
            executable: git command name or path (default: "git")
            timeout: Command timeout in seconds (default: no timeout)
        """
        self.executable = executable
        self.timeout = timeout
        self._git_path: Optional[str] = None
        self._git_env: Optional[Dict[str, str]] = None

    def _prepare(self) -> None:
        if self._git_path is None:
            git_path = shutil.which(self.executable)
            if not git_path:
                raise ProcessFailureError(f"cannot find {self.executable} executable", vcs=self.vcs_name)
            self._git_path = git_path
        if self._git_env is None:
            self._git_env = prepare_git_env()

    def _run(self, args: List[str], cwd: str) -> GitResult:
        """
        Run a git command.

        Args:
            args: Git arguments (e.g., ['show', '--no-patch'])
            cwd: Working directory

        Returns:
            GitResult with stdout, stderr and returncode

        Raises:
            ProcessFailureError: if git cannot be started or times out
        """
        self._prepare()
        cmd = [self._git_path] + args
        logger.debug(f"Running git {' '.join(args)} in {cwd}")

        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                env=self._git_env,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired as e:
            raise ProcessFailureError(
                f"git command timed out: git {' '.join(args)}", path=cwd, vcs=self.vcs_name
            ) from e
        except OSError as e:
            raise ProcessFailureError(
                f"git command failed: git {' '.join(args)}: {e}", path=cwd, vcs=self.vcs_name
            ) from e

        return GitResult(stdout=result.stdout or "", stderr=result.stderr or "", returncode=result.returncode)

    def _output(self, args: List[str], cwd: str) -> str:
        result = self._run(args, cwd)
        if not result.ok:
            raise ProcessFailureError(
                f"git {args[0]} exited with status {result.returncode}",
                path=cwd, vcs=self.vcs_name, detail=result.stderr.strip()
            )
        return result.stdout

    def check_clean(self, path: str) -> None:
        """
        Ensure the working copy has no uncommitted changes.

        Both unstaged and staged modifications of tracked files count.

        Raises:
            DirtyWorkingCopyError: on uncommitted modifications
            NotARepositoryError: if path is not a git working copy
            ProcessFailureError: on any other failure
        """
        for args in (
            ['diff', '--no-ext-diff', '--quiet', '--exit-code'],
            ['diff', '--no-ext-diff', '--quiet', '--exit-code', '--cached'],
        ):
            result = self._run(args, path)
            if result.ok:
                continue
            if result.returncode == 1:
                raise DirtyWorkingCopyError(path, vcs=self.vcs_name)
            if result.returncode in _NOT_REPO_EXIT_CODES:
                raise NotARepositoryError(path, vcs=self.vcs_name, detail=result.stderr.strip())
            raise ProcessFailureError(
                f"git diff exited with status {result.returncode}",
                path=path, vcs=self.vcs_name, detail=result.stderr.strip()
            )

    def list_refs(self, path: str) -> List[Tuple[str, str]]:
        """
        List refs of the working copy.

        Returns:
            (ref name, hash) pairs, including HEAD and ``^{}`` peeled tags
        """
        output = self._output(['ls-remote', '--quiet', './.'], path)
        refs = []
        for line in output.splitlines():
            fields = line.split()
            if len(fields) != 2:
                continue
            refs.append((fields[1], fields[0]))
        return refs

    def head_commit_time(self, path: str) -> datetime:
        """Get the commit time of HEAD in UTC."""
        # Committer time (%ct), not author time: pseudo-versions use the commit date
        output = self._output(['show', '--no-patch', '--pretty=format:%ct', 'HEAD'], path).strip()
        try:
            epoch = int(output)
        except ValueError as e:
            raise ProcessFailureError(
                f"unexpected commit time output: {output!r}", path=path, vcs=self.vcs_name
            ) from e
        return datetime.fromtimestamp(epoch, tz=timezone.utc)

    def head_abbrev_hash(self, path: str, length: int = 12) -> str:
        """Get the hash of HEAD abbreviated to exactly ``length`` characters."""
        output = self._output(['rev-parse', '--verify', 'HEAD^{commit}'], path).strip()
        if len(output) < length or not all(c in '0123456789abcdef' for c in output):
            raise ProcessFailureError(
                f"unexpected commit hash output: {output!r}", path=path, vcs=self.vcs_name
            )
        return output[:length]

    def export_archive(self, path: str, output: str) -> None:
        """Write HEAD as a zip archive to ``output``."""
        self._output(['archive', '--format=zip', '--output', output, 'HEAD'], path)
