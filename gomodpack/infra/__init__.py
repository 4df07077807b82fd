"""
Infrastructure layer for gomodpack.

Contains abstractions for external systems:
- GitClient: Git command execution (implements VCSProcess)
- GoClient: Go toolchain queries (module listing, environment)

These provide clean interfaces that can be replaced for testing.
"""

from .git_client import GitClient, GitResult, VCSProcess
from .go_client import GoClient

__all__ = [
    'GitClient',
    'GitResult',
    'VCSProcess',
    'GoClient',
]
