"""
Linear to GitHub Migration Tool

Migrates Linear issues to GitHub with their comments, labels, relations and
project status, in two resumable phases: fetch everything into a local
corpus, then export the corpus to GitHub.
"""

from __future__ import annotations

from .cli import main
from .exceptions import MigrationCancelled, MigrationError
from .migrator import LinearToGitHubMigrator
from .store import StagingStore
from .utils import setup_logging

# Package version
__version__ = "0.1.0"

__all__ = [
    "LinearToGitHubMigrator",
    "MigrationCancelled",
    "MigrationError",
    "StagingStore",
    "main",
    "setup_logging",
]
