"""
Custom exception classes for the Linear to GitHub migration tool.
"""

from __future__ import annotations


class MigrationError(Exception):
    """Base exception for migration errors."""


class ConfigError(MigrationError):
    """Raised when the run configuration is incomplete or malformed."""


class StagingError(MigrationError):
    """Raised when the local corpus cannot be read or written.

    Local failures are never retried: they point at the environment, not the APIs.
    """


class RemoteError(MigrationError):
    """Raised when a remote API call fails. Retried by the migration driver."""


class GraphQLError(RemoteError):
    """Raised when a GraphQL endpoint answers with an ``errors`` payload."""

    def __init__(self, messages: list[str]) -> None:
        self.messages: list[str] = messages
        super().__init__("GraphQL errors: " + " | ".join(messages))


class ExportError(RemoteError):
    """Raised when exporting a single issue to GitHub fails at any step."""


class MigrationCancelled(MigrationError):
    """Raised when a phase stops at a wait point because of an interrupt or deadline."""
