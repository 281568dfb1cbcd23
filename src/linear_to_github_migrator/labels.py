"""
Idempotent label creation on the GitHub repository.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from github import GithubException

if TYPE_CHECKING:
    from github.Repository import Repository as GithubRepository

    from .models import GitHubLabel

logger: logging.Logger = logging.getLogger(__name__)


def _is_already_exists_error(exc: GithubException) -> bool:
    """Check if a GithubException is a 422 'already_exists' validation error."""
    if exc.status != 422 or not isinstance(exc.data, dict):
        return False
    errors: object = exc.data.get("errors")  # pyright: ignore[reportUnknownVariableType]
    if not isinstance(errors, list) or len(errors) != 1:  # pyright: ignore[reportUnknownArgumentType]
        return False
    error: object = errors[0]  # pyright: ignore[reportUnknownVariableType]
    return isinstance(error, dict) and error.get("code") == "already_exists"  # pyright: ignore[reportUnknownMemberType]


def ensure_label(github_repo: GithubRepository, label: GitHubLabel) -> bool:
    """Create a label on the repository unless it already exists.

    GitHub has no "create if missing" for labels, so the single
    ``already_exists`` validation failure is treated as success.

    Returns:
        True if the label was created, False if it already existed

    Raises:
        GithubException: For any other failure
    """
    try:
        github_repo.create_label(name=label.name, color=label.color, description=label.description)
    except GithubException as e:
        if _is_already_exists_error(e):
            logger.debug(f"Label already exists: {label.name}")
            return False
        raise
    logger.info(f"Created label: {label.name}")
    return True
