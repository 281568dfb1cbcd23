from __future__ import annotations

import logging
from typing import Final

from github import Github, UnknownObjectException
from github.Repository import Repository

from . import utils
from .exceptions import ConfigError, MigrationError

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

_TOKEN_ENV_VAR: Final[str] = "GITHUB_TOKEN"  # noqa: S105
_DEFAULT_TOKEN_PASS_PATH: Final[str] = "github/cli/token"  # noqa: S105


def get_token(pass_path: str | None = None) -> str | None:
    """Get GitHub token from pass path, env var GITHUB_TOKEN, or default pass location."""
    return utils.get_token(
        pass_path=pass_path,
        env_var=_TOKEN_ENV_VAR,
        default_pass_path=_DEFAULT_TOKEN_PASS_PATH,
        service="GitHub",
        logger=logger,
    )


def get_client(token: str | None = None) -> Github:
    """Get a GitHub client using the token."""
    return Github(token)


def parse_repo_path(repo_path: str) -> tuple[str, str]:
    """Split an ``owner/repository`` path, rejecting malformed values."""
    repo_path = repo_path.strip()
    parts = repo_path.split("/")
    if len(parts) != 2:  # noqa: PLR2004
        msg = f"Invalid GitHub repository path '{repo_path}'. Expected format: 'owner/repository'"
        raise ConfigError(msg)
    owner, repo_name = parts
    if not owner or not repo_name:
        msg = f"Invalid GitHub repository path '{repo_path}'. Both owner and repository name must be non-empty"
        raise ConfigError(msg)
    return owner, repo_name


def get_repo(client: Github, repo_path: str) -> Repository:
    """Get the destination repository, which must already exist."""
    try:
        return client.get_repo(repo_path)
    except UnknownObjectException as e:
        if e.status == 404:
            msg = f"Repository {repo_path} not found or not accessible"
            raise MigrationError(msg) from e
        msg = f"Error checking repository existence: {e}"
        raise MigrationError(msg) from e
