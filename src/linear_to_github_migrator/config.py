"""Run configuration, resolved once at startup and passed down explicitly."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Final, Literal

from .exceptions import ConfigError
from .github_utils import parse_repo_path
from .linear import DEFAULT_PAGE_SIZE

if TYPE_CHECKING:
    import argparse

Mode = Literal["fetch", "export"]

_CORPUS_ENV_VAR: Final[str] = "LINEAR_CORPUS"
_REPOSITORY_ENV_VAR: Final[str] = "GITHUB_REPOSITORY"
DEFAULT_CORPUS_DIR: Final[str] = "linear-corpus"

DEFAULT_RETRY_INTERVAL_SECONDS: Final[float] = 300.0
DEFAULT_PAGE_PAUSE_SECONDS: Final[float] = 1.0
DEFAULT_EXPORT_PAUSE_SECONDS: Final[float] = 1.0
DEFAULT_REQUEST_TIMEOUT_SECONDS: Final[float] = 120.0
DEFAULT_DEADLINE_HOURS: Final[float] = 24.0


@dataclass(frozen=True)
class MigrationConfig:
    """Everything a migration run needs; no component reads the environment itself."""

    mode: Mode
    corpus_dir: Path
    issue_number: int | None = None
    page_size: int = DEFAULT_PAGE_SIZE
    cursor: str = ""
    github_org: str = ""
    github_repo: str = ""
    linear_api_key: str | None = None
    github_token: str | None = None
    identity_map_path: Path | None = None
    retry_interval: float = DEFAULT_RETRY_INTERVAL_SECONDS
    page_pause: float = DEFAULT_PAGE_PAUSE_SECONDS
    export_pause: float = DEFAULT_EXPORT_PAUSE_SECONDS
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    deadline_seconds: float | None = DEFAULT_DEADLINE_HOURS * 3600

    @property
    def github_repo_path(self) -> str:
        return f"{self.github_org}/{self.github_repo}"

    def matches_issue_number(self, identifier: str) -> bool:
        """True when no single-issue filter is set or ``identifier`` (e.g. ENG-42) is the wanted issue."""
        if self.issue_number is None:
            return True
        return identifier.endswith(f"-{self.issue_number}")

    def require_destination(self) -> None:
        """Fail unless the destination organization and repository are known."""
        if not self.github_org:
            msg = f"GitHub organization is required (pass --github-repo owner/repo or set ${_REPOSITORY_ENV_VAR})"
            raise ConfigError(msg)
        if not self.github_repo:
            msg = f"GitHub repository is required (pass --github-repo owner/repo or set ${_REPOSITORY_ENV_VAR})"
            raise ConfigError(msg)

    @classmethod
    def from_args(
        cls,
        args: argparse.Namespace,
        *,
        linear_api_key: str | None = None,
        github_token: str | None = None,
    ) -> MigrationConfig:
        """Build the configuration from parsed CLI arguments, falling back to environment variables."""
        corpus_dir = Path(args.corpus or os.environ.get(_CORPUS_ENV_VAR) or DEFAULT_CORPUS_DIR)

        github_org = github_repo = ""
        repo_path: str | None = getattr(args, "github_repo", None) or os.environ.get(_REPOSITORY_ENV_VAR)
        if repo_path:
            github_org, github_repo = parse_repo_path(repo_path)

        page_size: int = getattr(args, "page_size", None) or DEFAULT_PAGE_SIZE
        if page_size <= 0:
            msg = f"Page size must be positive, got {page_size}"
            raise ConfigError(msg)

        deadline_hours: float = args.deadline_hours
        identity_map: str | None = getattr(args, "identity_map", None)

        return cls(
            mode=args.mode,
            corpus_dir=corpus_dir,
            issue_number=args.issue_number,
            page_size=page_size,
            cursor=getattr(args, "cursor", None) or "",
            github_org=github_org,
            github_repo=github_repo,
            linear_api_key=linear_api_key,
            github_token=github_token,
            identity_map_path=Path(identity_map) if identity_map else None,
            retry_interval=args.retry_interval,
            deadline_seconds=deadline_hours * 3600 if deadline_hours > 0 else None,
        )
