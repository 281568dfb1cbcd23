"""
Main migration driver for Linear to GitHub migration.

Migration Flow
--------------
The migration runs as two separately invoked phases that meet at the local
corpus (see store.py):

Fetch phase
    - Resume from the explicit cursor, else from the checkpoint's fetch cursor
    - Fetch a page of issues before the cursor (newest first)
    - Stage every issue of the page and persist the checkpoint
    - Pause briefly to stay within Linear's complexity budget
    - Stop at the first empty page

Export phase
    For each staged issue, in discovery order:
        a. Skip it if already exported or synthetic (no creator)
        b. Build the GitHub draft from the staged issue
        c. Export it (labels, issue, state, comments, project status)
        d. Mark it exported and persist the checkpoint immediately

Error Handling
--------------
- Remote errors: retried forever with a fixed backoff, same page or issue
- Local errors (corpus I/O, decoding): fatal, never retried
- Interrupts and the phase deadline: observed only while waiting, so a
  remote call in flight always completes; the phase then raises
  MigrationCancelled and a re-run resumes where it stopped
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

import requests
from github import GithubException

from . import github_utils as ghu
from . import projects
from .exceptions import RemoteError
from .exporter import GitHubExporter
from .identities import IdentityMap
from .issue_builder import build_issue_draft
from .linear import LinearSource
from .retry import BackoffPolicy, CancellationToken, retry_until_cancelled

if TYPE_CHECKING:
    from .config import MigrationConfig
    from .protocols import IssueExporter, IssueSource
    from .store import StagingStore

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

TRANSIENT_ERRORS: Final[tuple[type[Exception], ...]] = (RemoteError, GithubException, requests.RequestException)


@dataclass
class MigrationStats:
    """Statistics collected during a phase."""

    pages_fetched: int = 0
    issues_staged: int = 0
    issues_exported: int = 0
    issues_already_exported: int = 0
    synthetic_issues_skipped: int = 0


class LinearToGitHubMigrator:
    """Runs the fetch and export phases against one corpus."""

    def __init__(
        self,
        config: MigrationConfig,
        store: StagingStore,
        *,
        token: CancellationToken | None = None,
        source: IssueSource | None = None,
        exporter: IssueExporter | None = None,
        identities: IdentityMap | None = None,
    ) -> None:
        self.config: MigrationConfig = config
        self.store: StagingStore = store
        self.token: CancellationToken = token or CancellationToken.with_timeout(config.deadline_seconds)
        self.backoff: BackoffPolicy = BackoffPolicy(config.retry_interval)
        self._source: IssueSource | None = source
        self._exporter: IssueExporter | None = exporter
        self._identities: IdentityMap | None = identities

        logger.info(f"Initialized migrator for corpus {config.corpus_dir}")

    @property
    def source(self) -> IssueSource:
        if self._source is None:
            self._source = LinearSource.connect(
                self.config.linear_api_key,
                issue_number=self.config.issue_number,
                timeout=self.config.request_timeout,
            )
        return self._source

    @property
    def identities(self) -> IdentityMap:
        if self._identities is None:
            self._identities = IdentityMap.from_file(self.config.identity_map_path)
        return self._identities

    def _create_exporter(self) -> IssueExporter:
        client = ghu.get_client(self.config.github_token)
        github_repo = retry_until_cancelled(
            functools.partial(ghu.get_repo, client, self.config.github_repo_path),
            self.backoff,
            self.token,
            retry_on=TRANSIENT_ERRORS,
            describe=f"loading repository {self.config.github_repo_path}",
        )
        return GitHubExporter(
            github_repo,
            projects.get_client(self.config.github_token, timeout=self.config.request_timeout),
            self.store.checkpoint,
            org=self.config.github_org,
        )

    def run(self) -> MigrationStats:
        """Run the phase selected by the configuration."""
        if self.config.mode == "fetch":
            return self.fetch_all()
        return self.export_all()

    def fetch_all(self) -> MigrationStats:
        """Stage every Linear issue, resuming from the checkpoint.

        Raises:
            MigrationCancelled: If interrupted or past the deadline while waiting
            StagingError: If the corpus cannot be written
        """
        stats = MigrationStats()
        wanted = self.config.issue_number
        cursor = self.config.cursor
        if not cursor and wanted is None:
            cursor = self.store.last_cursor

        while True:
            if wanted is not None:
                describe = f"fetching issue number {wanted}"
            elif cursor:
                describe = f"fetching {self.config.page_size} before {cursor}"
            else:
                describe = f"fetching newest {self.config.page_size}"
            logger.info(describe)

            page = retry_until_cancelled(
                functools.partial(self.source.fetch_page, cursor, self.config.page_size),
                self.backoff,
                self.token,
                retry_on=TRANSIENT_ERRORS,
                describe=describe,
            )
            if not page.nodes:
                logger.info("All Linear issues fetched successfully")
                return stats

            before = len(self.store.checkpoint.issues)
            self.store.append_page(page.nodes, cursor=page.next_cursor if wanted is None else None)
            stats.pages_fetched += 1
            stats.issues_staged += len(self.store.checkpoint.issues) - before
            logger.info(
                f"Staged {page.nodes[0]['identifier']}..{page.nodes[-1]['identifier']} "
                f"({len(self.store.checkpoint.issues)} issues in corpus)"
            )

            if wanted is not None and any(self.config.matches_issue_number(n["identifier"]) for n in page.nodes):
                logger.info(f"Fetched issue number {wanted}")
                return stats

            cursor = page.next_cursor
            self.token.pause(self.config.page_pause)

    def export_all(self) -> MigrationStats:
        """Export every staged, not yet exported issue to GitHub in discovery order.

        Raises:
            ConfigError: If the destination repository is not configured
            MigrationCancelled: If interrupted or past the deadline while waiting
            StagingError: If the corpus cannot be read or written
        """
        self.config.require_destination()
        if self._exporter is None:
            self._exporter = self._create_exporter()
        exporter = self._exporter

        stats = MigrationStats()
        for staged in list(self.store.checkpoint.issues):
            identifier = staged.identifier
            if not self.config.matches_issue_number(identifier):
                continue
            if staged.exported_to_github:
                logger.debug(f"{identifier}: skipped already exported issue")
                stats.issues_already_exported += 1
                continue

            issue = self.store.load(identifier)
            if issue.is_synthetic:
                logger.info(f"{identifier}: skipped tutorial issue")
                stats.synthetic_issues_skipped += 1
                continue

            draft = build_issue_draft(
                issue, self.identities, org=self.config.github_org, repo=self.config.github_repo
            )
            logger.info(f"{identifier}: exporting")
            url = retry_until_cancelled(
                functools.partial(exporter.export, identifier, draft),
                self.backoff,
                self.token,
                retry_on=TRANSIENT_ERRORS,
                describe=f"{identifier}: export",
            )

            self.store.mark_exported(identifier)
            stats.issues_exported += 1
            logger.info(f"{identifier}: exported: {url}")

            self.token.pause(self.config.export_pause)

        logger.info(
            f"Export finished: {stats.issues_exported} exported, "
            f"{stats.issues_already_exported} already exported, "
            f"{stats.synthetic_issues_skipped} tutorial issues skipped"
        )
        return stats
