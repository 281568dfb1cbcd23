"""Export of a single issue draft to GitHub."""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING

import requests
from github import GithubException
from github.GithubObject import NotSet

from . import labels, projects
from .exceptions import ExportError, RemoteError

if TYPE_CHECKING:
    from github.Issue import Issue as GithubIssue
    from github.Repository import Repository as GithubRepository

    from .graphql import GraphQLClient
    from .models import IssueDraft, ProjectInfo, ProjectRef, StatusBucket
    from .store import Checkpoint

logger: logging.Logger = logging.getLogger(__name__)


class ExportStep(enum.Enum):
    """Steps of an issue export, in execution order."""

    PENDING = "pending"
    LABELS_ENSURED = "label-ensured"
    CREATED = "created"
    STATE_SET = "state-set"
    COMMENTED = "commented"
    PROJECT_ATTACHED = "project-attached"
    STATUS_SET = "status-set"
    DONE = "done"


class GitHubExporter:
    """Performs the ordered GitHub side effects for one issue draft at a time.

    Label names and projects resolved here are recorded in the checkpoint's
    caches so later issues (and later runs) skip the remote lookups. The
    caches are persisted with the checkpoint when the issue is marked exported.

    Nothing is rolled back on failure: an issue created before a later step
    fails will be created again when the export is retried.
    """

    def __init__(
        self,
        github_repo: GithubRepository,
        projects_client: GraphQLClient,
        cache: Checkpoint,
        *,
        org: str,
    ) -> None:
        self.github_repo: GithubRepository = github_repo
        self.projects_client: GraphQLClient = projects_client
        self.cache: Checkpoint = cache
        self.org: str = org
        self.step: ExportStep = ExportStep.PENDING

    def export(self, identifier: str, draft: IssueDraft) -> str:
        """Create the issue with its comments, state and project status.

        Returns:
            The HTML URL of the created GitHub issue

        Raises:
            ExportError: If any step fails; the cause is chained
        """
        self.step = ExportStep.PENDING
        try:
            self._ensure_labels(identifier, draft)
            self.step = ExportStep.LABELS_ENSURED

            logger.info(f"{identifier}: creating")
            github_issue = self.github_repo.create_issue(
                title=draft.title,
                body=draft.body,
                assignee=draft.assignee or NotSet,
                labels=[label.name for label in draft.labels],
            )
            self.step = ExportStep.CREATED

            if draft.close_reason is not None:
                github_issue.edit(state="closed", state_reason=draft.close_reason)
                self.step = ExportStep.STATE_SET

            for i, comment in enumerate(draft.comments):
                logger.info(f"{identifier}: creating comment {i}")
                github_issue.create_comment(comment)
            self.step = ExportStep.COMMENTED

            if draft.project is not None:
                self._add_to_project(identifier, draft, github_issue, draft.project)
        except (GithubException, RemoteError, requests.RequestException) as e:
            logger.warning(f"{identifier}: export failed after step '{self.step.value}': {e}")
            msg = f"Failed to export {identifier}: {e}"
            raise ExportError(msg) from e

        self.step = ExportStep.DONE
        return github_issue.html_url

    def _ensure_labels(self, identifier: str, draft: IssueDraft) -> None:
        for label in draft.labels:
            if self.cache.has_label(label.name):
                continue
            logger.info(f"{identifier}: ensuring label: {label.name}")
            labels.ensure_label(self.github_repo, label)
            self.cache.add_label(label.name)

    def _add_to_project(
        self,
        identifier: str,
        draft: IssueDraft,
        github_issue: GithubIssue,
        ref: ProjectRef,
    ) -> None:
        logger.info(f"{identifier}: ensuring project: {ref.name}")
        project = self._resolve_project(ref, draft.status_bucket)

        item_id = projects.add_issue_to_project(self.projects_client, project.id, github_issue.node_id)
        self.step = ExportStep.PROJECT_ATTACHED

        assert project.status_field is not None  # resolved above
        if projects.set_project_issue_status(
            self.projects_client, project.id, item_id, project.status_field, draft.status_bucket
        ):
            self.step = ExportStep.STATUS_SET

    def _resolve_project(self, ref: ProjectRef, bucket: StatusBucket | None) -> ProjectInfo:
        project = self.cache.get_project(ref.name)
        if project is None:
            project = projects.ensure_project(self.projects_client, self.org, ref.name, ref.description)
        elif project.description != ref.description:
            projects.update_project_description(self.projects_client, project.id, ref.description)
            project.description = ref.description

        status_field = project.status_field
        # Re-query a cached field that lacks the wanted option.
        if status_field is None or (bucket is not None and not (status_field.id and status_field.option_id(bucket))):
            project.status_field = projects.query_status_field(self.projects_client, self.org, project.number)
        self.cache.put_project(project)
        return project
