"""Data models exchanged between the Linear source, the staging store and GitHub.

Linear-side models mirror the subset of Linear's GraphQL schema the migrator
requests. They are decoded from the raw node stored in the corpus, so the
corpus files keep Linear's own field names and the models stay read-only views.

GitHub-side models describe what the exporter sends (``IssueDraft``) and the
remote objects it caches between runs (``ProjectInfo``, ``StatusFieldInfo``).
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Final, Literal

StatusBucket = Literal["Todo", "In Progress", "Done"]
CloseReason = Literal["completed", "not_planned"]

# Linear workflow state name -> GitHub project status bucket. Unlisted states
# (including "Backlog") leave the item in the project's default column.
STATUS_BUCKETS: Final[dict[str, StatusBucket]] = {
    "Todo": "Todo",
    "In Progress": "In Progress",
    "In Review": "In Progress",
    "Done": "Done",
    "Canceled": "Done",
}

CLOSE_REASONS: Final[dict[str, CloseReason]] = {
    "Done": "completed",
    "Canceled": "not_planned",
}


def _nodes(obj: dict[str, Any] | None) -> list[dict[str, Any]]:
    if not obj:
        return []
    return obj.get("nodes") or []


def parse_timestamp(value: str | None) -> dt.datetime | None:
    """Parse Linear's ISO 8601 timestamps (``2024-01-15T10:30:45.123Z``)."""
    if not value:
        return None
    return dt.datetime.fromisoformat(value)


@dataclass(frozen=True)
class LinearUser:
    name: str
    email: str

    @classmethod
    def from_node(cls, node: dict[str, Any] | None) -> LinearUser | None:
        if node is None:
            return None
        return cls(name=node.get("name") or "", email=node.get("email") or "")


@dataclass(frozen=True)
class LinearLabel:
    name: str
    color: str  # Linear keeps the '#' prefix
    description: str = ""


@dataclass(frozen=True)
class LinearComment:
    url: str
    user: LinearUser | None
    created_at: dt.datetime | None
    body: str


@dataclass(frozen=True)
class PullRequestRef:
    """A GitHub pull request linked to a Linear issue through the GitHub integration."""

    number: int
    repo_login: str
    repo_name: str


@dataclass(frozen=True)
class LinearProject:
    name: str
    description: str = ""


@dataclass(frozen=True)
class LinearIssue:
    """A fully detailed Linear issue as staged in the corpus.

    Comments keep the order Linear returned them in (newest first).
    """

    id: str
    identifier: str
    url: str = ""
    title: str = ""
    description: str = ""
    creator: LinearUser | None = None
    assignee: LinearUser | None = None
    priority_label: str = ""
    state_name: str = ""
    project: LinearProject | None = None
    created_at: dt.datetime | None = None
    labels: list[LinearLabel] = field(default_factory=list)
    comments: list[LinearComment] = field(default_factory=list)
    pull_requests: list[PullRequestRef] = field(default_factory=list)
    attachment_urls: list[str] = field(default_factory=list)
    related_identifiers: list[str] = field(default_factory=list)
    parent_identifier: str = ""
    children_identifiers: list[str] = field(default_factory=list)

    @property
    def is_synthetic(self) -> bool:
        """Issues without a creator are Linear's onboarding/tutorial placeholders."""
        return self.creator is None

    @classmethod
    def from_node(cls, node: dict[str, Any]) -> LinearIssue:
        """Decode a raw Linear GraphQL issue node (as stored in the corpus)."""
        project_node = node.get("project")
        project = None
        if project_node and project_node.get("name"):
            project = LinearProject(name=project_node["name"], description=project_node.get("description") or "")

        pull_requests = [
            PullRequestRef(
                number=int(pr["number"]),
                repo_login=pr.get("repoLogin") or "",
                repo_name=pr.get("repoName") or "",
            )
            for resource in _nodes(node.get("integrationResources"))
            if (pr := resource.get("pullRequest"))
        ]

        return cls(
            id=node["id"],
            identifier=node["identifier"],
            url=node.get("url") or "",
            title=node.get("title") or "",
            description=node.get("description") or "",
            creator=LinearUser.from_node(node.get("creator")),
            assignee=LinearUser.from_node(node.get("assignee")),
            priority_label=node.get("priorityLabel") or "",
            state_name=(node.get("state") or {}).get("name") or "",
            project=project,
            created_at=parse_timestamp(node.get("createdAt")),
            labels=[
                LinearLabel(name=n["name"], color=n.get("color") or "", description=n.get("description") or "")
                for n in _nodes(node.get("labels"))
            ],
            comments=[
                LinearComment(
                    url=n.get("url") or "",
                    user=LinearUser.from_node(n.get("user")),
                    created_at=parse_timestamp(n.get("createdAt")),
                    body=n.get("body") or "",
                )
                for n in _nodes(node.get("comments"))
            ],
            pull_requests=pull_requests,
            attachment_urls=[n["url"] for n in _nodes(node.get("attachments")) if n.get("url")],
            related_identifiers=[
                n["relatedIssue"]["identifier"] for n in _nodes(node.get("relations")) if n.get("relatedIssue")
            ],
            parent_identifier=(node.get("parent") or {}).get("identifier") or "",
            children_identifiers=[n["identifier"] for n in _nodes(node.get("children"))],
        )


@dataclass
class StagedIssue:
    """One entry of the checkpoint: a discovered Linear issue and its export flag."""

    id: str
    identifier: str
    exported_to_github: bool = False


@dataclass(frozen=True)
class GitHubLabel:
    """A label to ensure on the GitHub repository."""

    name: str
    color: str  # Hex color without '#' prefix (e.g., "ff0000")
    description: str = ""


@dataclass(frozen=True)
class ProjectRef:
    """A GitHub project (v2) the issue should be attached to, resolved by name at export time."""

    name: str
    description: str = ""


@dataclass
class IssueDraft:
    """A GitHub issue ready to be created, with everything rendered as markdown."""

    title: str
    body: str
    state: str
    assignee: str = ""
    labels: list[GitHubLabel] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)  # oldest first
    project: ProjectRef | None = None

    @property
    def close_reason(self) -> CloseReason | None:
        """GitHub ``state_reason`` for terminal Linear states, None when the issue stays open."""
        return CLOSE_REASONS.get(self.state)

    @property
    def status_bucket(self) -> StatusBucket | None:
        return STATUS_BUCKETS.get(self.state)


@dataclass
class StatusFieldInfo:
    """The "Status" single-select field of a GitHub project and its three option ids."""

    id: str = ""
    todo_id: str = ""
    in_progress_id: str = ""
    done_id: str = ""

    def option_id(self, bucket: StatusBucket) -> str:
        return {"Todo": self.todo_id, "In Progress": self.in_progress_id, "Done": self.done_id}[bucket]


@dataclass
class ProjectInfo:
    """A GitHub project (v2) owned by the destination organization."""

    id: str
    number: int
    title: str
    description: str = ""
    status_field: StatusFieldInfo | None = None
