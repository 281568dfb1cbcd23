"""Build GitHub issue drafts from staged Linear issues."""

from __future__ import annotations

import datetime as dt
from typing import TYPE_CHECKING, Final

from .models import GitHubLabel, IssueDraft, ProjectRef

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .identities import IdentityMap
    from .models import LinearComment, LinearIssue, PullRequestRef

# English names regardless of the process locale (strftime's %a/%b are locale dependent)
_WEEKDAYS: Final[tuple[str, ...]] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS: Final[tuple[str, ...]] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)  # fmt: skip


def format_timestamp(timestamp: dt.datetime | None) -> str:
    """Format a timestamp in the Unix ``date`` layout, in UTC.

    Args:
        timestamp: Aware datetime; naive values are taken as UTC

    Returns:
        Formatted timestamp (e.g., "Mon Jan 15 10:30:45 UTC 2024", day padded
        with a space below 10). Empty string when no timestamp is given.
    """
    if timestamp is None:
        return ""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=dt.UTC)
    utc = timestamp.astimezone(dt.UTC)
    return (
        f"{_WEEKDAYS[utc.weekday()]} {_MONTHS[utc.month - 1]} {utc.day:>2} "
        f"{utc.hour:02}:{utc.minute:02}:{utc.second:02} UTC {utc.year}"
    )


def format_list(values: Iterable[str]) -> str:
    return " ".join(values)


def format_handle(handle: str) -> str:
    return f"@{handle}" if handle else ""


def format_pull_request(pr: PullRequestRef, *, org: str, repo: str) -> str:
    """Render a linked PR as ``#N`` in the destination repo, ``owner/repo#N`` elsewhere."""
    if pr.repo_login == org and pr.repo_name == repo:
        return f"#{pr.number}"
    return f"{pr.repo_login}/{pr.repo_name}#{pr.number}"


def build_issue_body(issue: LinearIssue, identities: IdentityMap, *, org: str, repo: str) -> str:
    """Build the GitHub issue body: a metadata table followed by the description."""
    rows = [
        ("url", issue.url),
        ("author", format_handle(identities.handle_for(issue.creator))),
        ("date", format_timestamp(issue.created_at)),
        ("state", issue.state_name),
        ("project", issue.project.name if issue.project else ""),
        ("priority", issue.priority_label),
        ("assignee", format_handle(identities.handle_for(issue.assignee))),
        ("labels", format_list(label.name for label in issue.labels)),
        ("related", format_list(issue.related_identifiers)),
        ("parent", issue.parent_identifier),
        ("children", format_list(issue.children_identifiers)),
        ("PRs", format_list(format_pull_request(pr, org=org, repo=repo) for pr in issue.pull_requests)),
        ("attachments", format_list(issue.attachment_urls)),
    ]
    body = "field | value\n| - | - |\n"
    body += "".join(f"{name} | {value}\n" for name, value in rows)
    if issue.description:
        body += "\n" + issue.description
    return body


def build_comment_body(comment: LinearComment, identities: IdentityMap) -> str:
    return (
        "field | value\n"
        "|-|-|\n"
        f"url | {comment.url}\n"
        f"author | {format_handle(identities.handle_for(comment.user))}\n"
        f"date | {format_timestamp(comment.created_at)}\n"
        "\n"
        f"{comment.body}"
    )


def build_issue_draft(issue: LinearIssue, identities: IdentityMap, *, org: str, repo: str) -> IssueDraft:
    """Transform a staged Linear issue into a GitHub issue draft.

    Linear returns comments newest first; the draft holds them oldest first so
    they are posted in their original order.

    Args:
        issue: Staged Linear issue (must not be synthetic)
        identities: Email -> GitHub handle table
        org: Destination GitHub organization, used to shorten same-repo PR links
        repo: Destination GitHub repository name

    Returns:
        IssueDraft ready for GitHubExporter.export()
    """
    return IssueDraft(
        title=f"{issue.identifier}: {issue.title}",
        body=build_issue_body(issue, identities, org=org, repo=repo),
        state=issue.state_name,
        assignee=identities.handle_for(issue.assignee),
        labels=[
            GitHubLabel(name=label.name, color=label.color.removeprefix("#"), description=label.description)
            for label in issue.labels
        ],
        comments=[build_comment_body(c, identities) for c in reversed(issue.comments)],
        project=ProjectRef(name=issue.project.name, description=issue.project.description) if issue.project else None,
    )
