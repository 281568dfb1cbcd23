"""Paginated extraction of issues from Linear's GraphQL API."""

from __future__ import annotations

import logging
from typing import Any, Final, NamedTuple, NotRequired, TypedDict

from . import utils
from .graphql import DEFAULT_TIMEOUT_SECONDS, LINEAR_GRAPHQL_URL, GraphQLClient

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE: Final[int] = 50

# Relationship fields (relations, parent, children) are deliberately absent:
# requesting them for a whole page exceeds Linear's query complexity budget, so
# they are fetched per issue with ISSUE_RELATIONSHIPS_QUERY.
ISSUES_PAGE_QUERY: Final[str] = """
query IssuesPage($pageSize: Int!, $before: String, $number: Float) {
    issues(last: $pageSize, before: $before, filter: {number: {eq: $number}}, includeArchived: true) {
        nodes {
            id
            url
            identifier
            title
            description
            creator {
                name
                email
            }
            assignee {
                name
                email
            }
            priorityLabel
            state {
                name
            }
            project {
                name
                description
            }
            createdAt
            labels(last: 10) {
                nodes {
                    name
                    color
                    description
                }
            }
            comments(last: 10) {
                nodes {
                    url
                    user {
                        name
                        email
                    }
                    createdAt
                    body
                }
            }
            integrationResources(last: 10) {
                nodes {
                    pullRequest {
                        number
                        repoName
                        repoLogin
                    }
                }
            }
            attachments(last: 10) {
                nodes {
                    url
                }
            }
        }
    }
}
"""

ISSUE_RELATIONSHIPS_QUERY: Final[str] = """
query IssueRelationships($id: String!) {
    issue(id: $id) {
        relations(last: 10) {
            nodes {
                relatedIssue {
                    identifier
                }
            }
        }
        parent {
            identifier
        }
        children(last: 10) {
            nodes {
                identifier
            }
        }
    }
}
"""


class IssuesPageVariables(TypedDict):
    pageSize: int
    before: NotRequired[str]
    number: NotRequired[int]


class IssueRelationshipsVariables(TypedDict):
    id: str


class IssuePage(NamedTuple):
    """One page of raw Linear issue nodes, newest first."""

    nodes: list[dict[str, Any]]
    next_cursor: str
    """Id of the last node in the page, empty when the page is empty."""


class LinearSource:
    """Walks every Linear issue backwards from the newest one.

    Linear's ``pageInfo.hasPreviousPage`` is not reliable when paginating
    backwards, so exhaustion is inferred only from an empty page.
    """

    def __init__(self, client: GraphQLClient, *, issue_number: int | None = None) -> None:
        self.client: GraphQLClient = client
        self.issue_number: int | None = issue_number

    @classmethod
    def connect(
        cls,
        api_key: str | None,
        *,
        issue_number: int | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> LinearSource:
        """Create a source talking to api.linear.app.

        Linear expects personal API keys verbatim in the Authorization header.
        """
        client = GraphQLClient(LINEAR_GRAPHQL_URL, auth_header=api_key, timeout=timeout)
        return cls(client, issue_number=issue_number)

    def fetch_page(self, cursor: str, page_size: int = DEFAULT_PAGE_SIZE) -> IssuePage:
        """Fetch the page of issues preceding ``cursor`` and enrich each with its relationships.

        Args:
            cursor: Id of the most recently fetched issue, or "" to start from the newest
            page_size: Maximum number of issues in the page

        Returns:
            IssuePage with raw nodes; relationship fields are merged into each node.

        Raises:
            RemoteError: On any transport or GraphQL failure. Not retried here.
        """
        variables: IssuesPageVariables = {"pageSize": page_size}
        if cursor:
            variables["before"] = cursor
        if self.issue_number is not None:
            variables["number"] = self.issue_number

        data = self.client.execute(ISSUES_PAGE_QUERY, variables)
        nodes: list[dict[str, Any]] = (data.get("issues") or {}).get("nodes") or []
        if not nodes:
            return IssuePage(nodes=[], next_cursor="")

        for node in nodes:
            node.update(self.fetch_relationships(node["id"]))
            logger.debug(f"{node['identifier']}: fetched relationships")

        return IssuePage(nodes=nodes, next_cursor=nodes[-1]["id"])

    def fetch_relationships(self, issue_id: str) -> dict[str, Any]:
        """Fetch relations, parent and children of a single issue."""
        variables: IssueRelationshipsVariables = {"id": issue_id}
        data = self.client.execute(ISSUE_RELATIONSHIPS_QUERY, variables)
        issue = data.get("issue") or {}
        return {
            "relations": issue.get("relations") or {"nodes": []},
            "parent": issue.get("parent"),
            "children": issue.get("children") or {"nodes": []},
        }


_API_KEY_ENV_VAR: Final[str] = "LINEAR_API_KEY"
_DEFAULT_API_KEY_PASS_PATH: Final[str] = "linear/api/key"


def get_api_key(pass_path: str | None = None) -> str | None:
    """Get Linear API key from pass path, env var LINEAR_API_KEY, or default pass location."""
    return utils.get_token(
        pass_path=pass_path,
        env_var=_API_KEY_ENV_VAR,
        default_pass_path=_DEFAULT_API_KEY_PASS_PATH,
        service="Linear",
        logger=logger,
    )
