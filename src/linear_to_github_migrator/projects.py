"""GitHub Projects (v2) operations.

Projects v2 are only reachable through GitHub's GraphQL API, which PyGithub
does not wrap, so these helpers go through ``GraphQLClient`` with the same
token used for the REST calls.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final, NamedTuple, TypedDict

from .exceptions import RemoteError
from .graphql import DEFAULT_TIMEOUT_SECONDS, GITHUB_GRAPHQL_URL, GraphQLClient
from .models import ProjectInfo, StatusFieldInfo

if TYPE_CHECKING:
    from .models import StatusBucket

logger: logging.Logger = logging.getLogger(__name__)

STATUS_FIELD_NAME: Final[str] = "Status"

ORGANIZATION_PROJECTS_QUERY: Final[str] = """
query OrganizationProjects($login: String!) {
    organization(login: $login) {
        id
        projectsV2(first: 50) {
            nodes {
                id
                title
                shortDescription
                number
            }
        }
    }
}
"""

CREATE_PROJECT_MUTATION: Final[str] = """
mutation CreateProject($title: String!, $owner: ID!) {
    createProjectV2(input: {title: $title, ownerId: $owner}) {
        projectV2 {
            id
            number
        }
    }
}
"""

UPDATE_PROJECT_MUTATION: Final[str] = """
mutation UpdateProject($projectId: ID!, $shortDescription: String) {
    updateProjectV2(input: {projectId: $projectId, shortDescription: $shortDescription}) {
        clientMutationId
    }
}
"""

STATUS_FIELD_QUERY: Final[str] = """
query StatusField($login: String!, $projectNumber: Int!, $fieldName: String!) {
    organization(login: $login) {
        projectV2(number: $projectNumber) {
            field(name: $fieldName) {
                ... on ProjectV2SingleSelectField {
                    id
                    options {
                        id
                        name
                    }
                }
            }
        }
    }
}
"""

ADD_ITEM_MUTATION: Final[str] = """
mutation AddProjectItem($projectId: ID!, $contentId: ID!) {
    addProjectV2ItemById(input: {projectId: $projectId, contentId: $contentId}) {
        item {
            id
        }
    }
}
"""

SET_STATUS_MUTATION: Final[str] = """
mutation SetItemStatus($projectId: ID!, $itemId: ID!, $fieldId: ID!, $optionId: String) {
    updateProjectV2ItemFieldValue(
        input: {projectId: $projectId, itemId: $itemId, fieldId: $fieldId, value: {singleSelectOptionId: $optionId}}
    ) {
        clientMutationId
    }
}
"""


class OrganizationProjectsVariables(TypedDict):
    login: str


class CreateProjectVariables(TypedDict):
    title: str
    owner: str


class UpdateProjectVariables(TypedDict):
    projectId: str
    shortDescription: str


class StatusFieldVariables(TypedDict):
    login: str
    projectNumber: int
    fieldName: str


class AddProjectItemVariables(TypedDict):
    projectId: str
    contentId: str


class SetItemStatusVariables(TypedDict):
    projectId: str
    itemId: str
    fieldId: str
    optionId: str


class Organization(NamedTuple):
    id: str
    projects: list[ProjectInfo]


def get_client(token: str | None, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> GraphQLClient:
    """Get a GraphQL client for api.github.com using the token."""
    return GraphQLClient(GITHUB_GRAPHQL_URL, auth_header=f"Bearer {token}" if token else None, timeout=timeout)


def query_organization(client: GraphQLClient, org: str) -> Organization:
    """Fetch the organization node id and its projects."""
    variables: OrganizationProjectsVariables = {"login": org}
    data = client.execute(ORGANIZATION_PROJECTS_QUERY, variables)
    organization = data.get("organization")
    if not organization:
        msg = f"GitHub organization {org} not found"
        raise RemoteError(msg)
    projects = [
        ProjectInfo(
            id=node["id"],
            number=node["number"],
            title=node["title"],
            description=node.get("shortDescription") or "",
        )
        for node in (organization.get("projectsV2") or {}).get("nodes") or []
    ]
    return Organization(id=organization["id"], projects=projects)


def create_project(client: GraphQLClient, owner_id: str, title: str) -> ProjectInfo:
    variables: CreateProjectVariables = {"title": title, "owner": owner_id}
    data = client.execute(CREATE_PROJECT_MUTATION, variables)
    project = data["createProjectV2"]["projectV2"]
    logger.info(f"Created project: {title} (#{project['number']})")
    return ProjectInfo(id=project["id"], number=project["number"], title=title)


def update_project_description(client: GraphQLClient, project_id: str, description: str) -> None:
    variables: UpdateProjectVariables = {"projectId": project_id, "shortDescription": description}
    client.execute(UPDATE_PROJECT_MUTATION, variables)


def ensure_project(client: GraphQLClient, org: str, title: str, description: str) -> ProjectInfo:
    """Find the organization project named ``title`` or create it, then reconcile its description."""
    organization = query_organization(client, org)
    project = next((p for p in organization.projects if p.title == title), None)
    if project is None:
        project = create_project(client, organization.id, title)
    elif project.description == description:
        return project

    update_project_description(client, project.id, description)
    project.description = description
    return project


def query_status_field(client: GraphQLClient, org: str, project_number: int) -> StatusFieldInfo:
    """Resolve the project's Status field and the ids of its Todo / In Progress / Done options."""
    variables: StatusFieldVariables = {"login": org, "projectNumber": project_number, "fieldName": STATUS_FIELD_NAME}
    data = client.execute(STATUS_FIELD_QUERY, variables)
    status_field = ((data.get("organization") or {}).get("projectV2") or {}).get("field") or {}

    info = StatusFieldInfo(id=status_field.get("id") or "")
    for option in status_field.get("options") or []:
        match option.get("name"):
            case "Todo":
                info.todo_id = option["id"]
            case "In Progress":
                info.in_progress_id = option["id"]
            case "Done":
                info.done_id = option["id"]
            case _:
                pass
    return info


def add_issue_to_project(client: GraphQLClient, project_id: str, content_id: str) -> str:
    """Add an issue (by node id) to a project and return the project item id."""
    variables: AddProjectItemVariables = {"projectId": project_id, "contentId": content_id}
    data = client.execute(ADD_ITEM_MUTATION, variables)
    return data["addProjectV2ItemById"]["item"]["id"]


def set_project_issue_status(
    client: GraphQLClient,
    project_id: str,
    item_id: str,
    status_field: StatusFieldInfo,
    bucket: StatusBucket | None,
) -> bool:
    """Move a project item into a status bucket.

    Returns:
        False without calling the API when ``bucket`` is None (the item stays
        in the project's default column), True otherwise.
    """
    if bucket is None:
        return False
    option_id = status_field.option_id(bucket)
    if not status_field.id or not option_id:
        msg = f"Project status field has no '{bucket}' option"
        raise RemoteError(msg)
    variables: SetItemStatusVariables = {
        "projectId": project_id,
        "itemId": item_id,
        "fieldId": status_field.id,
        "optionId": option_id,
    }
    client.execute(SET_STATUS_MUTATION, variables)
    return True
