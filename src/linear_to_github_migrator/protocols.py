"""Protocols defining the contracts between the migration driver and its collaborators.

The migration is split into two phases that only meet at the staging store:

1. Fetch: an IssueSource is paged backwards from the newest issue and every
   page is staged locally.
2. Export: every staged issue is transformed into a draft and handed to an
   IssueExporter, which performs the remote side effects.

This separation allows:
- Testing the driver's resume and retry behaviour with in-memory fakes
- Keeping Linear- and GitHub-specific API quirks out of the driver
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .linear import IssuePage
    from .models import IssueDraft


class IssueSource(Protocol):
    """Protocol for paging through issues of the source tracker.

    Implementations return raw issue nodes (dicts with at least ``id`` and
    ``identifier``) newest first. The node is what gets stored in the corpus.

    Example implementations:
        - LinearSource: Linear GraphQL ``issues(last:, before:)`` plus one
          relationships query per issue
    """

    def fetch_page(self, cursor: str, page_size: int) -> IssuePage:
        """Return the page preceding ``cursor`` ("" for the newest page).

        An empty page means every issue has been fetched. Errors are raised
        unchanged; the driver decides whether to retry.
        """
        ...


class IssueExporter(Protocol):
    """Protocol for creating a transformed issue in the destination tracker.

    The export is not transactional: a failure after the issue was created
    leaves it in place, and a retry creates it again.

    Example implementations:
        - GitHubExporter: PyGithub for issues, labels and comments, GraphQL for
          Projects v2
    """

    def export(self, identifier: str, draft: IssueDraft) -> str:
        """Create the issue and all its side effects; return the issue URL.

        Raises:
            RemoteError: If any remote step fails
        """
        ...
