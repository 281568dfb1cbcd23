"""Minimal GraphQL transport shared by the Linear and GitHub clients."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Final

import requests

from .exceptions import GraphQLError, RemoteError

logger: logging.Logger = logging.getLogger(__name__)

LINEAR_GRAPHQL_URL: Final[str] = "https://api.linear.app/graphql"
GITHUB_GRAPHQL_URL: Final[str] = "https://api.github.com/graphql"

DEFAULT_TIMEOUT_SECONDS: Final[float] = 120.0

# Response bodies are truncated to this length in error messages
_BODY_EXCERPT_LENGTH: Final[int] = 300


class GraphQLClient:
    """Posts ``{query, variables}`` envelopes to a single GraphQL endpoint.

    The client is stateless apart from its HTTP session. Every failure mode is
    reported as a ``RemoteError`` so callers can treat them uniformly:

    - network errors and timeouts
    - non-200 responses
    - bodies that are not JSON
    - HTTP 200 responses carrying an ``errors`` list (GitHub reports many
      validation failures this way)
    """

    def __init__(
        self,
        url: str,
        *,
        auth_header: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.url: str = url
        self.timeout: float = timeout
        self.session: requests.Session = session or requests.Session()
        self.session.headers["Content-Type"] = "application/json"
        if auth_header:
            self.session.headers["Authorization"] = auth_header

    def execute(self, query: str, variables: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Run a query or mutation and return its ``data`` object."""
        payload = {"query": query, "variables": dict(variables or {})}
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            msg = f"Request to {self.url} failed: {e}"
            raise RemoteError(msg) from e

        complexity = response.headers.get("X-Complexity")
        if complexity:
            logger.debug(f"GraphQL query against {self.url} with {complexity} complexity")

        if response.status_code != 200:
            msg = f"{response.status_code} {response.reason}: got body {response.text[:_BODY_EXCERPT_LENGTH]!r}"
            raise RemoteError(msg)

        try:
            body = response.json()
        except ValueError as e:
            msg = f"Invalid JSON from {self.url}: {response.text[:_BODY_EXCERPT_LENGTH]!r}"
            raise RemoteError(msg) from e

        if not isinstance(body, dict):
            msg = f"Unexpected GraphQL response from {self.url}: {body!r}"
            raise RemoteError(msg)

        errors = body.get("errors")
        if errors:
            messages = [e.get("message", str(e)) if isinstance(e, dict) else str(e) for e in errors]
            raise GraphQLError(messages)

        return body.get("data") or {}
