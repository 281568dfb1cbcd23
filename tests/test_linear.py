"""
Tests for the Linear source paginator.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from unittest.mock import Mock, patch

import pytest

from linear_to_github_migrator.exceptions import RemoteError
from linear_to_github_migrator.linear import (
    ISSUE_RELATIONSHIPS_QUERY,
    ISSUES_PAGE_QUERY,
    LinearSource,
    get_api_key,
)

if TYPE_CHECKING:
    from collections.abc import Callable


def _relationships(parent: str | None = None, children: list[str] | None = None) -> dict[str, Any]:
    return {
        "issue": {
            "relations": {"nodes": [{"relatedIssue": {"identifier": "ENG-9"}}]},
            "parent": {"identifier": parent} if parent else None,
            "children": {"nodes": [{"identifier": c} for c in children or []]},
        }
    }


@pytest.mark.unit
class TestFetchPage:
    def test_first_page_has_no_before_cursor(self) -> None:
        client = Mock()
        client.execute.return_value = {"issues": {"nodes": []}}

        LinearSource(client).fetch_page("", 50)

        client.execute.assert_called_once_with(ISSUES_PAGE_QUERY, {"pageSize": 50})

    def test_cursor_and_issue_number_are_passed(self) -> None:
        client = Mock()
        client.execute.return_value = {"issues": {"nodes": []}}

        LinearSource(client, issue_number=42).fetch_page("id-eng-50", 10)

        client.execute.assert_called_once_with(
            ISSUES_PAGE_QUERY, {"pageSize": 10, "before": "id-eng-50", "number": 42}
        )

    def test_empty_page_signals_exhaustion(self) -> None:
        client = Mock()
        client.execute.return_value = {"issues": {"nodes": []}}

        page = LinearSource(client).fetch_page("id-eng-1", 50)

        assert page.nodes == []
        assert page.next_cursor == ""

    def test_each_issue_is_enriched_with_relationships(self, issue_node: Callable[..., dict[str, Any]]) -> None:
        first = issue_node("ENG-3", relations=None, parent=None, children=None)
        second = issue_node("ENG-2", relations=None, parent=None, children=None)
        for node in (first, second):
            for key in ("relations", "parent", "children"):
                del node[key]

        client = Mock()
        client.execute.side_effect = [
            {"issues": {"nodes": [first, second]}},
            _relationships(parent="ENG-1", children=["ENG-4"]),
            _relationships(),
        ]

        page = LinearSource(client).fetch_page("", 50)

        assert [n["identifier"] for n in page.nodes] == ["ENG-3", "ENG-2"]
        assert page.nodes[0]["parent"] == {"identifier": "ENG-1"}
        assert page.nodes[0]["children"] == {"nodes": [{"identifier": "ENG-4"}]}
        assert page.nodes[1]["parent"] is None
        assert client.execute.call_args_list[1].args == (ISSUE_RELATIONSHIPS_QUERY, {"id": "id-eng-3"})
        assert client.execute.call_args_list[2].args == (ISSUE_RELATIONSHIPS_QUERY, {"id": "id-eng-2"})

    def test_next_cursor_is_last_node_id(self, issue_node: Callable[..., dict[str, Any]]) -> None:
        client = Mock()
        client.execute.side_effect = [
            {"issues": {"nodes": [issue_node("ENG-3"), issue_node("ENG-2")]}},
            _relationships(),
            _relationships(),
        ]

        page = LinearSource(client).fetch_page("", 50)

        assert page.next_cursor == "id-eng-2"

    def test_missing_relationship_issue_yields_empty_fields(self) -> None:
        client = Mock()
        client.execute.return_value = {"issue": None}

        assert LinearSource(client).fetch_relationships("id-1") == {
            "relations": {"nodes": []},
            "parent": None,
            "children": {"nodes": []},
        }

    def test_errors_propagate_unchanged(self) -> None:
        client = Mock()
        error = RemoteError("rate limited")
        client.execute.side_effect = error

        with pytest.raises(RemoteError) as exc_info:
            LinearSource(client).fetch_page("", 50)

        assert exc_info.value is error

    def test_connect_sends_raw_api_key(self) -> None:
        source = LinearSource.connect("lin_api_123", issue_number=7, timeout=5)

        assert source.client.session.headers["Authorization"] == "lin_api_123"
        assert source.client.timeout == 5
        assert source.issue_number == 7


@pytest.mark.unit
class TestGetApiKey:
    @patch("linear_to_github_migrator.utils.get_pass_value")
    def test_explicit_pass_path_wins(self, mock_pass: Mock, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINEAR_API_KEY", "from-env")
        mock_pass.return_value = "from-pass"

        assert get_api_key("linear/other") == "from-pass"
        mock_pass.assert_called_once_with("linear/other")

    @patch("linear_to_github_migrator.utils.get_pass_value")
    def test_environment_variable(self, mock_pass: Mock, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINEAR_API_KEY", "from-env")

        assert get_api_key() == "from-env"
        mock_pass.assert_not_called()
