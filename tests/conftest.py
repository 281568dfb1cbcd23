"""
Pytest configuration and fixtures.

- Integration tests: fail on any WARNING logged by the code under test
- Unit tests: warnings allowed; Linear nodes and corpora are built from fixtures
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, override

import pytest

from linear_to_github_migrator.store import StagingStore

if TYPE_CHECKING:
    from collections.abc import Callable, Generator
    from pathlib import Path

# Store warning records during test execution
_integration_test_warnings: dict[str, list[logging.LogRecord]] = {}


class IntegrationTestWarningHandler(logging.Handler):
    """Logging handler capturing warnings emitted during an integration test."""

    test_nodeid: str

    def __init__(self, test_nodeid: str) -> None:
        super().__init__()
        self.test_nodeid = test_nodeid
        self.setLevel(logging.WARNING)

    @override
    def emit(self, record: logging.LogRecord) -> None:
        _integration_test_warnings.setdefault(self.test_nodeid, []).append(record)


@pytest.fixture(autouse=True)
def fail_on_log_warnings_for_integration_tests(request: pytest.FixtureRequest) -> Generator[None]:
    """Capture logger warnings in integration tests so the report hook can fail them."""
    if request.node.get_closest_marker("integration") is None:
        yield
        return

    test_nodeid = request.node.nodeid
    _integration_test_warnings[test_nodeid] = []
    handler = IntegrationTestWarningHandler(test_nodeid)
    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    try:
        yield
    finally:
        root_logger.removeHandler(handler)


@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(item: pytest.Item, call: pytest.CallInfo[None]) -> Generator[None]:  # type: ignore[misc]
    """Mark a passed integration test as failed when the code under test logged warnings."""
    outcome = yield
    report = outcome.get_result()

    if call.when == "call" and report.outcome == "passed":
        warning_records = _integration_test_warnings.pop(item.nodeid, [])
        if warning_records:
            warning_messages = [
                f"{record.levelname}: {record.getMessage()} (in {record.name}:{record.lineno})"
                for record in warning_records
            ]
            report.outcome = "failed"
            report.longrepr = f"Integration test failed: {len(warning_records)} warning(s) detected:\n" + "\n".join(
                f"  - {msg}" for msg in warning_messages
            )


def build_issue_node(identifier: str, **overrides: Any) -> dict[str, Any]:
    """A raw Linear issue node as returned by the page query merged with its relationships."""
    number = identifier.rsplit("-", 1)[-1]
    node: dict[str, Any] = {
        "id": f"id-{identifier.lower()}",
        "url": f"https://linear.app/acme/issue/{identifier}",
        "identifier": identifier,
        "title": f"Issue {number}",
        "description": "",
        "creator": {"name": "Alice", "email": "alice@example.com"},
        "assignee": None,
        "priorityLabel": "No priority",
        "state": {"name": "Todo"},
        "project": None,
        "createdAt": "2024-01-15T10:30:45.123Z",
        "labels": {"nodes": []},
        "comments": {"nodes": []},
        "integrationResources": {"nodes": []},
        "attachments": {"nodes": []},
        "relations": {"nodes": []},
        "parent": None,
        "children": {"nodes": []},
    }
    node.update(overrides)
    return node


@pytest.fixture
def issue_node() -> Callable[..., dict[str, Any]]:
    return build_issue_node


@pytest.fixture
def store(tmp_path: Path) -> StagingStore:
    return StagingStore.open(tmp_path / "corpus")
