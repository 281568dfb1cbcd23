"""Local corpus of staged Linear issues and the checkpoint that tracks them.

Layout under the corpus root::

    state.json          checkpoint: staged issues in discovery order, fetch cursor, GitHub caches
    ENG-123.json        raw Linear node for issue ENG-123, written once

Every file is written to a temporary sibling, fsynced and renamed over the
target, so a crash leaves either the previous or the new version on disk.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Final

from .exceptions import StagingError
from .models import LinearIssue, ProjectInfo, StagedIssue, StatusFieldInfo

logger: logging.Logger = logging.getLogger(__name__)

CHECKPOINT_FILENAME: Final[str] = "state.json"
CHECKPOINT_SCHEMA_VERSION: Final[int] = 1


@dataclass
class Checkpoint:
    """Durable migration progress plus GitHub lookups worth keeping across runs."""

    schema_version: int = CHECKPOINT_SCHEMA_VERSION
    issues: list[StagedIssue] = field(default_factory=list)
    fetch_cursor: str = ""
    """Id of the oldest issue of the last full-mode page; the next fetch resumes before it."""
    labels: list[str] = field(default_factory=list)
    """Names of labels already ensured on the GitHub repository."""
    projects: list[ProjectInfo] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Checkpoint:
        projects: list[ProjectInfo] = []
        for p in raw.get("projects", []):
            status = p.get("status_field")
            projects.append(
                ProjectInfo(
                    id=p["id"],
                    number=p["number"],
                    title=p["title"],
                    description=p.get("description", ""),
                    status_field=StatusFieldInfo(**status) if status else None,
                )
            )
        return cls(
            schema_version=raw.get("schema_version", CHECKPOINT_SCHEMA_VERSION),
            issues=[StagedIssue(**i) for i in raw.get("issues", [])],
            fetch_cursor=raw.get("fetch_cursor", ""),
            labels=list(raw.get("labels", [])),
            projects=projects,
        )

    def has_label(self, name: str) -> bool:
        return name in self.labels

    def add_label(self, name: str) -> None:
        if name not in self.labels:
            self.labels.append(name)

    def get_project(self, title: str) -> ProjectInfo | None:
        return next((p for p in self.projects if p.title == title), None)

    def put_project(self, project: ProjectInfo) -> None:
        self.projects = [p for p in self.projects if p.title != project.title]
        self.projects.append(project)


def write_atomic(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` durably (write .tmp, fsync, rename, fsync the directory)."""
    tmp = path.with_name(path.name + ".tmp")
    try:
        with tmp.open("w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        tmp.replace(path)
        _fsync_directory(path.parent)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        msg = f"Failed to write {path}: {e}"
        raise StagingError(msg) from e


def _fsync_directory(directory: Path) -> None:
    """Persist the directory entry of a rename."""
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


class StagingStore:
    """Owns the corpus directory and the in-memory checkpoint.

    Only the migration driver mutates the store; every mutation is persisted
    before the call returns.
    """

    def __init__(self, root: Path, checkpoint: Checkpoint | None = None) -> None:
        self.root: Path = root
        self._checkpoint: Checkpoint = checkpoint or Checkpoint()
        self._staged_ids: set[str] = {i.id for i in self._checkpoint.issues}

    @classmethod
    def open(cls, root: Path | str) -> StagingStore:
        """Open (creating if needed) the corpus at ``root`` and load its checkpoint."""
        root = Path(root)
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            msg = f"Cannot create corpus directory {root}: {e}"
            raise StagingError(msg) from e
        return cls(root, load_checkpoint(root / CHECKPOINT_FILENAME))

    @property
    def checkpoint(self) -> Checkpoint:
        return self._checkpoint

    @property
    def checkpoint_path(self) -> Path:
        return self.root / CHECKPOINT_FILENAME

    @property
    def last_cursor(self) -> str:
        """Cursor to resume the full fetch from, "" before the first page."""
        return self._checkpoint.fetch_cursor

    def record_path(self, identifier: str) -> Path:
        return self.root / f"{identifier}.json"

    def append(self, node: dict[str, Any]) -> None:
        """Stage a single raw Linear issue node."""
        self.append_page([node])

    def append_page(self, nodes: Iterable[dict[str, Any]], *, cursor: str | None = None) -> None:
        """Stage a page of raw Linear issue nodes, then persist the checkpoint once.

        Args:
            nodes: Raw issue nodes, newest first
            cursor: New resume cursor; None leaves it unchanged (single-issue fetches)
        """
        for node in nodes:
            issue_id: str = node["id"]
            identifier: str = node["identifier"]
            if issue_id in self._staged_ids:
                logger.warning(f"{identifier}: already staged, skipping")
                continue
            write_atomic(self.record_path(identifier), json.dumps(node, indent=2) + "\n")
            self._checkpoint.issues.append(StagedIssue(id=issue_id, identifier=identifier))
            self._staged_ids.add(issue_id)
        if cursor is not None:
            self._checkpoint.fetch_cursor = cursor
        self.save()

    def mark_exported(self, identifier: str) -> None:
        """Flag an issue as exported to GitHub and persist the checkpoint."""
        staged = next((i for i in self._checkpoint.issues if i.identifier == identifier), None)
        if staged is None:
            msg = f"{identifier} is not staged"
            raise StagingError(msg)
        staged.exported_to_github = True
        self.save()

    def load(self, identifier: str) -> LinearIssue:
        """Read back a staged issue."""
        path = self.record_path(identifier)
        try:
            node = json.loads(path.read_text(encoding="utf-8"))
            return LinearIssue.from_node(node)
        except (OSError, ValueError, KeyError, TypeError) as e:
            msg = f"Failed to load staged issue {identifier} from {path}: {e}"
            raise StagingError(msg) from e

    def save(self) -> None:
        """Persist the whole checkpoint."""
        write_atomic(self.checkpoint_path, json.dumps(asdict(self._checkpoint), indent=2) + "\n")


def load_checkpoint(path: Path) -> Checkpoint:
    """Load a checkpoint from disk; a missing file yields an empty checkpoint.

    A corrupt checkpoint is fatal: silently starting over would re-create
    every issue on GitHub.
    """
    if not path.exists():
        return Checkpoint()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        msg = f"Failed to read checkpoint {path}: {e}"
        raise StagingError(msg) from e
    if not isinstance(raw, dict):
        msg = f"Checkpoint file {path} has invalid format"
        raise StagingError(msg)
    version = raw.get("schema_version", CHECKPOINT_SCHEMA_VERSION)
    if version != CHECKPOINT_SCHEMA_VERSION:
        msg = f"Checkpoint schema version {version} != {CHECKPOINT_SCHEMA_VERSION}"
        raise StagingError(msg)
    try:
        return Checkpoint.from_dict(raw)
    except (KeyError, TypeError) as e:
        msg = f"Checkpoint file {path} is malformed: {e}"
        raise StagingError(msg) from e
