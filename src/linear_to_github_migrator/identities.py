"""Mapping of Linear user email addresses to GitHub handles."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, override

from .exceptions import ConfigError

if TYPE_CHECKING:
    from .models import LinearUser

logger: logging.Logger = logging.getLogger(__name__)


class IdentityMap(Mapping[str, str]):
    """Read-only email -> GitHub handle table, fixed for the whole run.

    Unknown addresses map to "" so an unmapped author or assignee renders as
    an empty field instead of failing the export.
    """

    def __init__(self, entries: Mapping[str, str] | None = None) -> None:
        self._entries: dict[str, str] = {email.lower(): handle.lstrip("@") for email, handle in (entries or {}).items()}

    @classmethod
    def from_file(cls, path: Path | str | None) -> IdentityMap:
        """Load a JSON object of ``{"email": "github-handle"}`` pairs."""
        if path is None:
            return cls()
        path = Path(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            msg = f"Cannot read identity map {path}: {e}"
            raise ConfigError(msg) from e
        if not isinstance(raw, dict) or not all(isinstance(k, str) and isinstance(v, str) for k, v in raw.items()):
            msg = f"Identity map {path} must be a JSON object of email -> GitHub handle strings"
            raise ConfigError(msg)
        logger.info(f"Loaded {len(raw)} identities from {path}")
        return cls(raw)

    @override
    def __getitem__(self, email: str) -> str:
        return self._entries[email.lower()]

    @override
    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    @override
    def __len__(self) -> int:
        return len(self._entries)

    def handle_for(self, user: LinearUser | None) -> str:
        """GitHub handle of a Linear user, "" when unknown or absent."""
        if user is None or not user.email:
            return ""
        return self._entries.get(user.email.lower(), "")
