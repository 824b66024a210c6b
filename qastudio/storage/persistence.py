"""Durable storage for the session collection and the recent-URL history."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, Protocol

from pydantic import ValidationError

from qastudio.errors import StorageError
from qastudio.models.session import Session
from qastudio.url_utils import normalize_url

logger = logging.getLogger(__name__)


class SessionRepository(Protocol):
    """Whole-collection storage. There is no per-session write path."""

    def load_all(self) -> list[Session]:
        ...

    def save_all(self, sessions: Iterable[Session]) -> None:
        ...


def _dump_sessions(sessions: Iterable[Session]) -> str:
    return json.dumps([s.model_dump(mode="json") for s in sessions], indent=2)


def _parse_sessions(text: str) -> list[Session]:
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError(f"expected a list of sessions, got {type(data).__name__}")
    return [Session.model_validate(item) for item in data]


def _atomic_write(path: Path, text: str) -> None:
    """Write text to path so readers see either the old or the new file, never a mix."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


class JsonFileRepository:
    """Stores the session collection as a single JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load_all(self) -> list[Session]:
        """Load all sessions. Unreadable or invalid data yields an empty list."""
        if not self.path.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                sessions = _parse_sessions(f.read())
        except (OSError, ValueError, ValidationError) as e:
            logger.error("Failed to load sessions from %s: %s", self.path, e)
            return []
        logger.debug("Loaded %d sessions from %s", len(sessions), self.path)
        return sessions

    def save_all(self, sessions: Iterable[Session]) -> None:
        """Persist the whole collection, replacing the previous file atomically."""
        sessions = list(sessions)
        try:
            _atomic_write(self.path, _dump_sessions(sessions))
        except OSError as e:
            logger.error("Failed to save sessions to %s: %s", self.path, e)
            raise StorageError(f"Could not save sessions to {self.path}: {e}") from e
        logger.debug("Saved %d sessions to %s", len(sessions), self.path)


class InMemoryRepository:
    """Repository double that keeps the serialized collection in memory.

    Goes through the same JSON codec as the file repository so round trips
    behave identically.
    """

    def __init__(self, initial: Iterable[Session] = ()):
        self._payload: str | None = _dump_sessions(initial) if initial else None
        self.save_count = 0
        self.fail_next_save = False

    def load_all(self) -> list[Session]:
        if self._payload is None:
            return []
        try:
            return _parse_sessions(self._payload)
        except (ValueError, ValidationError) as e:
            logger.error("Failed to decode in-memory sessions: %s", e)
            return []

    def save_all(self, sessions: Iterable[Session]) -> None:
        if self.fail_next_save:
            self.fail_next_save = False
            raise StorageError("Simulated storage failure")
        self._payload = _dump_sessions(sessions)
        self.save_count += 1

    def corrupt(self, payload: str) -> None:
        """Replace the stored payload with arbitrary text."""
        self._payload = payload


class RecentUrls:
    """Most-recently analyzed target URLs, newest first."""

    def __init__(self, path: Path, limit: int = 5):
        self.path = Path(path)
        self.limit = limit

    def load(self) -> list[str]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Failed to load URL history: %s", e)
            return []
        return [u for u in data if isinstance(u, str)][: self.limit]

    def record(self, url: str) -> list[str]:
        """Move url to the front of the history and persist it."""
        key = normalize_url(url)
        urls = [url] + [u for u in self.load() if normalize_url(u) != key]
        urls = urls[: self.limit]
        try:
            _atomic_write(self.path, json.dumps(urls, indent=2))
        except OSError as e:
            # History is a convenience; losing it must not fail the analysis
            logger.warning("Failed to update URL history: %s", e)
        return urls
