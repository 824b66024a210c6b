"""In-memory authoritative session collection, synchronized to storage on every write."""

from __future__ import annotations

import logging

from qastudio.errors import StorageError
from qastudio.models.session import Session
from qastudio.storage.persistence import SessionRepository

logger = logging.getLogger(__name__)


class SessionStore:
    """Holds every session for this workspace and persists the full list on each write.

    Writes apply to memory first. When persistence fails the in-memory change
    is kept and StorageError is raised so the caller can tell the user the
    durable copy is behind. Other processes may write the same repository,
    so callers refresh before a read-modify-write.
    """

    def __init__(self, repository: SessionRepository):
        self.repository = repository
        self._sessions: list[Session] = repository.load_all()
        self._unsaved = False
        logger.debug("Session store initialized with %d sessions", len(self._sessions))

    def __len__(self) -> int:
        return len(self._sessions)

    def snapshot(self) -> list[Session]:
        return list(self._sessions)

    def get(self, session_id: str) -> Session | None:
        for session in self._sessions:
            if session.id == session_id:
                return session
        return None

    def list_for(self, user_id: str | None) -> list[Session]:
        """Sessions owned by user_id plus sessions that have no owner, in stored order."""
        return [s for s in self._sessions if s.is_visible_to(user_id)]

    def upsert(self, session: Session) -> None:
        """Replace the session with the same id in place, or prepend a new one."""
        for i, existing in enumerate(self._sessions):
            if existing.id == session.id:
                self._sessions[i] = session
                logger.debug("Updated session %s", session.id)
                break
        else:
            self._sessions.insert(0, session)
            logger.debug("Added session %s", session.id)
        self._persist()

    def delete(self, session_id: str) -> None:
        before = len(self._sessions)
        self._sessions = [s for s in self._sessions if s.id != session_id]
        if len(self._sessions) == before:
            logger.debug("Delete of unknown session %s ignored", session_id)
        else:
            logger.info("Deleted session %s", session_id)
        self._persist()

    def rename(self, session_id: str, new_name: str) -> None:
        """Change the display name. Metadata only, so the timestamp is left alone."""
        session = self.get(session_id)
        if session is None:
            logger.debug("Rename of unknown session %s ignored", session_id)
            return
        self.upsert(session.model_copy(update={"name": new_name}))

    def refresh(self) -> None:
        """Reload the collection from the repository.

        Skipped while the last write failed, so the unsaved change is retried
        by the next write instead of being dropped.
        """
        if self._unsaved:
            logger.debug("Session store has unsaved changes, not reloading")
            return
        self._sessions = self.repository.load_all()

    def _persist(self) -> None:
        try:
            self.repository.save_all(self._sessions)
        except StorageError:
            self._unsaved = True
            raise
        self._unsaved = False
