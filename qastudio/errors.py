"""Exceptions raised by the session and artifact layer."""

from __future__ import annotations


class StudioError(Exception):
    """Base exception for QA studio errors."""


class IndexOutOfRange(StudioError, IndexError):
    """A mutation referenced a suite or case index missing from the current plan.

    Usually means the caller held an index computed against an older plan.
    """

    def __init__(self, kind: str, index: int, size: int):
        self.kind = kind
        self.index = index
        self.size = size
        super().__init__(f"{kind} index {index} out of range (plan has {size})")


class AlreadyInFlight(StudioError):
    """A generation request was made for a suite that is already generating."""

    def __init__(self, suite_index: int):
        self.suite_index = suite_index
        super().__init__(f"Suite {suite_index} already has a generation in progress")


class GenerationParseError(StudioError):
    """The generation backend returned content that does not fit the expected shape."""

    def __init__(self, message: str, raw_response: str = ""):
        self.raw_response = raw_response
        super().__init__(message)


class StorageError(StudioError):
    """The durable write of the session collection failed."""


class AnalysisFailure(StudioError):
    """The requirements analysis step failed."""


class SessionNotFound(StudioError, KeyError):
    """No session with this id is visible to the current user."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")

    def __str__(self) -> str:
        return self.args[0]


class NoPlanError(StudioError):
    """The operation needs a generated plan and the session has none yet."""
