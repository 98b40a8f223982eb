"""Exceptions raised by the tracker core."""

from __future__ import annotations


class MindTrackError(Exception):
    """Base class for tracker failures."""


class FetchFailed(MindTrackError):
    """A read from the record store failed; nothing was cached."""

    def __init__(self, user_id: str, shape: str) -> None:
        super().__init__(f"Failed to fetch {shape} for user {user_id}")
        self.user_id = user_id
        self.shape = shape


class WriteFailed(MindTrackError):
    """A write to the record store failed; caches were left as they were."""

    def __init__(self, user_id: str, operation: str) -> None:
        super().__init__(f"Failed to {operation} for user {user_id}")
        self.user_id = user_id
        self.operation = operation


class InvalidEntry(MindTrackError, ValueError):
    """A record failed validation before reaching the store."""


class CacheMiss(MindTrackError):
    """Internal signal: key absent or expired. Never raised to callers."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key
