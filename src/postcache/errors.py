"""Exception types raised by postcache components."""

from __future__ import annotations


class PostCacheError(Exception):
    """Base class for postcache errors."""


class InvariantViolationError(PostCacheError):
    """
    Raised when a merge would break the ordering guarantees of a window.

    This signals a programming error upstream (a page that is not sorted, or
    items that belong to a different conversation), not a recoverable
    condition. Callers should let it propagate.
    """

    def __init__(self, conversation_id: str, detail: str) -> None:
        super().__init__(f"Invariant violated for conversation {conversation_id!r}: {detail}")
        self.conversation_id = conversation_id
        self.detail = detail
