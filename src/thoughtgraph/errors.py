"""Typed errors raised by the thought graph engine.

Every failed operation raises one of these and leaves the store unchanged.
I/O failures are not wrapped: OSError from the filesystem propagates as-is.
"""

from __future__ import annotations


class ThoughtGraphError(Exception):
    """Base class for all engine errors."""


class NotFoundError(ThoughtGraphError, KeyError):
    """An addressed thought, tag or reference does not exist."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class ThoughtNotFoundError(NotFoundError):
    def __init__(self, thought_id: str) -> None:
        super().__init__(f"Thought not found: {thought_id}")
        self.thought_id = thought_id


class TagNotFoundError(NotFoundError):
    def __init__(self, tag_id: str, thought_id: str | None = None) -> None:
        if thought_id is None:
            msg = f"Tag not found: {tag_id}"
        else:
            msg = f"Thought {thought_id} does not have tag: {tag_id}"
        super().__init__(msg)
        self.tag_id = tag_id
        self.thought_id = thought_id


class ReferenceNotFoundError(NotFoundError):
    def __init__(self, from_id: str, to_id: str) -> None:
        super().__init__(f"Reference not found: {from_id} -> {to_id}")
        self.from_id = from_id
        self.to_id = to_id


class DuplicateIdError(ThoughtGraphError):
    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind} already exists: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class InvalidIdError(ThoughtGraphError, ValueError):
    """An id contains characters outside the mention alphabet."""


class SelfReferenceError(ThoughtGraphError):
    def __init__(self, thought_id: str) -> None:
        super().__init__(f"Thought cannot reference itself: {thought_id}")
        self.thought_id = thought_id


class PersistenceError(ThoughtGraphError):
    """Base class for load failures of a persisted store."""


class CorruptDataError(PersistenceError):
    """The blob is truncated, fails its checksum or holds malformed records."""


class VersionMismatchError(PersistenceError):
    def __init__(self, found: int, expected: int) -> None:
        super().__init__(f"Unsupported store format version {found} (expected {expected})")
        self.found = found
        self.expected = expected
