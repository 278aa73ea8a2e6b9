"""Data models for the thought graph: thoughts, tags and references."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from thoughtgraph.errors import InvalidIdError

# Ids share the alphabet of the [id] mention syntax so every thought can be mentioned.
ID_PATTERN = r"[A-Za-z0-9_-]+"
_THOUGHT_ID_RE = re.compile(ID_PATTERN)
_TAG_ID_RE = re.compile(r"[a-z0-9_-]+")


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_thought_id() -> str:
    """Generate a compact thought ID: t-<8 hex chars>."""
    return "t-" + uuid.uuid4().hex[:8]


def validate_thought_id(thought_id: str) -> str:
    if not isinstance(thought_id, str) or not _THOUGHT_ID_RE.fullmatch(thought_id):
        msg = f"Invalid thought ID: {thought_id!r} (use letters, digits, '-' and '_')"
        raise InvalidIdError(msg)
    return thought_id


def normalize_tag_id(tag_id: str) -> str:
    """Strip and lower-case a tag id. Raises InvalidIdError if nothing usable remains."""
    normalized = tag_id.strip().lower() if isinstance(tag_id, str) else ""
    if not _TAG_ID_RE.fullmatch(normalized):
        msg = f"Invalid tag ID: {tag_id!r} (use letters, digits, '-' and '_')"
        raise InvalidIdError(msg)
    return normalized


def _ts(value: datetime) -> str:
    return value.isoformat()


def _parse_ts(value: Any) -> datetime:
    if not isinstance(value, str):
        msg = f"timestamp must be an ISO string, got {type(value).__name__}"
        raise ValueError(msg)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        msg = f"timestamp has no timezone: {value!r}"
        raise ValueError(msg)
    return parsed


# Stored records are checked field by field; a ValueError marks the record as malformed.


def _text(d: dict[str, Any], key: str) -> str:
    value = d.get(key, "")
    if not isinstance(value, str):
        msg = f"{key} must be a string, got {type(value).__name__}"
        raise ValueError(msg)
    return value


def _optional_text(d: dict[str, Any], key: str) -> str | None:
    value = d.get(key)
    if value is not None and not isinstance(value, str):
        msg = f"{key} must be a string or null, got {type(value).__name__}"
        raise ValueError(msg)
    return value


def _stored_tag_id(value: Any) -> str:
    if not isinstance(value, str) or normalize_tag_id(value) != value:
        msg = f"stored tag ID is not normalized: {value!r}"
        raise ValueError(msg)
    return value


def _stored_tags(value: Any) -> frozenset[str]:
    if not isinstance(value, list):
        msg = f"tags must be a list, got {type(value).__name__}"
        raise ValueError(msg)
    return frozenset(_stored_tag_id(t) for t in value)


def _flag(d: dict[str, Any], key: str) -> bool:
    value = d.get(key, False)
    if not isinstance(value, bool):
        msg = f"{key} must be a boolean, got {value!r}"
        raise ValueError(msg)
    return value


@dataclass(frozen=True)
class Thought:
    """A single note. Instances are immutable; the store swaps in replacements."""

    id: str
    title: str = ""
    content: str = ""
    tags: frozenset[str] = field(default_factory=frozenset)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def label(self) -> str:
        """Title, falling back to the id for untitled thoughts."""
        return self.title or self.id

    def preview(self, width: int = 70) -> str:
        """First content line, truncated to width chars."""
        first = self.content.strip().splitlines()[0] if self.content.strip() else ""
        if width and len(first) > width:
            return first[: max(0, width - 1)] + "…"
        return first

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Thought:
        return cls(
            id=validate_thought_id(d["id"]),
            title=_text(d, "title"),
            content=_text(d, "content"),
            tags=_stored_tags(d.get("tags", [])),
            created_at=_parse_ts(d["created_at"]),
            updated_at=_parse_ts(d["updated_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "tags": sorted(self.tags),
            "created_at": _ts(self.created_at),
            "updated_at": _ts(self.updated_at),
        }


@dataclass(frozen=True)
class Tag:
    """A label that exists independently of the thoughts carrying it."""

    id: str
    description: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Tag:
        return cls(
            id=_stored_tag_id(d["id"]),
            description=_optional_text(d, "description"),
            created_at=_parse_ts(d["created_at"]),
            updated_at=_parse_ts(d["updated_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "created_at": _ts(self.created_at),
            "updated_at": _ts(self.updated_at),
        }


@dataclass(frozen=True)
class Reference:
    """A directed edge from_id -> to_id. auto=True edges come from [id] mentions."""

    from_id: str
    to_id: str
    notes: str | None = None
    auto: bool = False
    created_at: datetime = field(default_factory=utcnow)

    @property
    def key(self) -> tuple[str, str]:
        return (self.from_id, self.to_id)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Reference:
        return cls(
            from_id=validate_thought_id(d["from"]),
            to_id=validate_thought_id(d["to"]),
            notes=_optional_text(d, "notes"),
            auto=_flag(d, "auto"),
            created_at=_parse_ts(d["created_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_id,
            "to": self.to_id,
            "notes": self.notes,
            "auto": self.auto,
            "created_at": _ts(self.created_at),
        }


@dataclass(frozen=True)
class TagUsage:
    tag: Tag
    count: int
