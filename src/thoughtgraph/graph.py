"""ThoughtGraph: the in-memory owner of thoughts, tags and references.

Forward and reverse reference maps are private and only ever touched by
_link() / _unlink(), so they cannot drift apart:

    _outgoing[from_id][to_id] -> Reference
    _incoming[to_id]          -> {from_id, ...}

Every public mutation validates all of its preconditions first and only then
mutates; a call that raises leaves the graph exactly as it was.

    graph = ThoughtGraph()
    graph.create_thought("a", content="hello")
    graph.create_thought("b", content="see [a]")   # auto reference b -> a
    graph.add_reference("a", "b", notes="reply")
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from thoughtgraph.autoref import AutoRefPlan, plan_auto_references
from thoughtgraph.errors import (
    DuplicateIdError,
    ReferenceNotFoundError,
    SelfReferenceError,
    TagNotFoundError,
    ThoughtNotFoundError,
)
from thoughtgraph.models import (
    Reference,
    Tag,
    Thought,
    new_thought_id,
    normalize_tag_id,
    utcnow,
    validate_thought_id,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

logger = logging.getLogger("thoughtgraph.graph")


class ThoughtGraph:
    """A graph of thoughts linked by references and grouped by tags.

    auto_create_tags controls what happens when a thought is given a tag that
    does not exist yet: True creates it on the spot, False raises
    TagNotFoundError. The policy applies to create_thought, update_thought
    and attach_tag alike.
    """

    def __init__(self, *, auto_create_tags: bool = True) -> None:
        self.auto_create_tags = auto_create_tags
        self._thoughts: dict[str, Thought] = {}
        self._tags: dict[str, Tag] = {}
        self._outgoing: dict[str, dict[str, Reference]] = {}
        self._incoming: dict[str, set[str]] = {}

    def __repr__(self) -> str:
        return (
            f"ThoughtGraph(thoughts={len(self._thoughts)}, tags={len(self._tags)}, "
            f"references={sum(len(v) for v in self._outgoing.values())})"
        )

    def __len__(self) -> int:
        return len(self._thoughts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ThoughtGraph):
            return NotImplemented
        return (
            self._thoughts == other._thoughts
            and self._tags == other._tags
            and self._outgoing == other._outgoing
            and self._incoming == other._incoming
        )

    __hash__ = None  # type: ignore[assignment]

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def has_thought(self, thought_id: str) -> bool:
        return thought_id in self._thoughts

    def has_tag(self, tag_id: str) -> bool:
        return tag_id in self._tags

    def get_thought(self, thought_id: str) -> Thought:
        try:
            return self._thoughts[thought_id]
        except KeyError:
            raise ThoughtNotFoundError(thought_id) from None

    def get_tag(self, tag_id: str) -> Tag:
        normalized = normalize_tag_id(tag_id)
        try:
            return self._tags[normalized]
        except KeyError:
            raise TagNotFoundError(normalized) from None

    def thoughts(self) -> list[Thought]:
        """All thoughts, ordered by id."""
        return [self._thoughts[k] for k in sorted(self._thoughts)]

    def tags(self) -> list[Tag]:
        """All tags, ordered by id."""
        return [self._tags[k] for k in sorted(self._tags)]

    def references(self) -> list[Reference]:
        """All references, ordered by (from_id, to_id)."""
        return [
            self._outgoing[src][dst]
            for src in sorted(self._outgoing)
            for dst in sorted(self._outgoing[src])
        ]

    def reference(self, from_id: str, to_id: str) -> Reference | None:
        return self._outgoing.get(from_id, {}).get(to_id)

    def outgoing_of(self, thought_id: str) -> list[Reference]:
        """Edges leaving thought_id, ordered by target. Empty for unknown ids."""
        out = self._outgoing.get(thought_id, {})
        return [out[k] for k in sorted(out)]

    def incoming_of(self, thought_id: str) -> list[Reference]:
        """Edges arriving at thought_id, ordered by source. Empty for unknown ids."""
        return [
            self._outgoing[src][thought_id]
            for src in sorted(self._incoming.get(thought_id, ()))
        ]

    def tag_usage(self, tag_id: str) -> list[str]:
        """Ids of the thoughts carrying tag_id, ordered by id."""
        return sorted(t.id for t in self._thoughts.values() if tag_id in t.tags)

    # ------------------------------------------------------------------
    # Write: thoughts
    # ------------------------------------------------------------------

    def create_thought(
        self,
        thought_id: str | None = None,
        title: str = "",
        content: str = "",
        tags: Iterable[str] = (),
    ) -> Thought:
        """Add a new thought and derive auto references from its content.

        thought_id=None generates a fresh t-<hex> id.
        """
        if thought_id is None:
            thought_id = new_thought_id()
            while thought_id in self._thoughts:
                thought_id = new_thought_id()
        else:
            validate_thought_id(thought_id)
            if thought_id in self._thoughts:
                raise DuplicateIdError("Thought", thought_id)
        tag_ids, missing = self._resolve_tags(tags)
        plan = plan_auto_references(self, thought_id, content)

        now = utcnow()
        self._create_missing_tags(missing, now)
        thought = Thought(
            id=thought_id,
            title=title,
            content=content,
            tags=tag_ids,
            created_at=now,
            updated_at=now,
        )
        self._thoughts[thought_id] = thought
        self._apply_plan(thought_id, plan, now)
        logger.debug("thought created: %s (+%d auto refs)", thought_id, len(plan.to_add))
        return thought

    def update_thought(
        self,
        thought_id: str,
        *,
        title: str | None = None,
        content: str | None = None,
        tags: Iterable[str] | None = None,
    ) -> Thought:
        """Change title, content and/or the whole tag set. None leaves a field as is.

        Passing content (even unchanged) re-syncs auto references against the
        current graph; updated_at only advances when a field really changes.
        """
        old = self.get_thought(thought_id)
        changes: dict[str, object] = {}
        if title is not None and title != old.title:
            changes["title"] = title
        plan = AutoRefPlan(frozenset(), frozenset())
        if content is not None:
            plan = plan_auto_references(self, thought_id, content)
            if content != old.content:
                changes["content"] = content
        missing: set[str] = set()
        if tags is not None:
            tag_ids, missing = self._resolve_tags(tags)
            if tag_ids != old.tags:
                changes["tags"] = tag_ids

        now = utcnow()
        self._create_missing_tags(missing, now)
        self._apply_plan(thought_id, plan, now)
        if not changes:
            return old
        thought = replace(old, **changes, updated_at=now)  # type: ignore[arg-type]
        self._thoughts[thought_id] = thought
        logger.debug(
            "thought updated: %s fields=%s auto(+%d/-%d)",
            thought_id, sorted(changes), len(plan.to_add), len(plan.to_remove),
        )
        return thought

    def delete_thought(self, thought_id: str) -> None:
        """Remove a thought and every reference that starts or ends at it."""
        self.get_thought(thought_id)
        for ref in self.outgoing_of(thought_id):
            self._unlink(ref.from_id, ref.to_id)
        for ref in self.incoming_of(thought_id):
            self._unlink(ref.from_id, ref.to_id)
        del self._thoughts[thought_id]
        logger.debug("thought deleted: %s", thought_id)

    # ------------------------------------------------------------------
    # Write: tags
    # ------------------------------------------------------------------

    def add_tag(self, tag_id: str, description: str | None = None) -> Tag:
        normalized = normalize_tag_id(tag_id)
        if normalized in self._tags:
            raise DuplicateIdError("Tag", normalized)
        now = utcnow()
        tag = Tag(id=normalized, description=description, created_at=now, updated_at=now)
        self._tags[normalized] = tag
        logger.debug("tag created: %s", normalized)
        return tag

    def describe_tag(self, tag_id: str, description: str | None) -> Tag:
        old = self.get_tag(tag_id)
        tag = replace(old, description=description, updated_at=utcnow())
        self._tags[tag.id] = tag
        return tag

    def delete_tag(self, tag_id: str) -> None:
        """Remove a tag and strip it from every thought that carried it."""
        tag = self.get_tag(tag_id)
        now = utcnow()
        for holder in self.tag_usage(tag.id):
            old = self._thoughts[holder]
            self._thoughts[holder] = replace(old, tags=old.tags - {tag.id}, updated_at=now)
        del self._tags[tag.id]
        logger.debug("tag deleted: %s", tag.id)

    def attach_tag(self, thought_id: str, tag_id: str, description: str | None = None) -> Thought:
        """Tag a thought. description is only used if the tag gets created here."""
        old = self.get_thought(thought_id)
        normalized = normalize_tag_id(tag_id)
        _, missing = self._resolve_tags([normalized])

        now = utcnow()
        self._create_missing_tags(missing, now, description=description)
        if normalized in old.tags:
            return old
        thought = replace(old, tags=old.tags | {normalized}, updated_at=now)
        self._thoughts[thought_id] = thought
        return thought

    def detach_tag(self, thought_id: str, tag_id: str) -> Thought:
        old = self.get_thought(thought_id)
        normalized = normalize_tag_id(tag_id)
        if normalized not in self._tags:
            raise TagNotFoundError(normalized)
        if normalized not in old.tags:
            raise TagNotFoundError(normalized, thought_id)
        thought = replace(old, tags=old.tags - {normalized}, updated_at=utcnow())
        self._thoughts[thought_id] = thought
        return thought

    # ------------------------------------------------------------------
    # Write: references
    # ------------------------------------------------------------------

    def add_reference(self, from_id: str, to_id: str, notes: str | None = None) -> Reference:
        """Link from_id -> to_id as an explicit reference.

        An existing edge on the same pair is reused: notes are replaced when
        given and the edge becomes explicit (auto=False).
        """
        self.get_thought(from_id)
        self.get_thought(to_id)
        if from_id == to_id:
            raise SelfReferenceError(from_id)

        existing = self.reference(from_id, to_id)
        if existing is None:
            ref = Reference(from_id=from_id, to_id=to_id, notes=notes, auto=False)
        else:
            ref = replace(
                existing,
                notes=notes if notes is not None else existing.notes,
                auto=False,
            )
        self._link(ref)
        logger.debug("reference added: %s -> %s", from_id, to_id)
        return ref

    def remove_reference(self, from_id: str, to_id: str) -> None:
        if self.reference(from_id, to_id) is None:
            raise ReferenceNotFoundError(from_id, to_id)
        self._unlink(from_id, to_id)
        logger.debug("reference removed: %s -> %s", from_id, to_id)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshot(self) -> ThoughtGraph:
        """Independent copy of the graph. Entities are immutable, so only containers are copied."""
        clone = ThoughtGraph(auto_create_tags=self.auto_create_tags)
        clone._thoughts = dict(self._thoughts)
        clone._tags = dict(self._tags)
        clone._outgoing = {k: dict(v) for k, v in self._outgoing.items()}
        clone._incoming = {k: set(v) for k, v in self._incoming.items()}
        return clone

    def restore(self, snapshot: ThoughtGraph) -> None:
        """Reset this graph to the state captured by snapshot()."""
        copy = snapshot.snapshot()
        self._thoughts = copy._thoughts
        self._tags = copy._tags
        self._outgoing = copy._outgoing
        self._incoming = copy._incoming

    @classmethod
    def from_entities(
        cls,
        thoughts: Iterable[Thought],
        tags: Iterable[Tag],
        references: Iterable[Reference],
        *,
        auto_create_tags: bool = True,
    ) -> ThoughtGraph:
        """Assemble a graph from stored entities, rebuilding the reverse index.

        Raises ValueError on duplicates or on tags / references that point at
        entities missing from the input.
        """
        graph = cls(auto_create_tags=auto_create_tags)
        for tag in tags:
            if tag.id in graph._tags:
                msg = f"duplicate tag: {tag.id}"
                raise ValueError(msg)
            graph._tags[tag.id] = tag
        for thought in thoughts:
            if thought.id in graph._thoughts:
                msg = f"duplicate thought: {thought.id}"
                raise ValueError(msg)
            unknown = thought.tags.difference(graph._tags)
            if unknown:
                msg = f"thought {thought.id} carries unknown tags: {sorted(unknown)}"
                raise ValueError(msg)
            graph._thoughts[thought.id] = thought
        for ref in references:
            if ref.from_id not in graph._thoughts or ref.to_id not in graph._thoughts:
                msg = f"dangling reference: {ref.from_id} -> {ref.to_id}"
                raise ValueError(msg)
            if ref.from_id == ref.to_id:
                msg = f"self reference: {ref.from_id}"
                raise ValueError(msg)
            if graph.reference(ref.from_id, ref.to_id) is not None:
                msg = f"duplicate reference: {ref.from_id} -> {ref.to_id}"
                raise ValueError(msg)
            graph._link(ref)
        return graph

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _resolve_tags(self, tags: Iterable[str]) -> tuple[frozenset[str], set[str]]:
        """Normalize tag ids; return (all ids, ids not yet in the store).

        Raises TagNotFoundError for unknown ids when auto_create_tags is off.
        """
        tag_ids = frozenset(normalize_tag_id(t) for t in tags)
        missing = {t for t in tag_ids if t not in self._tags}
        if missing and not self.auto_create_tags:
            raise TagNotFoundError(sorted(missing)[0])
        return tag_ids, missing

    def _create_missing_tags(
        self, missing: set[str], now: datetime, description: str | None = None
    ) -> None:
        for tag_id in sorted(missing):
            self._tags[tag_id] = Tag(
                id=tag_id, description=description, created_at=now, updated_at=now
            )
            logger.debug("tag created implicitly: %s", tag_id)

    def _apply_plan(self, thought_id: str, plan: AutoRefPlan, now: datetime) -> None:
        for target in sorted(plan.to_remove):
            self._unlink(thought_id, target)
        for target in sorted(plan.to_add):
            self._link(Reference(from_id=thought_id, to_id=target, auto=True, created_at=now))

    def _link(self, ref: Reference) -> None:
        self._outgoing.setdefault(ref.from_id, {})[ref.to_id] = ref
        self._incoming.setdefault(ref.to_id, set()).add(ref.from_id)

    def _unlink(self, from_id: str, to_id: str) -> None:
        out = self._outgoing[from_id]
        del out[to_id]
        if not out:
            del self._outgoing[from_id]
        backrefs = self._incoming[to_id]
        backrefs.discard(from_id)
        # Clean up empty entries so equality after round-trip holds
        if not backrefs:
            del self._incoming[to_id]
