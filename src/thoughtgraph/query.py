"""Read-only queries over a ThoughtGraph.

QueryEngine never mutates the graph it wraps. Results are deterministic:
listings are ordered by id, search results by score then id.

Search score (all terms must match, case-insensitive substring):
    sum over terms of  title_weight * hits_in_title + hits_in_content

Boolean expressions (evaluate()):
    HasTag("work")            thoughts tagged #work
    References("a")           thoughts linking to [a]   (backlinks)
    ReferencedBy("a")         thoughts [a] links to     (forward links)
    And(e1, e2, ...)          intersection; empty And matches nothing
    Or(e1, e2, ...)           union
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from thoughtgraph.errors import InvalidIdError
from thoughtgraph.models import TagUsage, normalize_tag_id

if TYPE_CHECKING:
    from collections.abc import Iterable

    from thoughtgraph.graph import ThoughtGraph
    from thoughtgraph.models import Reference, Thought

DEFAULT_TITLE_WEIGHT = 2


@dataclass(frozen=True)
class HasTag:
    tag_id: str


@dataclass(frozen=True)
class References:
    thought_id: str


@dataclass(frozen=True)
class ReferencedBy:
    thought_id: str


@dataclass(frozen=True)
class And:
    parts: tuple[Expr, ...]

    def __init__(self, *parts: Expr) -> None:
        object.__setattr__(self, "parts", tuple(parts))


@dataclass(frozen=True)
class Or:
    parts: tuple[Expr, ...]

    def __init__(self, *parts: Expr) -> None:
        object.__setattr__(self, "parts", tuple(parts))


Expr = HasTag | References | ReferencedBy | And | Or


@dataclass(frozen=True)
class SearchHit:
    thought: Thought
    score: int


class QueryEngine:
    """Read-only view of a graph."""

    def __init__(self, graph: ThoughtGraph, *, title_weight: int = DEFAULT_TITLE_WEIGHT) -> None:
        self._graph = graph
        self.title_weight = title_weight

    def get(self, thought_id: str) -> Thought:
        return self._graph.get_thought(thought_id)

    def list(self, tags: Iterable[str] | None = None) -> list[Thought]:
        """Thoughts carrying every tag in `tags`; all thoughts when empty."""
        wanted = {_tag_or_none(t) for t in tags or ()}
        if None in wanted:
            # an id that can never exist matches nothing
            return []
        return [t for t in self._graph.thoughts() if wanted <= t.tags]

    def list_tags(self) -> list[TagUsage]:
        counts: dict[str, int] = {}
        for thought in self._graph.thoughts():
            for tag_id in thought.tags:
                counts[tag_id] = counts.get(tag_id, 0) + 1
        return [TagUsage(tag=tag, count=counts.get(tag.id, 0)) for tag in self._graph.tags()]

    def search(self, terms: Iterable[str]) -> list[Thought]:
        return [hit.thought for hit in self.search_scored(terms)]

    def search_scored(self, terms: Iterable[str]) -> list[SearchHit]:
        """Like search() but keeps each result's score."""
        needles = [t.strip().lower() for t in terms if t.strip()]
        hits: list[SearchHit] = []
        for thought in self._graph.thoughts():
            title = thought.title.lower()
            content = thought.content.lower()
            score = 0
            for needle in needles:
                in_title = title.count(needle)
                in_content = content.count(needle)
                if not in_title and not in_content:
                    break
                score += self.title_weight * in_title + in_content
            else:
                hits.append(SearchHit(thought=thought, score=score))
        hits.sort(key=lambda h: (-h.score, h.thought.id))
        return hits

    def incoming(self, thought_id: str) -> list[Reference]:
        self._graph.get_thought(thought_id)
        return self._graph.incoming_of(thought_id)

    def outgoing(self, thought_id: str) -> list[Reference]:
        self._graph.get_thought(thought_id)
        return self._graph.outgoing_of(thought_id)

    def evaluate(self, expr: Expr) -> list[Thought]:
        return [self._graph.get_thought(tid) for tid in sorted(self._match(expr))]

    def _match(self, expr: Expr) -> set[str]:
        if isinstance(expr, HasTag):
            tag_id = _tag_or_none(expr.tag_id)
            if tag_id is None or not self._graph.has_tag(tag_id):
                return set()
            return set(self._graph.tag_usage(tag_id))
        if isinstance(expr, References):
            return {ref.from_id for ref in self._graph.incoming_of(expr.thought_id)}
        if isinstance(expr, ReferencedBy):
            return {ref.to_id for ref in self._graph.outgoing_of(expr.thought_id)}
        if isinstance(expr, And):
            if not expr.parts:
                return set()
            result = self._match(expr.parts[0])
            for part in expr.parts[1:]:
                result &= self._match(part)
            return result
        if isinstance(expr, Or):
            result = set()
            for part in expr.parts:
                result |= self._match(part)
            return result
        msg = f"Unknown query expression: {expr!r}"
        raise TypeError(msg)


def _tag_or_none(tag_id: str) -> str | None:
    try:
        return normalize_tag_id(tag_id)
    except InvalidIdError:
        return None
