"""Auto-references: [id] mentions in thought content become graph edges.

extract_mentions() is a pure scanner over text. plan_auto_references() diffs
the mentions against the thought's current auto edges and returns what to add
and what to remove; ThoughtGraph applies the plan once validation has passed.

Rules:
    - a mention counts only if the id exists and is not the thought itself
    - unknown ids and plain bracketed words are ignored
    - still-mentioned targets keep their existing edge (and its notes)
    - explicit (auto=False) edges are never added or removed here
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from thoughtgraph.models import ID_PATTERN

if TYPE_CHECKING:
    from thoughtgraph.graph import ThoughtGraph

# Mention pattern: [thought-id] in content
_MENTION_RE = re.compile(rf"\[({ID_PATTERN})\]")


def extract_mentions(content: str) -> set[str]:
    """Return every id written as [id] in content."""
    return set(_MENTION_RE.findall(content))


@dataclass(frozen=True)
class AutoRefPlan:
    to_add: frozenset[str]
    to_remove: frozenset[str]

    @property
    def empty(self) -> bool:
        return not self.to_add and not self.to_remove


def plan_auto_references(graph: ThoughtGraph, thought_id: str, content: str) -> AutoRefPlan:
    """Compute the auto-edge changes for thought_id if its content were `content`.

    The thought itself does not need to exist yet (creation plans before insert).
    """
    candidates = {
        target
        for target in extract_mentions(content)
        if target != thought_id and graph.has_thought(target)
    }
    current = graph.outgoing_of(thought_id)
    linked = {ref.to_id for ref in current}
    auto_targets = {ref.to_id for ref in current if ref.auto}
    return AutoRefPlan(
        to_add=frozenset(candidates - linked),
        to_remove=frozenset(auto_targets - candidates),
    )
