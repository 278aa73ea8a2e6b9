"""Command engine: one dataclass per graph mutation, applied through apply().

Commands carry their arguments only; all validation and state live in
ThoughtGraph. apply_all() runs a batch all-or-nothing.

    apply(graph, CreateThought("a", content="hello"))
    apply_all(graph, [AddTag("work"), AttachTag("a", "work")])
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from thoughtgraph.errors import ThoughtGraphError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from thoughtgraph.graph import ThoughtGraph

logger = logging.getLogger("thoughtgraph.commands")


@dataclass(frozen=True)
class CreateThought:
    id: str | None
    title: str = ""
    content: str = ""
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class UpdateThought:
    id: str
    title: str | None = None
    content: str | None = None
    tags: tuple[str, ...] | None = None


@dataclass(frozen=True)
class DeleteThought:
    id: str


@dataclass(frozen=True)
class AddTag:
    id: str
    description: str | None = None


@dataclass(frozen=True)
class DescribeTag:
    id: str
    description: str | None


@dataclass(frozen=True)
class DeleteTag:
    id: str


@dataclass(frozen=True)
class AttachTag:
    thought_id: str
    tag_id: str
    description: str | None = None


@dataclass(frozen=True)
class DetachTag:
    thought_id: str
    tag_id: str


@dataclass(frozen=True)
class AddReference:
    from_id: str
    to_id: str
    notes: str | None = None


@dataclass(frozen=True)
class RemoveReference:
    from_id: str
    to_id: str


Command = (
    CreateThought
    | UpdateThought
    | DeleteThought
    | AddTag
    | DescribeTag
    | DeleteTag
    | AttachTag
    | DetachTag
    | AddReference
    | RemoveReference
)


def apply(graph: ThoughtGraph, command: Command) -> Any:
    """Apply a single command. Returns whatever the graph operation returns."""
    if isinstance(command, CreateThought):
        return graph.create_thought(
            command.id, title=command.title, content=command.content, tags=command.tags
        )
    if isinstance(command, UpdateThought):
        return graph.update_thought(
            command.id, title=command.title, content=command.content, tags=command.tags
        )
    if isinstance(command, DeleteThought):
        return graph.delete_thought(command.id)
    if isinstance(command, AddTag):
        return graph.add_tag(command.id, command.description)
    if isinstance(command, DescribeTag):
        return graph.describe_tag(command.id, command.description)
    if isinstance(command, DeleteTag):
        return graph.delete_tag(command.id)
    if isinstance(command, AttachTag):
        return graph.attach_tag(command.thought_id, command.tag_id, command.description)
    if isinstance(command, DetachTag):
        return graph.detach_tag(command.thought_id, command.tag_id)
    if isinstance(command, AddReference):
        return graph.add_reference(command.from_id, command.to_id, command.notes)
    if isinstance(command, RemoveReference):
        return graph.remove_reference(command.from_id, command.to_id)
    msg = f"Unknown command: {command!r}"
    raise TypeError(msg)


def apply_all(graph: ThoughtGraph, commands: Iterable[Command]) -> list[Any]:
    """Apply commands in order. On the first failure the graph is rolled back and the error re-raised."""
    before = graph.snapshot()
    results: list[Any] = []
    try:
        for command in commands:
            results.append(apply(graph, command))
    except (ThoughtGraphError, TypeError):
        graph.restore(before)
        logger.debug("batch rolled back after %d of its commands", len(results))
        raise
    return results
