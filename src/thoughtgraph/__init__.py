"""In-memory thought graph: notes, tags and references, persisted as one binary file.

Layout:
    models      Thought / Tag / Reference records and id rules
    graph       ThoughtGraph: owns entities, forward + reverse reference maps
    autoref     [id] mentions in content -> auto references
    commands    one dataclass per mutation, apply() / apply_all()
    query       QueryEngine: get, list, search, links, boolean expressions
    codec       dumps/loads (bytes) and save/load (files)
    visualize   DOT / JSON export

A store is loaded whole, mutated through commands, and saved whole:

    graph = load_or_create(path)
    apply(graph, CreateThought("b", content="see [a]"))
    save(graph, path)
"""

from thoughtgraph.codec import dumps, load, load_or_create, loads, save
from thoughtgraph.commands import apply, apply_all
from thoughtgraph.errors import (
    CorruptDataError,
    DuplicateIdError,
    InvalidIdError,
    NotFoundError,
    SelfReferenceError,
    ThoughtGraphError,
    VersionMismatchError,
)
from thoughtgraph.graph import ThoughtGraph
from thoughtgraph.models import Reference, Tag, TagUsage, Thought
from thoughtgraph.query import QueryEngine

__all__ = [
    "CorruptDataError",
    "DuplicateIdError",
    "InvalidIdError",
    "NotFoundError",
    "QueryEngine",
    "Reference",
    "SelfReferenceError",
    "Tag",
    "TagUsage",
    "Thought",
    "ThoughtGraph",
    "ThoughtGraphError",
    "VersionMismatchError",
    "apply",
    "apply_all",
    "dumps",
    "load",
    "load_or_create",
    "loads",
    "save",
]
