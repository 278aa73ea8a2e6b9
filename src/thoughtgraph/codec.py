"""Binary persistence for a whole ThoughtGraph.

Blob layout (little endian):
    magic            4 bytes   b"TGPH"
    version          uint16    FORMAT_VERSION
    reserved         uint16    0
    payload length   uint32
    payload crc32    uint32
    payload          msgpack   {"thoughts": [...], "tags": [...], "references": [...]}

Only the forward reference list is stored; the reverse index is rebuilt on
load. dumps() sorts every entity list by id, so equal graphs produce equal
bytes and a snapshot can be compared byte for byte.

File access:
    save(graph, path)   write path.tmp under flock(LOCK_EX), then rename over path
    load(path)          read under flock(LOCK_SH)
OSError from the filesystem is never wrapped.
"""

from __future__ import annotations

import fcntl
import logging
import struct
import zlib
from pathlib import Path
from typing import Any

import msgpack

from thoughtgraph.errors import CorruptDataError, VersionMismatchError
from thoughtgraph.graph import ThoughtGraph
from thoughtgraph.models import Reference, Tag, Thought

logger = logging.getLogger("thoughtgraph.codec")

MAGIC = b"TGPH"
FORMAT_VERSION = 1
_HEADER = struct.Struct("<4sHHII")


def dumps(graph: ThoughtGraph) -> bytes:
    """Serialize the graph into one self-contained blob."""
    payload = msgpack.packb(
        {
            "thoughts": [t.to_dict() for t in graph.thoughts()],
            "tags": [t.to_dict() for t in graph.tags()],
            "references": [r.to_dict() for r in graph.references()],
        },
        use_bin_type=True,
    )
    header = _HEADER.pack(MAGIC, FORMAT_VERSION, 0, len(payload), zlib.crc32(payload))
    return header + payload


def loads(blob: bytes, *, auto_create_tags: bool = True) -> ThoughtGraph:
    """Rebuild a graph from dumps() output.

    Raises VersionMismatchError for other format versions and CorruptDataError
    for anything else that does not decode into a consistent graph.
    """
    if len(blob) < _HEADER.size:
        msg = f"Store is truncated: {len(blob)} bytes, header needs {_HEADER.size}"
        raise CorruptDataError(msg)
    magic, version, _reserved, length, crc = _HEADER.unpack_from(blob)
    if magic != MAGIC:
        msg = f"Not a thought graph store: expected magic {MAGIC!r}, got {magic!r}"
        raise CorruptDataError(msg)
    if version != FORMAT_VERSION:
        raise VersionMismatchError(version, FORMAT_VERSION)
    payload = blob[_HEADER.size :]
    if len(payload) != length:
        msg = f"Store payload is {len(payload)} bytes, header says {length}"
        raise CorruptDataError(msg)
    if zlib.crc32(payload) != crc:
        msg = "Store checksum mismatch"
        raise CorruptDataError(msg)

    try:
        data = msgpack.unpackb(payload, raw=False)
    except (msgpack.exceptions.UnpackException, ValueError, TypeError) as exc:
        msg = f"Store payload is not valid msgpack: {exc}"
        raise CorruptDataError(msg) from exc
    return _graph_from_payload(data, auto_create_tags=auto_create_tags)


def _graph_from_payload(data: Any, *, auto_create_tags: bool) -> ThoughtGraph:
    if not isinstance(data, dict):
        msg = f"Store payload must be a map, got {type(data).__name__}"
        raise CorruptDataError(msg)
    try:
        thoughts = [Thought.from_dict(d) for d in data["thoughts"]]
        tags = [Tag.from_dict(d) for d in data["tags"]]
        references = [Reference.from_dict(d) for d in data["references"]]
        return ThoughtGraph.from_entities(
            thoughts, tags, references, auto_create_tags=auto_create_tags
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        msg = f"Malformed store record: {exc}"
        raise CorruptDataError(msg) from exc


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def save(graph: ThoughtGraph, path: Path | str) -> None:
    """Atomically write the graph to path (parent directories are created)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    blob = dumps(graph)
    tmp = path.with_name(path.name + ".tmp")
    with tmp.open("wb") as f:
        fcntl.flock(f, fcntl.LOCK_EX)
        f.write(blob)
    tmp.replace(path)
    logger.info("saved %s (%d thoughts, %d bytes)", path, len(graph), len(blob))


def load(path: Path | str, *, auto_create_tags: bool = True) -> ThoughtGraph:
    path = Path(path)
    with path.open("rb") as f:
        fcntl.flock(f, fcntl.LOCK_SH)
        blob = f.read()
    graph = loads(blob, auto_create_tags=auto_create_tags)
    logger.info("loaded %s (%d thoughts)", path, len(graph))
    return graph


def load_or_create(path: Path | str, *, auto_create_tags: bool = True) -> ThoughtGraph:
    """Load the store at path, or write and return an empty one if the file is missing."""
    path = Path(path)
    if path.exists():
        return load(path, auto_create_tags=auto_create_tags)
    graph = ThoughtGraph(auto_create_tags=auto_create_tags)
    save(graph, path)
    logger.info("created new store at %s", path)
    return graph
