"""Graph export for visualization: Graphviz DOT and node/edge JSON (D3-style)."""

from __future__ import annotations

import json
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from thoughtgraph.graph import ThoughtGraph
    from thoughtgraph.models import Reference


@dataclass
class Node:
    id: str
    label: str
    tags: list[str] = field(default_factory=list)


@dataclass
class Edge:
    id: str
    source: str
    target: str
    label: str = ""
    auto: bool = False


@dataclass
class GraphData:
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    def to_dot(self) -> str:
        lines = [
            "digraph ThoughtGraph {",
            "  node [shape=box, style=filled, fillcolor=lightblue];",
            "",
        ]
        for node in self.nodes:
            lines.append(f'  "{_dot_escape(node.id)}" [label="{_dot_escape(node.label)}"];')
        lines.append("")
        for edge in self.edges:
            style = ", style=dashed" if edge.auto else ""
            lines.append(
                f'  "{_dot_escape(edge.source)}" -> "{_dot_escape(edge.target)}"'
                f' [label="{_dot_escape(edge.label)}"{style}];'
            )
        lines.append("}")
        return "\n".join(lines) + "\n"

    def to_json(self) -> str:
        return json.dumps(
            {
                "nodes": [asdict(n) for n in self.nodes],
                "edges": [asdict(e) for e in self.edges],
            },
            indent=2,
        ) + "\n"


def _dot_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _edges(refs: list[Reference]) -> list[Edge]:
    return [
        Edge(
            id=f"edge_{i}",
            source=ref.from_id,
            target=ref.to_id,
            label=ref.notes or "",
            auto=ref.auto,
        )
        for i, ref in enumerate(refs, start=1)
    ]


def graph_data(graph: ThoughtGraph) -> GraphData:
    """Every thought as a node, every reference as an edge."""
    nodes = [Node(id=t.id, label=t.label, tags=sorted(t.tags)) for t in graph.thoughts()]
    return GraphData(nodes=nodes, edges=_edges(graph.references()))


def focused_graph_data(graph: ThoughtGraph, center: str, depth: int = 1) -> GraphData:
    """Neighbourhood of `center` up to `depth` hops, following links in both directions.

    Raises ThoughtNotFoundError if center does not exist.
    """
    graph.get_thought(center)
    seen = {center}
    queue: deque[tuple[str, int]] = deque([(center, 0)])
    while queue:
        current, dist = queue.popleft()
        if dist >= depth:
            continue
        neighbours = [r.to_id for r in graph.outgoing_of(current)]
        neighbours += [r.from_id for r in graph.incoming_of(current)]
        for nid in neighbours:
            if nid not in seen:
                seen.add(nid)
                queue.append((nid, dist + 1))

    nodes = [
        Node(id=t.id, label=t.label, tags=sorted(t.tags))
        for t in graph.thoughts()
        if t.id in seen
    ]
    refs = [r for r in graph.references() if r.from_id in seen and r.to_id in seen]
    return GraphData(nodes=nodes, edges=_edges(refs))
