"""
Tests for DOT / JSON graph export.
"""

import json

import pytest

from thoughtgraph.errors import ThoughtNotFoundError
from thoughtgraph.visualize import focused_graph_data, graph_data


@pytest.fixture
def chain(graph):
    """c -> b -> a through mentions, plus an explicit d -> c edge with notes."""
    graph.create_thought("a", title="Alpha", tags=["work"])
    graph.create_thought("b", title="Beta", content="[a]")
    graph.create_thought("c", title='Say "hi"', content="[b]")
    graph.create_thought("d")
    graph.add_reference("d", "c", notes="why")
    return graph


class TestGraphData:

    def test_nodes_and_edges(self, chain):
        data = graph_data(chain)
        assert [n.id for n in data.nodes] == ["a", "b", "c", "d"]
        assert data.nodes[0].tags == ["work"]
        assert data.nodes[3].label == "d"
        assert [(e.source, e.target, e.auto) for e in data.edges] == [
            ("b", "a", True), ("c", "b", True), ("d", "c", False),
        ]
        assert [e.id for e in data.edges] == ["edge_1", "edge_2", "edge_3"]

    def test_dot(self, chain):
        dot = graph_data(chain).to_dot()
        assert dot.startswith("digraph ThoughtGraph {")
        assert dot.rstrip().endswith("}")
        assert '"b" -> "a" [label="", style=dashed];' in dot
        assert '"d" -> "c" [label="why"];' in dot
        assert '"c" [label="Say \\"hi\\""];' in dot

    def test_json(self, chain):
        parsed = json.loads(graph_data(chain).to_json())
        assert {n["id"] for n in parsed["nodes"]} == {"a", "b", "c", "d"}
        assert parsed["edges"][2] == {
            "id": "edge_3", "source": "d", "target": "c", "label": "why", "auto": False,
        }

    def test_empty_graph(self, graph):
        assert json.loads(graph_data(graph).to_json()) == {"nodes": [], "edges": []}


class TestFocused:

    def test_depth_one_follows_both_directions(self, chain):
        data = focused_graph_data(chain, "b")
        assert [n.id for n in data.nodes] == ["a", "b", "c"]
        assert [(e.source, e.target) for e in data.edges] == [("b", "a"), ("c", "b")]

    def test_depth_two(self, chain):
        data = focused_graph_data(chain, "a", depth=2)
        assert [n.id for n in data.nodes] == ["a", "b", "c"]

    def test_depth_zero_is_just_the_center(self, chain):
        data = focused_graph_data(chain, "a", depth=0)
        assert [n.id for n in data.nodes] == ["a"]
        assert data.edges == []

    def test_unknown_center(self, chain):
        with pytest.raises(ThoughtNotFoundError):
            focused_graph_data(chain, "ghost")
