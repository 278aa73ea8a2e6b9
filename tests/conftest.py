"""
Shared pytest fixtures for thoughtgraph tests.
"""

from datetime import UTC, datetime, timedelta

import pytest

from thoughtgraph.graph import ThoughtGraph


@pytest.fixture
def graph():
    """Empty graph with implicit tag creation (the default policy)."""
    return ThoughtGraph()


@pytest.fixture
def strict_graph():
    """Empty graph that refuses unknown tags."""
    return ThoughtGraph(auto_create_tags=False)


@pytest.fixture
def linked_graph():
    """a <- b: b mentions [a] in its content."""
    g = ThoughtGraph()
    g.create_thought("a", title="Alpha", content="hello")
    g.create_thought("b", title="Beta", content="see [a]")
    return g


@pytest.fixture
def clock(monkeypatch):
    """Deterministic, strictly increasing timestamps for graph mutations."""
    start = datetime(2026, 1, 1, tzinfo=UTC)
    ticks = iter(start + timedelta(seconds=i) for i in range(10_000))
    monkeypatch.setattr("thoughtgraph.graph.utcnow", lambda: next(ticks))
    return start
