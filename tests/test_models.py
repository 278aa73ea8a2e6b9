"""
Tests for id rules and record helpers.
"""

from datetime import UTC, datetime

import pytest

from thoughtgraph.errors import InvalidIdError
from thoughtgraph.models import (
    Reference,
    Tag,
    Thought,
    new_thought_id,
    normalize_tag_id,
    validate_thought_id,
)

TS = datetime(2026, 3, 4, 5, 6, 7, 890123, tzinfo=UTC)


class TestIds:

    @pytest.mark.parametrize("value", ["a", "project-x", "Note_1", "2026-01-01"])
    def test_valid_thought_ids(self, value):
        assert validate_thought_id(value) == value

    @pytest.mark.parametrize("value", ["", "has space", "[a]", "a/b", "ü", "a\n"])
    def test_invalid_thought_ids(self, value):
        with pytest.raises(InvalidIdError):
            validate_thought_id(value)

    def test_invalid_id_is_a_value_error(self):
        with pytest.raises(ValueError):
            validate_thought_id("no good")

    def test_generated_ids_are_valid_and_distinct(self):
        ids = {new_thought_id() for _ in range(50)}
        assert len(ids) == 50
        for tid in ids:
            assert tid.startswith("t-")
            assert len(tid) == 10
            validate_thought_id(tid)

    def test_tag_ids_are_normalized(self):
        assert normalize_tag_id("  Work ") == "work"
        assert normalize_tag_id("DEEP_work-2") == "deep_work-2"

    @pytest.mark.parametrize("value", ["", "   ", "two words", "#hash"])
    def test_invalid_tag_ids(self, value):
        with pytest.raises(InvalidIdError):
            normalize_tag_id(value)


class TestThought:

    def test_label_falls_back_to_id(self):
        assert Thought(id="x").label == "x"
        assert Thought(id="x", title="Title").label == "Title"

    def test_preview_uses_first_line_and_truncates(self):
        t = Thought(id="x", content="\nfirst line\nsecond line")
        assert t.preview() == "first line"
        long = Thought(id="y", content="z" * 100)
        assert long.preview(70) == "z" * 69 + "…"
        assert long.preview(0) == "z" * 100
        assert Thought(id="e").preview() == ""

    def test_dict_round_trip_keeps_microseconds_and_timezone(self):
        t = Thought(
            id="x", title="T", content="c", tags=frozenset({"b", "a"}),
            created_at=TS, updated_at=TS,
        )
        d = t.to_dict()
        assert d["tags"] == ["a", "b"]
        assert Thought.from_dict(d) == t

    def test_thoughts_are_immutable(self):
        t = Thought(id="x")
        with pytest.raises(AttributeError):
            t.title = "nope"  # type: ignore[misc]


class TestTagAndReference:

    def test_tag_dict_round_trip(self):
        tag = Tag(id="work", description=None, created_at=TS, updated_at=TS)
        assert Tag.from_dict(tag.to_dict()) == tag

    def test_reference_dict_uses_from_to_keys(self):
        ref = Reference(from_id="b", to_id="a", notes="n", auto=True, created_at=TS)
        d = ref.to_dict()
        assert d["from"] == "b"
        assert d["to"] == "a"
        assert Reference.from_dict(d) == ref
        assert ref.key == ("b", "a")
