"""
Tests for the thoughts CLI, driven through click's CliRunner.
"""

import json

import click
import pytest
from click.testing import CliRunner

from thoughtgraph.cli import cli, edit_template, parse_edited
from thoughtgraph.codec import load


@pytest.fixture
def store(tmp_path):
    return tmp_path / "thoughts.bin"


@pytest.fixture
def run(tmp_path, store):
    """Invoke the CLI against a private store; returns the click Result."""
    runner = CliRunner()

    def _run(*args, input=None):
        return runner.invoke(
            cli,
            ["-f", str(store), "--config-root", str(tmp_path), *args],
            input=input,
        )

    return _run


@pytest.fixture
def seeded(run):
    assert run("create", "a", "-t", "Alpha", "-c", "hello world").exit_code == 0
    assert run("create", "b", "-t", "Beta", "-c", "see [a]").exit_code == 0
    return run


class TestInit:

    def test_creates_store(self, run, store):
        result = run("init")
        assert result.exit_code == 0
        assert "Initialized empty store" in result.output
        assert len(load(store)) == 0

    def test_existing_store_is_kept(self, seeded, store):
        result = seeded("init")
        assert "already exists" in result.output
        assert load(store).has_thought("a")

    def test_force_resets(self, seeded, store):
        assert seeded("init", "--force").exit_code == 0
        assert len(load(store)) == 0


class TestCreateAndEdit:

    def test_create_reports_auto_references(self, run, store):
        run("create", "a", "-c", "x")
        result = run("create", "b", "-t", "Beta", "-c", "see [a]", "--tag", "Work")
        assert result.exit_code == 0
        assert "Created [b]" in result.output
        assert "Auto references: [a]" in result.output
        graph = load(store)
        assert graph.get_thought("b").tags == {"work"}
        assert graph.reference("b", "a").auto is True

    def test_create_with_explicit_refs(self, seeded, store):
        result = seeded("create", "c", "-c", "plain", "--ref", "a", "--ref", "b")
        assert result.exit_code == 0
        assert {r.to_id for r in load(store).outgoing_of("c")} == {"a", "b"}

    def test_failed_create_writes_nothing(self, seeded, store):
        result = seeded("create", "c", "-c", "plain", "--ref", "ghost")
        assert result.exit_code == 1
        assert "Thought not found: ghost" in result.output
        assert not load(store).has_thought("c")

    def test_duplicate(self, seeded):
        result = seeded("create", "a", "-c", "again")
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_create_generated_id(self, run, store):
        result = run("create", "-c", "anonymous")
        assert result.exit_code == 0
        thought = load(store).thoughts()[0]
        assert thought.id.startswith("t-")
        assert f"Created [{thought.id}]" in result.output

    def test_create_from_editor(self, run, store, monkeypatch):
        monkeypatch.setattr(click, "edit", lambda text: "# Title: From editor\n\nbody text\n")
        assert run("create", "e").exit_code == 0
        thought = load(store).get_thought("e")
        assert thought.title == "From editor"
        assert thought.content == "body text"

    def test_editor_cancelled(self, run, store, monkeypatch):
        monkeypatch.setattr(click, "edit", lambda text: None)
        result = run("create", "e")
        assert result.exit_code == 1
        assert "nothing changed" in result.output
        assert not load(store).has_thought("e")

    def test_edit_content(self, seeded, store):
        result = seeded("edit", "b", "-c", "nothing now")
        assert result.exit_code == 0
        assert "Updated [b]" in result.output
        assert load(store).references() == []

    def test_edit_unchanged(self, seeded):
        result = seeded("edit", "a", "-t", "Alpha")
        assert "[a] unchanged" in result.output

    def test_edit_in_editor_keeps_title_without_header(self, seeded, store, monkeypatch):
        monkeypatch.setattr(click, "edit", lambda text: "rewritten [b]")
        assert seeded("edit", "a").exit_code == 0
        thought = load(store).get_thought("a")
        assert thought.title == "Alpha"
        assert thought.content == "rewritten [b]"
        assert load(store).reference("a", "b").auto is True

    def test_edit_unknown(self, run):
        result = run("edit", "ghost", "-t", "x")
        assert result.exit_code == 1
        assert "Thought not found: ghost" in result.output


class TestDelete:

    def test_force(self, seeded, store):
        result = seeded("delete", "a", "--force")
        assert "Deleted [a]" in result.output
        graph = load(store)
        assert not graph.has_thought("a")
        assert graph.references() == []

    def test_confirmation_declined(self, seeded, store):
        result = seeded("delete", "a", input="n\n")
        assert "Cancelled" in result.output
        assert load(store).has_thought("a")

    def test_confirmation_accepted(self, seeded, store):
        seeded("delete", "a", input="y\n")
        assert not load(store).has_thought("a")


class TestReading:

    def test_list(self, seeded):
        result = seeded("list")
        assert "[a] Alpha" in result.output
        assert "    hello world" in result.output
        assert result.output.index("[a]") < result.output.index("[b]")

    def test_list_by_tag(self, seeded):
        seeded("tag", "b", "work")
        result = seeded("list", "--tag", "work")
        assert "[b] Beta  #work" in result.output
        assert "[a] Alpha" not in result.output

    def test_list_empty(self, run):
        assert "No thoughts found" in run("list").output

    def test_view_shows_links(self, seeded):
        result = seeded("view", "a")
        assert result.exit_code == 0
        assert "# Alpha  [a]" in result.output
        assert "Referenced by (1):" in result.output
        assert "[b] Beta  (auto)" in result.output

        result = seeded("view", "[b]")
        assert "Links to (1):" in result.output

    def test_view_unknown(self, run):
        result = run("view", "ghost")
        assert result.exit_code == 1
        assert "Thought not found: ghost" in result.output

    def test_search(self, seeded):
        result = seeded("search", "HELLO")
        assert "Found 1 matching thoughts" in result.output
        assert "[a] Alpha" in result.output

    def test_search_no_match(self, seeded):
        assert "No thoughts found matching: zebra" in seeded("search", "zebra").output


class TestTags:

    def test_tag_and_untag(self, seeded, store):
        assert "Tagged [a] #work" in seeded("tag", "a", "Work", "-d", "Job").output
        assert load(store).get_tag("work").description == "Job"
        assert "Untagged [a] #work" in seeded("untag", "a", "work").output
        assert load(store).get_thought("a").tags == frozenset()

    def test_untag_missing(self, seeded):
        result = seeded("untag", "a", "nope")
        assert result.exit_code == 1
        assert "Tag not found: nope" in result.output

    def test_describe(self, seeded, store):
        seeded("tag", "a", "work")
        assert "Described #work" in seeded("describe", "work", "Day job").output
        assert load(store).get_tag("work").description == "Day job"

    def test_tags_table(self, seeded):
        seeded("tag", "a", "work")
        seeded("tag", "b", "work")
        result = seeded("tags")
        assert result.exit_code == 0
        assert "#work" in result.output
        assert "2" in result.output

    def test_no_tags(self, seeded):
        assert "No tags found" in seeded("tags").output

    def test_strict_config_rejects_unknown_tag(self, tmp_path, store):
        (tmp_path / "thoughts.toml").write_text("[tags]\nauto_create = false\n")
        runner = CliRunner()
        base = ["-f", str(store), "--config-root", str(tmp_path)]
        runner.invoke(cli, [*base, "create", "a", "-c", "x"])
        result = runner.invoke(cli, [*base, "tag", "a", "work"])
        assert result.exit_code == 1
        assert "Tag not found: work" in result.output


class TestReferences:

    def test_reference_and_unreference(self, seeded, store):
        assert "Linked [a] -> [b]" in seeded("reference", "a", "b", "-n", "reply").output
        assert load(store).reference("a", "b").notes == "reply"
        assert "Unlinked [a] -> [b]" in seeded("unreference", "a", "b").output
        assert load(store).reference("a", "b") is None

    def test_self_reference(self, seeded):
        result = seeded("reference", "a", "a")
        assert result.exit_code == 1
        assert "cannot reference itself" in result.output

    def test_unreference_missing(self, seeded):
        result = seeded("unreference", "a", "b")
        assert result.exit_code == 1
        assert "Reference not found: a -> b" in result.output


class TestVisualize:

    def test_dot_to_stdout(self, seeded):
        result = seeded("visualize")
        assert result.output.startswith("digraph ThoughtGraph {")
        assert '"b" -> "a"' in result.output

    def test_json_to_file(self, seeded, tmp_path):
        out = tmp_path / "graph.json"
        result = seeded("visualize", "--format", "json", "-o", str(out))
        assert "Wrote 2 nodes, 1 edges" in result.output
        assert len(json.loads(out.read_text())["nodes"]) == 2

    def test_focus_unknown(self, seeded):
        result = seeded("visualize", "--focus", "ghost")
        assert result.exit_code == 1


class TestStoreErrors:

    def test_corrupt_store(self, run, store):
        store.write_bytes(b"this is not a thought store at all")
        result = run("list")
        assert result.exit_code == 1
        assert "Not a thought graph store" in result.output


class TestEditorText:

    def test_template_round_trip(self):
        assert parse_edited(edit_template("T", "body\nmore")) == ("T", "body\nmore")

    def test_without_title_line(self):
        assert parse_edited("just text\n", fallback_title="Old") == ("Old", "just text")

    def test_blank_lines_after_title_dropped(self):
        assert parse_edited("# Title:   Spaced  \n\n\ncontent") == ("Spaced", "content")


class TestConfigErrors:

    def test_unreadable_config_in_working_directory(self, run, tmp_path, monkeypatch):
        project = tmp_path / "project"
        project.mkdir()
        (project / "thoughts.toml").write_text("[store\nfile = 1\n")
        monkeypatch.chdir(project)
        result = run("init", "--write-config")
        assert result.exit_code == 1
        assert "Bad config" in result.output

    def test_unreadable_config_at_root(self, tmp_path, store):
        (tmp_path / "thoughts.toml").write_text('[search]\ntitle_weight = "heavy"\n')
        result = CliRunner().invoke(cli, ["-f", str(store), "--config-root", str(tmp_path), "list"])
        assert result.exit_code == 1
        assert "Bad config" in result.output
