"""thoughts CLI: thought graph stored in a single binary file.

Commands:
    thoughts init                       create an empty store
    thoughts create [ID] -t TITLE       add a thought (opens $EDITOR without -c)
    thoughts list [--tag T ...]         list thoughts, optionally filtered by tags
    thoughts view ID                    show a thought with its links
    thoughts edit ID                    edit title/content (opens $EDITOR without -t/-c)
    thoughts delete ID                  delete a thought and its links
    thoughts tag ID TAG / untag ID TAG  attach / detach a tag
    thoughts describe TAG TEXT          set a tag description
    thoughts reference FROM TO          link two thoughts (unreference to unlink)
    thoughts search TERM ...            ranked full-text search
    thoughts tags                       list tags with usage counts
    thoughts visualize                  export DOT / JSON

Write [other-id] anywhere in content to link to another thought automatically.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import click

from thoughtgraph.codec import load_or_create, save
from thoughtgraph.commands import (
    AddReference,
    AttachTag,
    CreateThought,
    DeleteThought,
    DescribeTag,
    DetachTag,
    RemoveReference,
    UpdateThought,
    apply,
    apply_all,
)
from thoughtgraph.config import ThoughtsConfig, init_config, load_config
from thoughtgraph.errors import ThoughtGraphError
from thoughtgraph.graph import ThoughtGraph
from thoughtgraph.models import new_thought_id
from thoughtgraph.query import QueryEngine
from thoughtgraph.visualize import focused_graph_data, graph_data

if TYPE_CHECKING:
    from collections.abc import Iterator

    from thoughtgraph.models import Reference, Thought

_TITLE_PREFIX = "# Title:"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@dataclass
class _State:
    cfg: ThoughtsConfig
    file_override: Path | None = None

    @property
    def path(self) -> Path:
        return self.file_override or self.cfg.store.file


@contextlib.contextmanager
def _engine_errors() -> Iterator[None]:
    """Turn engine and storage failures into clean CLI errors."""
    try:
        yield
    except ThoughtGraphError as exc:
        raise click.ClickException(str(exc)) from exc
    except OSError as exc:
        raise click.ClickException(f"Storage error: {exc}") from exc


def _read_config(root: Path | str | None) -> ThoughtsConfig:
    try:
        return load_config(root)
    except (OSError, ValueError, TypeError, AttributeError) as exc:
        raise click.ClickException(f"Bad config: {exc}") from exc


def _load(state: _State) -> ThoughtGraph:
    with _engine_errors():
        return load_or_create(state.path, auto_create_tags=state.cfg.tags.auto_create)


def _save(state: _State, graph: ThoughtGraph) -> None:
    with _engine_errors():
        save(graph, state.path)


def _queries(state: _State, graph: ThoughtGraph) -> QueryEngine:
    return QueryEngine(graph, title_weight=state.cfg.search.title_weight)


def _tag_list(thought: Thought) -> str:
    return " ".join(f"#{t}" for t in sorted(thought.tags))


def _echo_thought_line(thought: Thought, width: int, extra: str = "") -> None:
    tags = f"  {_tag_list(thought)}" if thought.tags else ""
    click.echo(f"[{thought.id}] {thought.label}{tags}{extra}")
    preview = thought.preview(width)
    if preview:
        click.echo(f"    {preview}")


def _echo_refs(heading: str, refs: list[Reference], graph: ThoughtGraph, *, incoming: bool) -> None:
    if not refs:
        return
    click.echo(f"\n{heading} ({len(refs)}):")
    for ref in refs:
        other = graph.get_thought(ref.from_id if incoming else ref.to_id)
        notes = f"  ({ref.notes})" if ref.notes else ""
        auto = "  (auto)" if ref.auto else ""
        click.echo(f"  [{other.id}] {other.label}{notes}{auto}")


def _echo_auto_links(graph: ThoughtGraph, thought_id: str) -> None:
    auto = [r.to_id for r in graph.outgoing_of(thought_id) if r.auto]
    if auto:
        click.echo("Auto references: " + ", ".join(f"[{t}]" for t in auto))


def edit_template(title: str, content: str) -> str:
    return f"{_TITLE_PREFIX} {title}\n\n{content}"


def parse_edited(text: str, fallback_title: str = "") -> tuple[str, str]:
    """Split editor output into (title, content).

    A first line starting with '# Title:' sets the title; otherwise the
    fallback title is kept and the whole text is content. Blank lines between
    the title line and the content are dropped.
    """
    lines = text.splitlines()
    title = fallback_title
    if lines and lines[0].startswith(_TITLE_PREFIX):
        title = lines[0][len(_TITLE_PREFIX):].strip()
        lines = lines[1:]
    while lines and not lines[0].strip():
        lines = lines[1:]
    return title, "\n".join(lines).rstrip()


def _run_editor(title: str, content: str) -> tuple[str, str]:
    edited = click.edit(edit_template(title, content))
    if edited is None:
        raise click.ClickException("Editor closed without saving, nothing changed")
    return parse_edited(edited, fallback_title=title)


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="thoughtgraph")
@click.option(
    "-f", "--file", "store_file", default=None, type=click.Path(dir_okay=False, path_type=Path),
    help="Store file (overrides thoughts.toml)",
)
@click.option("--config-root", default=None, help="Directory to search for thoughts.toml")
@click.option("-v", "--verbose", is_flag=True, help="Log engine activity to stderr")
@click.pass_context
def cli(ctx: click.Context, store_file: Path | None, config_root: str | None, verbose: bool) -> None:
    """thoughts: a personal graph of linked notes."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(message)s")
    ctx.obj = _State(cfg=_read_config(config_root), file_override=store_file)


# ---------------------------------------------------------------------------
# thoughts init
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--force", is_flag=True, help="Overwrite an existing store with an empty one")
@click.option("--write-config", is_flag=True, help="Also write thoughts.toml in the current directory")
@click.pass_obj
def init(state: _State, force: bool, write_config: bool) -> None:
    """Create an empty thought store."""
    if write_config:
        try:
            config_path = init_config(Path.cwd())
            click.echo(f"Created {config_path}")
        except FileExistsError:
            click.echo("thoughts.toml already exists, skipping")
        state = _State(cfg=_read_config(Path.cwd()), file_override=state.file_override)
    if state.path.exists() and not force:
        click.echo(f"Store already exists at {state.path} (use --force to overwrite)")
        return
    _save(state, ThoughtGraph(auto_create_tags=state.cfg.tags.auto_create))
    click.echo(f"Initialized empty store at {state.path}")


# ---------------------------------------------------------------------------
# thoughts create / edit / delete
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("thought_id", required=False)
@click.option("--title", "-t", default=None, help="Title")
@click.option("--content", "-c", default=None, help="Content (opens $EDITOR if omitted)")
@click.option("--tag", "tags", multiple=True, help="Tag to attach (repeatable)")
@click.option("--ref", "refs", multiple=True, help="Thought ID to reference (repeatable)")
@click.pass_obj
def create(
    state: _State,
    thought_id: str | None,
    title: str | None,
    content: str | None,
    tags: tuple[str, ...],
    refs: tuple[str, ...],
) -> None:
    """Create a thought.

    \b
    thoughts create rust -t "Rust" -c "Systems language" --tag programming
    thoughts create cargo -t "Cargo" -c "Build tool for [rust]"
    thoughts create                 # generated id, content from $EDITOR
    """
    graph = _load(state)
    if content is None:
        title, content = _run_editor(title or "", "")
    thought_id = thought_id or new_thought_id()
    batch = [CreateThought(thought_id, title=title or "", content=content, tags=tags)]
    batch += [AddReference(thought_id, target) for target in refs]
    with _engine_errors():
        apply_all(graph, batch)
    _save(state, graph)
    click.echo(f"Created [{thought_id}]")
    _echo_auto_links(graph, thought_id)


@cli.command()
@click.argument("thought_id")
@click.option("--title", "-t", default=None, help="New title")
@click.option("--content", "-c", default=None, help="New content")
@click.pass_obj
def edit(state: _State, thought_id: str, title: str | None, content: str | None) -> None:
    """Edit a thought. Without -t/-c the thought opens in $EDITOR."""
    graph = _load(state)
    with _engine_errors():
        current = graph.get_thought(thought_id)
    if title is None and content is None:
        title, content = _run_editor(current.title, current.content)
    with _engine_errors():
        updated = apply(graph, UpdateThought(thought_id, title=title, content=content))
    _save(state, graph)
    if updated.updated_at == current.updated_at:
        click.echo(f"[{thought_id}] unchanged")
    else:
        click.echo(f"Updated [{thought_id}]")
    _echo_auto_links(graph, thought_id)


@cli.command()
@click.argument("thought_id")
@click.option("--force", "-y", is_flag=True, help="Skip confirmation")
@click.pass_obj
def delete(state: _State, thought_id: str, force: bool) -> None:
    """Delete a thought and every reference to or from it."""
    graph = _load(state)
    with _engine_errors():
        graph.get_thought(thought_id)
    if not force and not click.confirm(f"Delete [{thought_id}]?", default=False):
        click.echo("Cancelled")
        return
    with _engine_errors():
        apply(graph, DeleteThought(thought_id))
    _save(state, graph)
    click.echo(f"Deleted [{thought_id}]")


# ---------------------------------------------------------------------------
# thoughts list / view / search
# ---------------------------------------------------------------------------


@cli.command("list")
@click.option("--tag", "tags", multiple=True, help="Only thoughts with this tag (repeatable, AND)")
@click.option("--max-width", "-w", default=None, type=int, help="Preview width (0 = unlimited)")
@click.pass_obj
def list_cmd(state: _State, tags: tuple[str, ...], max_width: int | None) -> None:
    """List thoughts ordered by id."""
    graph = _load(state)
    thoughts = _queries(state, graph).list(tags)
    if not thoughts:
        click.echo("No thoughts found")
        return
    width = state.cfg.display.max_width if max_width is None else max_width
    for thought in thoughts:
        _echo_thought_line(thought, width)


@cli.command()
@click.argument("thought_id")
@click.pass_obj
def view(state: _State, thought_id: str) -> None:
    """Show a thought with its outgoing and incoming references."""
    thought_id = thought_id.strip("[]")
    graph = _load(state)
    queries = _queries(state, graph)
    with _engine_errors():
        thought = queries.get(thought_id)
        outgoing = queries.outgoing(thought_id)
        incoming = queries.incoming(thought_id)
    created = thought.created_at.strftime("%Y-%m-%d %H:%M")
    updated = thought.updated_at.strftime("%Y-%m-%d %H:%M")
    click.echo(f"# {thought.label}  [{thought.id}]  created {created}  updated {updated}")
    if thought.tags:
        click.echo(_tag_list(thought))
    if thought.content:
        click.echo("")
        click.echo(thought.content)
    _echo_refs("Links to", outgoing, graph, incoming=False)
    _echo_refs("Referenced by", incoming, graph, incoming=True)


@cli.command()
@click.argument("terms", nargs=-1, required=True)
@click.pass_obj
def search(state: _State, terms: tuple[str, ...]) -> None:
    """Search titles and content; every term must match (case-insensitive)."""
    graph = _load(state)
    hits = _queries(state, graph).search_scored(terms)
    if not hits:
        click.echo(f"No thoughts found matching: {' '.join(terms)}")
        return
    click.echo(f"Found {len(hits)} matching thoughts")
    for hit in hits:
        _echo_thought_line(hit.thought, state.cfg.display.max_width, extra=f"  ({hit.score})")


# ---------------------------------------------------------------------------
# thoughts tag / untag / describe / tags
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("thought_id")
@click.argument("tag_id")
@click.option("--description", "-d", default=None, help="Description if the tag is new")
@click.pass_obj
def tag(state: _State, thought_id: str, tag_id: str, description: str | None) -> None:
    """Attach a tag to a thought."""
    graph = _load(state)
    with _engine_errors():
        apply(graph, AttachTag(thought_id, tag_id, description))
    _save(state, graph)
    click.echo(f"Tagged [{thought_id}] #{tag_id.strip().lower()}")


@cli.command()
@click.argument("thought_id")
@click.argument("tag_id")
@click.pass_obj
def untag(state: _State, thought_id: str, tag_id: str) -> None:
    """Remove a tag from a thought."""
    graph = _load(state)
    with _engine_errors():
        apply(graph, DetachTag(thought_id, tag_id))
    _save(state, graph)
    click.echo(f"Untagged [{thought_id}] #{tag_id.strip().lower()}")


@cli.command()
@click.argument("tag_id")
@click.argument("description")
@click.pass_obj
def describe(state: _State, tag_id: str, description: str) -> None:
    """Set the description of an existing tag."""
    graph = _load(state)
    with _engine_errors():
        updated = apply(graph, DescribeTag(tag_id, description))
    _save(state, graph)
    click.echo(f"Described #{updated.id}")


@cli.command()
@click.pass_obj
def tags(state: _State) -> None:
    """List tags with descriptions and usage counts."""
    from rich.console import Console
    from rich.markup import escape
    from rich.table import Table

    graph = _load(state)
    usage = _queries(state, graph).list_tags()
    if not usage:
        click.echo("No tags found")
        return
    table = Table(show_header=True, header_style="bold")
    table.add_column("Tag", style="yellow", no_wrap=True)
    table.add_column("Description")
    table.add_column("Count", justify="right")
    for entry in usage:
        table.add_row(f"#{entry.tag.id}", escape(entry.tag.description or ""), str(entry.count))
    Console().print(table)


# ---------------------------------------------------------------------------
# thoughts reference / unreference
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("from_id")
@click.argument("to_id")
@click.option("--notes", "-n", default=None, help="Notes describing the relationship")
@click.pass_obj
def reference(state: _State, from_id: str, to_id: str, notes: str | None) -> None:
    """Add (or re-annotate) a reference FROM -> TO."""
    graph = _load(state)
    with _engine_errors():
        apply(graph, AddReference(from_id, to_id, notes))
    _save(state, graph)
    click.echo(f"Linked [{from_id}] -> [{to_id}]")


@cli.command()
@click.argument("from_id")
@click.argument("to_id")
@click.pass_obj
def unreference(state: _State, from_id: str, to_id: str) -> None:
    """Remove the reference FROM -> TO."""
    graph = _load(state)
    with _engine_errors():
        apply(graph, RemoveReference(from_id, to_id))
    _save(state, graph)
    click.echo(f"Unlinked [{from_id}] -> [{to_id}]")


# ---------------------------------------------------------------------------
# thoughts visualize
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--format", "fmt", default="dot", type=click.Choice(["dot", "json"]), show_default=True)
@click.option("--focus", default=None, help="Only the neighbourhood of this thought")
@click.option("--depth", default=1, show_default=True, help="Hops around --focus")
@click.option("--output", "-o", default=None, type=click.Path(dir_okay=False, path_type=Path))
@click.pass_obj
def visualize(state: _State, fmt: str, focus: str | None, depth: int, output: Path | None) -> None:
    """Export the graph as Graphviz DOT or JSON."""
    graph = _load(state)
    with _engine_errors():
        data = focused_graph_data(graph, focus, depth) if focus else graph_data(graph)
    text = data.to_dot() if fmt == "dot" else data.to_json()
    if output is None:
        click.echo(text, nl=False)
        return
    output.write_text(text)
    click.echo(f"Wrote {len(data.nodes)} nodes, {len(data.edges)} edges to {output}")


if __name__ == "__main__":
    cli()
