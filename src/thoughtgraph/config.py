"""ThoughtsConfig: optional project-local config for the `thoughts` CLI.

thoughts.toml is looked up from the working directory upward. Every key is
optional; without a file the store lives in the per-user app directory.

thoughts.toml example:

    [store]
    file = "notes/thoughts.bin"   # relative to the directory holding thoughts.toml

    [tags]
    auto_create = true            # false: tagging with an unknown tag is an error

    [search]
    title_weight = 2              # a title hit counts this many content hits

    [display]
    max_width = 70                # preview width in listings (0 = unlimited)
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import click

_CONFIG_FILENAME = "thoughts.toml"
_APP_NAME = "thoughtgraph"
_DEFAULT_FILENAME = "thoughts.bin"


def default_store_path() -> Path:
    return Path(click.get_app_dir(_APP_NAME)) / _DEFAULT_FILENAME


@dataclass
class StoreConfig:
    file: Path = field(default_factory=default_store_path)


@dataclass
class TagsConfig:
    auto_create: bool = True


@dataclass
class SearchConfig:
    title_weight: int = 2


@dataclass
class DisplayConfig:
    max_width: int = 70


@dataclass
class ThoughtsConfig:
    """Resolved configuration."""

    root: Path                      # directory searched from (holds thoughts.toml if any)
    store: StoreConfig = field(default_factory=StoreConfig)
    tags: TagsConfig = field(default_factory=TagsConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)

    @property
    def config_path(self) -> Path:
        return self.root / _CONFIG_FILENAME


def load_config(root: Path | str | None = None) -> ThoughtsConfig:
    """Load thoughts.toml from root (or search upward from cwd if root is None)."""
    root_path = _find_root(Path(root) if root else Path.cwd())
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("rb") as f:
            raw = tomllib.load(f)

    store_section = raw.get("store", {})
    tags_section = raw.get("tags", {})
    search_section = raw.get("search", {})
    display_section = raw.get("display", {})

    store_file = store_section.get("file")
    if store_file:
        path = Path(store_file).expanduser()
        store = StoreConfig(file=path if path.is_absolute() else root_path / path)
    else:
        store = StoreConfig()

    return ThoughtsConfig(
        root=root_path,
        store=store,
        tags=TagsConfig(auto_create=bool(tags_section.get("auto_create", True))),
        search=SearchConfig(title_weight=int(search_section.get("title_weight", 2))),
        display=DisplayConfig(max_width=int(display_section.get("max_width", 70))),
    )


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for thoughts.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path, store_file: str = _DEFAULT_FILENAME) -> Path:
    """Write a default thoughts.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"thoughts.toml already exists at {config_path}"
        raise FileExistsError(msg)

    content = f"""\
[store]
file = "{store_file}"

# [tags]
# auto_create = true   # false: tagging with an unknown tag is an error

# [search]
# title_weight = 2

# [display]
# max_width = 70
"""
    config_path.write_text(content)
    return config_path
