"""CLI entrypoint for arbor."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path

import click
from pydantic import ValidationError

from arbor.app import ArborApp
from arbor.config.store import SettingsStore
from arbor.paths import settings_path
from arbor.runtime_logging import configure_runtime_logging
from arbor.tree.loader import TreeLoader
from arbor.tree.nodes import Directory, Node
from arbor.tree.state import TreeState
from arbor.version import __version__
from arbor.widgets.project_tree import node_label


@click.group(invoke_without_command=True, context_settings={"help_option_names": ["-h", "--help"]})
@click.pass_context
def main(ctx: click.Context) -> None:
    """arbor: asynchronous directory trees for the terminal."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(browse)


@main.command()
@click.argument("root", required=False, default=".")
@click.option("--reveal", "reveal_path", help="Open the folders leading to this path")
@click.option("--log-level", help="off, error, warning, info or debug")
@click.option("--log-file", type=click.Path(dir_okay=False), help="JSONL runtime log destination")
def browse(root: str, reveal_path: str | None, log_level: str | None, log_file: str | None) -> None:
    """Browse ROOT in an interactive tree."""
    root_path = _existing_dir(root)
    app = ArborApp(
        root=root_path,
        reveal_path=_resolve_entry(reveal_path) if reveal_path else None,
        log_level=log_level,
        log_file=log_file,
    )
    app.run()


@main.command()
@click.argument("root", required=False, default=".")
@click.option("--reveal", "reveal_path", help="Load the folders leading to this path")
@click.option("--expand", "expanded", multiple=True, help="Folder to load as expanded (repeatable)")
@click.option("--search", "search_term", help="Show only entries matching this term")
@click.option("--hidden/--no-hidden", default=None, help="Include dotfiles")
@click.option("--gitignore/--no-gitignore", default=None, help="Hide entries matched by .gitignore")
@click.option("--find-command", help="Search tool to use (fd, fdfind, find, where)")
@click.option("--limit", type=click.IntRange(min=1), help="Maximum search matches")
@click.option("--json", "as_json", is_flag=True, help="Print the tree as JSON")
@click.option("--log-level", help="off, error, warning, info or debug")
def tree(
    root: str,
    reveal_path: str | None,
    expanded: tuple[str, ...],
    search_term: str | None,
    hidden: bool | None,
    gitignore: bool | None,
    find_command: str | None,
    limit: int | None,
    as_json: bool,
    log_level: str | None,
) -> None:
    """Load ROOT once and print the resulting tree."""
    configure_runtime_logging(level=log_level)
    root_path = _existing_dir(root)
    state = TreeState.from_settings(SettingsStore().load(), root_path)
    if hidden is not None:
        state.show_hidden = hidden
    if gitignore is not None:
        state.respect_gitignore = gitignore
    if find_command:
        state.find_command = find_command
    if limit is not None:
        state.search_limit = limit
    state.search_pattern = search_term or None
    state.expanded = [_resolve_entry(item) for item in expanded]
    reveal = _resolve_entry(reveal_path) if reveal_path else None

    update = asyncio.run(TreeLoader().load(state, reveal_path=reveal))
    root_node = update.nodes[0]
    if as_json:
        click.echo(json.dumps(root_node.to_dict(), indent=2))
        return
    for line in render_lines(root_node):
        click.echo(line)


def render_lines(root: Node, indent: str = "  ") -> list[str]:
    lines = [root.name]
    stack: list[tuple[Node, int]] = []
    if isinstance(root, Directory):
        stack.extend((child, 1) for child in reversed(root.children))
    while stack:
        node, depth = stack.pop()
        lines.append(f"{indent * depth}{node_label(node)}")
        if isinstance(node, Directory):
            stack.extend((child, depth + 1) for child in reversed(node.children))
    return lines


@main.command("config")
@click.argument("key")
@click.argument("value")
def config_command(key: str, value: str) -> None:
    """Set a dotted settings KEY to VALUE, e.g. filters.show_hidden true."""
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        parsed = value
    try:
        SettingsStore().update(key, parsed)
    except KeyError as exc:
        raise click.ClickException(str(exc.args[0]))
    except ValidationError as exc:
        raise click.ClickException(f"Invalid value for {key}: {exc.errors()[0]['msg']}")
    click.echo(f"{key} = {json.dumps(parsed)}")


@main.command("settings-path")
def settings_path_command() -> None:
    """Print settings file path."""
    click.echo(str(settings_path()))


@main.command()
def about() -> None:
    """Show version and project summary."""
    payload = {
        "name": "arbor",
        "version": __version__,
        "description": "Asynchronous directory trees for the terminal",
    }
    click.echo(json.dumps(payload, indent=2))


def _existing_dir(value: str) -> Path:
    path = Path(value).expanduser().resolve()
    if not path.is_dir():
        raise click.ClickException(f"Not a directory: {path}")
    return path


def _resolve_entry(value: str) -> str:
    """Resolve the folders above ``value`` like the root, keeping its own name unresolved."""
    path = Path(os.path.abspath(Path(value).expanduser()))
    if path.parent == path:
        return str(path)
    return str(path.parent.resolve() / path.name)


if __name__ == "__main__":
    main()
