"""Version commands: list, diff, delete."""

from __future__ import annotations

from typing import Optional

import click
from rich.table import Table

from .. import git
from ..errors import GitError, NotFoundError, SyncEnvError
from ._common import config_option, console, fail, load_project, make_pipeline


def _current_version() -> Optional[str]:
    try:
        return git.current_version()
    except GitError:
        return None


def register_versions_commands(main: click.Group) -> None:
    """Register list, diff, and delete."""

    @main.command("list")
    @config_option
    def list_versions(config_path: str):
        """List all stored versions, newest first."""
        config = load_project(config_path)
        pipeline = make_pipeline(config)

        console.print(f"Fetching list from {pipeline.store.name} storage...")
        try:
            tags = pipeline.list_versions()
        except SyncEnvError as exc:
            fail(f"failed to list versions: {exc}")

        if not tags:
            console.print("\n[dim]No versions found in storage.[/]\n")
            return

        current = _current_version()
        console.print(f"\nAvailable versions ([bold]{len(tags)}[/] total):")
        for tag in tags:
            if tag == current:
                console.print(f"* [bold green]{tag}[/]")
            else:
                console.print(f"  {tag}")

        if current:
            console.print(f"\n[dim]* = current version ({current})[/]")

    @main.command("diff")
    @config_option
    @click.argument("old_tag")
    @click.argument("new_tag")
    @click.option("--json-out", is_flag=True, help="Output the diff as JSON.")
    def diff(config_path: str, old_tag: str, new_tag: str, json_out: bool):
        """Show variables added, removed, or changed between two versions.

        Examples:

            syncenv diff v1.0.0 v1.1.0
        """
        config = load_project(config_path)
        pipeline = make_pipeline(config)

        try:
            result = pipeline.diff(old_tag, new_tag)
        except NotFoundError as exc:
            fail(str(exc))
        except SyncEnvError as exc:
            fail(f"diff failed: {exc}")

        if json_out:
            click.echo(result.model_dump_json(indent=2))
            return

        console.print(f"\nDifferences between [cyan]{old_tag}[/] and [cyan]{new_tag}[/]:")
        if not result.has_changes:
            console.print("[dim]No differences found.[/]\n")
            return

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("", width=1)
        table.add_column("Variable", style="cyan")
        table.add_column("Value")

        for key in sorted(result.added):
            table.add_row("[green]+[/]", key, result.added[key])
        for key in sorted(result.removed):
            table.add_row("[red]-[/]", key, result.removed[key])
        for key in sorted(result.changed):
            table.add_row("[yellow]~[/]", key, str(result.changed[key]))

        console.print(table)
        console.print(f"\nSummary: {result.summary()}\n")

    @main.command("delete")
    @config_option
    @click.argument("tag")
    @click.option("--yes", "-y", is_flag=True, help="Delete without confirmation.")
    def delete(config_path: str, tag: str, yes: bool):
        """Delete a stored version."""
        config = load_project(config_path)
        pipeline = make_pipeline(config)

        if not yes and not click.confirm(f"Delete stored version '{tag}'?", default=False):
            console.print("Delete cancelled.")
            return

        try:
            pipeline.delete(tag)
        except NotFoundError as exc:
            fail(str(exc))
        except SyncEnvError as exc:
            fail(f"delete failed: {exc}")

        console.print(f"[green]Deleted[/] version [bold]{tag}[/]")
