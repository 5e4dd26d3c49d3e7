"""Sync commands: push, pull."""

from __future__ import annotations

from typing import Optional

import click

from ..errors import NotFoundError, SyncEnvError
from ._common import config_option, console, fail, load_project, make_pipeline, resolve_tag


def register_sync_commands(main: click.Group) -> None:
    """Register push and pull."""

    @main.command("push")
    @config_option
    @click.option("--tag", "-t", default=None, help="Explicit tag (defaults to current Git tag/branch).")
    def push(config_path: str, tag: Optional[str]):
        """Upload the local env files, tagged with the current version."""
        config = load_project(config_path)
        tag = resolve_tag(tag)
        pipeline = make_pipeline(config)

        files = pipeline.files
        if len(files) == 1:
            console.print(f"Reading environment file: [cyan]{files[0]}[/]")
        else:
            console.print(f"Reading {len(files)} environment files...")
        if pipeline.encrypted:
            console.print("Encrypting data...")

        try:
            result = pipeline.push(tag)
        except SyncEnvError as exc:
            fail(f"push failed: {exc}")

        if result.overwritten:
            console.print(
                f"[yellow]WARNING:[/] Tag '{tag}' already existed in storage "
                "and was overwritten."
            )
        console.print(
            f"[green]Successfully pushed[/] environment variables with tag: "
            f"[bold]{result.tag}[/] [dim]({result.key}, {result.size} bytes)[/]"
        )

    @main.command("pull")
    @config_option
    @click.option("--tag", "-t", default=None, help="Explicit tag (defaults to current Git tag/branch).")
    @click.option("--force", "-f", is_flag=True, help="Overwrite local files without confirmation.")
    def pull(config_path: str, tag: Optional[str], force: bool):
        """Download the env files stored for the current version."""
        config = load_project(config_path)
        tag = resolve_tag(tag)
        pipeline = make_pipeline(config)

        try:
            result = pipeline.pull(tag, force=force)
        except NotFoundError as exc:
            fail(str(exc))
        except SyncEnvError as exc:
            fail(f"pull failed: {exc}")

        if result.cancelled:
            console.print("Pull cancelled.")
            return

        if result.decrypt_fallback:
            console.print(
                "[yellow]WARNING:[/] stored data did not decrypt with the configured "
                "key and was written as-is."
            )
        for path in result.files:
            console.print(f"  [dim]wrote[/] {path}")
        console.print(
            f"[green]Successfully pulled[/] environment variables with tag: [bold]{result.tag}[/]"
        )
