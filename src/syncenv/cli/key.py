"""Key commands: generate, export."""

from __future__ import annotations

from typing import Optional

import click

from .. import crypto
from ..errors import SyncEnvError
from ._common import config_option, console, fail, load_project


def register_key_commands(main: click.Group) -> None:
    """Register the key command group."""

    @main.group()
    def key():
        """Encryption key management.

        Keys are 32 random bytes stored as 64 hex characters. Share the
        key with teammates out of band; without it stored versions
        cannot be read.
        """

    @key.command("generate")
    @click.option(
        "--output", "-o", default=None, type=click.Path(dir_okay=False),
        help="Write the key to this file (mode 0600) instead of stdout.",
    )
    def key_generate(output: Optional[str]):
        """Generate a new random encryption key."""
        new_key = crypto.generate_key()
        if output:
            try:
                crypto.save_key(output, new_key)
            except SyncEnvError as exc:
                fail(str(exc))
            console.print(f"[green]Key written to[/] [cyan]{output}[/]")
            return
        click.echo(crypto.encode_key(new_key))

    @key.command("export")
    @config_option
    @click.option(
        "--output", "-o", default=None, type=click.Path(dir_okay=False),
        help="Write the key to this file (mode 0600) instead of stdout.",
    )
    def key_export(config_path: str, output: Optional[str]):
        """Print (or save) the project's configured key."""
        config = load_project(config_path)
        try:
            current = config.resolve_key()
        except SyncEnvError as exc:
            fail(str(exc))
        if current is None:
            fail("no encryption key is configured")

        if output:
            try:
                crypto.save_key(output, current)
            except SyncEnvError as exc:
                fail(str(exc))
            console.print(f"[green]Key written to[/] [cyan]{output}[/]")
            return
        click.echo(crypto.encode_key(current))
