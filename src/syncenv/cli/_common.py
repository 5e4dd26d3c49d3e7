"""Shared utilities for all CLI command modules.

Provides the Rich console instance, project loading, tag resolution,
and the error exit used by every command.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import NoReturn, Optional

import click
from rich.console import Console

from .. import CONFIG_FILE, git
from ..config import SyncEnvConfig, load_config
from ..errors import FileAccessError, SyncEnvError
from ..pipeline import SyncPipeline
from ..storage import create_store

console = Console()
logger = logging.getLogger("syncenv.cli")

config_option = click.option(
    "--config",
    "config_path",
    default=CONFIG_FILE,
    show_default=True,
    type=click.Path(dir_okay=False),
    help="Project configuration file.",
)


def fail(message: str, hint: Optional[str] = None) -> NoReturn:
    """Print an error (and optional hint) and exit 1."""
    console.print(f"[bold red]Error:[/] {message}")
    if hint:
        console.print(f"  [dim]{hint}[/]")
    sys.exit(1)


def load_project(config_path: str) -> SyncEnvConfig:
    """Load and validate the project config, exiting on failure."""
    try:
        config = load_config(Path(config_path))
    except FileAccessError as exc:
        fail(f"failed to load config: {exc}", "Run 'syncenv init' first.")
    except SyncEnvError as exc:
        fail(f"failed to load config: {exc}")

    try:
        config.ensure_valid()
    except SyncEnvError as exc:
        fail(f"invalid configuration: {exc}")
    return config


def confirm_prompt(message: str) -> bool:
    """Interactive confirmation used by pull and delete."""
    console.print(f"[yellow]WARNING:[/] {message}")
    return click.confirm("Continue?", default=False)


def make_pipeline(config: SyncEnvConfig) -> SyncPipeline:
    """Build the pipeline for a validated config."""
    try:
        store = create_store(config.storage)
    except SyncEnvError as exc:
        fail(f"failed to create storage client: {exc}")
    return SyncPipeline(config, store, confirm=confirm_prompt)


def resolve_tag(tag: Optional[str]) -> str:
    """Return the explicit tag, or derive one from Git."""
    if tag:
        console.print(f"Using explicit tag: [cyan]{tag}[/]")
        return tag
    try:
        version = git.current_version()
    except SyncEnvError as exc:
        fail(str(exc), "Use --tag to specify a version manually.")
    commit = git.commit_hash()
    suffix = f" [dim]({commit})[/]" if commit else ""
    console.print(f"Auto-detected version from Git: [cyan]{version}[/]{suffix}")
    return version


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
