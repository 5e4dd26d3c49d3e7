"""
syncenv CLI -- version-controlled environment files.

This package organizes the CLI into modular command groups.
Each group lives in its own module; the main Click group is defined
here and every module registers its commands onto it.

Entry point: syncenv.cli:main
"""

from __future__ import annotations

import click

from .. import __version__
from ._common import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="syncenv")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """syncenv -- sync environment files with cloud storage.

    Stores your .env files tagged with the current Git tag or branch
    in S3, Azure Blob Storage, Google Cloud Storage, or a local
    directory, optionally encrypted with AES-256-GCM.
    """
    setup_logging(verbose)


# ---------------------------------------------------------------------------
# Register all command groups/commands from modular files
# ---------------------------------------------------------------------------

from .setup import register_setup_commands
from .sync_cmd import register_sync_commands
from .versions import register_versions_commands
from .key import register_key_commands

register_setup_commands(main)
register_sync_commands(main)
register_versions_commands(main)
register_key_commands(main)
