"""Project setup command: init."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click
from rich.panel import Panel

from .. import crypto
from ..config import (
    REQUIRED_FIELDS,
    EncryptionConfig,
    StorageConfig,
    StorageType,
    SyncEnvConfig,
    save_config,
)
from ..errors import SyncEnvError
from ._common import config_option, console, fail

# Prompt text for each backend field, in REQUIRED_FIELDS order.
FIELD_PROMPTS = {
    "bucket": "S3 bucket name",
    "region": "AWS region (e.g. us-west-2)",
    "account_name": "Azure storage account name",
    "container_name": "Container name",
    "project_id": "GCS project ID",
    "bucket_name": "GCS bucket name",
    "path": "Storage directory",
}


def register_setup_commands(main: click.Group) -> None:
    """Register the init command."""

    @main.command("init")
    @config_option
    @click.option(
        "--storage", "storage_type",
        type=click.Choice([t.value for t in StorageType]),
        default=None, help="Storage backend.",
    )
    @click.option("--bucket", default=None, help="S3 bucket.")
    @click.option("--region", default=None, help="S3 region.")
    @click.option("--account-name", default=None, help="Azure storage account.")
    @click.option("--container-name", default=None, help="Azure container.")
    @click.option("--project-id", default=None, help="GCS project ID.")
    @click.option("--bucket-name", default=None, help="GCS bucket.")
    @click.option("--path", "local_path", default=None, help="Directory for local storage.")
    @click.option("--prefix", default=None, help="Key prefix inside the bucket/container.")
    @click.option(
        "--env-file", "env_files", multiple=True,
        help="Env file to manage (repeat for several). Default: .env",
    )
    @click.option("--encrypt/--no-encrypt", default=None, help="Encrypt stored versions.")
    @click.option(
        "--key-file", default=None, type=click.Path(dir_okay=False),
        help="Write the generated key to this file instead of the config.",
    )
    @click.option("--force", "-f", is_flag=True, help="Overwrite an existing config.")
    def init(
        config_path: str,
        storage_type: Optional[str],
        bucket: Optional[str],
        region: Optional[str],
        account_name: Optional[str],
        container_name: Optional[str],
        project_id: Optional[str],
        bucket_name: Optional[str],
        local_path: Optional[str],
        prefix: Optional[str],
        env_files: tuple[str, ...],
        encrypt: Optional[bool],
        key_file: Optional[str],
        force: bool,
    ):
        """Create a .syncenv.yml for this project.

        Anything not given as an option is asked for interactively.
        With encryption on, a new AES-256 key is generated and stored
        in the config (or in --key-file).

        Examples:

            syncenv init

            syncenv init --storage s3 --bucket team-envs --region us-west-2 --encrypt
        """
        target = Path(config_path)
        if target.exists() and not force:
            if not click.confirm(
                f"Configuration file {target} already exists. Overwrite?", default=False
            ):
                console.print("Initialization cancelled.")
                return

        if storage_type is None:
            storage_type = click.prompt(
                "Storage type",
                type=click.Choice([t.value for t in StorageType]),
            )
        kind = StorageType(storage_type)

        given = {
            "bucket": bucket,
            "region": region,
            "account_name": account_name,
            "container_name": container_name,
            "project_id": project_id,
            "bucket_name": bucket_name,
            "path": local_path,
        }
        fields = {}
        for name in REQUIRED_FIELDS[kind]:
            fields[name] = given[name] or click.prompt(FIELD_PROMPTS[name])

        if prefix is None:
            prefix = click.prompt(
                "Storage path prefix (optional)", default="", show_default=False
            )

        files = list(env_files)
        if not files:
            answer = click.prompt(
                "Environment file path (comma-separated for multiple)", default=".env"
            )
            files = [f.strip() for f in answer.split(",") if f.strip()]

        if encrypt is None:
            encrypt = click.confirm("Enable encryption?", default=True)

        encryption = EncryptionConfig(enabled=encrypt)
        try:
            if encrypt:
                key = crypto.generate_key()
                if key_file:
                    # Relative key files resolve against the config's directory.
                    key_path = Path(key_file)
                    if not key_path.is_absolute():
                        key_path = target.parent / key_path
                    crypto.save_key(key_path, key)
                    encryption.key_file = Path(key_file)
                else:
                    encryption.key = crypto.encode_key(key)

            config = SyncEnvConfig(
                storage=StorageConfig(type=kind, prefix=prefix.strip(), **fields),
                encryption=encryption,
                env_files=files,
                config_dir=target.resolve().parent,
            )
            config.ensure_valid()
            saved = save_config(config, target)
        except SyncEnvError as exc:
            fail(str(exc))

        key_note = ""
        if encrypt:
            where = key_file or str(saved)
            key_note = f"\nKey: [green]generated[/] -> [cyan]{where}[/]"

        console.print(Panel(
            f"Storage: [cyan]{kind.value}[/]\n"
            f"Files: {', '.join(files)}\n"
            f"Encryption: {'[green]on[/]' if encrypt else '[yellow]off[/]'}"
            f"{key_note}",
            title=f"Configuration saved to {saved}",
            border_style="green",
        ))
        console.print("Next steps:")
        console.print("  - [cyan]syncenv push[/]  upload your environment files")
        console.print("  - [cyan]syncenv pull[/]  download them for the current version")
        console.print("  - [cyan]syncenv list[/]  see all stored versions")
