"""hash-files command implementation."""

from pathlib import Path

import click

from codehash.cli.commands.shared import hash_references
from codehash.cli.ensure import Ensure
from codehash.cli.output import machine_output
from codehash.core.context import CodehashContext


@click.command("hash-files")
@click.argument("local_path", type=click.Path(file_okay=False, path_type=Path))
@click.argument("uris", nargs=-1, required=True)
@click.pass_obj
def hash_files_cmd(ctx: CodehashContext, local_path: Path, uris: tuple[str, ...]) -> None:
    """Download URIS in order and print their combined SHA-256.

    LOCAL_PATH is the scratch directory for downloads. Nothing written there
    survives the run.
    """
    with Ensure.no_hard_failure():
        result = hash_references(ctx, local_path, uris, "file")
    machine_output(result.digest)
