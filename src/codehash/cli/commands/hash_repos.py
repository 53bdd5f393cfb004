"""hash-repos command implementation."""

from pathlib import Path

import click

from codehash.cli.commands.shared import hash_references
from codehash.cli.ensure import Ensure
from codehash.cli.output import machine_output
from codehash.core.context import CodehashContext


@click.command("hash-repos")
@click.argument("local_path", type=click.Path(file_okay=False, path_type=Path))
@click.argument("repo_urls", nargs=-1, required=True)
@click.pass_obj
def hash_repos_cmd(ctx: CodehashContext, local_path: Path, repo_urls: tuple[str, ...]) -> None:
    """Clone REPO_URLS in order and print the combined SHA-256 of their files.

    Within each repository, files are hashed in ascending order of their
    relative path; the .git directory is ignored. LOCAL_PATH is the scratch
    directory for clones and is left as it was found.
    """
    with Ensure.no_hard_failure():
        result = hash_references(ctx, local_path, repo_urls, "repo")
    machine_output(result.digest)
