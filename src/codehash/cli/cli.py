import logging
import os
from dataclasses import replace

import click

from codehash import __version__
from codehash.cli.commands.describe import describe_cmd
from codehash.cli.commands.hash_files import hash_files_cmd
from codehash.cli.commands.hash_repos import hash_repos_cmd
from codehash.cli.commands.verify import verify_cmd
from codehash.cli.ensure import Ensure
from codehash.core.context import CodehashContext, create_context

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])  # terse help flags

DEBUG_FORMAT = "[DEBUG %(name)s:%(lineno)d] %(message)s"


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name="codehash")
@click.option("--debug", is_flag=True, help="Enable debug logging (or set CODEHASH_DEBUG=1).")
@click.option(
    "-j",
    "--jobs",
    type=click.IntRange(min=1),
    default=None,
    help="Fetch up to N sources concurrently. Digest order is unaffected.",
)
@click.pass_context
def cli(ctx: click.Context, debug: bool, jobs: int | None) -> None:
    """Compute and verify content hashes for published NFA code."""
    if debug or os.getenv("CODEHASH_DEBUG"):
        logging.basicConfig(level=logging.DEBUG, format=DEBUG_FORMAT)

    # Only create context if not already provided (e.g., by tests)
    if ctx.obj is None:
        with Ensure.no_hard_failure():
            ctx.obj = create_context(max_workers=jobs)
    elif jobs is not None:
        existing: CodehashContext = ctx.obj
        ctx.obj = replace(existing, config=replace(existing.config, max_workers=jobs))


cli.add_command(describe_cmd)
cli.add_command(hash_files_cmd)
cli.add_command(hash_repos_cmd)
cli.add_command(verify_cmd)


def main() -> None:
    """CLI entry point used by the `codehash` console script."""
    cli()
