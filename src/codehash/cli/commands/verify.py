"""verify command implementation."""

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from codehash.cli.commands.shared import KIND_CHOICES, resolve_scratch_root
from codehash.cli.ensure import Ensure
from codehash.cli.output import machine_output
from codehash.core.context import CodehashContext
from codehash.core.descriptors import VersionInfo, load_version_info, verify_version
from codehash.core.sources import KindOption
from codehash.core.verifier import VerificationResult, Verdict

# Exit code for a completed run whose digest differs from the commitment
MISMATCH_EXIT_CODE = 3


def _render_summary(version_info: VersionInfo, result: VerificationResult) -> None:
    table = Table(show_header=False, box=None)
    table.add_column("field", style="bold", no_wrap=True)
    table.add_column("value")

    table.add_row("version", version_info.version_id)
    for index, uri in enumerate(version_info.download_uris):
        table.add_row(f"source #{index}", uri)
    table.add_row("bytes hashed", str(result.bytes_hashed))
    table.add_row("committed", f"[cyan]{version_info.code_hash}[/cyan]")
    table.add_row("computed", f"[cyan]{result.digest}[/cyan]")
    if result.verdict is Verdict.MATCH:
        table.add_row("verdict", "[green]✅ match[/green]")
    else:
        table.add_row("verdict", "[red]❌ mismatch[/red]")

    # Output table to stderr (consistent with user_output convention)
    console = Console(stderr=True, width=200)
    console.print(table)


@click.command("verify")
@click.argument("descriptor", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--scratch",
    "scratch",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Scratch directory (default: config scratch_root, then the system temp dir).",
)
@click.option(
    "--kind",
    type=click.Choice(KIND_CHOICES),
    default="auto",
    show_default=True,
    help="How to treat downloadURIs: remote files, repositories, or detect per URI.",
)
@click.pass_obj
def verify_cmd(
    ctx: CodehashContext, descriptor: Path, scratch: Path | None, kind: KindOption
) -> None:
    """Re-hash a published version and compare it with its codeHash.

    DESCRIPTOR is a JSON file holding an AppInfo or a VersionInfo in registry
    encoding. Prints MATCH or MISMATCH on stdout; exits 0 on match and 3 on
    mismatch.
    """
    with Ensure.no_hard_failure():
        version_info = load_version_info(descriptor)
        result = verify_version(
            ctx,
            version_info,
            kind=kind,
            scratch_root=resolve_scratch_root(ctx, scratch),
        )

    _render_summary(version_info, result)
    machine_output(result.verdict.value.upper())
    if not result.matched:
        raise SystemExit(MISMATCH_EXIT_CODE)
