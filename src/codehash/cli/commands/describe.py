"""describe command implementation."""

from pathlib import Path

import click

from codehash.cli.commands.shared import KIND_CHOICES
from codehash.cli.ensure import Ensure
from codehash.cli.output import machine_output, user_output
from codehash.core.context import CodehashContext
from codehash.core.descriptors import PAYMENT_MODELS, PaymentModel, build_app_info, dump_app_info
from codehash.core.sources import KindOption


@click.command("describe")
@click.argument("local_path", type=click.Path(file_okay=False, path_type=Path))
@click.option("--version-id", required=True, help="Version label, e.g. 0.0.1.")
@click.option(
    "--download-uri",
    "download_uris",
    multiple=True,
    required=True,
    help="Code artifact; repeat in digest order.",
)
@click.option("--abi-uri", "abi_uris", multiple=True, help="ABI artifact; repeat in order.")
@click.option(
    "--payment-model",
    type=click.Choice(PAYMENT_MODELS),
    default="free",
    show_default=True,
)
@click.option("--router-required", is_flag=True, help="Mark the app as requiring a router.")
@click.option(
    "--kind",
    type=click.Choice(KIND_CHOICES),
    default="auto",
    show_default=True,
    help="How to treat download URIs.",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the descriptor to this file instead of stdout.",
)
@click.pass_obj
def describe_cmd(
    ctx: CodehashContext,
    local_path: Path,
    version_id: str,
    download_uris: tuple[str, ...],
    abi_uris: tuple[str, ...],
    payment_model: PaymentModel,
    router_required: bool,
    kind: KindOption,
    output: Path | None,
) -> None:
    """Hash artifacts and print an AppInfo descriptor ready for the registry."""
    Ensure.invariant(bool(version_id.strip()), "--version-id cannot be blank")

    with Ensure.no_hard_failure():
        app_info = build_app_info(
            ctx,
            version_id=version_id,
            download_uris=download_uris,
            abi_uris=abi_uris,
            payment_model=payment_model,
            router_required=router_required,
            kind=kind,
            scratch_root=local_path,
        )

    document = dump_app_info(app_info)
    if output is None:
        machine_output(document)
        return

    try:
        output.write_text(document + "\n", encoding="utf-8")
    except OSError as e:
        Ensure.invariant(False, f"Cannot write {output}: {e.strerror or e}")
    user_output(f"Wrote descriptor for version {version_id} to {output}")
