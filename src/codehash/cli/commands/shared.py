"""Helpers shared by the hashing commands."""

import tempfile
from collections.abc import Sequence
from pathlib import Path

from codehash.core.context import CodehashContext
from codehash.core.sources import KindOption, build_sources
from codehash.core.verifier import ArtifactSetVerifier, VerificationResult

KIND_CHOICES = ("auto", "file", "repo")


def default_scratch_root() -> Path:
    """Scratch location used when neither the command line nor config gives one."""
    return Path(tempfile.gettempdir()) / "codehash"


def resolve_scratch_root(ctx: CodehashContext, explicit: Path | None) -> Path:
    if explicit is not None:
        return explicit
    if ctx.config.scratch_root is not None:
        return ctx.config.scratch_root
    return default_scratch_root()


def hash_references(
    ctx: CodehashContext,
    scratch_root: Path,
    references: Sequence[str],
    kind: KindOption,
) -> VerificationResult:
    """Hash references in the given order as one artifact set."""
    verifier = ArtifactSetVerifier(scratch_root, max_workers=ctx.config.max_workers)
    return verifier.run(build_sources(references, kind, ctx))
