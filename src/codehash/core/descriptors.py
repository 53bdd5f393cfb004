"""Version and application descriptors carrying the code commitment.

VersionInfo and AppInfo are immutable value records. Publishing new content
means building a new VersionInfo; existing records are never modified.

Registry encoding follows the NFA contract: camelCase field names, digests as
``0x``-prefixed 32-byte hex, the zero hash when no ABI digest exists, and
``[""]`` for an empty ABI URI list.
"""

import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, cast

from codehash.core.context import CodehashContext
from codehash.core.digest import normalize_hex_digest
from codehash.core.sources import KindOption, build_source, build_sources
from codehash.core.verifier import ArtifactSetVerifier, VerificationResult
from codehash.errors import ConfigurationError, VersionIdReuseError

logger = logging.getLogger(__name__)

PaymentModel = Literal["free", "paid"]
PAYMENT_MODELS: tuple[PaymentModel, ...] = ("free", "paid")

ZERO_HASH = "0" * 64


def _to_registry_hex(digest: str) -> str:
    return f"0x{digest}"


@dataclass(frozen=True)
class VersionInfo:
    """One published version of an application's code.

    download_uris order defines digest input order, and likewise abi_uris for
    abi_hash. code_hash and abi_hash entries are lowercase hex without 0x.
    """

    version_id: str
    download_uris: tuple[str, ...]
    code_hash: str
    abi_uris: tuple[str, ...] = ()
    abi_hash: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.version_id.strip():
            raise ConfigurationError("versionId cannot be empty")
        if not self.download_uris:
            raise ConfigurationError(
                f"Version '{self.version_id}' asserts a code hash but has no download URIs"
            )
        if any(not uri for uri in self.download_uris):
            raise ConfigurationError(f"Version '{self.version_id}' has an empty download URI")

        # Frozen: normalize through object.__setattr__
        object.__setattr__(self, "download_uris", tuple(self.download_uris))
        object.__setattr__(self, "abi_uris", tuple(self.abi_uris))
        object.__setattr__(
            self, "code_hash", normalize_hex_digest(self.code_hash, label="codeHash")
        )
        object.__setattr__(
            self,
            "abi_hash",
            tuple(normalize_hex_digest(value, label="abiHash") for value in self.abi_hash),
        )

    def to_registry_dict(self) -> dict[str, Any]:
        """Encode with the contract's field names and hex conventions."""
        abi_hash: str | list[str]
        if not self.abi_hash:
            abi_hash = _to_registry_hex(ZERO_HASH)
        elif len(self.abi_hash) == 1:
            abi_hash = _to_registry_hex(self.abi_hash[0])
        else:
            abi_hash = [_to_registry_hex(value) for value in self.abi_hash]

        return {
            "versionId": self.version_id,
            "downloadURIs": list(self.download_uris),
            "codeHash": _to_registry_hex(self.code_hash),
            "abiURIs": list(self.abi_uris) if self.abi_uris else [""],
            "abiHash": abi_hash,
        }

    @staticmethod
    def from_registry_dict(data: Mapping[str, Any]) -> "VersionInfo":
        """Decode a registry-encoded version record.

        Raises:
            ConfigurationError: If a required field is missing or malformed
        """
        for key in ("versionId", "downloadURIs", "codeHash"):
            if key not in data:
                raise ConfigurationError(f"Version descriptor is missing '{key}'")

        raw_abi_hash = data.get("abiHash")
        if raw_abi_hash is None:
            abi_hash: tuple[str, ...] = ()
        elif isinstance(raw_abi_hash, str):
            abi_hash = (raw_abi_hash,)
        else:
            abi_hash = tuple(str(value) for value in raw_abi_hash)
        abi_hash = tuple(
            value for value in abi_hash if normalize_hex_digest(value, label="abiHash") != ZERO_HASH
        )

        return VersionInfo(
            version_id=str(data["versionId"]),
            download_uris=_string_tuple(data["downloadURIs"], "downloadURIs"),
            code_hash=str(data["codeHash"]),
            abi_uris=tuple(uri for uri in _string_tuple(data.get("abiURIs", []), "abiURIs") if uri),
            abi_hash=abi_hash,
        )


def _string_tuple(value: object, field: str) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, Sequence):
        raise ConfigurationError(f"'{field}' must be a list of strings, got {value!r}")
    return tuple(str(item) for item in value)


@dataclass(frozen=True)
class AppInfo:
    """Application metadata owning exactly one VersionInfo."""

    router_required: bool
    payment_model: PaymentModel
    version_info: VersionInfo

    def __post_init__(self) -> None:
        if self.payment_model not in PAYMENT_MODELS:
            raise ConfigurationError(
                f"paymentModel must be one of {', '.join(PAYMENT_MODELS)}, "
                f"got {self.payment_model!r}"
            )

    def to_registry_dict(self) -> dict[str, Any]:
        return {
            "routerRequired": self.router_required,
            "paymentModel": self.payment_model,
            "versionInfo": self.version_info.to_registry_dict(),
        }

    @staticmethod
    def from_registry_dict(data: Mapping[str, Any]) -> "AppInfo":
        if "versionInfo" not in data:
            raise ConfigurationError("App descriptor is missing 'versionInfo'")
        router_required = data.get("routerRequired", False)
        if not isinstance(router_required, bool):
            raise ConfigurationError(
                f"'routerRequired' must be true or false, got {router_required!r}"
            )
        return AppInfo(
            router_required=router_required,
            payment_model=cast(PaymentModel, str(data.get("paymentModel", "free"))),
            version_info=VersionInfo.from_registry_dict(data["versionInfo"]),
        )


def dump_app_info(app_info: AppInfo) -> str:
    """Serialize to indented JSON in registry encoding."""
    return json.dumps(app_info.to_registry_dict(), indent=2)


def _read_descriptor(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Cannot read descriptor {path}: {e.strerror or e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Descriptor {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Descriptor {path} must contain a JSON object")
    return data


def load_app_info(path: Path) -> AppInfo:
    """Load an AppInfo written by dump_app_info.

    Raises:
        ConfigurationError: If the file is unreadable, not JSON, or malformed
    """
    return AppInfo.from_registry_dict(_read_descriptor(path))


def load_version_info(path: Path) -> VersionInfo:
    """Load a VersionInfo from a JSON file holding an AppInfo or a bare VersionInfo.

    Raises:
        ConfigurationError: If the file is unreadable, not JSON, or malformed
    """
    data = _read_descriptor(path)
    if "versionInfo" in data:
        return AppInfo.from_registry_dict(data).version_info
    return VersionInfo.from_registry_dict(data)


def _require_scratch_root(ctx: CodehashContext, scratch_root: Path | None) -> Path:
    root = scratch_root if scratch_root is not None else ctx.config.scratch_root
    if root is None:
        raise ConfigurationError(
            "No scratch directory given; pass one explicitly or set scratch_root in config"
        )
    return root


def compute_abi_hashes(
    ctx: CodehashContext,
    abi_uris: Sequence[str],
    *,
    kind: KindOption = "file",
    scratch_root: Path | None = None,
) -> tuple[str, ...]:
    """Hash each ABI artifact on its own, preserving abi_uris order."""
    verifier = ArtifactSetVerifier(
        _require_scratch_root(ctx, scratch_root), max_workers=ctx.config.max_workers
    )
    return tuple(verifier.run([build_source(uri, kind, ctx)]).digest for uri in abi_uris)


def build_version_info(
    *,
    version_id: str,
    download_uris: Sequence[str],
    code_result: VerificationResult,
    abi_uris: Sequence[str] = (),
    abi_hash: Sequence[str] = (),
) -> VersionInfo:
    """Create a VersionInfo from a computed digest and supplied metadata."""
    return VersionInfo(
        version_id=version_id,
        download_uris=tuple(download_uris),
        code_hash=code_result.digest,
        abi_uris=tuple(abi_uris),
        abi_hash=tuple(abi_hash),
    )


def build_app_info(
    ctx: CodehashContext,
    *,
    version_id: str,
    download_uris: Sequence[str],
    abi_uris: Sequence[str] = (),
    payment_model: PaymentModel = "free",
    router_required: bool = False,
    kind: KindOption = "auto",
    scratch_root: Path | None = None,
) -> AppInfo:
    """Hash code and ABI artifacts and assemble the descriptor.

    Every digest is computed before anything is constructed, so a hard
    failure never yields a partial descriptor.
    """
    root = _require_scratch_root(ctx, scratch_root)
    if payment_model not in PAYMENT_MODELS:
        raise ConfigurationError(
            f"paymentModel must be one of {', '.join(PAYMENT_MODELS)}, got {payment_model!r}"
        )

    verifier = ArtifactSetVerifier(root, max_workers=ctx.config.max_workers)
    code_result = verifier.run(build_sources(download_uris, kind, ctx))
    abi_hash = compute_abi_hashes(ctx, abi_uris, scratch_root=root)

    version_info = build_version_info(
        version_id=version_id,
        download_uris=download_uris,
        code_result=code_result,
        abi_uris=abi_uris,
        abi_hash=abi_hash,
    )
    return AppInfo(
        router_required=router_required,
        payment_model=payment_model,
        version_info=version_info,
    )


def with_new_code(
    previous: VersionInfo,
    *,
    version_id: str,
    code_result: VerificationResult,
    download_uris: Sequence[str] | None = None,
) -> VersionInfo:
    """Build the successor of previous for new code; previous is left untouched.

    Raises:
        VersionIdReuseError: If version_id is reused for a different digest
    """
    candidate = VersionInfo(
        version_id=version_id,
        download_uris=tuple(download_uris) if download_uris is not None else previous.download_uris,
        code_hash=code_result.digest,
        abi_uris=previous.abi_uris,
        abi_hash=previous.abi_hash,
    )
    check_version_id_reuse(previous, candidate)
    return candidate


def check_version_id_reuse(previous: VersionInfo, candidate: VersionInfo) -> None:
    """Reject a version label that is reused for different code.

    Republishing identical content under the same label is allowed.

    Raises:
        VersionIdReuseError: Same version_id, different code_hash
    """
    if previous.version_id == candidate.version_id and previous.code_hash != candidate.code_hash:
        raise VersionIdReuseError(
            version_id=candidate.version_id,
            existing_hash=previous.code_hash,
            new_hash=candidate.code_hash,
        )


def verify_version(
    ctx: CodehashContext,
    version_info: VersionInfo,
    *,
    kind: KindOption = "auto",
    scratch_root: Path | None = None,
) -> VerificationResult:
    """Re-hash a version's download URIs and compare with its code hash.

    A mismatch is reported through the result's verdict.
    """
    verifier = ArtifactSetVerifier(
        _require_scratch_root(ctx, scratch_root), max_workers=ctx.config.max_workers
    )
    result = verifier.run(
        build_sources(version_info.download_uris, kind, ctx),
        expected=version_info.code_hash,
    )
    logger.debug(
        "Version %s: computed %s, committed %s -> %s",
        version_info.version_id,
        result.digest,
        version_info.code_hash,
        result.verdict.value,
    )
    return result
