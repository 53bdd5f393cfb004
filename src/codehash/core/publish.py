"""Build descriptors from computed digests and submit them to the registry."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from codehash.core.context import CodehashContext
from codehash.core.descriptors import AppInfo, PaymentModel, build_app_info, check_version_id_reuse
from codehash.core.registry.abc import Registry
from codehash.core.sources import KindOption
from codehash.errors import ConfigurationError

logger = logging.getLogger(__name__)

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


@dataclass(frozen=True)
class PublishRequest:
    """Everything needed to publish one NFA version."""

    name: str
    symbol: str
    owner_address: str
    version_id: str
    download_uris: tuple[str, ...]
    abi_uris: tuple[str, ...] = ()
    payment_model: PaymentModel = "free"
    router_required: bool = False
    kind: KindOption = "auto"
    supersedes: str | None = None  # address of the contract holding the previous version


@dataclass(frozen=True)
class PublishResult:
    contract_address: str
    transaction_hash: str
    app_info: AppInfo


def _validate_request(request: PublishRequest) -> None:
    if not request.name.strip():
        raise ConfigurationError("NFA name cannot be empty")
    if not request.symbol.strip():
        raise ConfigurationError("NFA symbol cannot be empty")
    if not ADDRESS_PATTERN.match(request.owner_address):
        raise ConfigurationError(
            f"Owner address is not a 0x-prefixed 20-byte hex address: {request.owner_address!r}"
        )
    if request.supersedes is not None and not ADDRESS_PATTERN.match(request.supersedes):
        raise ConfigurationError(
            f"Superseded contract is not a 0x-prefixed 20-byte hex address: {request.supersedes!r}"
        )
    if not request.download_uris:
        raise ConfigurationError("At least one download URI is required to publish")


def publish_version(
    ctx: CodehashContext,
    registry: Registry,
    request: PublishRequest,
    *,
    scratch_root: Path | None = None,
) -> PublishResult:
    """Hash the artifacts, build the descriptor and create the NFA contract.

    The registry is only called once every digest is known and the
    version-reuse policy has passed, so a failed run submits nothing.

    Raises:
        ConfigurationError: Invalid request or unknown superseded contract
        VersionIdReuseError: versionId already used for different code
        NetworkError, FilesystemError: Hashing failed
        RuntimeError: The registry rejected the transaction or emitted no event
    """
    _validate_request(request)

    previous = None
    if request.supersedes is not None:
        try:
            previous = registry.get_app_info(request.supersedes).version_info
        except KeyError as e:
            raise ConfigurationError(f"No NFA contract found at {request.supersedes}") from e

    app_info = build_app_info(
        ctx,
        version_id=request.version_id,
        download_uris=request.download_uris,
        abi_uris=request.abi_uris,
        payment_model=request.payment_model,
        router_required=request.router_required,
        kind=request.kind,
        scratch_root=scratch_root,
    )
    if previous is not None:
        check_version_id_reuse(previous, app_info.version_info)

    known_events = len(registry.query_created_events())
    transaction_hash = registry.create_nfa_contract(
        request.name,
        request.symbol,
        app_info,
        app_info.version_info,
        request.owner_address,
    )
    logger.debug("createNFAContract mined: %s", transaction_hash)

    events = registry.query_created_events()
    if len(events) <= known_events:
        raise RuntimeError(
            f"Transaction {transaction_hash} emitted no NFAContractCreated event"
        )

    return PublishResult(
        contract_address=events[-1].contract_address,
        transaction_hash=transaction_hash,
        app_info=app_info,
    )
