"""In-memory registry for testing."""

from codehash.core.descriptors import AppInfo, VersionInfo
from codehash.core.registry.abc import ContractCreatedEvent, Registry


class FakeRegistry(Registry):
    """In-memory fake that assigns sequential contract addresses.

    State is provided via constructor or captured during execution.
    """

    def __init__(
        self,
        *,
        contracts: dict[str, AppInfo] | None = None,
        should_fail: bool = False,
    ) -> None:
        """Create FakeRegistry.

        Args:
            contracts: Pre-existing contracts (address -> AppInfo); they emit
                no creation events
            should_fail: If True, create_nfa_contract raises RuntimeError
        """
        self._contracts: dict[str, AppInfo] = dict(contracts or {})
        self._events: list[ContractCreatedEvent] = []
        self._should_fail = should_fail
        self._created: list[tuple[str, str, AppInfo, VersionInfo, str]] = []

    @property
    def created(self) -> list[tuple[str, str, AppInfo, VersionInfo, str]]:
        """(name, symbol, app_info, version_info, owner) per successful create call."""
        return list(self._created)

    def create_nfa_contract(
        self,
        name: str,
        symbol: str,
        app_info: AppInfo,
        version_info: VersionInfo,
        owner_address: str,
    ) -> str:
        if self._should_fail:
            raise RuntimeError("Failed to create NFA contract\nreason: execution reverted")

        sequence = len(self._events) + 1
        address = f"0x{sequence:040x}"
        # The contract stores the versionInfo argument alongside appInfo
        stored = AppInfo(
            router_required=app_info.router_required,
            payment_model=app_info.payment_model,
            version_info=version_info,
        )
        self._contracts[address] = stored
        self._events.append(ContractCreatedEvent(contract_address=address, block_number=sequence))
        self._created.append((name, symbol, app_info, version_info, owner_address))
        return f"0x{sequence:064x}"

    def get_app_info(self, contract_address: str) -> AppInfo:
        if contract_address not in self._contracts:
            raise KeyError(f"No NFA contract at {contract_address}")
        return self._contracts[contract_address]

    def query_created_events(self) -> list[ContractCreatedEvent]:
        return list(self._events)
