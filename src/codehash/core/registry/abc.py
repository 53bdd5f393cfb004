"""Abstract interface to the NFA factory registry.

The registry itself lives on chain and is not implemented here. This
interface pins down the operations the publishing flow relies on so it can
be driven by any client that speaks to the contract.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from codehash.core.descriptors import AppInfo, VersionInfo


@dataclass(frozen=True)
class ContractCreatedEvent:
    """An NFAContractCreated log entry."""

    contract_address: str
    block_number: int


class Registry(ABC):
    """Operations consumed from the NFA factory contract."""

    @abstractmethod
    def create_nfa_contract(
        self,
        name: str,
        symbol: str,
        app_info: AppInfo,
        version_info: VersionInfo,
        owner_address: str,
    ) -> str:
        """Submit a createNFAContract transaction and wait for it to be mined.

        Returns:
            Transaction hash of the mined transaction

        Raises:
            RuntimeError: If the transaction fails or is reverted
        """
        ...

    @abstractmethod
    def get_app_info(self, contract_address: str) -> AppInfo:
        """Read the AppInfo stored by an NFA contract.

        Raises:
            KeyError: If no NFA contract exists at contract_address
        """
        ...

    @abstractmethod
    def query_created_events(self) -> list[ContractCreatedEvent]:
        """Return NFAContractCreated events, oldest first."""
        ...
