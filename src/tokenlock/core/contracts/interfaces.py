"""
Collaborator Protocol Interfaces - what a vesting ledger needs from the outside.

The ledger depends on these protocols rather than on the concrete token and
registry classes. This enables:
- Swapping in another asset or registry implementation
- Easy test doubles (a failing value store, a recording registry)
- Calls expressed from the ledger's point of view, without a sender argument

Usage:
    store = BoundValueStore(token, ledger_address)
    registry = BoundDelegationRegistry(delegate_registry, ledger_address)

    store.transfer_from(depositor, ledger_address, 100)
    registry.set_delegate("tokenlock.vesting", beneficiary)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .delegate_registry import DelegateRegistry
    from .erc20 import ERC20Token


@runtime_checkable
class ValueStore(Protocol):
    """
    Protocol for the asset a ledger holds in custody.

    Calls run on the ledger's own authority. ``False`` or a raised
    ``ContractExecutionError`` means the movement did not happen.
    """

    def balance_of(self, account: str) -> int:
        """Get the balance held by ``account``."""
        ...

    def transfer_from(self, owner: str, to: str, amount: int) -> bool:
        """Pull ``amount`` from ``owner`` (needs an allowance for the ledger)."""
        ...

    def transfer(self, to: str, amount: int) -> bool:
        """Send ``amount`` out of the ledger's own balance."""
        ...


@runtime_checkable
class DelegationRegistry(Protocol):
    """Protocol for recording the ledger's voting delegate."""

    def set_delegate(self, namespace_key: str, delegate: str) -> bool:
        """Delegate the ledger's voting rights under ``namespace_key``."""
        ...


class BoundValueStore:
    """Presents an ``ERC20Token`` as a ``ValueStore`` acting as ``account``."""

    def __init__(self, token: "ERC20Token", account: str) -> None:
        self.token = token
        self.account = account.lower()

    def balance_of(self, account: str) -> int:
        return self.token.balance_of(account)

    def transfer_from(self, owner: str, to: str, amount: int) -> bool:
        return self.token.transfer_from(self.account, owner, to, amount)

    def transfer(self, to: str, amount: int) -> bool:
        return self.token.transfer(self.account, to, amount)

    def __repr__(self) -> str:
        return f"BoundValueStore(token={self.token.symbol}, account={self.account})"


class BoundDelegationRegistry:
    """Presents a ``DelegateRegistry`` as a ``DelegationRegistry`` acting as ``account``."""

    def __init__(self, registry: "DelegateRegistry", account: str) -> None:
        self.registry = registry
        self.account = account.lower()

    def set_delegate(self, namespace_key: str, delegate: str) -> bool:
        return self.registry.set_delegate(self.account, namespace_key, delegate)

    def __repr__(self) -> str:
        return f"BoundDelegationRegistry(registry={self.registry.address}, account={self.account})"
