"""
tokenlock contracts.

This module provides:
- ERC20: Fungible token used as the vested asset
- DelegateRegistry: Namespaced voting delegation records
- VestingLedger: Single-beneficiary linear vesting with restart-on-claim
- Protocols and adapters connecting the ledger to its collaborators
"""

from .delegate_registry import DelegateRegistry, DelegationEvent
from .erc20 import UINT256_MAX, ZERO_ADDRESS, ERC20Token, TokenEvent
from .interfaces import (
    BoundDelegationRegistry,
    BoundValueStore,
    DelegationRegistry,
    ValueStore,
)
from .vesting_ledger import (
    DEFAULT_DELEGATION_NAMESPACE,
    LedgerEvent,
    VestingLedger,
    VestingLedgerFactory,
    VestingStatus,
)

__all__ = [
    # Value store
    "ERC20Token",
    "TokenEvent",
    "UINT256_MAX",
    "ZERO_ADDRESS",
    # Delegation
    "DelegateRegistry",
    "DelegationEvent",
    # Collaborator protocols
    "ValueStore",
    "DelegationRegistry",
    "BoundValueStore",
    "BoundDelegationRegistry",
    # Vesting
    "DEFAULT_DELEGATION_NAMESPACE",
    "LedgerEvent",
    "VestingLedger",
    "VestingLedgerFactory",
    "VestingStatus",
]
