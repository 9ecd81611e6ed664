"""
Delegate registry.

Records, per delegator and namespace key, which account may exercise the
voting rights attached to the delegator's holdings. Namespaces let one
delegator pick different delegates for different governance spaces.
Custody is untouched; only the voting privilege is recorded.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from ..exceptions import ContractExecutionError
from .erc20 import ZERO_ADDRESS, derive_address

logger = logging.getLogger(__name__)


@dataclass
class DelegationEvent:
    """A SetDelegate or ClearDelegate event."""

    event_type: str
    delegator: str
    namespace: str
    delegate: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class DelegateRegistry:
    address: str = ""

    # delegator -> namespace -> delegate
    delegations: dict[str, dict[str, str]] = field(default_factory=dict)
    events: list[DelegationEvent] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.address:
            self.address = derive_address("delegate-registry")
        self.address = self.address.lower()

    def delegation(self, delegator: str, namespace: str) -> str:
        """Return the delegate for ``delegator`` in ``namespace`` (zero address if unset)."""
        return self.delegations.get(delegator.lower(), {}).get(namespace, ZERO_ADDRESS)

    def set_delegate(self, delegator: str, namespace: str, delegate: str) -> bool:
        """
        Record ``delegate`` for ``delegator`` (msg.sender) under ``namespace``.

        Raises:
            ContractExecutionError: On self delegation or an unchanged delegate
        """
        delegator_norm = delegator.lower()
        delegate_norm = delegate.lower()

        if not delegate_norm or delegate_norm == ZERO_ADDRESS:
            raise ContractExecutionError("DelegateRegistry: delegate is zero address")
        if delegate_norm == delegator_norm:
            raise ContractExecutionError("DelegateRegistry: can't delegate to self")
        if self.delegation(delegator_norm, namespace) == delegate_norm:
            raise ContractExecutionError(
                "DelegateRegistry: already delegated to this address"
            )

        self.delegations.setdefault(delegator_norm, {})[namespace] = delegate_norm
        self.events.append(
            DelegationEvent("SetDelegate", delegator_norm, namespace, delegate_norm)
        )
        logger.info(
            "Delegate set",
            extra={
                "event": "delegation.set",
                "delegator": delegator_norm[:10],
                "namespace": namespace,
                "delegate": delegate_norm[:10],
            },
        )
        return True

    def clear_delegate(self, delegator: str, namespace: str) -> bool:
        """Remove the delegation of ``delegator`` under ``namespace``."""
        delegator_norm = delegator.lower()
        current = self.delegation(delegator_norm, namespace)
        if current == ZERO_ADDRESS:
            raise ContractExecutionError("DelegateRegistry: no delegate set")

        del self.delegations[delegator_norm][namespace]
        if not self.delegations[delegator_norm]:
            del self.delegations[delegator_norm]
        self.events.append(
            DelegationEvent("ClearDelegate", delegator_norm, namespace, current)
        )
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "delegations": {k: dict(v) for k, v in self.delegations.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DelegateRegistry":
        return cls(
            address=data.get("address", ""),
            delegations={k: dict(v) for k, v in data.get("delegations", {}).items()},
        )
