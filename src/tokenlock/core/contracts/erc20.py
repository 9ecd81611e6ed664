"""
ERC20 token used as the vesting value store.

Holds the balances that vesting ledgers take custody of and pay out:
- Balance and allowance queries
- transfer / approve / transferFrom with allowance accounting
- Owner-only minting with an optional supply cap, holder burning
- Transfer and Approval event log

Every state-changing call checks all of its preconditions before touching
any balance, so a rejected call leaves the token unchanged.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from ..exceptions import ContractExecutionError

logger = logging.getLogger(__name__)

UINT256_MAX = 2**256 - 1
ZERO_ADDRESS = "0x" + "0" * 40


def derive_address(*parts: str) -> str:
    """Derive a deterministic 20-byte hex address from string parts."""
    digest = hashlib.sha3_256(":".join(parts).encode()).digest()
    return f"0x{digest[-20:].hex()}"


@dataclass
class TokenEvent:
    """Represents an ERC20 event."""

    event_type: str  # "Transfer" or "Approval"
    from_address: str
    to_address: str
    value: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ERC20Token:
    """
    Fungible token with ERC20 semantics.

    ``sender`` / ``owner`` / ``spender`` arguments play the role of
    ``msg.sender``: the account on whose authority the call runs. Addresses
    are stored lowercase.
    """

    name: str
    symbol: str
    decimals: int = 18
    total_supply: int = 0
    address: str = ""
    owner: str = ""

    balances: dict[str, int] = field(default_factory=dict)
    allowances: dict[str, dict[str, int]] = field(default_factory=dict)
    events: list[TokenEvent] = field(default_factory=list)

    # 0 = unlimited
    max_supply: int = 0

    def __post_init__(self) -> None:
        self.owner = self._normalize(self.owner)
        if not self.address:
            self.address = derive_address("erc20", self.name, self.symbol, self.owner)
        self.address = self._normalize(self.address)

    # ==================== View Functions ====================

    def balance_of(self, account: str) -> int:
        """Get the token balance of an account."""
        return self.balances.get(self._normalize(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        """Get the amount ``spender`` may still move out of ``owner``."""
        return self.allowances.get(self._normalize(owner), {}).get(
            self._normalize(spender), 0
        )

    # ==================== State-Changing Functions ====================

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Move ``amount`` from sender to recipient. Zero-amount transfers succeed.

        Raises:
            ContractExecutionError: If the transfer is rejected
        """
        source, target = self._normalize(sender), self._normalize(recipient)
        self._validate_address(target, "recipient")
        self._validate_amount(amount)
        self._require_balance(source, amount, "transfer")

        self._debit(source, amount)
        self._credit(target, amount)
        self._emit_transfer(source, target, amount)
        self._log("erc20.transfer", source=source, target=target, amount=amount)
        return True

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """Set the allowance of ``spender`` over ``owner``'s tokens."""
        holder, grantee = self._normalize(owner), self._normalize(spender)
        self._validate_address(grantee, "spender")
        self._validate_amount(amount)

        self.allowances.setdefault(holder, {})[grantee] = amount
        self.events.append(TokenEvent("Approval", holder, grantee, amount))
        return True

    def transfer_from(
        self, spender: str, from_addr: str, to_addr: str, amount: int
    ) -> bool:
        """
        Move tokens out of ``from_addr`` on the spender's allowance.

        This is how a vesting ledger pulls a deposit: the depositor approves
        the ledger, then the ledger calls ``transfer_from`` as spender.
        ``UINT256_MAX`` allowances are never decremented.

        Raises:
            ContractExecutionError: If allowance or balance is insufficient
        """
        grantee = self._normalize(spender)
        source, target = self._normalize(from_addr), self._normalize(to_addr)
        self._validate_address(target, "recipient")
        self._validate_amount(amount)

        granted = self.allowance(source, grantee)
        if granted < amount:
            raise ContractExecutionError(
                f"ERC20: insufficient allowance ({granted} < {amount})",
                details={"owner": source, "spender": grantee},
            )
        self._require_balance(source, amount, "transfer")

        if granted != UINT256_MAX:
            self.allowances[source][grantee] = granted - amount
        self._debit(source, amount)
        self._credit(target, amount)
        self._emit_transfer(source, target, amount)
        self._log("erc20.transfer_from", source=source, target=target, amount=amount, spender=grantee)
        return True

    def increase_allowance(self, owner: str, spender: str, added_value: int) -> bool:
        """Raise an allowance, saturating at ``UINT256_MAX``."""
        self._validate_amount(added_value)
        return self.approve(owner, spender, min(self.allowance(owner, spender) + added_value, UINT256_MAX))

    def decrease_allowance(self, owner: str, spender: str, subtracted_value: int) -> bool:
        """Lower an allowance; going below zero is rejected."""
        self._validate_amount(subtracted_value)
        remaining = self.allowance(owner, spender) - subtracted_value
        if remaining < 0:
            raise ContractExecutionError("ERC20: decreased allowance below zero")
        return self.approve(owner, spender, remaining)

    # ==================== Supply ====================

    def mint(self, minter: str, to: str, amount: int) -> bool:
        """
        Create new tokens (owner only).

        Raises:
            ContractExecutionError: If caller is not owner or cap is exceeded
        """
        self._require_owner(minter)
        target = self._normalize(to)
        self._validate_address(target, "recipient")
        self._validate_amount(amount)

        new_supply = self.total_supply + amount
        if self.max_supply and new_supply > self.max_supply:
            raise ContractExecutionError(
                f"ERC20: mint would exceed max supply ({new_supply} > {self.max_supply})"
            )

        self.total_supply = new_supply
        self._credit(target, amount)
        self._emit_transfer(ZERO_ADDRESS, target, amount)
        self._log("erc20.mint", target=target, amount=amount, supply=new_supply, level=logging.INFO)
        return True

    def burn(self, holder: str, amount: int) -> bool:
        """Destroy tokens from the holder's own balance."""
        source = self._normalize(holder)
        self._validate_amount(amount)
        self._require_balance(source, amount, "burn")

        self._debit(source, amount)
        self.total_supply -= amount
        self._emit_transfer(source, ZERO_ADDRESS, amount)
        return True

    def transfer_ownership(self, caller: str, new_owner: str) -> bool:
        """Hand minting rights to another address (owner only)."""
        self._require_owner(caller)
        successor = self._normalize(new_owner)
        self._validate_address(successor, "new owner")
        self.owner = successor
        return True

    # ==================== Helpers ====================

    @staticmethod
    def _normalize(address: str) -> str:
        return address.lower()

    def _require_balance(self, account: str, amount: int, action: str) -> None:
        available = self.balances.get(account, 0)
        if available < amount:
            raise ContractExecutionError(
                f"ERC20: {action} amount exceeds balance ({amount} > {available})",
                details={"account": account, "balance": available},
            )

    def _debit(self, account: str, amount: int) -> None:
        self.balances[account] = self.balances.get(account, 0) - amount

    def _credit(self, account: str, amount: int) -> None:
        self.balances[account] = self.balances.get(account, 0) + amount

    @staticmethod
    def _validate_address(address: str, role: str) -> None:
        if not address or address == ZERO_ADDRESS:
            raise ContractExecutionError(f"ERC20: {role} is zero address")

    @staticmethod
    def _validate_amount(amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ContractExecutionError("ERC20: amount must be an integer")
        if not 0 <= amount <= UINT256_MAX:
            raise ContractExecutionError(
                "ERC20: amount cannot be negative" if amount < 0 else "ERC20: amount exceeds uint256"
            )

    def _require_owner(self, caller: str) -> None:
        if self._normalize(caller) != self.owner:
            raise ContractExecutionError("ERC20: caller is not owner")

    def _emit_transfer(self, source: str, target: str, amount: int) -> None:
        self.events.append(TokenEvent("Transfer", source, target, amount))

    def _log(self, event: str, *, level: int = logging.DEBUG, **fields: Any) -> None:
        short = {k: v[:10] if isinstance(v, str) else v for k, v in fields.items()}
        logger.log(level, "ERC20 %s", event.split(".", 1)[1], extra={"event": event, "token": self.symbol, **short})

    # ==================== Serialization ====================

    _SCALAR_FIELDS = ("name", "symbol", "decimals", "total_supply", "address", "owner", "max_supply")

    def to_dict(self) -> dict[str, Any]:
        """Token state for the deployment file. Events are not persisted; zero entries are dropped."""
        data: dict[str, Any] = {name: getattr(self, name) for name in self._SCALAR_FIELDS}
        data["balances"] = {account: value for account, value in self.balances.items() if value}
        data["allowances"] = {
            holder: {spender: value for spender, value in spenders.items() if value}
            for holder, spenders in self.allowances.items()
            if any(spenders.values())
        }
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ERC20Token":
        token = cls(**{name: data[name] for name in cls._SCALAR_FIELDS if name in data})
        token.balances = {account: int(value) for account, value in data.get("balances", {}).items()}
        token.allowances = {
            holder: {spender: int(value) for spender, value in spenders.items()}
            for holder, spenders in data.get("allowances", {}).items()
        }
        return token
