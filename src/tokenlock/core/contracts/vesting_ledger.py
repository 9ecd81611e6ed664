"""
Linear vesting ledger for a single beneficiary.

A ledger takes custody of tokens deposited by one authorized depositor and
releases them linearly to one fixed beneficiary:
- deposit: pulls tokens in and sets (never shortens) the vesting end
- claim: pays out whatever has matured, then restarts the schedule so the
  remaining balance vests from now until the same end
- currently_claimable: read-only view of what a claim would pay right now

On construction the ledger delegates the voting rights of the tokens it
holds to the beneficiary in the delegate registry. That delegation is never
changed afterwards.

Accounting is restart-on-claim: there is no withdrawn-amount counter. The
claimable amount is a pure function of (balance, vesting_start, vesting_end,
now), which rules out double claims without a second ledger of withdrawals.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from ..exceptions import (
    BeneficiaryMismatch,
    ContractExecutionError,
    TransferFailure,
    UnauthorizedDepositor,
    VestingPeriodDecrease,
)
from .delegate_registry import DelegateRegistry
from .erc20 import ZERO_ADDRESS, ERC20Token, derive_address
from .interfaces import (
    BoundDelegationRegistry,
    BoundValueStore,
    DelegationRegistry,
    ValueStore,
)

logger = logging.getLogger(__name__)

DEFAULT_DELEGATION_NAMESPACE = "tokenlock.vesting"


class VestingStatus(Enum):
    UNINITIALIZED = "uninitialized"
    VESTING = "vesting"
    MATURED = "matured"


@dataclass
class LedgerEvent:
    """A Deposit or Claim recorded by a ledger."""

    event_type: str
    caller: str
    amount: int
    vesting_start: int | None
    vesting_end: int
    timestamp: int = 0


@dataclass
class _ScheduleSnapshot:
    vesting_start: int | None
    vesting_end: int


class VestingLedger:
    """
    Vesting ledger holding one beneficiary's tokens.

    ``token`` and ``registry`` may be the concrete ``ERC20Token`` and
    ``DelegateRegistry`` (they are bound to this ledger's address) or any
    objects implementing ``ValueStore`` / ``DelegationRegistry``.

    All public operations run under a per-instance lock, and a failed
    transfer rolls the schedule back, so each call is all-or-nothing.
    """

    def __init__(
        self,
        token: ERC20Token | ValueStore,
        registry: DelegateRegistry | DelegationRegistry,
        beneficiary: str,
        authorized_depositor: str,
        *,
        namespace_key: str = DEFAULT_DELEGATION_NAMESPACE,
        time_provider: Callable[[], int] | None = None,
        address: str | None = None,
    ) -> None:
        self._setup(
            token,
            registry,
            beneficiary,
            authorized_depositor,
            namespace_key=namespace_key,
            time_provider=time_provider,
            address=address,
        )

        self._registry.set_delegate(self.namespace_key, self._beneficiary)

        logger.info(
            "Vesting ledger created",
            extra={
                "event": "vesting.created",
                "ledger": self.address,
                "beneficiary": self._beneficiary[:10],
                "depositor": self._authorized_depositor[:10],
                "namespace": self.namespace_key,
            },
        )

    def _setup(
        self,
        token: ERC20Token | ValueStore,
        registry: DelegateRegistry | DelegationRegistry,
        beneficiary: str,
        authorized_depositor: str,
        *,
        namespace_key: str,
        time_provider: Callable[[], int] | None,
        address: str | None,
    ) -> None:
        beneficiary_norm = self._normalize(beneficiary)
        depositor_norm = self._normalize(authorized_depositor)
        if not beneficiary_norm or beneficiary_norm == ZERO_ADDRESS:
            raise ValueError("Beneficiary cannot be empty or the zero address.")
        if not depositor_norm or depositor_norm == ZERO_ADDRESS:
            raise ValueError("Authorized depositor cannot be empty or the zero address.")
        if not namespace_key:
            raise ValueError("Delegation namespace key cannot be empty.")

        self._beneficiary = beneficiary_norm
        self._authorized_depositor = depositor_norm
        self.namespace_key = namespace_key
        self.address = self._normalize(
            address or derive_address("vesting-ledger", beneficiary_norm, depositor_norm)
        )

        if isinstance(token, ERC20Token):
            self._value_store: ValueStore = BoundValueStore(token, self.address)
        else:
            self._value_store = token
        if isinstance(registry, DelegateRegistry):
            self._registry: DelegationRegistry = BoundDelegationRegistry(registry, self.address)
        else:
            self._registry = registry

        self.vesting_start: int | None = None
        self.vesting_end: int = 0
        self.events: list[LedgerEvent] = []

        self._time_provider = time_provider or (lambda: int(time.time()))
        self._lock = threading.RLock()

    # ==================== Identity ====================

    @property
    def beneficiary(self) -> str:
        return self._beneficiary

    @property
    def authorized_depositor(self) -> str:
        return self._authorized_depositor

    @property
    def value_store(self) -> ValueStore:
        return self._value_store

    # ==================== Views ====================

    @property
    def held_balance(self) -> int:
        """Tokens currently in this ledger's custody."""
        return self._value_store.balance_of(self.address)

    def currently_claimable(self) -> int:
        """Amount a claim would pay out at the current time. No side effects."""
        with self._lock:
            return self._claimable_at(self._current_time())

    def status(self) -> VestingStatus:
        """
        Where the schedule stands. A ledger whose custody has been fully paid
        out reports UNINITIALIZED again until the next deposit.
        """
        with self._lock:
            if self.vesting_start is None or self.held_balance == 0:
                return VestingStatus.UNINITIALIZED
            if self._current_time() >= self.vesting_end:
                return VestingStatus.MATURED
            return VestingStatus.VESTING

    # ==================== Operations ====================

    def deposit(
        self,
        caller: str,
        amount: int,
        new_end: int,
        expected_beneficiary: str,
    ) -> bool:
        """
        Pull ``amount`` from the depositor and extend the schedule to ``new_end``.

        The first deposit anchors the schedule at the current time; later
        deposits keep the anchor and may only keep or push back the end.
        The depositor must have approved the ledger for ``amount``.

        Args:
            caller: Account making the deposit (msg.sender)
            amount: Tokens to move into custody
            new_end: Timestamp at which everything held is fully vested
            expected_beneficiary: Beneficiary the caller believes this ledger pays

        Returns:
            True if successful

        Raises:
            BeneficiaryMismatch: ``expected_beneficiary`` is not this ledger's
            UnauthorizedDepositor: ``caller`` is not the authorized depositor
            ValueError: ``new_end`` is not an integer (checked after the two identity guards)
            VestingPeriodDecrease: ``new_end`` is earlier than the current end
            TransferFailure: the token did not move ``amount`` into custody
        """
        caller_norm = self._normalize(caller)

        with self._lock:
            if self._normalize(expected_beneficiary) != self._beneficiary:
                self._log_rejection("beneficiary_mismatch", caller_norm)
                raise BeneficiaryMismatch(
                    expected=self._normalize(expected_beneficiary),
                    actual=self._beneficiary,
                )
            if caller_norm != self._authorized_depositor:
                self._log_rejection("unauthorized_depositor", caller_norm)
                raise UnauthorizedDepositor(caller_norm)
            if not isinstance(new_end, int) or isinstance(new_end, bool):
                raise ValueError("new_end must be an integer timestamp")
            if new_end < self.vesting_end:
                self._log_rejection("vesting_period_decrease", caller_norm)
                raise VestingPeriodDecrease(self.vesting_end, new_end)

            now = self._current_time()
            snapshot = self._snapshot()

            if self.vesting_start is None:
                self.vesting_start = now
            self.vesting_end = new_end

            self._complete_transfer(
                snapshot,
                "deposit",
                lambda: self._value_store.transfer_from(caller_norm, self.address, amount),
                amount,
            )

            self._emit("Deposit", caller_norm, amount, now)
            logger.info(
                "Vesting deposit",
                extra={
                    "event": "vesting.deposit",
                    "ledger": self.address,
                    "amount": amount,
                    "vesting_start": self.vesting_start,
                    "vesting_end": self.vesting_end,
                },
            )
            return True

    def claim(self, caller: str | None = None) -> int:
        """
        Pay the matured amount to the beneficiary and restart the schedule.

        Anyone may call this; funds only ever go to the beneficiary. After a
        partial claim the remaining balance vests linearly from now until
        the existing ``vesting_end``. Claiming zero is not an error.

        Returns:
            The amount transferred to the beneficiary

        Raises:
            TransferFailure: the token did not pay out the amount
        """
        caller_norm = self._normalize(caller) if caller else self._beneficiary

        with self._lock:
            now = self._current_time()
            amount = self._claimable_at(now)
            snapshot = self._snapshot()

            # Before the first deposit there is no schedule to restart.
            if self.vesting_start is not None:
                self.vesting_start = now

            self._complete_transfer(
                snapshot,
                "claim",
                lambda: self._value_store.transfer(self._beneficiary, amount),
                amount,
            )

            self._emit("Claim", caller_norm, amount, now)
            logger.info(
                "Vesting claim",
                extra={
                    "event": "vesting.claim",
                    "ledger": self.address,
                    "amount": amount,
                    "remaining": self.held_balance,
                    "vesting_end": self.vesting_end,
                },
            )
            return amount

    # ==================== Internals ====================

    def _claimable_at(self, now: int) -> int:
        balance = self._value_store.balance_of(self.address)
        if self.vesting_start is None or now >= self.vesting_end:
            return balance

        duration = self.vesting_end - self.vesting_start
        if duration <= 0:
            return balance
        elapsed = now - self.vesting_start
        if elapsed <= 0:
            return 0

        # Multiply before dividing; floor division truncates toward zero here.
        return min(balance * elapsed // duration, balance)

    def _complete_transfer(
        self,
        snapshot: _ScheduleSnapshot,
        operation: str,
        transfer: Callable[[], bool],
        amount: int,
    ) -> None:
        try:
            completed = transfer()
        except Exception as exc:
            # any store failure surfaces as TransferFailure
            self._restore(snapshot)
            reason = exc.message if isinstance(exc, ContractExecutionError) else f"{type(exc).__name__}: {exc}"
            self._log_transfer_failure(operation, amount, reason)
            raise TransferFailure(
                f"{operation} transfer failed: {reason}",
                details={"ledger": self.address, "amount": amount},
            ) from exc

        if not completed:
            self._restore(snapshot)
            self._log_transfer_failure(operation, amount, "value store reported failure")
            raise TransferFailure(
                f"{operation} transfer was not completed",
                details={"ledger": self.address, "amount": amount},
            )

    def _snapshot(self) -> _ScheduleSnapshot:
        return _ScheduleSnapshot(self.vesting_start, self.vesting_end)

    def _restore(self, snapshot: _ScheduleSnapshot) -> None:
        self.vesting_start = snapshot.vesting_start
        self.vesting_end = snapshot.vesting_end

    def _emit(self, event_type: str, caller: str, amount: int, now: int) -> None:
        self.events.append(
            LedgerEvent(
                event_type=event_type,
                caller=caller,
                amount=amount,
                vesting_start=self.vesting_start,
                vesting_end=self.vesting_end,
                timestamp=now,
            )
        )

    def _current_time(self) -> int:
        timestamp = self._time_provider()
        try:
            return int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError("time_provider must return an integer timestamp") from exc

    def _log_rejection(self, reason: str, caller: str) -> None:
        logger.warning(
            "Vesting deposit rejected: %s",
            reason,
            extra={"event": "vesting.deposit_rejected", "ledger": self.address, "caller": caller[:10]},
        )

    def _log_transfer_failure(self, operation: str, amount: int, reason: str) -> None:
        logger.error(
            "Vesting %s transfer failed: %s",
            operation,
            reason,
            extra={"event": f"vesting.{operation}_failed", "ledger": self.address, "amount": amount},
        )

    @staticmethod
    def _normalize(address: str) -> str:
        return address.lower()

    # ==================== Serialization ====================

    def to_dict(self) -> dict[str, Any]:
        """Serialize ledger state (balances live in the token)."""
        return {
            "address": self.address,
            "beneficiary": self._beneficiary,
            "authorized_depositor": self._authorized_depositor,
            "namespace_key": self.namespace_key,
            "vesting_start": self.vesting_start,
            "vesting_end": self.vesting_end,
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        token: ERC20Token | ValueStore,
        registry: DelegateRegistry | DelegationRegistry,
        time_provider: Callable[[], int] | None = None,
    ) -> "VestingLedger":
        """Rebuild a ledger without repeating the one-time delegate registration."""
        ledger = cls.__new__(cls)
        ledger._setup(
            token,
            registry,
            data["beneficiary"],
            data["authorized_depositor"],
            namespace_key=data.get("namespace_key", DEFAULT_DELEGATION_NAMESPACE),
            time_provider=time_provider,
            address=data["address"],
        )
        ledger.vesting_start = data.get("vesting_start")
        ledger.vesting_end = int(data.get("vesting_end", 0))
        return ledger

    def __repr__(self) -> str:
        return (
            f"VestingLedger(address={self.address}, beneficiary={self._beneficiary}, "
            f"vesting_start={self.vesting_start}, vesting_end={self.vesting_end})"
        )


class VestingLedgerFactory:
    """
    Deploys vesting ledgers against one token and one delegate registry.

    Lets a single depositor run many ledgers, one per beneficiary, and look
    them up later by address or beneficiary.
    """

    def __init__(
        self,
        token: ERC20Token,
        registry: DelegateRegistry,
        namespace_key: str = DEFAULT_DELEGATION_NAMESPACE,
        time_provider: Callable[[], int] | None = None,
    ) -> None:
        self.token = token
        self.registry = registry
        self.namespace_key = namespace_key
        self.time_provider = time_provider
        self.deployed_ledgers: dict[str, VestingLedger] = {}
        self._nonces: dict[str, int] = {}

    def create_ledger(
        self,
        creator: str,
        beneficiary: str,
        authorized_depositor: str,
    ) -> VestingLedger:
        """
        Deploy a new ledger.

        The ledger address is derived from the creator and a per-creator
        nonce, so the same creator can deploy several ledgers for the same
        beneficiary.

        Raises:
            ContractExecutionError: If the delegate registration is rejected
        """
        creator_norm = creator.lower()
        nonce = self._nonces.get(creator_norm, 0)
        address = derive_address("vesting-ledger", creator_norm, str(nonce))
        while address in self.deployed_ledgers:
            nonce += 1
            address = derive_address("vesting-ledger", creator_norm, str(nonce))

        ledger = VestingLedger(
            self.token,
            self.registry,
            beneficiary,
            authorized_depositor,
            namespace_key=self.namespace_key,
            time_provider=self.time_provider,
            address=address,
        )
        self._nonces[creator_norm] = nonce + 1
        self.deployed_ledgers[ledger.address] = ledger

        logger.info(
            "Vesting ledger deployed",
            extra={
                "event": "vesting.deployed",
                "ledger": ledger.address,
                "creator": creator_norm[:10],
            },
        )
        return ledger

    def register(self, ledger: VestingLedger) -> None:
        """Track an already-built ledger (used when restoring state)."""
        if ledger.address in self.deployed_ledgers:
            raise ContractExecutionError(
                f"VestingLedgerFactory: ledger already registered at {ledger.address}"
            )
        self.deployed_ledgers[ledger.address] = ledger

    def get_ledger(self, address: str) -> VestingLedger | None:
        return self.deployed_ledgers.get(address.lower())

    def ledgers_for_beneficiary(self, beneficiary: str) -> list[VestingLedger]:
        beneficiary_norm = beneficiary.lower()
        return [
            ledger
            for ledger in self.deployed_ledgers.values()
            if ledger.beneficiary == beneficiary_norm
        ]

    def list_ledgers(self) -> list[dict[str, Any]]:
        """
        List deployed ledgers with their current schedule and balance.

        Returns:
            List of ledger summaries
        """
        return [
            {
                **ledger.to_dict(),
                "held_balance": ledger.held_balance,
                "status": ledger.status().value,
            }
            for ledger in self.deployed_ledgers.values()
        ]
