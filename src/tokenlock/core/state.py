"""
tokenlock - Deployment state persistence

Saves and restores a deployment (token, delegate registry, vesting ledgers)
as a single JSON document:
- Atomic writes (temp file + rename)
- SHA-256 checksum of the payload, verified on load
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Callable

from .contracts.delegate_registry import DelegateRegistry
from .contracts.erc20 import ERC20Token
from .contracts.vesting_ledger import (
    DEFAULT_DELEGATION_NAMESPACE,
    VestingLedger,
    VestingLedgerFactory,
)
from .exceptions import StateFileError

logger = logging.getLogger(__name__)

STATE_VERSION = "1.0"


@dataclass
class Deployment:
    """A token, its delegate registry and the ledgers built on top of them."""

    token: ERC20Token
    registry: DelegateRegistry
    factory: VestingLedgerFactory

    @classmethod
    def create(
        cls,
        token: ERC20Token,
        registry: DelegateRegistry | None = None,
        namespace_key: str = DEFAULT_DELEGATION_NAMESPACE,
        time_provider: Callable[[], int] | None = None,
    ) -> "Deployment":
        registry = registry or DelegateRegistry()
        factory = VestingLedgerFactory(token, registry, namespace_key, time_provider)
        return cls(token=token, registry=registry, factory=factory)

    def to_dict(self) -> dict[str, Any]:
        return {
            "token": self.token.to_dict(),
            "registry": self.registry.to_dict(),
            "namespace_key": self.factory.namespace_key,
            "ledgers": [ledger.to_dict() for ledger in self.factory.deployed_ledgers.values()],
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        time_provider: Callable[[], int] | None = None,
    ) -> "Deployment":
        deployment = cls.create(
            ERC20Token.from_dict(data["token"]),
            DelegateRegistry.from_dict(data.get("registry", {})),
            namespace_key=data.get("namespace_key", DEFAULT_DELEGATION_NAMESPACE),
            time_provider=time_provider,
        )
        for ledger_data in data.get("ledgers", []):
            deployment.factory.register(
                VestingLedger.from_dict(
                    ledger_data,
                    deployment.token,
                    deployment.registry,
                    time_provider=time_provider,
                )
            )
        return deployment


def _calculate_checksum(payload: str) -> str:
    return hashlib.sha256(payload.encode()).hexdigest()


def save_deployment(path: str, deployment: Deployment) -> str:
    """
    Write a deployment to ``path`` atomically.

    Args:
        path: Target JSON file
        deployment: Deployment to persist

    Returns:
        Checksum of the written payload

    Raises:
        StateFileError: If the file cannot be written
    """
    data = deployment.to_dict()
    payload_json = json.dumps(data, indent=2, sort_keys=True)
    checksum = _calculate_checksum(payload_json)
    package = {
        "metadata": {
            "version": STATE_VERSION,
            "timestamp": time.time(),
            "checksum": checksum,
        },
        "deployment": data,
    }

    temp_file = f"{path}.tmp"
    try:
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)
        with open(temp_file, "w") as f:
            json.dump(package, f, indent=2, sort_keys=True)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_file, path)
    except OSError as e:
        logger.error(
            "Failed to save deployment state",
            extra={"event": "state.save_failed", "path": path, "error": str(e)},
        )
        raise StateFileError(f"Failed to save state to {path}: {e}") from e

    logger.debug(
        "Deployment state saved",
        extra={"event": "state.saved", "path": path, "checksum": checksum[:8]},
    )
    return checksum


def load_deployment(
    path: str,
    time_provider: Callable[[], int] | None = None,
) -> Deployment:
    """
    Read a deployment written by ``save_deployment``.

    Raises:
        StateFileError: If the file is missing, unreadable or fails its checksum
    """
    if not os.path.exists(path):
        raise StateFileError(f"No state file at {path}; run 'tokenlock init' first")

    try:
        with open(path, "r") as f:
            package = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise StateFileError(f"Failed to read state from {path}: {e}") from e

    data = package.get("deployment")
    if not isinstance(data, dict):
        raise StateFileError(f"State file {path} has no deployment section")

    expected = package.get("metadata", {}).get("checksum")
    if expected:
        actual = _calculate_checksum(json.dumps(data, indent=2, sort_keys=True))
        if actual != expected:
            raise StateFileError(
                f"State file {path} failed checksum verification",
                details={"expected": expected, "actual": actual},
                recoverable=False,
            )

    try:
        return Deployment.from_dict(data, time_provider=time_provider)
    except (KeyError, TypeError, ValueError) as e:
        raise StateFileError(f"State file {path} is malformed: {e}") from e
