"""
tokenlock - Linear Token Vesting Ledger

A single-beneficiary vesting ledger that releases a deposited token balance
linearly over time, restarts its schedule on every claim, and registers the
beneficiary as voting delegate for the funds it holds.

Main Components:
- Contracts: ERC20 value store, delegate registry, vesting ledger
- Configuration: YAML/env layered configuration
- State: JSON persistence of deployments
- CLI: command line front end over a state file
"""

__version__ = "0.1.0"
__author__ = "tokenlock Development Team"

__all__ = []
