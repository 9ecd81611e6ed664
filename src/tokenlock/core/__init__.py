"""
tokenlock Core Module

Core functionality for tokenlock including:
- Contract implementations (token, delegate registry, vesting ledger)
- Exception hierarchy
- Structured logging setup
- Deployment persistence
"""

__all__ = []
