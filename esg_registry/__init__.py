"""
ESG Registry - Dual-Ledger Reconciliation Service

Organizations submit sustainability metrics that are recorded both in an
off-chain mirror store and on an append-only on-chain ledger. Authorized
verifiers attest to those records.

Operating rules:
- The ledger is the system of record; the mirror is a cache of ledger facts
- A mirror row is written only after the ledger confirms the fact
- Ledger-success without the expected event is an inconsistent state, never retried
- Degraded modes are logged, never silent
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
