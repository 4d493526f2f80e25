"""
API layer - FastAPI routes and HTTP concerns for the ESG Registry.

This layer contains:
- FastAPI route definitions
- Request/Response DTOs (ledger ids and fees as decimal strings)
- RFC 7807 problem mapping of domain errors
- Correlation/logging middleware

IMPORT RULES:
- CAN import from: application, domain, bootstrap
- CANNOT import adapters directly; they arrive through the container
"""

__all__: list[str] = []
