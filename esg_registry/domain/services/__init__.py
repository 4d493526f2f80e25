"""Pure domain services (no I/O)."""

from esg_registry.domain.services.content_commitment import (
    ContentCommitment,
    canonical_json,
    canonical_payload,
    commitment_for_record,
    compute_commitment,
)
from esg_registry.domain.services.revert_classifier import RevertKind, classify_revert

__all__: list[str] = [
    "ContentCommitment",
    "RevertKind",
    "canonical_json",
    "canonical_payload",
    "classify_revert",
    "commitment_for_record",
    "compute_commitment",
]
