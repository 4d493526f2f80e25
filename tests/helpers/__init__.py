"""Test helpers for ESG Registry tests.

Helpers:
    address: Deterministic ledger addresses
    make_record: SubmissionRecord factory
    create_participant / create_registered_company: container-level setup

Usage:
    from tests.helpers import address, create_registered_company
"""

from tests.helpers.factories import (
    address,
    create_participant,
    create_registered_company,
    make_record,
    submit_metric,
)

__all__ = [
    "address",
    "create_participant",
    "create_registered_company",
    "make_record",
    "submit_metric",
]
