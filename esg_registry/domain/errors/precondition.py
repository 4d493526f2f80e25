"""Precondition violation errors.

A precondition violation means the requested transition is not allowed from
the current state (already registered, already reviewed, not registered on
the ledger, wrong role). Nothing was submitted to the ledger. Retrying the
same request unchanged will fail the same way.

Ledger reverts whose reason text identifies one of these states are mapped
onto the same classes, so callers see one error whether the off-chain
fast-path check or the ledger itself caught the problem.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from esg_registry.domain.exceptions import RegistryError


class PreconditionViolationError(RegistryError):
    """Base class for state-precondition failures."""

    kind = "precondition_violation"
    title = "Precondition Violation"
    status = 409


class AlreadyRegisteredError(PreconditionViolationError):
    """Raised when a participant address is already registered on the ledger.

    Attributes:
        address: The ledger address that is already registered.
        detected_on_ledger: True when the ledger (not the cache) reported it.
    """

    title = "Already Registered"

    def __init__(self, address: str, detected_on_ledger: bool = False) -> None:
        self.address = address
        self.detected_on_ledger = detected_on_ledger
        super().__init__(f"Participant {address} is already registered on the ledger")

    def extra_problem_fields(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "detected_on_ledger": self.detected_on_ledger,
        }


class NotRegisteredOnLedgerError(PreconditionViolationError):
    """Raised when a submission is attempted by an unregistered participant."""

    title = "Not Registered On Ledger"

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(
            f"Participant {address} is not registered on the ledger. "
            "Register before submitting records."
        )

    def extra_problem_fields(self) -> dict[str, Any]:
        return {"address": self.address}


class AlreadyVerifiedError(PreconditionViolationError):
    """Raised when a record has already been reviewed.

    Attributes:
        ledger_record_id: The ledger identifier of the record.
        verification_status: The status the record is already in.
    """

    title = "Already Verified"

    def __init__(
        self, ledger_record_id: int, verification_status: str | None = None
    ) -> None:
        self.ledger_record_id = ledger_record_id
        self.verification_status = verification_status
        super().__init__(f"Record {ledger_record_id} has already been verified")

    def extra_problem_fields(self) -> dict[str, Any]:
        result: dict[str, Any] = {"ledger_record_id": str(self.ledger_record_id)}
        if self.verification_status is not None:
            result["verification_status"] = self.verification_status
        return result


class DuplicateSubmissionError(PreconditionViolationError):
    """Raised when a request token has already been used for a submission.

    Submissions are not idempotent on the ledger; a reused token means the
    caller is retrying an attempt that may already be on its way.
    """

    title = "Duplicate Submission"

    def __init__(self, request_token: str) -> None:
        self.request_token = request_token
        super().__init__(
            f"Request token {request_token} was already used for a ledger submission"
        )

    def extra_problem_fields(self) -> dict[str, Any]:
        return {"request_token": self.request_token}


class ParticipantNotFoundError(PreconditionViolationError):
    """Raised when a participant reference cannot be resolved."""

    kind = "not_found"
    title = "Participant Not Found"
    status = 404

    def __init__(self, reference: UUID | str) -> None:
        self.reference = reference
        super().__init__(f"Participant not found: {reference}")


class RecordNotFoundError(PreconditionViolationError):
    """Raised when no mirror row exists for a ledger record id."""

    kind = "not_found"
    title = "Record Not Found"
    status = 404

    def __init__(self, ledger_record_id: int) -> None:
        self.ledger_record_id = ledger_record_id
        super().__init__(f"Record not found: {ledger_record_id}")

    def extra_problem_fields(self) -> dict[str, Any]:
        return {"ledger_record_id": str(self.ledger_record_id)}


class UnauthorizedRoleError(PreconditionViolationError):
    """Raised when the caller's role does not permit the operation."""

    kind = "forbidden"
    title = "Forbidden"
    status = 403

    def __init__(self, role: str, required: tuple[str, ...]) -> None:
        self.role = role
        self.required = required
        super().__init__(
            f"Role '{role}' may not perform this operation "
            f"(requires one of: {', '.join(required)})"
        )

    def extra_problem_fields(self) -> dict[str, Any]:
        return {"role": self.role, "required_roles": list(self.required)}
