"""Mirror store errors."""

from __future__ import annotations

from typing import Any

from esg_registry.domain.exceptions import RegistryError


class MirrorWriteFailureError(RegistryError):
    """Raised when the off-chain mirror could not persist a ledger fact.

    When ``transaction_id`` is set the ledger already holds the fact and the
    mirror does not. The gap is only detectable by a reconciliation scan
    that compares ledger-reported records with mirror rows.

    Attributes:
        ledger_record_id: Ledger identifier of the fact being mirrored.
        transaction_id: Transaction that created the ledger fact, if any.
    """

    kind = "mirror_write_failure"
    title = "Mirror Write Failure"
    status = 500

    def __init__(
        self,
        reason: str,
        ledger_record_id: int | None = None,
        transaction_id: str | None = None,
    ) -> None:
        self.reason = reason
        self.ledger_record_id = ledger_record_id
        self.transaction_id = transaction_id
        message = f"Mirror write failed: {reason}"
        if transaction_id is not None:
            message = (
                f"{message} (ledger transaction {transaction_id} succeeded; "
                "mirror is behind the ledger)"
            )
        super().__init__(message)

    def extra_problem_fields(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.ledger_record_id is not None:
            result["ledger_record_id"] = str(self.ledger_record_id)
        if self.transaction_id is not None:
            result["transaction_id"] = self.transaction_id
        return result
