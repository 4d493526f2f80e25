"""Validation errors.

Raised before any ledger interaction. No side effect has occurred, so the
caller may retry after correcting the input.
"""

from __future__ import annotations

from typing import Any

from esg_registry.domain.exceptions import RegistryError


class ValidationError(RegistryError):
    """Raised when a request is malformed or a field value is invalid.

    Attributes:
        field: Name of the offending field, if a single field is at fault.
    """

    kind = "validation_error"
    title = "Validation Error"
    status = 400

    def __init__(self, detail: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(detail)

    def extra_problem_fields(self) -> dict[str, Any]:
        if self.field is None:
            return {}
        return {"field": self.field}
