"""Base exception classes for the ESG Registry domain layer."""

from __future__ import annotations

from typing import Any


class RegistryError(Exception):
    """Base exception for all domain errors.

    Every failure that crosses a service boundary carries a stable ``kind``
    (machine readable, never renamed) and a human-readable ``detail``.
    The API layer maps ``kind`` to an HTTP status; callers decide retry
    policy from the kind alone.

    Subclasses override ``kind``, ``title`` and ``status`` as class
    attributes and may add context fields via ``extra_problem_fields``.
    """

    kind: str = "registry_error"
    title: str = "Registry Error"
    status: int = 500

    def __init__(self, detail: str = "") -> None:
        """Initialize the exception with an optional detail message.

        Args:
            detail: Human-readable error description.
        """
        self.detail = detail
        super().__init__(detail)

    def extra_problem_fields(self) -> dict[str, Any]:
        """Extension members added to the RFC 7807 body."""
        return {}

    def to_rfc7807_dict(self) -> dict[str, Any]:
        """Serialize to RFC 7807 problem details format.

        Returns:
            Dictionary with type, title, status, detail, kind and any
            subclass-specific extension members.
        """
        result: dict[str, Any] = {
            "type": f"urn:esg-registry:error:{self.kind.replace('_', '-')}",
            "title": self.title,
            "status": self.status,
            "detail": self.detail,
            "kind": self.kind,
        }
        result.update(self.extra_problem_fields())
        return result
