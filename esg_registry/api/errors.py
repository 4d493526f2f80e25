"""RFC 7807 problem responses for domain errors."""

from __future__ import annotations

from fastapi import HTTPException, Request

from esg_registry.domain.errors import LedgerUnavailableError, RegistryError

# Seconds a client should wait before retrying a request that failed
# before anything reached the ledger.
RETRY_AFTER_SECONDS = 5


def problem_exception(error: RegistryError, request: Request) -> HTTPException:
    """Convert a domain error into an HTTPException with a problem body.

    A Retry-After header is added only when retrying is safe: the ledger was
    unavailable and no transaction had been sent yet.
    """
    detail = error.to_rfc7807_dict()
    detail["instance"] = str(request.url)
    headers: dict[str, str] | None = None
    if isinstance(error, LedgerUnavailableError) and not error.submitted:
        headers = {"Retry-After": str(RETRY_AFTER_SECONDS)}
    return HTTPException(status_code=error.status, detail=detail, headers=headers)
