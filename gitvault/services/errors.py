"""Error taxonomy shared by the content store, index, and API layers."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import status

from ..models.vault import RateLimitInfo


class VaultError(Exception):
    """Base class for domain errors rendered as ``{error, message, detail}``."""

    error = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        *,
        error: Optional[str] = None,
        status_code: Optional[int] = None,
        detail: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error is not None:
            self.error = error
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail or {}


class UnauthorizedError(VaultError):
    """Missing or invalid session or remote credential."""

    error = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(VaultError):
    """Path absent in the remote store or in the index."""

    error = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(VaultError):
    """Optimistic concurrency check failed; refetch the current hash and retry."""

    error = "version_conflict"
    status_code = status.HTTP_409_CONFLICT


class IndexUnavailableError(VaultError):
    """No completed crawl exists for the vault yet."""

    error = "index_unavailable"
    status_code = status.HTTP_409_CONFLICT


class RateLimitedError(VaultError):
    """Remote quota exhausted."""

    error = "rate_limited"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, message: str, *, rate_limit: Optional[RateLimitInfo] = None) -> None:
        self.rate_limit = rate_limit or RateLimitInfo()
        super().__init__(message, detail=self.rate_limit.model_dump())


class ParseFailureError(VaultError):
    """Malformed frontmatter or undecodable content in a single file."""

    error = "parse_failure"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class PersistenceFailureError(VaultError):
    """Index storage unreachable or rejected the write."""

    error = "persistence_failure"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class RemoteStoreError(VaultError):
    """Unexpected response from the remote content store."""

    error = "remote_error"
    status_code = status.HTTP_502_BAD_GATEWAY


__all__ = [
    "VaultError",
    "UnauthorizedError",
    "NotFoundError",
    "ConflictError",
    "IndexUnavailableError",
    "RateLimitedError",
    "ParseFailureError",
    "PersistenceFailureError",
    "RemoteStoreError",
]
