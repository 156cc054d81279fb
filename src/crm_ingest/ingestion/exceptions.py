"""Error taxonomy for webhook ingestion.

Request-level errors (authentication, method, empty or malformed batch) abort
the whole request and are translated to HTTP responses by the exception
handlers registered in main.py. Record-level errors (mapping, persistence)
are caught by the BatchProcessor and only ever surface as data in the batch
summary.
"""

from __future__ import annotations

from fastapi import status


class IngestionError(Exception):
    """Base class for all ingestion errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


# ── Request-level ───────────────────────────────────────────────────────────


class AuthenticationError(IngestionError):
    """Shared secret missing or wrong."""

    status_code = status.HTTP_401_UNAUTHORIZED
    public_message = "Unauthorized"


class MethodNotSupported(IngestionError):
    """HTTP method other than POST/OPTIONS/HEAD."""

    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    public_message = "Method not allowed"


class EmptyBatchError(IngestionError):
    """The `data` field resolved to zero records."""

    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "No records in data"


class MalformedRequestError(IngestionError):
    """Body is not a JSON object."""

    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "Invalid JSON body"


# ── Record-level ────────────────────────────────────────────────────────────


class RecordMappingError(IngestionError):
    """A single record cannot be mapped (e.g. no external identifier)."""

    def __init__(self, message: str, dynamics_id: str | None = None) -> None:
        super().__init__(message)
        self.dynamics_id = dynamics_id


class PersistenceError(IngestionError):
    """The store rejected a read or upsert for a single record."""

    def __init__(self, message: str, dynamics_id: str | None = None) -> None:
        super().__init__(message)
        self.dynamics_id = dynamics_id
