"""
errors.py — Domain exceptions raised by the report services.

ValidationError  — missing / invalid input, rejected before any store write  → 400
NotFound         — unknown report id                                          → 404
StoreError       — MongoDB failure while reading or writing                   → 500

Route handlers never catch these; resq/main.py registers one exception
handler per class so every endpoint shares the same error payloads.
"""

from typing import Iterable, Optional

# Location prefixes FastAPI adds to request-validation errors.
_REQUEST_PARTS = {"body", "query", "path", "header"}


class ResQError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ResQError):
    """Input failed validation. ``fields`` names every offending field."""

    def __init__(self, message: str, fields: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.fields = list(fields or [])

    @classmethod
    def from_errors(cls, errors: Iterable[dict]) -> "ValidationError":
        """Build from pydantic / FastAPI ``errors()`` output."""
        fields: list[str] = []
        for err in errors:
            path = error_path(err.get("loc", ()))
            if path and path not in fields:
                fields.append(path)
        return cls(f"Invalid or missing fields: {', '.join(fields) or 'body'}", fields)


class NotFound(ResQError):
    def __init__(self, message: str = "Report not found"):
        super().__init__(message)


class StoreError(ResQError):
    """Persistence failure. ``operation`` names the store call that failed."""

    def __init__(self, operation: str, detail: str):
        super().__init__(f"Store {operation} failed: {detail}")
        self.operation = operation


def error_path(loc: Iterable) -> str:
    """('body', 'location', 'lat') → 'location.lat'"""
    parts = [str(p) for p in loc]
    if parts and parts[0] in _REQUEST_PARTS:
        parts = parts[1:]
    return ".".join(parts)
