"""Exception hierarchy shared by the composition pipeline."""

from __future__ import annotations

from typing import Any, Optional


class XlComposeError(Exception):
    """Base class for all errors surfaced to callers of the pipeline."""

    classification = "internal"
    status = 500

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def as_dict(self) -> dict:
        payload = {
            "success": False,
            "error": self.classification,
            "message": self.message,
        }
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(XlComposeError, ValueError):
    """Raised when an input document is malformed."""

    classification = "bad_request"
    status = 400


class TemplateNotFoundError(XlComposeError, FileNotFoundError):
    """Raised when a named template does not exist in the template directory."""

    classification = "not_found"
    status = 404


class NoDataError(XlComposeError):
    """Raised when a query produced no rows to export."""

    classification = "not_found"
    status = 404


class ProcessingError(XlComposeError):
    """Raised when a cell, range, table or sheet cannot be written."""

    classification = "unprocessable"
    status = 422

    def __init__(
        self,
        message: str,
        *,
        address: Optional[str] = None,
        sheet: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message, details=details)
        self.address = address
        self.sheet = sheet


class DatabaseError(XlComposeError):
    """Raised when the database adapter fails."""

    classification = "database"
    status = 500


class UnsafeQueryError(DatabaseError):
    """Raised when a query is not a SELECT or matches a dangerous pattern."""

    classification = "bad_request"
    status = 400


__all__ = [
    "DatabaseError",
    "NoDataError",
    "ProcessingError",
    "TemplateNotFoundError",
    "UnsafeQueryError",
    "ValidationError",
    "XlComposeError",
]
