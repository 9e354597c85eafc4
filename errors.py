"""
Custom exceptions for the quote tool.

Exception Hierarchy:
    QuoteToolError (base)
    ├── ValidationError          - form field missing/invalid (blocks submission)
    ├── ConnectivityError        - remote store unreachable (local fallback)
    ├── SchemaError              - missing table/column (local fallback + diagnostic)
    ├── AuthorizationError       - write denied by row-level security (local fallback)
    ├── UnclassifiedRemoteError  - any other remote failure (surfaced as failed save)
    └── ExternalServiceError     - AI suggestion call failed (mock estimate shown)

The Job Store never raises these for inserts; it returns a StoreError value with
an ErrorKind. Callers that prefer exceptions can use StoreError.to_exception().
"""

from typing import Any, Dict, Optional


class QuoteToolError(Exception):
    """Base exception for all quote tool errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(QuoteToolError):
    """
    One or more form fields are missing or invalid.

    `errors` maps field name -> user-facing message so the UI can show each
    message next to its field.
    """

    def __init__(self, errors: Dict[str, str], message: str = "Please fill in all required fields correctly."):
        super().__init__(message, {"errors": dict(errors)})
        self.errors = dict(errors)


class ConnectivityError(QuoteToolError):
    """The hosted database could not be reached."""


class SchemaError(QuoteToolError):
    """The target table or one of its columns does not exist."""


class AuthorizationError(QuoteToolError):
    """The write was rejected by the table's access policy."""


class UnclassifiedRemoteError(QuoteToolError):
    """Remote failure that does not match a known fallback case."""


class ExternalServiceError(QuoteToolError):
    """The AI suggestion endpoint failed or returned nothing usable."""
