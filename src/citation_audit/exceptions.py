"""Error types raised by the citation audit engine."""
from __future__ import annotations


class CitationAuditError(Exception):
    """Base class for audit errors."""

    def __init__(self, message: str = "", details: str = "") -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


class AuditInputError(CitationAuditError):
    """Required structural input is missing or malformed; never retried."""


class ProviderError(CitationAuditError):
    """An external registry, search provider, or completion call failed."""

    def __init__(self, source: str, message: str = "", details: str = "") -> None:
        self.source = source
        super().__init__(message or f"{source} request failed", details)


class CompletionFormatError(CitationAuditError):
    """A completion reply did not match the expected JSON shape."""


__all__ = [
    "CitationAuditError",
    "AuditInputError",
    "ProviderError",
    "CompletionFormatError",
]
