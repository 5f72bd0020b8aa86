"""Scan error taxonomy.

Every error carries a ``kind`` so the status surface can classify it
without isinstance chains.
"""
from enum import Enum


class ErrorKind(str, Enum):
    TRANSPORT = "transport"
    MALFORMED_DATA = "malformed_data"
    CONFIGURATION = "configuration"
    NARRATIVE_UNAVAILABLE = "narrative_unavailable"
    INTERNAL = "internal"


class ScanError(Exception):
    kind: ErrorKind = ErrorKind.TRANSPORT


class TransportError(ScanError):
    """Provider fetch failed (non-success status or network failure)."""
    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, status_code: int | None = None, failed_units: int = 1):
        super().__init__(message)
        self.status_code = status_code
        self.failed_units = failed_units


class MalformedDataError(ScanError):
    """Provider row is missing its identity fields (id / symbol)."""
    kind = ErrorKind.MALFORMED_DATA


class ConfigurationError(ScanError):
    kind = ErrorKind.CONFIGURATION


class NarrativeUnavailable(ScanError):
    """Narrative lookup could not be loaded. Soft failure."""
    kind = ErrorKind.NARRATIVE_UNAVAILABLE
