"""Exceptions raised by the RIPS engine.

Mapping and formatting are best-effort and only raise when a strict policy is
selected on ``RipsConfig``; structural problems are reported through
``ValidationResult`` instead.
"""

from __future__ import annotations


class RipsError(Exception):
    """Base class for RIPS engine errors."""


class FieldFormatError(RipsError, ValueError):
    """A value could not be rendered under MalformedFieldPolicy.RAISE."""


class DuplicatePatientError(RipsError):
    """Conflicting patient data for one identity under DeduplicationPolicy.STRICT."""

    def __init__(self, document_type: str, document_number: str) -> None:
        self.key = f"{document_type}|{document_number}"
        super().__init__(f"Patient {self.key} appears twice with different data")


class UnsupportedFormatError(RipsError):
    """The requested output does not exist for this format version."""


class RipsFileParseError(RipsError, ValueError):
    """A RIPS text or XML file could not be read back into records."""
