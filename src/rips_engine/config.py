"""Configuration models for RIPS generation.

All generation behavior is controlled via Pydantic models defined here.
Provider identification, generation dates and the named policies that decide
how permissive mapping and formatting are all live on ``RipsConfig``; nothing
in the mapping layer reads the process environment.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field


class FormatVersion(str, Enum):
    """RIPS format versions, named after the resolution that defines them."""

    LEGACY = "3374"
    CURRENT = "2275"


class DeduplicationPolicy(str, Enum):
    """What to do when two patients share (document_type, document_number)."""

    FIRST_WINS = "first_wins"
    STRICT = "strict"


class MalformedFieldPolicy(str, Enum):
    """What the field formatter does with a value it cannot render."""

    DEGRADE_TO_EMPTY = "degrade_to_empty"
    RAISE = "raise"


class NumericOverflowPolicy(str, Enum):
    """How number fields are fitted to their declared length.

    TRUNCATE cuts the textual form character by character, which is what
    existing consumers of the flat files receive. ROUND rounds half-up to an
    integer and treats anything still too long as malformed.
    """

    TRUNCATE = "truncate"
    ROUND = "round"


def _now() -> datetime:
    return datetime.now().replace(microsecond=0)


class RipsConfig(BaseModel):
    """Provider identity and policies for one generation run."""

    provider_code: str = Field(
        default="123456789012",
        description="Provider code; right-padded with '0' to the version's length",
    )
    habilitation_code: str = Field(
        default="123456789012", description="Habilitation code (2275 only)"
    )
    remission_date: date = Field(
        default_factory=date.today, description="Date written as fecha_remision"
    )
    generated_at: datetime = Field(
        default_factory=_now, description="Timestamp written as fechaGeneracion in XML"
    )
    dedup_policy: DeduplicationPolicy = Field(default=DeduplicationPolicy.FIRST_WINS)
    malformed_policy: MalformedFieldPolicy = Field(default=MalformedFieldPolicy.DEGRADE_TO_EMPTY)
    numeric_policy: NumericOverflowPolicy = Field(default=NumericOverflowPolicy.TRUNCATE)

    def provider_code_for(self, length: int) -> str:
        """Provider code extended to ``length`` characters."""
        return self.provider_code.ljust(length, "0")


class SyntheticDataConfig(BaseModel):
    """Parameters for the synthetic invoice generator."""

    seed: int = Field(default=42, description="Random seed for deterministic generation")
    num_invoices: int = Field(default=20, description="Number of invoices to generate")
    num_patients: int = Field(default=15, description="Size of the patient pool")
    max_services_per_invoice: int = Field(default=6, ge=1)
    period_start: date = Field(default=date(2024, 3, 1), description="First service date")
    period_end: date = Field(default=date(2024, 3, 31), description="Last service date")
    service_type_weights: dict[str, float] = Field(
        default_factory=lambda: {
            "CONSULTATION": 0.40,
            "PROCEDURE": 0.20,
            "MEDICATION": 0.20,
            "EMERGENCY": 0.06,
            "HOSPITALIZATION": 0.05,
            "NEWBORN": 0.02,
            "OTHER": 0.07,
        }
    )
