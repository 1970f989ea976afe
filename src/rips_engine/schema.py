"""Domain models for RIPS generation input.

Provides:
- Pydantic models for the billing records the engine consumes (entity,
  patient, invoice) and a tagged union of service variants.
- Constants for enum-like field values.

Input attributes are accepted either in snake_case or in the camelCase used
by the billing backend (``documentType``, ``moderatingFee``).
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Enum-like constants
# ---------------------------------------------------------------------------
DOCUMENT_TYPES = ["CC", "TI", "RC", "CE", "PA", "MS", "AS", "CD", "SC", "PE"]
GENDERS = ["M", "F"]
RESIDENCE_ZONES = ["U", "R"]

CONSULTATION = "CONSULTATION"
PROCEDURE = "PROCEDURE"
MEDICATION = "MEDICATION"
EMERGENCY = "EMERGENCY"
HOSPITALIZATION = "HOSPITALIZATION"
NEWBORN = "NEWBORN"
OTHER = "OTHER"

SERVICE_TYPES = [CONSULTATION, PROCEDURE, MEDICATION, EMERGENCY, HOSPITALIZATION, NEWBORN]

# Dates arrive as date objects, datetimes, or ISO strings from JSON.
DateLike = Union[datetime, date, str, None]


class RipsModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        frozen=True,
    )


class Entity(RipsModel):
    """The payer being billed."""

    code: str
    name: str = ""


class Patient(RipsModel):
    """Demographic record; identity is (document_type, document_number)."""

    document_type: str = ""
    document_number: str = ""
    first_name: str = ""
    second_name: str = ""
    last_name: str = ""
    second_last_name: str = ""
    birth_date: DateLike = None
    gender: str | None = None
    age: int | None = None
    age_unit: str | None = None
    user_type: str | None = None
    department: str = ""
    municipality: str = ""
    residence_zone: str | None = None
    regime_type: str | None = None
    country_code: str | None = None
    ethnicity: str | None = None
    population_group: str | None = None
    phone: str = ""
    email: str = ""

    @property
    def identity(self) -> tuple[str, str]:
        return (self.document_type, self.document_number)


# ---------------------------------------------------------------------------
# Service variants
# ---------------------------------------------------------------------------
class ServiceBase(RipsModel):
    """Fields every billed line item carries."""

    type: str
    code: str = ""
    patient: Patient | None = None
    authorization_number: str = ""


class ConsultationService(ServiceBase):
    type: Literal["CONSULTATION"] = CONSULTATION
    service_date: DateLike = Field(default=None, alias="date")
    service_time: DateLike = Field(default=None, alias="time")
    purpose: str | None = None
    external_cause: str | None = None
    main_diagnosis: str = ""
    related_diagnosis1: str = ""
    related_diagnosis2: str = ""
    related_diagnosis3: str = ""
    diagnosis_type: str | None = None
    attention_mode: str | None = None
    result_code: str | None = None
    value: float = 0
    moderating_fee: float = 0


class ProcedureService(ServiceBase):
    type: Literal["PROCEDURE"] = PROCEDURE
    service_date: DateLike = Field(default=None, alias="date")
    service_time: DateLike = Field(default=None, alias="time")
    scope: str | None = None
    purpose: str | None = None
    attending_personnel: str | None = None
    main_diagnosis: str = ""
    related_diagnosis: str = ""
    complication: str = ""
    realization_form: str | None = None
    attention_mode: str | None = None
    value: float = 0
    moderating_fee: float = 0


class MedicationService(ServiceBase):
    type: Literal["MEDICATION"] = MEDICATION
    service_date: DateLike = Field(default=None, alias="date")
    diagnosis: str = ""
    medication_type: str | None = None
    generic_name: str = ""
    pharmaceutical_form: str = ""
    concentration: str = ""
    unit: str = ""
    quantity: int = 0
    unit_value: float = 0
    total_value: float = 0


class EmergencyService(ServiceBase):
    type: Literal["EMERGENCY"] = EMERGENCY
    admission_date: DateLike = None
    admission_time: DateLike = None
    external_cause: str | None = None
    admission_diagnosis: str = ""
    related_diagnosis1: str = ""
    related_diagnosis2: str = ""
    related_diagnosis3: str = ""
    discharge_date: DateLike = None
    discharge_time: DateLike = None
    discharge_diagnosis: str = ""
    related_discharge_diagnosis1: str = ""
    related_discharge_diagnosis2: str = ""
    related_discharge_diagnosis3: str = ""
    destination: str | None = None
    discharge_status: str | None = None
    death_cause: str = ""
    observation: str | None = None
    consultation_value: float = 0
    observation_value: float = 0
    total_value: float = 0


class HospitalizationService(ServiceBase):
    type: Literal["HOSPITALIZATION"] = HOSPITALIZATION
    admission_date: DateLike = None
    admission_time: DateLike = None
    admission_route: str | None = None
    external_cause: str | None = None
    admission_diagnosis: str = ""
    related_diagnosis1: str = ""
    related_diagnosis2: str = ""
    related_diagnosis3: str = ""
    discharge_date: DateLike = None
    discharge_time: DateLike = None
    discharge_diagnosis: str = ""
    related_discharge_diagnosis1: str = ""
    related_discharge_diagnosis2: str = ""
    related_discharge_diagnosis3: str = ""
    complication_diagnosis: str = ""
    discharge_status: str | None = None
    death_cause: str = ""
    destination: str | None = None
    stay_value: float = 0


class NewbornService(ServiceBase):
    type: Literal["NEWBORN"] = NEWBORN
    mother_document_type: str = ""
    mother_document_number: str = ""
    birth_date: DateLike = None
    birth_time: DateLike = None
    gestational_age: int | None = None
    prenatal_control: str | None = None
    gender: str | None = None
    weight: int | None = None
    main_diagnosis: str = ""
    related_diagnosis1: str = ""
    related_diagnosis2: str = ""
    related_diagnosis3: str = ""
    health_condition: str | None = None
    death_cause: str = ""


class OtherService(ServiceBase):
    """Any service type without a dedicated file; keeps the raw type string."""

    type: str = OTHER
    service_date: DateLike = Field(default=None, alias="date")
    name: str = ""
    quantity: int = 1
    unit_value: float = 0
    total_value: float = 0


def _service_tag(value: Any) -> str:
    raw = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    return raw if raw in SERVICE_TYPES else OTHER


Service = Annotated[
    Union[
        Annotated[ConsultationService, Tag(CONSULTATION)],
        Annotated[ProcedureService, Tag(PROCEDURE)],
        Annotated[MedicationService, Tag(MEDICATION)],
        Annotated[EmergencyService, Tag(EMERGENCY)],
        Annotated[HospitalizationService, Tag(HOSPITALIZATION)],
        Annotated[NewbornService, Tag(NEWBORN)],
        Annotated[OtherService, Tag(OTHER)],
    ],
    Discriminator(_service_tag),
]


class Invoice(RipsModel):
    """Billing header with its patients and services already resolved."""

    number: str
    prefix: str = ""
    invoice_date: DateLike = Field(default=None, alias="date")
    start_date: DateLike = None
    end_date: DateLike = None
    total_value: float = 0
    contract_number: str = ""
    benefits_plan: str | None = None
    patients: list[Patient] = Field(default_factory=list)
    services: list[Service] = Field(default_factory=list)


class InvoiceBatch(RipsModel):
    """One generation request: the payer and its invoices for a period."""

    entity: Entity
    invoices: list[Invoice] = Field(default_factory=list)
