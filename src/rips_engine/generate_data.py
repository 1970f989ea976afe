"""Synthetic invoice batch generator.

Produces an ``InvoiceBatch`` with realistic RIPS input patterns:
- A shared patient pool, so the same person appears on several invoices
- Service mix drawn from configurable type weights, including free-form
  types that land in the catch-all file
- Lognormal service values rounded to whole pesos, with moderating fees
- Document types consistent with patient age (RC / TI / CC)

All generation is seeded for deterministic, reproducible output.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

import numpy as np
import polars as pl

from rips_engine.config import SyntheticDataConfig
from rips_engine.schema import (
    CONSULTATION,
    EMERGENCY,
    GENDERS,
    HOSPITALIZATION,
    MEDICATION,
    NEWBORN,
    OTHER,
    PROCEDURE,
    RESIDENCE_ZONES,
    Entity,
    Invoice,
    InvoiceBatch,
    Patient,
)

FIRST_NAMES = ["Ana", "Luis", "Maria", "Carlos", "Sofia", "Jorge", "Camila", "Andres", "Laura", "Diego"]
LAST_NAMES = ["Gomez", "Rodriguez", "Martinez", "Lopez", "Garcia", "Perez", "Ramirez", "Torres"]
# (department, municipality) DANE codes
LOCATIONS = [("11", "001"), ("05", "001"), ("76", "001"), ("08", "001"), ("68", "001")]

DIAGNOSES = ["J069", "I10X", "E119", "K297", "M545", "R51X", "N390", "A09X"]
CONSULTATION_CODES = ["890201", "890301", "890202"]
PROCEDURE_CODES = ["871121", "903895", "902210", "881302"]
MEDICATIONS = [
    ("19943544-1", "ACETAMINOFEN", "TABLETA", "500 MG", "TABLETA"),
    ("20001234-2", "LOSARTAN", "TABLETA", "50 MG", "TABLETA"),
    ("19905678-3", "AMOXICILINA", "CAPSULA", "500 MG", "CAPSULA"),
    ("20009876-1", "METFORMINA", "TABLETA", "850 MG", "TABLETA"),
]
OTHER_SERVICES = [
    ("TRANSPORT", "S23101", "TRASLADO ASISTENCIAL BASICO"),
    ("SUPPLIES", "MQ0012", "MATERIAL DE CURACION"),
]
MODERATING_FEES = [0, 4500, 18000]

DEFAULT_ENTITY = Entity(code="EPS037", name="NUEVA EPS S.A.")


def _document_type(age_years: int) -> str:
    if age_years < 7:
        return "RC"
    if age_years < 18:
        return "TI"
    return "CC"


def _generate_patients(rng: np.random.Generator, config: SyntheticDataConfig) -> list[Patient]:
    """Patient pool with ages spread from newborn to elderly."""
    patients = []
    for i in range(config.num_patients):
        age_days = int(rng.integers(30, 85 * 365))
        birth = config.period_start - timedelta(days=age_days)
        department, municipality = LOCATIONS[int(rng.integers(0, len(LOCATIONS)))]
        patients.append(
            Patient(
                document_type=_document_type(age_days // 365),
                document_number=str(10_000_000 + i * 7919),
                first_name=str(rng.choice(FIRST_NAMES)),
                last_name=str(rng.choice(LAST_NAMES)),
                second_last_name=str(rng.choice(LAST_NAMES)),
                birth_date=birth,
                gender=str(rng.choice(GENDERS)),
                department=department,
                municipality=municipality,
                residence_zone=str(rng.choice(RESIDENCE_ZONES, p=[0.8, 0.2])),
            )
        )
    return patients


def _money(rng: np.random.Generator, median: float, sigma: float = 0.5) -> float:
    """Lognormal amount rounded to the nearest hundred pesos."""
    return float(round(rng.lognormal(np.log(median), sigma), -2))


def _hhmm(rng: np.random.Generator) -> str:
    return f"{int(rng.integers(6, 22)):02d}:{int(rng.integers(0, 4)) * 15:02d}"


def _service(
    rng: np.random.Generator, kind: str, patient: Patient, day: date
) -> tuple[dict[str, Any], float]:
    """Service payload and its billed value."""
    dx = str(rng.choice(DIAGNOSES))
    base: dict[str, Any] = {
        "patient": patient,
        "authorization_number": f"AUT{int(rng.integers(100_000, 1_000_000))}",
    }

    if kind == CONSULTATION:
        value = _money(rng, 45_000)
        return {
            **base,
            "type": kind,
            "code": str(rng.choice(CONSULTATION_CODES)),
            "date": day,
            "time": _hhmm(rng),
            "main_diagnosis": dx,
            "value": value,
            "moderating_fee": float(rng.choice(MODERATING_FEES)),
        }, value
    if kind == PROCEDURE:
        value = _money(rng, 120_000, 0.8)
        return {
            **base,
            "type": kind,
            "code": str(rng.choice(PROCEDURE_CODES)),
            "date": day,
            "time": _hhmm(rng),
            "main_diagnosis": dx,
            "value": value,
            "moderating_fee": float(rng.choice(MODERATING_FEES)),
        }, value
    if kind == MEDICATION:
        code, name, form, concentration, unit = MEDICATIONS[int(rng.integers(0, len(MEDICATIONS)))]
        quantity = int(rng.integers(1, 31))
        unit_value = max(_money(rng, 900, 0.4), 100.0)
        return {
            **base,
            "type": kind,
            "code": code,
            "date": day,
            "diagnosis": dx,
            "generic_name": name,
            "pharmaceutical_form": form,
            "concentration": concentration,
            "unit": unit,
            "quantity": quantity,
            "unit_value": unit_value,
            "total_value": quantity * unit_value,
        }, quantity * unit_value
    if kind == EMERGENCY:
        consultation = _money(rng, 80_000)
        observation = _money(rng, 150_000)
        return {
            **base,
            "type": kind,
            "code": "890701",
            "admission_date": day,
            "admission_time": _hhmm(rng),
            "admission_diagnosis": dx,
            "discharge_date": day + timedelta(days=int(rng.integers(0, 2))),
            "discharge_time": _hhmm(rng),
            "discharge_diagnosis": dx,
            "observation": "2",
            "consultation_value": consultation,
            "observation_value": observation,
            "total_value": consultation + observation,
        }, consultation + observation
    if kind == HOSPITALIZATION:
        days = int(rng.integers(1, 11))
        stay = _money(rng, 350_000, 0.3) * days
        return {
            **base,
            "type": kind,
            "code": "S11101",
            "admission_date": day,
            "admission_time": _hhmm(rng),
            "admission_diagnosis": dx,
            "discharge_date": day + timedelta(days=days),
            "discharge_time": _hhmm(rng),
            "discharge_diagnosis": dx,
            "stay_value": stay,
        }, stay
    if kind == NEWBORN:
        return {
            **base,
            "type": kind,
            "code": "735301",
            "mother_document_type": patient.document_type,
            "mother_document_number": patient.document_number,
            "birth_date": day,
            "birth_time": _hhmm(rng),
            "gestational_age": int(rng.integers(36, 42)),
            "prenatal_control": "1",
            "gender": str(rng.choice(GENDERS)),
            "weight": int(rng.integers(2500, 4200)),
            "main_diagnosis": "Z380",
        }, 0.0

    service_type, code, name = OTHER_SERVICES[int(rng.integers(0, len(OTHER_SERVICES)))]
    quantity = int(rng.integers(1, 4))
    unit_value = _money(rng, 60_000)
    return {
        **base,
        "type": service_type,
        "code": code,
        "date": day,
        "name": name,
        "quantity": quantity,
        "unit_value": unit_value,
        "total_value": quantity * unit_value,
    }, quantity * unit_value


def generate_invoice_batch(
    config: SyntheticDataConfig, entity: Entity = DEFAULT_ENTITY
) -> InvoiceBatch:
    """Generate a synthetic invoice batch.

    Args:
        config: Seed, sizes, period and service-type weights.
        entity: Payer the batch is billed to.

    Returns:
        InvoiceBatch whose invoices reference patients from a shared pool.
    """
    rng = np.random.default_rng(config.seed)
    patients = _generate_patients(rng, config)
    kinds = list(config.service_type_weights)
    weights = np.array([config.service_type_weights[k] for k in kinds], dtype=float)
    weights = weights / weights.sum()
    period_days = max((config.period_end - config.period_start).days, 0)

    invoices = []
    for i in range(config.num_invoices):
        patient = patients[int(rng.integers(0, len(patients)))]
        services = []
        total = 0.0
        for _ in range(int(rng.integers(1, config.max_services_per_invoice + 1))):
            kind = str(rng.choice(kinds, p=weights))
            if kind == NEWBORN and patient.gender != "F":
                kind = OTHER
            day = config.period_start + timedelta(days=int(rng.integers(0, period_days + 1)))
            payload, value = _service(rng, kind, patient, day)
            services.append(payload)
            total += value
        invoices.append(
            Invoice.model_validate(
                {
                    "number": f"FE{10_001 + i}",
                    "prefix": "FE",
                    "date": config.period_end,
                    "start_date": config.period_start,
                    "end_date": config.period_end,
                    "total_value": total,
                    "contract_number": f"CT-{entity.code}-2024",
                    "patients": [patient],
                    "services": services,
                }
            )
        )
    return InvoiceBatch(entity=entity, invoices=invoices)


def batch_to_service_lines(batch: InvoiceBatch) -> pl.DataFrame:
    """Flatten a batch into one row per service (see ``load_service_lines``)."""
    rows = []
    for invoice in batch.invoices:
        for service in invoice.services:
            row: dict[str, Any] = {
                "invoice_number": invoice.number,
                "invoice_prefix": invoice.prefix,
                "invoice_date": invoice.invoice_date,
                "start_date": invoice.start_date,
                "end_date": invoice.end_date,
                "invoice_total": invoice.total_value,
                "contract_number": invoice.contract_number,
            }
            if service.patient is not None:
                p = service.patient
                row.update(
                    document_type=p.document_type,
                    document_number=p.document_number,
                    first_name=p.first_name,
                    last_name=p.last_name,
                    second_last_name=p.second_last_name,
                    patient_birth_date=p.birth_date,
                    patient_gender=p.gender,
                    department=p.department,
                    municipality=p.municipality,
                    residence_zone=p.residence_zone,
                )
            details = service.model_dump(exclude={"patient", "type", "code"}, exclude_defaults=True)
            row.update(service_type=service.type, service_code=service.code, **details)
            rows.append(row)
    return pl.from_dicts(rows, infer_schema_length=None)
