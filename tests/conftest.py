"""Shared test fixtures for RIPS engine tests."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from rips_engine.config import RipsConfig, SyntheticDataConfig
from rips_engine.schema import ConsultationService, Entity, Invoice, InvoiceBatch, Patient


@pytest.fixture
def rips_config() -> RipsConfig:
    """Config with fixed dates so output is reproducible."""
    return RipsConfig(
        provider_code="123456789012",
        habilitation_code="HAB000000001",
        remission_date=date(2024, 3, 15),
        generated_at=datetime(2024, 3, 15, 10, 30, 0),
    )


@pytest.fixture
def entity() -> Entity:
    return Entity(code="EPS001", name="Salud Total EPS")


@pytest.fixture
def patient() -> Patient:
    return Patient(
        document_type="CC",
        document_number="123",
        first_name="Ana",
        last_name="Gomez",
        birth_date=date(1990, 1, 1),
        gender="F",
    )


@pytest.fixture
def consultation(patient: Patient) -> ConsultationService:
    return ConsultationService(
        code="890201",
        patient=patient,
        service_date=date(2024, 3, 1),
        main_diagnosis="J069",
        value=50000,
        moderating_fee=5000,
    )


@pytest.fixture
def invoice(patient: Patient, consultation: ConsultationService) -> Invoice:
    """One invoice, one patient, one consultation."""
    return Invoice(
        number="F001",
        prefix="FE",
        invoice_date=date(2024, 3, 1),
        start_date=date(2024, 3, 1),
        end_date=date(2024, 3, 31),
        total_value=50000,
        patients=[patient],
        services=[consultation],
    )


@pytest.fixture
def batch(entity: Entity, invoice: Invoice) -> InvoiceBatch:
    return InvoiceBatch(entity=entity, invoices=[invoice])


@pytest.fixture
def synthetic_batch() -> InvoiceBatch:
    """A small synthetic batch drawn from the full service mix."""
    from rips_engine.generate_data import generate_invoice_batch

    return generate_invoice_batch(
        SyntheticDataConfig(seed=7, num_invoices=12, num_patients=6, max_services_per_invoice=8)
    )
