"""Tests for synthetic data generation."""

from rips_engine.config import SyntheticDataConfig
from rips_engine.generate_data import (
    DEFAULT_ENTITY,
    batch_to_service_lines,
    generate_invoice_batch,
)
from rips_engine.schema import (
    DOCUMENT_TYPES,
    GENDERS,
    RESIDENCE_ZONES,
    NewbornService,
    OtherService,
)


class TestGenerateInvoiceBatch:
    def test_deterministic(self) -> None:
        """Same seed should produce identical output."""
        config = SyntheticDataConfig(seed=42, num_invoices=15)
        first = generate_invoice_batch(config)
        second = generate_invoice_batch(config)
        assert first.model_dump() == second.model_dump()

    def test_different_seeds(self) -> None:
        first = generate_invoice_batch(SyntheticDataConfig(seed=1, num_invoices=15))
        second = generate_invoice_batch(SyntheticDataConfig(seed=2, num_invoices=15))
        assert first.model_dump() != second.model_dump()

    def test_sizes(self) -> None:
        config = SyntheticDataConfig(seed=3, num_invoices=25, max_services_per_invoice=4)
        batch = generate_invoice_batch(config)
        assert batch.entity == DEFAULT_ENTITY
        assert len(batch.invoices) == 25
        assert len({i.number for i in batch.invoices}) == 25
        assert all(1 <= len(i.services) <= 4 for i in batch.invoices)

    def test_services_within_period(self) -> None:
        config = SyntheticDataConfig(seed=5, num_invoices=30)
        for invoice in generate_invoice_batch(config).invoices:
            for service in invoice.services:
                day = getattr(service, "service_date", None) or getattr(
                    service, "admission_date", None
                ) or getattr(service, "birth_date", None)
                assert config.period_start <= day <= config.period_end

    def test_patients_consistent(self) -> None:
        batch = generate_invoice_batch(SyntheticDataConfig(seed=9, num_invoices=30))
        for invoice in batch.invoices:
            assert len(invoice.patients) == 1
            patient = invoice.patients[0]
            assert patient.document_type in DOCUMENT_TYPES
            assert patient.gender in GENDERS
            assert patient.residence_zone in RESIDENCE_ZONES
            assert all(s.patient == patient for s in invoice.services)
            for service in invoice.services:
                if isinstance(service, NewbornService):
                    assert patient.gender == "F"
                    assert service.mother_document_number == patient.document_number

    def test_other_types_keep_their_name(self) -> None:
        config = SyntheticDataConfig(
            seed=11, num_invoices=10, service_type_weights={"OTHER": 1.0}
        )
        services = [s for i in generate_invoice_batch(config).invoices for s in i.services]
        assert all(isinstance(s, OtherService) for s in services)
        assert {s.type for s in services} <= {"TRANSPORT", "SUPPLIES"}

    def test_invoice_totals(self) -> None:
        config = SyntheticDataConfig(
            seed=13, num_invoices=10, service_type_weights={"CONSULTATION": 1.0}
        )
        for invoice in generate_invoice_batch(config).invoices:
            assert invoice.total_value == sum(s.value for s in invoice.services)


class TestServiceLines:
    def test_one_row_per_service(self) -> None:
        batch = generate_invoice_batch(SyntheticDataConfig(seed=4, num_invoices=10))
        df = batch_to_service_lines(batch)
        assert df.height == sum(len(i.services) for i in batch.invoices)
        for column in ("invoice_number", "service_type", "document_type", "document_number"):
            assert column in df.columns
