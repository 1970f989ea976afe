"""Tests for record mappers."""

from datetime import date, datetime

import pytest

from rips_engine.config import FormatVersion, RipsConfig
from rips_engine.mappers import (
    AGE_DAYS,
    AGE_MONTHS,
    AGE_YEARS,
    age_at,
    map_service,
    map_user,
    service_kind,
)
from rips_engine.registry import SchemaRegistry
from rips_engine.schema import (
    ConsultationService,
    EmergencyService,
    Entity,
    HospitalizationService,
    Invoice,
    MedicationService,
    NewbornService,
    OtherService,
    Patient,
    ProcedureService,
)


def _all_variants(patient: Patient) -> list:
    return [
        ConsultationService(code="890201", patient=patient, service_date=date(2024, 3, 1)),
        ProcedureService(code="871121", patient=patient, main_diagnosis="I10X"),
        MedicationService(code="19943544-1", patient=patient, quantity=10, unit_value=500),
        EmergencyService(
            code="890701",
            patient=patient,
            admission_date=datetime(2024, 3, 2, 22, 10),
            admission_diagnosis="R51X",
        ),
        HospitalizationService(code="S11101", patient=patient, stay_value=700000),
        NewbornService(
            code="735301",
            patient=patient,
            mother_document_type="CC",
            mother_document_number="123",
        ),
        OtherService(type="TRANSPORT", code="S23101", patient=patient, name="TRASLADO"),
    ]


class TestFieldOrder:
    @pytest.mark.parametrize("version", ["3374", "2275"])
    def test_records_follow_field_tables(
        self, version: str, invoice: Invoice, patient: Patient, rips_config: RipsConfig
    ) -> None:
        """Every mapped record has exactly the fields of its table, in order."""
        registry = SchemaRegistry.for_version(version)
        routed = set()
        for service in _all_variants(patient):
            record_type, record = map_service(invoice, service, rips_config, version)
            expected = [spec.name for spec in registry.get_file_structure(record_type)]
            assert list(record) == expected, record_type
            routed.add(record_type)
        assert len(routed) == 7

    @pytest.mark.parametrize("version", ["3374", "2275"])
    def test_user_record_follows_field_table(
        self, version: str, patient: Patient, entity: Entity, rips_config: RipsConfig
    ) -> None:
        registry = SchemaRegistry.for_version(version)
        record = map_user(patient, entity, rips_config, version)
        expected = [spec.name for spec in registry.get_file_structure(registry.user_type)]
        assert list(record) == expected


class TestConsultation:
    def test_current_values(
        self, invoice: Invoice, consultation: ConsultationService, rips_config: RipsConfig
    ) -> None:
        record_type, record = map_service(invoice, consultation, rips_config, "2275")
        assert record_type == "ACCT"
        assert record["codigo_prestador"] == "1234567890120000"
        assert record["prefijo_factura"] == "FE"
        assert record["hora_consulta"] == "00:00"
        assert record["codigo_diagnostico_principal"] == "J06900"
        assert record["codigo_diagnostico_relacionado1"] == ""
        assert record["modalidad_atencion"] == "01"
        assert record["valor_neto"] == 45000

    def test_legacy_values(
        self, invoice: Invoice, consultation: ConsultationService, rips_config: RipsConfig
    ) -> None:
        record_type, record = map_service(invoice, consultation, rips_config, "3374")
        assert record_type == "AC"
        assert record["codigo_prestador"] == "123456789012"
        assert record["codigo_diagnostico_principal"] == "J069"
        assert record["finalidad_consulta"] == "10"
        assert record["valor_neto"] == 45000

    def test_fee_above_value_gives_negative_net(
        self, invoice: Invoice, patient: Patient, rips_config: RipsConfig
    ) -> None:
        service = ConsultationService(patient=patient, value=3000, moderating_fee=4500)
        _, record = map_service(invoice, service, rips_config, FormatVersion.CURRENT)
        assert record["valor_neto"] == -1500

    def test_explicit_codes_win_over_defaults(
        self, invoice: Invoice, patient: Patient, rips_config: RipsConfig
    ) -> None:
        service = ConsultationService(patient=patient, purpose="07", attention_mode="02")
        _, record = map_service(invoice, service, rips_config, "2275")
        assert record["finalidad_consulta"] == "07"
        assert record["modalidad_atencion"] == "02"

    @pytest.mark.parametrize("version", ["3374", "2275"])
    def test_undated_service_takes_invoice_date(
        self, version: str, invoice: Invoice, patient: Patient, rips_config: RipsConfig
    ) -> None:
        _, record = map_service(invoice, ConsultationService(patient=patient), rips_config, version)
        assert record["fecha_consulta"] == "2024-03-01"

    def test_undated_service_without_invoice_date_takes_period_start(
        self, invoice: Invoice, patient: Patient, rips_config: RipsConfig
    ) -> None:
        undated = invoice.model_copy(
            update={"invoice_date": None, "start_date": date(2024, 2, 1)}
        )
        service = OtherService(type="TRANSPORT", code="S23101", patient=patient)
        _, record = map_service(undated, service, rips_config, "2275")
        assert record["fecha_servicio"] == "2024-02-01"

    def test_service_date_wins_over_invoice_date(
        self, invoice: Invoice, patient: Patient, rips_config: RipsConfig
    ) -> None:
        service = ProcedureService(patient=patient, service_date=date(2024, 3, 9))
        _, record = map_service(invoice, service, rips_config, "3374")
        assert record["fecha_procedimiento"] == "2024-03-09"


class TestOtherVariants:
    def test_missing_patient_gives_empty_document(
        self, invoice: Invoice, rips_config: RipsConfig
    ) -> None:
        _, record = map_service(invoice, ProcedureService(code="871121"), rips_config, "2275")
        assert record["tipo_documento"] == ""
        assert record["numero_documento"] == ""

    def test_unknown_type_goes_to_catch_all(
        self, invoice: Invoice, patient: Patient, rips_config: RipsConfig
    ) -> None:
        service = OtherService(type="LAB", code="903895", patient=patient, name="GLUCOSA")
        assert service_kind(service) == "OTHER"
        assert map_service(invoice, service, rips_config, "2275")[0] == "ADCT"
        assert map_service(invoice, service, rips_config, "3374")[0] == "AU"

    def test_emergency_time_taken_from_admission(
        self, invoice: Invoice, patient: Patient, rips_config: RipsConfig
    ) -> None:
        service = EmergencyService(patient=patient, admission_date=datetime(2024, 3, 2, 22, 10))
        _, record = map_service(invoice, service, rips_config, "2275")
        assert record["fecha_ingreso"] == "2024-03-02"
        assert record["hora_ingreso"] == "22:10"
        assert record["observacion"] == "1"

    def test_newborn_defaults(self, invoice: Invoice, rips_config: RipsConfig) -> None:
        service = NewbornService(mother_document_type="CC", mother_document_number="123")
        record_type, record = map_service(invoice, service, rips_config, "2275")
        assert record_type == "ANCT"
        assert record["edad_gestacional"] == 40
        assert record["peso"] == 3000
        assert record["tipo_documento_madre"] == "CC"


class TestUsers:
    def test_current_user(self, patient: Patient, entity: Entity, rips_config: RipsConfig) -> None:
        record = map_user(patient, entity, rips_config, "2275")
        assert record["fecha_nacimiento"] == "1990-01-01"
        assert record["tipo_usuario"] == "01"
        assert record["codigo_pais"] == "170"
        assert record["codigo_entidad"] == "EPS001"

    def test_legacy_age_from_birth_date(
        self, patient: Patient, entity: Entity, rips_config: RipsConfig
    ) -> None:
        record = map_user(patient, entity, rips_config, "3374")
        assert record["edad"] == 34
        assert record["unidad_medida_edad"] == AGE_YEARS
        assert record["tipo_usuario"] == "1"

    def test_legacy_explicit_age_kept(self, entity: Entity, rips_config: RipsConfig) -> None:
        patient = Patient(document_type="RC", document_number="9", age=8, age_unit=AGE_MONTHS)
        record = map_user(patient, entity, rips_config, "3374")
        assert record["edad"] == 8
        assert record["unidad_medida_edad"] == AGE_MONTHS


class TestAgeAt:
    def test_years(self) -> None:
        assert age_at(date(1990, 1, 1), date(2024, 3, 15)) == (34, AGE_YEARS)
        assert age_at(date(2023, 3, 15), date(2024, 3, 15)) == (1, AGE_YEARS)

    def test_months(self) -> None:
        assert age_at(date(2024, 1, 20), date(2024, 3, 15)) == (1, AGE_MONTHS)

    def test_days(self) -> None:
        assert age_at(date(2024, 3, 10), date(2024, 3, 15)) == (5, AGE_DAYS)
