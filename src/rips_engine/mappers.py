"""Record mappers: billing models -> RIPS records.

Each mapper is a pure function of one invoice, one service (or patient) and
the run's ``RipsConfig``, returning a dict keyed by the field names of its
record type in declared order. Optional clinical codes fall back to the
per-version ``MappingDefaults``; missing values become ``""`` or ``0``.
Nothing here raises for incomplete input: the validator reports it.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict

from rips_engine.config import FormatVersion, RipsConfig
from rips_engine.formatting import as_date, clip, pad_code, to_hhmm, to_iso_date
from rips_engine.registry import SchemaRegistry
from rips_engine.schema import (
    CONSULTATION,
    EMERGENCY,
    HOSPITALIZATION,
    MEDICATION,
    NEWBORN,
    OTHER,
    PROCEDURE,
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
    ServiceBase,
)

Record = dict[str, Any]

DIAGNOSIS_LENGTH = 6

# Age units of the legacy user file.
AGE_YEARS = "1"
AGE_MONTHS = "2"
AGE_DAYS = "3"


class MappingDefaults(BaseModel):
    """Codes written when the input leaves an optional field empty."""

    model_config = ConfigDict(frozen=True)

    user_type: str
    age_unit: str = AGE_YEARS
    gender: str = "M"
    residence_zone: str = "U"
    country_code: str = "170"
    regime_type: str = "01"
    ethnicity: str = "01"
    population_group: str = "01"
    benefits_plan: str = "01"
    consultation_purpose: str = "10"
    external_cause: str = "13"
    diagnosis_type: str = "1"
    attention_mode: str = "01"
    consultation_result: str = "01"
    procedure_scope: str
    procedure_purpose: str
    attending_personnel: str
    realization_form: str
    medication_type: str
    destination: str
    discharge_status: str = "1"
    observation: str = "1"
    admission_route: str
    gestational_age: int = 40
    prenatal_control: str = "1"
    newborn_weight: int = 3000
    health_condition: str = "1"
    other_quantity: int = 1


LEGACY_DEFAULTS = MappingDefaults(
    user_type="1",
    procedure_scope="1",
    procedure_purpose="2",
    attending_personnel="1",
    realization_form="1",
    medication_type="1",
    destination="1",
    admission_route="1",
)

CURRENT_DEFAULTS = MappingDefaults(
    user_type="01",
    procedure_scope="01",
    procedure_purpose="02",
    attending_personnel="01",
    realization_form="01",
    medication_type="01",
    destination="01",
    admission_route="01",
)

DEFAULTS = {FormatVersion.LEGACY: LEGACY_DEFAULTS, FormatVersion.CURRENT: CURRENT_DEFAULTS}

LEGACY = SchemaRegistry.for_version(FormatVersion.LEGACY)
CURRENT = SchemaRegistry.for_version(FormatVersion.CURRENT)


def _fit(registry: SchemaRegistry, file_type: str, field: str, value: str | None) -> str:
    return clip(value, registry.max_length(file_type, field))


def _dx(code: str | None) -> str:
    return pad_code(code, DIAGNOSIS_LENGTH)


def _service_date(invoice: Invoice, service: Any) -> str:
    """Date of a dated service; undated services take the invoice date, else the period start."""
    return to_iso_date(service.service_date or invoice.invoice_date or invoice.start_date)


def _patient_key(patient: Patient | None) -> Record:
    if patient is None:
        return {"tipo_documento": "", "numero_documento": ""}
    return {
        "tipo_documento": patient.document_type,
        "numero_documento": patient.document_number,
    }


def _legacy_header(invoice: Invoice, service: ServiceBase, config: RipsConfig) -> Record:
    return {
        "numero_factura": invoice.number,
        "codigo_prestador": config.provider_code_for(LEGACY.provider_code_length),
        **_patient_key(service.patient),
    }


def _current_header(invoice: Invoice, service: ServiceBase, config: RipsConfig) -> Record:
    return {
        "numero_factura": invoice.number,
        "prefijo_factura": invoice.prefix,
        "codigo_prestador": config.provider_code_for(CURRENT.provider_code_length),
        **_patient_key(service.patient),
    }


def age_at(birth_date: date, reference: date) -> tuple[int, str]:
    """Age at ``reference`` as (value, unit): years, else months, else days."""
    years = reference.year - birth_date.year
    if (reference.month, reference.day) < (birth_date.month, birth_date.day):
        years -= 1
    if years >= 1:
        return years, AGE_YEARS
    months = (reference.year - birth_date.year) * 12 + reference.month - birth_date.month
    if reference.day < birth_date.day:
        months -= 1
    if months >= 1:
        return months, AGE_MONTHS
    return max((reference - birth_date).days, 0), AGE_DAYS


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
def map_legacy_user(patient: Patient, entity: Entity, config: RipsConfig) -> Record:
    """US record. ``edad`` is derived from the birth date when age is absent."""
    d = LEGACY_DEFAULTS
    age, age_unit = patient.age, patient.age_unit
    if age is None:
        born = as_date(patient.birth_date)
        if born is not None:
            age, age_unit = age_at(born, config.remission_date)
    return {
        "tipo_documento": patient.document_type,
        "numero_documento": patient.document_number,
        "codigo_entidad": entity.code,
        "tipo_usuario": patient.user_type or d.user_type,
        "primer_apellido": _fit(LEGACY, "US", "primer_apellido", patient.last_name),
        "segundo_apellido": _fit(LEGACY, "US", "segundo_apellido", patient.second_last_name),
        "primer_nombre": _fit(LEGACY, "US", "primer_nombre", patient.first_name),
        "segundo_nombre": _fit(LEGACY, "US", "segundo_nombre", patient.second_name),
        "edad": age or 0,
        "unidad_medida_edad": age_unit or d.age_unit,
        "sexo": patient.gender or d.gender,
        "codigo_departamento": _fit(LEGACY, "US", "codigo_departamento", patient.department),
        "codigo_municipio": _fit(LEGACY, "US", "codigo_municipio", patient.municipality),
        "zona_residencia": patient.residence_zone or d.residence_zone,
    }


def map_current_user(patient: Patient, entity: Entity, config: RipsConfig) -> Record:
    d = CURRENT_DEFAULTS
    return {
        "tipo_documento": patient.document_type,
        "numero_documento": patient.document_number,
        "codigo_entidad": entity.code,
        "tipo_usuario": patient.user_type or d.user_type,
        "primer_apellido": _fit(CURRENT, "ATUS", "primer_apellido", patient.last_name),
        "segundo_apellido": _fit(CURRENT, "ATUS", "segundo_apellido", patient.second_last_name),
        "primer_nombre": _fit(CURRENT, "ATUS", "primer_nombre", patient.first_name),
        "segundo_nombre": _fit(CURRENT, "ATUS", "segundo_nombre", patient.second_name),
        "fecha_nacimiento": to_iso_date(patient.birth_date),
        "sexo": patient.gender or d.gender,
        "codigo_pais": patient.country_code or d.country_code,
        "codigo_departamento": _fit(CURRENT, "ATUS", "codigo_departamento", patient.department),
        "codigo_municipio": _fit(CURRENT, "ATUS", "codigo_municipio", patient.municipality),
        "zona_residencia": patient.residence_zone or d.residence_zone,
        "tipo_regimen": patient.regime_type or d.regime_type,
        "etnia": patient.ethnicity or d.ethnicity,
        "grupo_poblacional": patient.population_group or d.population_group,
        "telefono": _fit(CURRENT, "ATUS", "telefono", patient.phone),
        "correo_electronico": _fit(CURRENT, "ATUS", "correo_electronico", patient.email),
    }


# ---------------------------------------------------------------------------
# Resolución 3374 services
# ---------------------------------------------------------------------------
def map_legacy_consultation(
    invoice: Invoice, service: ConsultationService, config: RipsConfig
) -> Record:
    d = LEGACY_DEFAULTS
    return {
        **_legacy_header(invoice, service, config),
        "fecha_consulta": _service_date(invoice, service),
        "codigo_consulta": service.code,
        "finalidad_consulta": service.purpose or d.consultation_purpose,
        "causa_externa": service.external_cause or d.external_cause,
        "codigo_diagnostico_principal": service.main_diagnosis,
        "codigo_diagnostico_relacionado1": service.related_diagnosis1,
        "codigo_diagnostico_relacionado2": service.related_diagnosis2,
        "codigo_diagnostico_relacionado3": service.related_diagnosis3,
        "tipo_diagnostico_principal": service.diagnosis_type or d.diagnosis_type,
        "valor_consulta": service.value,
        "valor_cuota_moderadora": service.moderating_fee,
        "valor_neto": service.value - service.moderating_fee,
    }


def map_legacy_procedure(
    invoice: Invoice, service: ProcedureService, config: RipsConfig
) -> Record:
    d = LEGACY_DEFAULTS
    return {
        **_legacy_header(invoice, service, config),
        "fecha_procedimiento": _service_date(invoice, service),
        "codigo_procedimiento": service.code,
        "ambito_realizacion": service.scope or d.procedure_scope,
        "finalidad_procedimiento": service.purpose or d.procedure_purpose,
        "personal_atiende": service.attending_personnel or d.attending_personnel,
        "diagnostico_principal": service.main_diagnosis,
        "diagnostico_relacionado": service.related_diagnosis,
        "complicacion": service.complication,
        "forma_realizacion": service.realization_form or d.realization_form,
        "valor_procedimiento": service.value,
    }


def map_legacy_medication(
    invoice: Invoice, service: MedicationService, config: RipsConfig
) -> Record:
    return {
        **_legacy_header(invoice, service, config),
        "codigo_medicamento": service.code,
        "tipo_medicamento": service.medication_type or LEGACY_DEFAULTS.medication_type,
        "nombre_generico": _fit(LEGACY, "AM", "nombre_generico", service.generic_name),
        "forma_farmaceutica": _fit(LEGACY, "AM", "forma_farmaceutica", service.pharmaceutical_form),
        "concentracion": _fit(LEGACY, "AM", "concentracion", service.concentration),
        "unidad_medida": _fit(LEGACY, "AM", "unidad_medida", service.unit),
        "numero_unidades": service.quantity,
        "valor_unitario": service.unit_value,
        "valor_total": service.total_value,
    }


def map_legacy_emergency(
    invoice: Invoice, service: EmergencyService, config: RipsConfig
) -> Record:
    d = LEGACY_DEFAULTS
    return {
        **_legacy_header(invoice, service, config),
        "fecha_ingreso": to_iso_date(service.admission_date),
        "hora_ingreso": to_hhmm(service.admission_time or service.admission_date),
        "causa_externa": service.external_cause or d.external_cause,
        "diagnostico_principal_ingreso": service.admission_diagnosis,
        "diagnostico_relacionado1_ingreso": service.related_diagnosis1,
        "diagnostico_relacionado2_ingreso": service.related_diagnosis2,
        "diagnostico_relacionado3_ingreso": service.related_diagnosis3,
        "fecha_salida": to_iso_date(service.discharge_date),
        "hora_salida": to_hhmm(service.discharge_time or service.discharge_date),
        "diagnostico_principal_egreso": service.discharge_diagnosis,
        "diagnostico_relacionado1_egreso": service.related_discharge_diagnosis1,
        "diagnostico_relacionado2_egreso": service.related_discharge_diagnosis2,
        "diagnostico_relacionado3_egreso": service.related_discharge_diagnosis3,
        "destino_usuario": service.destination or d.destination,
        "estado_salida": service.discharge_status or d.discharge_status,
        "causa_muerte": service.death_cause,
    }


def map_legacy_hospitalization(
    invoice: Invoice, service: HospitalizationService, config: RipsConfig
) -> Record:
    d = LEGACY_DEFAULTS
    return {
        **_legacy_header(invoice, service, config),
        "via_ingreso": service.admission_route or d.admission_route,
        "fecha_ingreso": to_iso_date(service.admission_date),
        "hora_ingreso": to_hhmm(service.admission_time or service.admission_date),
        "numero_autorizacion": service.authorization_number,
        "causa_externa": service.external_cause or d.external_cause,
        "diagnostico_principal_ingreso": service.admission_diagnosis,
        "diagnostico_principal_egreso": service.discharge_diagnosis,
        "diagnostico_relacionado1_egreso": service.related_discharge_diagnosis1,
        "diagnostico_relacionado2_egreso": service.related_discharge_diagnosis2,
        "diagnostico_relacionado3_egreso": service.related_discharge_diagnosis3,
        "diagnostico_complicacion": service.complication_diagnosis,
        "estado_salida": service.discharge_status or d.discharge_status,
        "causa_muerte": service.death_cause,
        "fecha_egreso": to_iso_date(service.discharge_date),
        "hora_egreso": to_hhmm(service.discharge_time or service.discharge_date),
    }


def map_legacy_newborn(invoice: Invoice, service: NewbornService, config: RipsConfig) -> Record:
    d = LEGACY_DEFAULTS
    return {
        "numero_factura": invoice.number,
        "codigo_prestador": config.provider_code_for(LEGACY.provider_code_length),
        "tipo_documento_madre": service.mother_document_type,
        "numero_documento_madre": service.mother_document_number,
        "fecha_nacimiento": to_iso_date(service.birth_date),
        "hora_nacimiento": to_hhmm(service.birth_time or service.birth_date),
        "edad_gestacional": service.gestational_age or d.gestational_age,
        "control_prenatal": service.prenatal_control or d.prenatal_control,
        "sexo": service.gender or d.gender,
        "peso": service.weight or d.newborn_weight,
        "diagnostico_principal": service.main_diagnosis,
        "causa_muerte": service.death_cause,
    }


def map_legacy_other(invoice: Invoice, service: OtherService, config: RipsConfig) -> Record:
    return {
        **_legacy_header(invoice, service, config),
        "fecha_servicio": _service_date(invoice, service),
        "codigo_servicio": service.code,
        "nombre_servicio": _fit(LEGACY, "AU", "nombre_servicio", service.name),
        "cantidad": service.quantity or LEGACY_DEFAULTS.other_quantity,
        "valor_unitario": service.unit_value,
        "valor_total": service.total_value,
    }


# ---------------------------------------------------------------------------
# Resolución 2275 services
# ---------------------------------------------------------------------------
def map_current_consultation(
    invoice: Invoice, service: ConsultationService, config: RipsConfig
) -> Record:
    d = CURRENT_DEFAULTS
    return {
        **_current_header(invoice, service, config),
        "fecha_consulta": _service_date(invoice, service),
        "hora_consulta": to_hhmm(service.service_time or service.service_date),
        "numero_autorizacion": service.authorization_number,
        "codigo_consulta": service.code,
        "modalidad_atencion": service.attention_mode or d.attention_mode,
        "finalidad_consulta": service.purpose or d.consultation_purpose,
        "causa_externa": service.external_cause or d.external_cause,
        "codigo_diagnostico_principal": _dx(service.main_diagnosis),
        "codigo_diagnostico_relacionado1": _dx(service.related_diagnosis1),
        "codigo_diagnostico_relacionado2": _dx(service.related_diagnosis2),
        "codigo_diagnostico_relacionado3": _dx(service.related_diagnosis3),
        "tipo_diagnostico_principal": service.diagnosis_type or d.diagnosis_type,
        "codigo_resultado_consulta": service.result_code or d.consultation_result,
        "valor_consulta": service.value,
        "valor_cuota_moderadora": service.moderating_fee,
        "valor_neto": service.value - service.moderating_fee,
    }


def map_current_procedure(
    invoice: Invoice, service: ProcedureService, config: RipsConfig
) -> Record:
    d = CURRENT_DEFAULTS
    return {
        **_current_header(invoice, service, config),
        "fecha_procedimiento": _service_date(invoice, service),
        "hora_procedimiento": to_hhmm(service.service_time or service.service_date),
        "numero_autorizacion": service.authorization_number,
        "codigo_procedimiento": service.code,
        "modalidad_atencion": service.attention_mode or d.attention_mode,
        "ambito_realizacion": service.scope or d.procedure_scope,
        "finalidad_procedimiento": service.purpose or d.procedure_purpose,
        "personal_atiende": service.attending_personnel or d.attending_personnel,
        "diagnostico_principal": _dx(service.main_diagnosis),
        "diagnostico_relacionado": _dx(service.related_diagnosis),
        "complicacion": _dx(service.complication),
        "forma_realizacion": service.realization_form or d.realization_form,
        "valor_procedimiento": service.value,
        "valor_cuota_moderadora": service.moderating_fee,
        "valor_neto": service.value - service.moderating_fee,
    }


def map_current_medication(
    invoice: Invoice, service: MedicationService, config: RipsConfig
) -> Record:
    return {
        **_current_header(invoice, service, config),
        "numero_autorizacion": service.authorization_number,
        "fecha_dispensacion": _service_date(invoice, service),
        "codigo_medicamento": service.code,
        "codigo_diagnostico": _dx(service.diagnosis),
        "tipo_medicamento": service.medication_type or CURRENT_DEFAULTS.medication_type,
        "nombre_generico": _fit(CURRENT, "AMCT", "nombre_generico", service.generic_name),
        "forma_farmaceutica": _fit(CURRENT, "AMCT", "forma_farmaceutica", service.pharmaceutical_form),
        "concentracion": _fit(CURRENT, "AMCT", "concentracion", service.concentration),
        "unidad_medida": _fit(CURRENT, "AMCT", "unidad_medida", service.unit),
        "numero_unidades": service.quantity,
        "valor_unitario": service.unit_value,
        "valor_total": service.total_value,
    }


def map_current_emergency(
    invoice: Invoice, service: EmergencyService, config: RipsConfig
) -> Record:
    d = CURRENT_DEFAULTS
    return {
        **_current_header(invoice, service, config),
        "fecha_ingreso": to_iso_date(service.admission_date),
        "hora_ingreso": to_hhmm(service.admission_time or service.admission_date),
        "numero_autorizacion": service.authorization_number,
        "causa_externa": service.external_cause or d.external_cause,
        "diagnostico_principal_ingreso": _dx(service.admission_diagnosis),
        "diagnostico_relacionado1_ingreso": _dx(service.related_diagnosis1),
        "diagnostico_relacionado2_ingreso": _dx(service.related_diagnosis2),
        "diagnostico_relacionado3_ingreso": _dx(service.related_diagnosis3),
        "fecha_salida": to_iso_date(service.discharge_date),
        "hora_salida": to_hhmm(service.discharge_time or service.discharge_date),
        "diagnostico_principal_egreso": _dx(service.discharge_diagnosis),
        "diagnostico_relacionado1_egreso": _dx(service.related_discharge_diagnosis1),
        "diagnostico_relacionado2_egreso": _dx(service.related_discharge_diagnosis2),
        "diagnostico_relacionado3_egreso": _dx(service.related_discharge_diagnosis3),
        "destino_usuario": service.destination or d.destination,
        "estado_salida": service.discharge_status or d.discharge_status,
        "causa_muerte": _dx(service.death_cause),
        "observacion": service.observation or d.observation,
        "valor_consulta": service.consultation_value,
        "valor_observacion": service.observation_value,
        "valor_total": service.total_value,
    }


def map_current_hospitalization(
    invoice: Invoice, service: HospitalizationService, config: RipsConfig
) -> Record:
    d = CURRENT_DEFAULTS
    return {
        **_current_header(invoice, service, config),
        "numero_autorizacion": service.authorization_number,
        "fecha_ingreso": to_iso_date(service.admission_date),
        "hora_ingreso": to_hhmm(service.admission_time or service.admission_date),
        "via_ingreso": service.admission_route or d.admission_route,
        "diagnostico_principal_ingreso": _dx(service.admission_diagnosis),
        "diagnostico_relacionado1_ingreso": _dx(service.related_diagnosis1),
        "diagnostico_relacionado2_ingreso": _dx(service.related_diagnosis2),
        "diagnostico_relacionado3_ingreso": _dx(service.related_diagnosis3),
        "fecha_egreso": to_iso_date(service.discharge_date),
        "hora_egreso": to_hhmm(service.discharge_time or service.discharge_date),
        "diagnostico_principal_egreso": _dx(service.discharge_diagnosis),
        "diagnostico_relacionado1_egreso": _dx(service.related_discharge_diagnosis1),
        "diagnostico_relacionado2_egreso": _dx(service.related_discharge_diagnosis2),
        "diagnostico_relacionado3_egreso": _dx(service.related_discharge_diagnosis3),
        "diagnostico_complicacion": _dx(service.complication_diagnosis),
        "estado_salida": service.discharge_status or d.discharge_status,
        "causa_muerte": _dx(service.death_cause),
        "destino_usuario": service.destination or d.destination,
        "valor_estancia": service.stay_value,
    }


def map_current_newborn(invoice: Invoice, service: NewbornService, config: RipsConfig) -> Record:
    d = CURRENT_DEFAULTS
    return {
        "numero_factura": invoice.number,
        "prefijo_factura": invoice.prefix,
        "codigo_prestador": config.provider_code_for(CURRENT.provider_code_length),
        "tipo_documento_madre": service.mother_document_type,
        "numero_documento_madre": service.mother_document_number,
        "fecha_nacimiento": to_iso_date(service.birth_date),
        "hora_nacimiento": to_hhmm(service.birth_time or service.birth_date),
        "edad_gestacional": service.gestational_age or d.gestational_age,
        "control_prenatal": service.prenatal_control or d.prenatal_control,
        "sexo": service.gender or d.gender,
        "peso": service.weight or d.newborn_weight,
        "diagnostico_principal": _dx(service.main_diagnosis),
        "diagnostico_relacionado1": _dx(service.related_diagnosis1),
        "diagnostico_relacionado2": _dx(service.related_diagnosis2),
        "diagnostico_relacionado3": _dx(service.related_diagnosis3),
        "condicion_salida": service.health_condition or d.health_condition,
        "causa_muerte": _dx(service.death_cause),
    }


def map_current_other(invoice: Invoice, service: OtherService, config: RipsConfig) -> Record:
    return {
        **_current_header(invoice, service, config),
        "fecha_servicio": _service_date(invoice, service),
        "numero_autorizacion": service.authorization_number,
        "codigo_servicio": service.code,
        "nombre_servicio": _fit(CURRENT, "ADCT", "nombre_servicio", service.name),
        "cantidad": service.quantity or CURRENT_DEFAULTS.other_quantity,
        "valor_unitario": service.unit_value,
        "valor_total": service.total_value,
    }


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------
ServiceMapper = Callable[[Invoice, Any, RipsConfig], Record]
UserMapper = Callable[[Patient, Entity, RipsConfig], Record]

SERVICE_MAPPERS: dict[FormatVersion, dict[str, ServiceMapper]] = {
    FormatVersion.LEGACY: {
        CONSULTATION: map_legacy_consultation,
        PROCEDURE: map_legacy_procedure,
        MEDICATION: map_legacy_medication,
        EMERGENCY: map_legacy_emergency,
        HOSPITALIZATION: map_legacy_hospitalization,
        NEWBORN: map_legacy_newborn,
        OTHER: map_legacy_other,
    },
    FormatVersion.CURRENT: {
        CONSULTATION: map_current_consultation,
        PROCEDURE: map_current_procedure,
        MEDICATION: map_current_medication,
        EMERGENCY: map_current_emergency,
        HOSPITALIZATION: map_current_hospitalization,
        NEWBORN: map_current_newborn,
        OTHER: map_current_other,
    },
}

USER_MAPPERS: dict[FormatVersion, UserMapper] = {
    FormatVersion.LEGACY: map_legacy_user,
    FormatVersion.CURRENT: map_current_user,
}


def service_kind(service: ServiceBase) -> str:
    """Variant tag of a parsed service; free-form types report ``OTHER``."""
    return OTHER if isinstance(service, OtherService) else service.type


def map_service(
    invoice: Invoice,
    service: ServiceBase,
    config: RipsConfig,
    version: FormatVersion | str,
) -> tuple[str, Record]:
    """Map one service to its record.

    Args:
        invoice: Invoice the service is billed on.
        service: Any service variant.
        config: Provider identity and policies.
        version: Target format version.

    Returns:
        Tuple of (record type code, record).
    """
    version = FormatVersion(version)
    kind = service_kind(service)
    registry = SchemaRegistry.for_version(version)
    mapper = SERVICE_MAPPERS[version][kind]
    return registry.route_service(kind), mapper(invoice, service, config)


def map_user(
    patient: Patient, entity: Entity, config: RipsConfig, version: FormatVersion | str
) -> Record:
    return USER_MAPPERS[FormatVersion(version)](patient, entity, config)
