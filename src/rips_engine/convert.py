"""Conversion of Resolución 3374 datasets to Resolución 2275.

Legacy records are widened to the 2275 layout: provider and entity codes are
extended with zeros, one-digit codes become two-digit codes, diagnosis codes
are padded to 6 characters, and fields the old format never carried get
their 2275 defaults. Fields with no legacy source (birth date, dispensation
date, authorization numbers) stay empty and are left for the validator to
report.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from rips_engine.assemble import RipsDataset, type_total
from rips_engine.config import FormatVersion
from rips_engine.formatting import pad_code, to_number
from rips_engine.mappers import CURRENT_DEFAULTS, DIAGNOSIS_LENGTH
from rips_engine.registry import CONTROL_INVOICE_MARKER, SchemaRegistry

logger = logging.getLogger(__name__)

Record = dict[str, Any]

CURRENT = SchemaRegistry.for_version(FormatVersion.CURRENT)

FILE_CODES = {
    "AF": "AFCT",
    "US": "ATUS",
    "AC": "ACCT",
    "AP": "APCT",
    "AM": "AMCT",
    "AT": "AUCT",
    "AH": "AHCT",
    "AN": "ANCT",
    "AU": "ADCT",
}

# Emergency records of the legacy AT file always involved observation.
WITH_OBSERVATION = "2"
DEFAULT_TIME = "00:00"


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _two_digits(value: Any, default: str = "1") -> str:
    return (_text(value) or default).zfill(2)


def _dx(value: Any) -> str:
    return pad_code(_text(value), DIAGNOSIS_LENGTH)


def _provider(record: Record) -> str:
    return pad_code(_text(record.get("codigo_prestador")), CURRENT.provider_code_length)


def _entity(record: Record) -> str:
    return pad_code(_text(record.get("codigo_entidad")), CURRENT.max_length("ATUS", "codigo_entidad"))


def _header(r: Record) -> Record:
    return {
        "numero_factura": r.get("numero_factura", ""),
        "prefijo_factura": "",
        "codigo_prestador": _provider(r),
        "tipo_documento": r.get("tipo_documento", ""),
        "numero_documento": r.get("numero_documento", ""),
    }


def convert_control(r: Record) -> Record:
    code = _text(r.get("codigo_archivo"))
    return {
        "codigo_prestador": _provider(r),
        "codigo_habilitacion": _text(r.get("codigo_prestador")),
        "fecha_remision": r.get("fecha_remision", ""),
        "codigo_entidad": _entity(r),
        "nombre_entidad": r.get("nombre_entidad", ""),
        "numero_factura": r.get("numero_factura", ""),
        "prefijo_factura": "",
        "numero_contrato": "",
        "plan_beneficios": CURRENT_DEFAULTS.benefits_plan,
        "fecha_inicio": r.get("fecha_inicio", ""),
        "fecha_final": r.get("fecha_final", ""),
        "codigo_archivo": FILE_CODES.get(code, code),
        "total_registros": r.get("total_registros", 0),
        "total_valor": 0,
    }


def convert_user(r: Record) -> Record:
    d = CURRENT_DEFAULTS
    return {
        "tipo_documento": r.get("tipo_documento", ""),
        "numero_documento": r.get("numero_documento", ""),
        "codigo_entidad": _entity(r),
        "tipo_usuario": _two_digits(r.get("tipo_usuario")),
        "primer_apellido": r.get("primer_apellido", ""),
        "segundo_apellido": r.get("segundo_apellido", ""),
        "primer_nombre": r.get("primer_nombre", ""),
        "segundo_nombre": r.get("segundo_nombre", ""),
        "fecha_nacimiento": "",
        "sexo": r.get("sexo", ""),
        "codigo_pais": d.country_code,
        "codigo_departamento": r.get("codigo_departamento", ""),
        "codigo_municipio": r.get("codigo_municipio", ""),
        "zona_residencia": r.get("zona_residencia") or d.residence_zone,
        "tipo_regimen": d.regime_type,
        "etnia": d.ethnicity,
        "grupo_poblacional": d.population_group,
        "telefono": "",
        "correo_electronico": "",
    }


def convert_consultation(r: Record) -> Record:
    d = CURRENT_DEFAULTS
    value = r.get("valor_consulta") or 0
    fee = r.get("valor_cuota_moderadora") or 0
    return {
        **_header(r),
        "fecha_consulta": r.get("fecha_consulta", ""),
        "hora_consulta": DEFAULT_TIME,
        "numero_autorizacion": "",
        "codigo_consulta": r.get("codigo_consulta", ""),
        "modalidad_atencion": d.attention_mode,
        "finalidad_consulta": _two_digits(r.get("finalidad_consulta")),
        "causa_externa": _two_digits(r.get("causa_externa")),
        "codigo_diagnostico_principal": _dx(r.get("codigo_diagnostico_principal")),
        "codigo_diagnostico_relacionado1": _dx(r.get("codigo_diagnostico_relacionado1")),
        "codigo_diagnostico_relacionado2": _dx(r.get("codigo_diagnostico_relacionado2")),
        "codigo_diagnostico_relacionado3": _dx(r.get("codigo_diagnostico_relacionado3")),
        "tipo_diagnostico_principal": r.get("tipo_diagnostico_principal") or d.diagnosis_type,
        "codigo_resultado_consulta": d.consultation_result,
        "valor_consulta": value,
        "valor_cuota_moderadora": fee,
        "valor_neto": to_number(value) - to_number(fee),
    }


def convert_procedure(r: Record) -> Record:
    d = CURRENT_DEFAULTS
    value = r.get("valor_procedimiento") or 0
    return {
        **_header(r),
        "fecha_procedimiento": r.get("fecha_procedimiento", ""),
        "hora_procedimiento": DEFAULT_TIME,
        "numero_autorizacion": "",
        "codigo_procedimiento": r.get("codigo_procedimiento", ""),
        "modalidad_atencion": d.attention_mode,
        "ambito_realizacion": _two_digits(r.get("ambito_realizacion")),
        "finalidad_procedimiento": _two_digits(r.get("finalidad_procedimiento"), "2"),
        "personal_atiende": _two_digits(r.get("personal_atiende")),
        "diagnostico_principal": _dx(r.get("diagnostico_principal")),
        "diagnostico_relacionado": _dx(r.get("diagnostico_relacionado")),
        "complicacion": _dx(r.get("complicacion")),
        "forma_realizacion": _two_digits(r.get("forma_realizacion")),
        "valor_procedimiento": value,
        "valor_cuota_moderadora": 0,
        "valor_neto": to_number(value),
    }


def convert_medication(r: Record) -> Record:
    return {
        **_header(r),
        "numero_autorizacion": "",
        "fecha_dispensacion": "",
        "codigo_medicamento": r.get("codigo_medicamento", ""),
        "codigo_diagnostico": "",
        "tipo_medicamento": _two_digits(r.get("tipo_medicamento")),
        "nombre_generico": r.get("nombre_generico", ""),
        "forma_farmaceutica": r.get("forma_farmaceutica", ""),
        "concentracion": r.get("concentracion", ""),
        "unidad_medida": r.get("unidad_medida", ""),
        "numero_unidades": r.get("numero_unidades", 0),
        "valor_unitario": r.get("valor_unitario", 0),
        "valor_total": r.get("valor_total", 0),
    }


def convert_emergency(r: Record) -> Record:
    return {
        **_header(r),
        "fecha_ingreso": r.get("fecha_ingreso", ""),
        "hora_ingreso": r.get("hora_ingreso") or DEFAULT_TIME,
        "numero_autorizacion": "",
        "causa_externa": _two_digits(r.get("causa_externa"), CURRENT_DEFAULTS.external_cause),
        "diagnostico_principal_ingreso": _dx(r.get("diagnostico_principal_ingreso")),
        "diagnostico_relacionado1_ingreso": _dx(r.get("diagnostico_relacionado1_ingreso")),
        "diagnostico_relacionado2_ingreso": _dx(r.get("diagnostico_relacionado2_ingreso")),
        "diagnostico_relacionado3_ingreso": _dx(r.get("diagnostico_relacionado3_ingreso")),
        "fecha_salida": r.get("fecha_salida", ""),
        "hora_salida": r.get("hora_salida") or DEFAULT_TIME,
        "diagnostico_principal_egreso": _dx(r.get("diagnostico_principal_egreso")),
        "diagnostico_relacionado1_egreso": _dx(r.get("diagnostico_relacionado1_egreso")),
        "diagnostico_relacionado2_egreso": _dx(r.get("diagnostico_relacionado2_egreso")),
        "diagnostico_relacionado3_egreso": _dx(r.get("diagnostico_relacionado3_egreso")),
        "destino_usuario": _two_digits(r.get("destino_usuario")),
        "estado_salida": r.get("estado_salida") or CURRENT_DEFAULTS.discharge_status,
        "causa_muerte": _dx(r.get("causa_muerte")),
        "observacion": WITH_OBSERVATION,
        "valor_consulta": 0,
        "valor_observacion": 0,
        "valor_total": 0,
    }


def convert_hospitalization(r: Record) -> Record:
    return {
        **_header(r),
        "numero_autorizacion": r.get("numero_autorizacion", ""),
        "fecha_ingreso": r.get("fecha_ingreso", ""),
        "hora_ingreso": r.get("hora_ingreso") or DEFAULT_TIME,
        "via_ingreso": _two_digits(r.get("via_ingreso")),
        "diagnostico_principal_ingreso": _dx(r.get("diagnostico_principal_ingreso")),
        "diagnostico_relacionado1_ingreso": "",
        "diagnostico_relacionado2_ingreso": "",
        "diagnostico_relacionado3_ingreso": "",
        "fecha_egreso": r.get("fecha_egreso", ""),
        "hora_egreso": r.get("hora_egreso") or DEFAULT_TIME,
        "diagnostico_principal_egreso": _dx(r.get("diagnostico_principal_egreso")),
        "diagnostico_relacionado1_egreso": _dx(r.get("diagnostico_relacionado1_egreso")),
        "diagnostico_relacionado2_egreso": _dx(r.get("diagnostico_relacionado2_egreso")),
        "diagnostico_relacionado3_egreso": _dx(r.get("diagnostico_relacionado3_egreso")),
        "diagnostico_complicacion": _dx(r.get("diagnostico_complicacion")),
        "estado_salida": r.get("estado_salida") or CURRENT_DEFAULTS.discharge_status,
        "causa_muerte": _dx(r.get("causa_muerte")),
        "destino_usuario": CURRENT_DEFAULTS.destination,
        "valor_estancia": 0,
    }


def convert_newborn(r: Record) -> Record:
    return {
        "numero_factura": r.get("numero_factura", ""),
        "prefijo_factura": "",
        "codigo_prestador": _provider(r),
        "tipo_documento_madre": r.get("tipo_documento_madre", ""),
        "numero_documento_madre": r.get("numero_documento_madre", ""),
        "fecha_nacimiento": r.get("fecha_nacimiento", ""),
        "hora_nacimiento": r.get("hora_nacimiento") or DEFAULT_TIME,
        "edad_gestacional": r.get("edad_gestacional", ""),
        "control_prenatal": r.get("control_prenatal", ""),
        "sexo": r.get("sexo", ""),
        "peso": r.get("peso", ""),
        "diagnostico_principal": _dx(r.get("diagnostico_principal")),
        "diagnostico_relacionado1": "",
        "diagnostico_relacionado2": "",
        "diagnostico_relacionado3": "",
        "condicion_salida": CURRENT_DEFAULTS.health_condition,
        "causa_muerte": _dx(r.get("causa_muerte")),
    }


def convert_other(r: Record) -> Record:
    return {
        **_header(r),
        "fecha_servicio": r.get("fecha_servicio", ""),
        "numero_autorizacion": "",
        "codigo_servicio": r.get("codigo_servicio", ""),
        "nombre_servicio": r.get("nombre_servicio", ""),
        "cantidad": r.get("cantidad") or CURRENT_DEFAULTS.other_quantity,
        "valor_unitario": r.get("valor_unitario", 0),
        "valor_total": r.get("valor_total", 0),
    }


RECORD_CONVERTERS: dict[str, Callable[[Record], Record]] = {
    "AF": convert_control,
    "US": convert_user,
    "AC": convert_consultation,
    "AP": convert_procedure,
    "AM": convert_medication,
    "AT": convert_emergency,
    "AH": convert_hospitalization,
    "AN": convert_newborn,
    "AU": convert_other,
}


def convert_legacy_dataset(dataset: RipsDataset) -> RipsDataset:
    """Convert a 3374 dataset into a 2275 dataset.

    Args:
        dataset: Legacy record type -> records, freshly built or read back
            from text files.

    Returns:
        Dataset keyed by 2275 record types, in catalog order. Summary control
        records get their ``total_valor`` recomputed from the converted data.
    """
    result: RipsDataset = {code: [] for code in CURRENT.record_types}
    for code, records in dataset.items():
        if not records:
            continue
        convert = RECORD_CONVERTERS.get(code)
        if convert is None:
            logger.warning("No 2275 equivalent for %s, skipped %d records", code, len(records))
            continue
        result[FILE_CODES[code]].extend(convert(r) for r in records)

    for record in result[CURRENT.control_type]:
        if record["numero_factura"] == CONTROL_INVOICE_MARKER:
            target = record["codigo_archivo"]
            record["total_valor"] = type_total(CURRENT, target, result.get(target, []))

    logger.debug(
        "Converted legacy dataset: %s",
        {code: len(records) for code, records in result.items() if records},
    )
    return result
