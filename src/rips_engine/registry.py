"""Schema registry for RIPS file layouts.

Each format version is described by one ``SchemaRegistry`` instance: the
catalog of file types, the ordered field table of every file type, which
file plays the control / user / catch-all role, and where each service
variant is routed. Mapping, serialization, validation and conversion all
read their layout from here, so a version is data rather than code.

Unknown file-type codes yield an empty field table: callers treat that as
"nothing to emit", never as an error.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from rips_engine.config import FormatVersion
from rips_engine.formatting import DATE, NUMBER, STRING
from rips_engine.schema import (
    CONSULTATION,
    EMERGENCY,
    HOSPITALIZATION,
    MEDICATION,
    NEWBORN,
    PROCEDURE,
)

DOCUMENT_TYPE_FIELD = "tipo_documento"
DOCUMENT_NUMBER_FIELD = "numero_documento"
CONTROL_INVOICE_MARKER = "RIPS"


class FieldSpec(BaseModel):
    """One positional field of a RIPS record."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    max_length: int


class FileTypeInfo(BaseModel):
    """Catalog entry for one RIPS file type."""

    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    required: bool = False
    description: str = ""


def _fields(*rows: tuple[str, str, int]) -> tuple[FieldSpec, ...]:
    return tuple(FieldSpec(name=n, type=t, max_length=m) for n, t, m in rows)


class SchemaRegistry(BaseModel):
    """Layout tables of one RIPS format version."""

    model_config = ConfigDict(frozen=True)

    version: FormatVersion
    label: str
    description: str
    xml_version: str | None = None
    control_type: str
    user_type: str
    fallback_type: str
    provider_code_length: int
    file_types: tuple[FileTypeInfo, ...]
    structures: dict[str, tuple[FieldSpec, ...]]
    service_routes: dict[str, str]
    value_fields: dict[str, str]

    @classmethod
    def for_version(cls, version: FormatVersion | str) -> SchemaRegistry:
        return _REGISTRIES[FormatVersion(version)]

    @property
    def record_types(self) -> list[str]:
        """File-type codes in catalog order."""
        return [ft.code for ft in self.file_types]

    @property
    def required_types(self) -> list[str]:
        return [ft.code for ft in self.file_types if ft.required]

    def get_structure(self) -> dict[str, Any]:
        """Version catalog: label, description and file types."""
        return {
            "version": self.label,
            "description": self.description,
            "fileTypes": [ft.model_dump() for ft in self.file_types],
        }

    def get_file_structure(self, file_type: str) -> tuple[FieldSpec, ...]:
        return self.structures.get(file_type, ())

    def get_file_type_name(self, file_type: str) -> str:
        for ft in self.file_types:
            if ft.code == file_type:
                return ft.name
        return file_type

    def max_length(self, file_type: str, field_name: str) -> int:
        for spec in self.get_file_structure(file_type):
            if spec.name == field_name:
                return spec.max_length
        return 0

    def route_service(self, service_type: str) -> str:
        """File type a service variant lands in; unknown types go to the catch-all."""
        return self.service_routes.get(service_type, self.fallback_type)

    def carries_user_key(self, file_type: str) -> bool:
        """True for non-user files whose records reference a user by document."""
        if file_type in (self.control_type, self.user_type):
            return False
        names = {spec.name for spec in self.get_file_structure(file_type)}
        return DOCUMENT_TYPE_FIELD in names and DOCUMENT_NUMBER_FIELD in names


# ---------------------------------------------------------------------------
# Resolución 3374 de 2000
# ---------------------------------------------------------------------------
LEGACY_STRUCTURES: dict[str, tuple[FieldSpec, ...]] = {
    "AF": _fields(
        ("codigo_prestador", STRING, 12),
        ("fecha_remision", DATE, 10),
        ("codigo_entidad", STRING, 6),
        ("nombre_entidad", STRING, 30),
        ("numero_factura", STRING, 20),
        ("fecha_inicio", DATE, 10),
        ("fecha_final", DATE, 10),
        ("codigo_archivo", STRING, 2),
        ("total_registros", NUMBER, 10),
    ),
    "US": _fields(
        ("tipo_documento", STRING, 2),
        ("numero_documento", STRING, 20),
        ("codigo_entidad", STRING, 6),
        ("tipo_usuario", STRING, 1),
        ("primer_apellido", STRING, 30),
        ("segundo_apellido", STRING, 30),
        ("primer_nombre", STRING, 20),
        ("segundo_nombre", STRING, 20),
        ("edad", NUMBER, 3),
        ("unidad_medida_edad", STRING, 1),
        ("sexo", STRING, 1),
        ("codigo_departamento", STRING, 2),
        ("codigo_municipio", STRING, 3),
        ("zona_residencia", STRING, 1),
    ),
    "AC": _fields(
        ("numero_factura", STRING, 20),
        ("codigo_prestador", STRING, 12),
        ("tipo_documento", STRING, 2),
        ("numero_documento", STRING, 20),
        ("fecha_consulta", DATE, 10),
        ("codigo_consulta", STRING, 8),
        ("finalidad_consulta", STRING, 2),
        ("causa_externa", STRING, 2),
        ("codigo_diagnostico_principal", STRING, 4),
        ("codigo_diagnostico_relacionado1", STRING, 4),
        ("codigo_diagnostico_relacionado2", STRING, 4),
        ("codigo_diagnostico_relacionado3", STRING, 4),
        ("tipo_diagnostico_principal", STRING, 1),
        ("valor_consulta", NUMBER, 15),
        ("valor_cuota_moderadora", NUMBER, 15),
        ("valor_neto", NUMBER, 15),
    ),
    "AP": _fields(
        ("numero_factura", STRING, 20),
        ("codigo_prestador", STRING, 12),
        ("tipo_documento", STRING, 2),
        ("numero_documento", STRING, 20),
        ("fecha_procedimiento", DATE, 10),
        ("codigo_procedimiento", STRING, 8),
        ("ambito_realizacion", STRING, 1),
        ("finalidad_procedimiento", STRING, 2),
        ("personal_atiende", STRING, 1),
        ("diagnostico_principal", STRING, 4),
        ("diagnostico_relacionado", STRING, 4),
        ("complicacion", STRING, 4),
        ("forma_realizacion", STRING, 1),
        ("valor_procedimiento", NUMBER, 15),
    ),
    "AM": _fields(
        ("numero_factura", STRING, 20),
        ("codigo_prestador", STRING, 12),
        ("tipo_documento", STRING, 2),
        ("numero_documento", STRING, 20),
        ("codigo_medicamento", STRING, 20),
        ("tipo_medicamento", STRING, 1),
        ("nombre_generico", STRING, 30),
        ("forma_farmaceutica", STRING, 20),
        ("concentracion", STRING, 20),
        ("unidad_medida", STRING, 20),
        ("numero_unidades", NUMBER, 5),
        ("valor_unitario", NUMBER, 15),
        ("valor_total", NUMBER, 15),
    ),
    "AT": _fields(
        ("numero_factura", STRING, 20),
        ("codigo_prestador", STRING, 12),
        ("tipo_documento", STRING, 2),
        ("numero_documento", STRING, 20),
        ("fecha_ingreso", DATE, 10),
        ("hora_ingreso", STRING, 5),
        ("causa_externa", STRING, 2),
        ("diagnostico_principal_ingreso", STRING, 4),
        ("diagnostico_relacionado1_ingreso", STRING, 4),
        ("diagnostico_relacionado2_ingreso", STRING, 4),
        ("diagnostico_relacionado3_ingreso", STRING, 4),
        ("fecha_salida", DATE, 10),
        ("hora_salida", STRING, 5),
        ("diagnostico_principal_egreso", STRING, 4),
        ("diagnostico_relacionado1_egreso", STRING, 4),
        ("diagnostico_relacionado2_egreso", STRING, 4),
        ("diagnostico_relacionado3_egreso", STRING, 4),
        ("destino_usuario", STRING, 1),
        ("estado_salida", STRING, 1),
        ("causa_muerte", STRING, 4),
    ),
    "AH": _fields(
        ("numero_factura", STRING, 20),
        ("codigo_prestador", STRING, 12),
        ("tipo_documento", STRING, 2),
        ("numero_documento", STRING, 20),
        ("via_ingreso", STRING, 1),
        ("fecha_ingreso", DATE, 10),
        ("hora_ingreso", STRING, 5),
        ("numero_autorizacion", STRING, 15),
        ("causa_externa", STRING, 2),
        ("diagnostico_principal_ingreso", STRING, 4),
        ("diagnostico_principal_egreso", STRING, 4),
        ("diagnostico_relacionado1_egreso", STRING, 4),
        ("diagnostico_relacionado2_egreso", STRING, 4),
        ("diagnostico_relacionado3_egreso", STRING, 4),
        ("diagnostico_complicacion", STRING, 4),
        ("estado_salida", STRING, 1),
        ("causa_muerte", STRING, 4),
        ("fecha_egreso", DATE, 10),
        ("hora_egreso", STRING, 5),
    ),
    "AN": _fields(
        ("numero_factura", STRING, 20),
        ("codigo_prestador", STRING, 12),
        ("tipo_documento_madre", STRING, 2),
        ("numero_documento_madre", STRING, 20),
        ("fecha_nacimiento", DATE, 10),
        ("hora_nacimiento", STRING, 5),
        ("edad_gestacional", NUMBER, 2),
        ("control_prenatal", STRING, 1),
        ("sexo", STRING, 1),
        ("peso", NUMBER, 4),
        ("diagnostico_principal", STRING, 4),
        ("causa_muerte", STRING, 4),
    ),
    "AU": _fields(
        ("numero_factura", STRING, 20),
        ("codigo_prestador", STRING, 12),
        ("tipo_documento", STRING, 2),
        ("numero_documento", STRING, 20),
        ("fecha_servicio", DATE, 10),
        ("codigo_servicio", STRING, 20),
        ("nombre_servicio", STRING, 60),
        ("cantidad", NUMBER, 5),
        ("valor_unitario", NUMBER, 15),
        ("valor_total", NUMBER, 15),
    ),
}

LEGACY_FILE_TYPES = (
    FileTypeInfo(
        code="AF",
        name="Archivo de transacciones",
        required=True,
        description="Contiene los datos de la transacción entre la entidad y el prestador",
    ),
    FileTypeInfo(
        code="US",
        name="Archivo de usuarios",
        required=True,
        description="Contiene los datos de identificación del usuario atendido",
    ),
    FileTypeInfo(
        code="AC",
        name="Archivo de consultas",
        description="Contiene los datos de las consultas realizadas",
    ),
    FileTypeInfo(
        code="AP",
        name="Archivo de procedimientos",
        description="Contiene los datos de procedimientos realizados",
    ),
    FileTypeInfo(
        code="AM",
        name="Archivo de medicamentos",
        description="Contiene los datos de medicamentos suministrados",
    ),
    FileTypeInfo(
        code="AT",
        name="Archivo de servicios de urgencias con observación",
        description="Contiene los datos de atenciones de urgencia con observación",
    ),
    FileTypeInfo(
        code="AH",
        name="Archivo de hospitalización",
        description="Contiene los datos de hospitalizaciones",
    ),
    FileTypeInfo(
        code="AN",
        name="Archivo de recién nacidos",
        description="Contiene los datos de recién nacidos",
    ),
    FileTypeInfo(
        code="AU",
        name="Archivo de otros servicios",
        description="Contiene los datos de otros servicios no incluidos en los archivos anteriores",
    ),
    FileTypeInfo(
        code="AD",
        name="Archivo de descripción agrupada",
        description="Contiene los datos de descripción agrupada de servicios",
    ),
)

# ---------------------------------------------------------------------------
# Resolución 2275 de 2023
# ---------------------------------------------------------------------------
CURRENT_STRUCTURES: dict[str, tuple[FieldSpec, ...]] = {
    "AFCT": _fields(
        ("codigo_prestador", STRING, 16),
        ("codigo_habilitacion", STRING, 12),
        ("fecha_remision", DATE, 10),
        ("codigo_entidad", STRING, 8),
        ("nombre_entidad", STRING, 60),
        ("numero_factura", STRING, 30),
        ("prefijo_factura", STRING, 6),
        ("numero_contrato", STRING, 30),
        ("plan_beneficios", STRING, 2),
        ("fecha_inicio", DATE, 10),
        ("fecha_final", DATE, 10),
        ("codigo_archivo", STRING, 4),
        ("total_registros", NUMBER, 10),
        ("total_valor", NUMBER, 20),
    ),
    "ATUS": _fields(
        ("tipo_documento", STRING, 2),
        ("numero_documento", STRING, 20),
        ("codigo_entidad", STRING, 8),
        ("tipo_usuario", STRING, 2),
        ("primer_apellido", STRING, 60),
        ("segundo_apellido", STRING, 60),
        ("primer_nombre", STRING, 60),
        ("segundo_nombre", STRING, 60),
        ("fecha_nacimiento", DATE, 10),
        ("sexo", STRING, 1),
        ("codigo_pais", STRING, 3),
        ("codigo_departamento", STRING, 2),
        ("codigo_municipio", STRING, 3),
        ("zona_residencia", STRING, 1),
        ("tipo_regimen", STRING, 2),
        ("etnia", STRING, 2),
        ("grupo_poblacional", STRING, 2),
        ("telefono", STRING, 20),
        ("correo_electronico", STRING, 100),
    ),
    "ACCT": _fields(
        ("numero_factura", STRING, 30),
        ("prefijo_factura", STRING, 6),
        ("codigo_prestador", STRING, 16),
        ("tipo_documento", STRING, 2),
        ("numero_documento", STRING, 20),
        ("fecha_consulta", DATE, 10),
        ("hora_consulta", STRING, 5),
        ("numero_autorizacion", STRING, 30),
        ("codigo_consulta", STRING, 10),
        ("modalidad_atencion", STRING, 2),
        ("finalidad_consulta", STRING, 2),
        ("causa_externa", STRING, 2),
        ("codigo_diagnostico_principal", STRING, 6),
        ("codigo_diagnostico_relacionado1", STRING, 6),
        ("codigo_diagnostico_relacionado2", STRING, 6),
        ("codigo_diagnostico_relacionado3", STRING, 6),
        ("tipo_diagnostico_principal", STRING, 1),
        ("codigo_resultado_consulta", STRING, 2),
        ("valor_consulta", NUMBER, 15),
        ("valor_cuota_moderadora", NUMBER, 15),
        ("valor_neto", NUMBER, 15),
    ),
    "APCT": _fields(
        ("numero_factura", STRING, 30),
        ("prefijo_factura", STRING, 6),
        ("codigo_prestador", STRING, 16),
        ("tipo_documento", STRING, 2),
        ("numero_documento", STRING, 20),
        ("fecha_procedimiento", DATE, 10),
        ("hora_procedimiento", STRING, 5),
        ("numero_autorizacion", STRING, 30),
        ("codigo_procedimiento", STRING, 10),
        ("modalidad_atencion", STRING, 2),
        ("ambito_realizacion", STRING, 2),
        ("finalidad_procedimiento", STRING, 2),
        ("personal_atiende", STRING, 2),
        ("diagnostico_principal", STRING, 6),
        ("diagnostico_relacionado", STRING, 6),
        ("complicacion", STRING, 6),
        ("forma_realizacion", STRING, 2),
        ("valor_procedimiento", NUMBER, 15),
        ("valor_cuota_moderadora", NUMBER, 15),
        ("valor_neto", NUMBER, 15),
    ),
    "AMCT": _fields(
        ("numero_factura", STRING, 30),
        ("prefijo_factura", STRING, 6),
        ("codigo_prestador", STRING, 16),
        ("tipo_documento", STRING, 2),
        ("numero_documento", STRING, 20),
        ("numero_autorizacion", STRING, 30),
        ("fecha_dispensacion", DATE, 10),
        ("codigo_medicamento", STRING, 20),
        ("codigo_diagnostico", STRING, 6),
        ("tipo_medicamento", STRING, 2),
        ("nombre_generico", STRING, 60),
        ("forma_farmaceutica", STRING, 20),
        ("concentracion", STRING, 20),
        ("unidad_medida", STRING, 20),
        ("numero_unidades", NUMBER, 5),
        ("valor_unitario", NUMBER, 15),
        ("valor_total", NUMBER, 15),
    ),
    "AHCT": _fields(
        ("numero_factura", STRING, 30),
        ("prefijo_factura", STRING, 6),
        ("codigo_prestador", STRING, 16),
        ("tipo_documento", STRING, 2),
        ("numero_documento", STRING, 20),
        ("numero_autorizacion", STRING, 30),
        ("fecha_ingreso", DATE, 10),
        ("hora_ingreso", STRING, 5),
        ("via_ingreso", STRING, 2),
        ("diagnostico_principal_ingreso", STRING, 6),
        ("diagnostico_relacionado1_ingreso", STRING, 6),
        ("diagnostico_relacionado2_ingreso", STRING, 6),
        ("diagnostico_relacionado3_ingreso", STRING, 6),
        ("fecha_egreso", DATE, 10),
        ("hora_egreso", STRING, 5),
        ("diagnostico_principal_egreso", STRING, 6),
        ("diagnostico_relacionado1_egreso", STRING, 6),
        ("diagnostico_relacionado2_egreso", STRING, 6),
        ("diagnostico_relacionado3_egreso", STRING, 6),
        ("diagnostico_complicacion", STRING, 6),
        ("estado_salida", STRING, 1),
        ("causa_muerte", STRING, 6),
        ("destino_usuario", STRING, 2),
        ("valor_estancia", NUMBER, 15),
    ),
    "AUCT": _fields(
        ("numero_factura", STRING, 30),
        ("prefijo_factura", STRING, 6),
        ("codigo_prestador", STRING, 16),
        ("tipo_documento", STRING, 2),
        ("numero_documento", STRING, 20),
        ("fecha_ingreso", DATE, 10),
        ("hora_ingreso", STRING, 5),
        ("numero_autorizacion", STRING, 30),
        ("causa_externa", STRING, 2),
        ("diagnostico_principal_ingreso", STRING, 6),
        ("diagnostico_relacionado1_ingreso", STRING, 6),
        ("diagnostico_relacionado2_ingreso", STRING, 6),
        ("diagnostico_relacionado3_ingreso", STRING, 6),
        ("fecha_salida", DATE, 10),
        ("hora_salida", STRING, 5),
        ("diagnostico_principal_egreso", STRING, 6),
        ("diagnostico_relacionado1_egreso", STRING, 6),
        ("diagnostico_relacionado2_egreso", STRING, 6),
        ("diagnostico_relacionado3_egreso", STRING, 6),
        ("destino_usuario", STRING, 2),
        ("estado_salida", STRING, 1),
        ("causa_muerte", STRING, 6),
        ("observacion", STRING, 1),
        ("valor_consulta", NUMBER, 15),
        ("valor_observacion", NUMBER, 15),
        ("valor_total", NUMBER, 15),
    ),
    "ANCT": _fields(
        ("numero_factura", STRING, 30),
        ("prefijo_factura", STRING, 6),
        ("codigo_prestador", STRING, 16),
        ("tipo_documento_madre", STRING, 2),
        ("numero_documento_madre", STRING, 20),
        ("fecha_nacimiento", DATE, 10),
        ("hora_nacimiento", STRING, 5),
        ("edad_gestacional", NUMBER, 2),
        ("control_prenatal", STRING, 1),
        ("sexo", STRING, 1),
        ("peso", NUMBER, 4),
        ("diagnostico_principal", STRING, 6),
        ("diagnostico_relacionado1", STRING, 6),
        ("diagnostico_relacionado2", STRING, 6),
        ("diagnostico_relacionado3", STRING, 6),
        ("condicion_salida", STRING, 1),
        ("causa_muerte", STRING, 6),
    ),
    "ADCT": _fields(
        ("numero_factura", STRING, 30),
        ("prefijo_factura", STRING, 6),
        ("codigo_prestador", STRING, 16),
        ("tipo_documento", STRING, 2),
        ("numero_documento", STRING, 20),
        ("fecha_servicio", DATE, 10),
        ("numero_autorizacion", STRING, 30),
        ("codigo_servicio", STRING, 20),
        ("nombre_servicio", STRING, 60),
        ("cantidad", NUMBER, 5),
        ("valor_unitario", NUMBER, 15),
        ("valor_total", NUMBER, 15),
    ),
}

CURRENT_FILE_TYPES = (
    FileTypeInfo(
        code="AFCT",
        name="Archivo de transacciones (nuevo formato)",
        required=True,
        description="Contiene los datos de la transacción entre la entidad y el prestador",
    ),
    FileTypeInfo(
        code="ATUS",
        name="Archivo de usuarios (nuevo formato)",
        required=True,
        description="Contiene los datos de identificación del usuario atendido",
    ),
    FileTypeInfo(
        code="ACCT",
        name="Archivo de consultas (nuevo formato)",
        description="Contiene los datos de las consultas realizadas",
    ),
    FileTypeInfo(
        code="APCT",
        name="Archivo de procedimientos (nuevo formato)",
        description="Contiene los datos de procedimientos realizados",
    ),
    FileTypeInfo(
        code="AMCT",
        name="Archivo de medicamentos (nuevo formato)",
        description="Contiene los datos de medicamentos suministrados",
    ),
    FileTypeInfo(
        code="AUCT",
        name="Archivo de urgencias (nuevo formato)",
        description="Contiene los datos de atenciones de urgencia",
    ),
    FileTypeInfo(
        code="AHCT",
        name="Archivo de hospitalización (nuevo formato)",
        description="Contiene los datos de hospitalizaciones",
    ),
    FileTypeInfo(
        code="ANCT",
        name="Archivo de recién nacidos (nuevo formato)",
        description="Contiene los datos de recién nacidos",
    ),
    FileTypeInfo(
        code="ADCT",
        name="Archivo de descripción (nuevo formato)",
        description="Contiene los datos de descripción agrupada de servicios",
    ),
)

_REGISTRIES: dict[FormatVersion, SchemaRegistry] = {
    FormatVersion.LEGACY: SchemaRegistry(
        version=FormatVersion.LEGACY,
        label="3374 de 2000",
        description=(
            "Registros Individuales de Prestación de Servicios de Salud "
            "según Resolución 3374 de 2000"
        ),
        control_type="AF",
        user_type="US",
        fallback_type="AU",
        provider_code_length=12,
        file_types=LEGACY_FILE_TYPES,
        structures=LEGACY_STRUCTURES,
        service_routes={
            CONSULTATION: "AC",
            PROCEDURE: "AP",
            MEDICATION: "AM",
            EMERGENCY: "AT",
            HOSPITALIZATION: "AH",
            NEWBORN: "AN",
        },
        value_fields={
            "AC": "valor_neto",
            "AP": "valor_procedimiento",
            "AM": "valor_total",
            "AU": "valor_total",
        },
    ),
    FormatVersion.CURRENT: SchemaRegistry(
        version=FormatVersion.CURRENT,
        label="2275 de 2023",
        description=(
            "Registros Individuales de Prestación de Servicios de Salud "
            "según Resolución 2275 de 2023"
        ),
        xml_version="2275-2023",
        control_type="AFCT",
        user_type="ATUS",
        fallback_type="ADCT",
        provider_code_length=16,
        file_types=CURRENT_FILE_TYPES,
        structures=CURRENT_STRUCTURES,
        service_routes={
            CONSULTATION: "ACCT",
            PROCEDURE: "APCT",
            MEDICATION: "AMCT",
            EMERGENCY: "AUCT",
            HOSPITALIZATION: "AHCT",
            NEWBORN: "ANCT",
        },
        value_fields={
            "ACCT": "valor_neto",
            "APCT": "valor_neto",
            "AMCT": "valor_total",
            "AUCT": "valor_total",
            "AHCT": "valor_estancia",
            "ADCT": "valor_total",
        },
    ),
}


def get_file_structure(file_type: str, version: FormatVersion | str) -> tuple[FieldSpec, ...]:
    """Field table of ``file_type`` in ``version``; empty for unknown codes."""
    return SchemaRegistry.for_version(version).get_file_structure(file_type)
