"""Format assembler.

Turns an invoice batch into a ``RipsDataset`` (record type -> ordered list of
records) and serializes it:
- users deduplicated across invoices by (document type, document number)
- one control record per invoice plus one summary control record per
  populated record type
- comma-delimited text per record type, and for 2275 a single XML document

Serialization never validates; run ``validate_dataset`` for that.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Any

from pydantic import BaseModel, Field

from rips_engine.config import DeduplicationPolicy, FormatVersion, RipsConfig
from rips_engine.errors import DuplicatePatientError, UnsupportedFormatError
from rips_engine.formatting import clip, format_field, number_text, to_iso_date, to_number
from rips_engine.mappers import DEFAULTS, map_service, map_user
from rips_engine.registry import CONTROL_INVOICE_MARKER, SchemaRegistry
from rips_engine.schema import Entity, Invoice, InvoiceBatch, Patient
from rips_engine.validate import ValidationResult, validate_dataset

logger = logging.getLogger(__name__)

Record = dict[str, Any]
RipsDataset = dict[str, list[Record]]

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'


def collect_patients(
    invoices: list[Invoice], policy: DeduplicationPolicy = DeduplicationPolicy.FIRST_WINS
) -> list[Patient]:
    """Unique patients across invoices, in first-seen order.

    Each invoice's ``patients`` are considered first, then the patient of
    every service. Under STRICT a repeated identity with different data
    raises ``DuplicatePatientError``; otherwise the first occurrence wins.
    """
    seen: dict[tuple[str, str], Patient] = {}
    dropped = 0
    for invoice in invoices:
        candidates = list(invoice.patients)
        candidates.extend(s.patient for s in invoice.services if s.patient is not None)
        for patient in candidates:
            first = seen.get(patient.identity)
            if first is None:
                seen[patient.identity] = patient
                continue
            if policy is DeduplicationPolicy.STRICT and first != patient:
                raise DuplicatePatientError(*patient.identity)
            dropped += 1
    if dropped:
        logger.debug("Dropped %d duplicate patient occurrences", dropped)
    return list(seen.values())


def type_total(registry: SchemaRegistry, file_type: str, records: list[Record]) -> float:
    """Sum of the monetary total field of ``file_type``; 0 when it has none."""
    field = registry.value_fields.get(file_type)
    if field is None:
        return 0.0
    return sum(to_number(r.get(field, 0)) for r in records)


def _control_base(entity: Entity, config: RipsConfig, registry: SchemaRegistry) -> Record:
    control = registry.control_type
    base: Record = {
        "codigo_prestador": config.provider_code_for(registry.provider_code_length),
    }
    if registry.version is FormatVersion.CURRENT:
        base["codigo_habilitacion"] = config.habilitation_code
    base["fecha_remision"] = config.remission_date.isoformat()
    base["codigo_entidad"] = entity.code
    base["nombre_entidad"] = clip(entity.name, registry.max_length(control, "nombre_entidad"))
    return base


def invoice_control_record(
    invoice: Invoice, entity: Entity, config: RipsConfig, registry: SchemaRegistry
) -> Record:
    """Control record describing one invoice."""
    record = _control_base(entity, config, registry)
    record["numero_factura"] = invoice.number
    if registry.version is FormatVersion.CURRENT:
        record["prefijo_factura"] = invoice.prefix
        record["numero_contrato"] = invoice.contract_number
        record["plan_beneficios"] = invoice.benefits_plan or DEFAULTS[registry.version].benefits_plan
    record["fecha_inicio"] = to_iso_date(invoice.start_date)
    record["fecha_final"] = to_iso_date(invoice.end_date)
    record["codigo_archivo"] = registry.control_type
    record["total_registros"] = 1
    if registry.version is FormatVersion.CURRENT:
        record["total_valor"] = invoice.total_value
    return record


def summary_control_record(
    file_type: str,
    records: list[Record],
    entity: Entity,
    config: RipsConfig,
    registry: SchemaRegistry,
) -> Record:
    """Control record announcing how many records ``file_type`` holds."""
    remission = config.remission_date.isoformat()
    record = _control_base(entity, config, registry)
    record["numero_factura"] = CONTROL_INVOICE_MARKER
    if registry.version is FormatVersion.CURRENT:
        record["prefijo_factura"] = ""
        record["numero_contrato"] = ""
        record["plan_beneficios"] = DEFAULTS[registry.version].benefits_plan
    record["fecha_inicio"] = remission
    record["fecha_final"] = remission
    record["codigo_archivo"] = file_type
    record["total_registros"] = len(records)
    if registry.version is FormatVersion.CURRENT:
        record["total_valor"] = type_total(registry, file_type, records)
    return record


def build_dataset(
    entity: Entity,
    invoices: list[Invoice],
    config: RipsConfig,
    version: FormatVersion | str,
) -> RipsDataset:
    """Map a batch of invoices to RIPS records.

    Args:
        entity: Payer the batch is billed to.
        invoices: Invoices with their patients and services.
        config: Provider identity and policies.
        version: Target format version.

    Returns:
        Dataset with one (possibly empty) list per catalog record type.

    Raises:
        DuplicatePatientError: Only under ``DeduplicationPolicy.STRICT``.
    """
    registry = SchemaRegistry.for_version(version)
    dataset: RipsDataset = {code: [] for code in registry.record_types}
    control = dataset[registry.control_type]

    for patient in collect_patients(invoices, config.dedup_policy):
        dataset[registry.user_type].append(map_user(patient, entity, config, registry.version))

    for invoice in invoices:
        control.append(invoice_control_record(invoice, entity, config, registry))
        for service in invoice.services:
            record_type, record = map_service(invoice, service, config, registry.version)
            dataset[record_type].append(record)

    if control:
        for code in registry.record_types:
            if code != registry.control_type and dataset[code]:
                control.append(summary_control_record(code, dataset[code], entity, config, registry))

    logger.debug(
        "Built %s dataset from %d invoices: %s",
        registry.version.value,
        len(invoices),
        {code: len(records) for code, records in dataset.items() if records},
    )
    return dataset


def format_record(
    file_type: str, record: Record, registry: SchemaRegistry, config: RipsConfig | None = None
) -> list[str]:
    """Formatted values of one record, in field-table order."""
    config = config or RipsConfig()
    return [
        format_field(
            record.get(spec.name, ""),
            spec.type,
            spec.max_length,
            numeric_policy=config.numeric_policy,
            malformed_policy=config.malformed_policy,
        )
        for spec in registry.get_file_structure(file_type)
    ]


def serialize_file(
    file_type: str,
    records: list[Record],
    version: FormatVersion | str,
    config: RipsConfig | None = None,
) -> str | None:
    """Comma-delimited text of one record type.

    Returns None when there is nothing to write: no records, or a record
    type without a field table.
    """
    registry = SchemaRegistry.for_version(version)
    if not records or not registry.get_file_structure(file_type):
        return None
    return "\n".join(
        ",".join(format_record(file_type, record, registry, config)) for record in records
    )


def serialize_dataset(
    dataset: RipsDataset, version: FormatVersion | str, config: RipsConfig | None = None
) -> dict[str, str]:
    """Text content per record type, only for types that produce a file."""
    files: dict[str, str] = {}
    for code, records in dataset.items():
        content = serialize_file(code, records, version, config)
        if content is not None:
            files[code] = content
    return files


def _xml_value(value: Any) -> str:
    return "" if value is None else number_text(value)


def generate_xml(
    dataset: RipsDataset, version: FormatVersion | str, config: RipsConfig | None = None
) -> str:
    """Single XML document holding every populated record type.

    Raises:
        UnsupportedFormatError: The version has no XML representation.
    """
    registry = SchemaRegistry.for_version(version)
    if registry.xml_version is None:
        raise UnsupportedFormatError(
            f"Resolution {registry.version.value} has no XML output"
        )
    config = config or RipsConfig()
    root = ET.Element(
        "RIPS",
        {
            "version": registry.xml_version,
            "fechaGeneracion": config.generated_at.strftime("%Y-%m-%dT%H:%M:%S"),
        },
    )
    for code, records in dataset.items():
        if not records:
            continue
        section = ET.SubElement(root, code)
        for record in records:
            ET.SubElement(section, "registro", {k: _xml_value(v) for k, v in record.items()})
    ET.indent(root)
    return XML_DECLARATION + ET.tostring(root, encoding="unicode")


class RipsGenerationResult(BaseModel):
    """Everything one generation run produces."""

    version: FormatVersion
    dataset: dict[str, list[dict[str, Any]]]
    files: dict[str, str] = Field(default_factory=dict, description="Text per record type")
    xml: str | None = Field(default=None, description="XML document (2275 only)")
    validation: ValidationResult

    @property
    def record_counts(self) -> dict[str, int]:
        return {code: len(records) for code, records in self.dataset.items() if records}


def generate_rips(
    batch: InvoiceBatch, config: RipsConfig, version: FormatVersion | str
) -> RipsGenerationResult:
    """Build, validate and serialize a batch in one call."""
    version = FormatVersion(version)
    dataset = build_dataset(batch.entity, batch.invoices, config, version)
    registry = SchemaRegistry.for_version(version)
    return RipsGenerationResult(
        version=version,
        dataset=dataset,
        files=serialize_dataset(dataset, version, config),
        xml=generate_xml(dataset, version, config) if registry.xml_version else None,
        validation=validate_dataset(dataset, version),
    )
