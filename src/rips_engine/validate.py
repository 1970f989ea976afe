"""Cross-file validation of a RIPS dataset.

Two tiers, like any submission check:
- Errors: missing mandatory files, records pointing at users that are not in
  the user file, and mandatory control/user fields that are empty or
  malformed -> ``is_valid`` is False.
- Warnings: negative net values, summary counts that are unreadable or
  disagree with the data, populated record types without a field table ->
  reported only.

The dataset is never modified. Values may be raw Python objects (freshly
mapped) or text (read back from files); both are handled.
"""

from __future__ import annotations

import math
import re
from datetime import date
from typing import Any

from pydantic import BaseModel, Field

from rips_engine.config import FormatVersion
from rips_engine.formatting import to_number
from rips_engine.registry import (
    CONTROL_INVOICE_MARKER,
    DOCUMENT_NUMBER_FIELD,
    DOCUMENT_TYPE_FIELD,
    SchemaRegistry,
)
from rips_engine.schema import DOCUMENT_TYPES

ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ValidationResult(BaseModel):
    """Outcome of validating one dataset."""

    is_valid: bool = Field(description="True if no errors were found")
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def is_iso_date(value: Any) -> bool:
    """True for a real calendar date written as ``YYYY-MM-DD``."""
    text = _text(value)
    if not ISO_DATE.match(text):
        return False
    try:
        date.fromisoformat(text)
    except ValueError:
        return False
    return True


def user_key(record: dict[str, Any]) -> str:
    return f"{_text(record.get(DOCUMENT_TYPE_FIELD))}|{_text(record.get(DOCUMENT_NUMBER_FIELD))}"


def _check_date(errors: list[str], where: str, record: dict[str, Any], field: str) -> None:
    value = record.get(field)
    if not _text(value):
        errors.append(f"{where}: field {field} is required")
    elif not is_iso_date(value):
        errors.append(f"{where}: field {field} has an invalid format, expected YYYY-MM-DD")


def _check_control(
    errors: list[str], registry: SchemaRegistry, records: list[dict[str, Any]]
) -> None:
    code = registry.control_type
    for index, record in enumerate(records):
        where = f"{code}[{index}]"
        provider = _text(record.get("codigo_prestador"))
        if not provider:
            errors.append(f"{where}: field codigo_prestador is required")
        elif len(provider) != registry.provider_code_length:
            errors.append(
                f"{where}: field codigo_prestador must have "
                f"{registry.provider_code_length} characters"
            )
        if registry.version is FormatVersion.CURRENT and not _text(
            record.get("codigo_habilitacion")
        ):
            errors.append(f"{where}: field codigo_habilitacion is required")
        _check_date(errors, where, record, "fecha_remision")


def _check_users(
    errors: list[str], registry: SchemaRegistry, records: list[dict[str, Any]]
) -> None:
    code = registry.user_type
    for index, record in enumerate(records):
        where = f"{code}[{index}]"
        doc_type = _text(record.get(DOCUMENT_TYPE_FIELD))
        if not doc_type:
            errors.append(f"{where}: field {DOCUMENT_TYPE_FIELD} is required")
        elif doc_type not in DOCUMENT_TYPES:
            errors.append(f"{where}: field {DOCUMENT_TYPE_FIELD} value {doc_type} is not valid")
        if not _text(record.get(DOCUMENT_NUMBER_FIELD)):
            errors.append(f"{where}: field {DOCUMENT_NUMBER_FIELD} is required")
        if registry.version is FormatVersion.CURRENT:
            _check_date(errors, where, record, "fecha_nacimiento")


def _check_references(
    errors: list[str], registry: SchemaRegistry, dataset: dict[str, list[dict[str, Any]]]
) -> None:
    users = {user_key(r) for r in dataset.get(registry.user_type, [])}
    for code, records in dataset.items():
        if not records or not registry.carries_user_key(code):
            continue
        for index, record in enumerate(records):
            key = user_key(record)
            if key not in users:
                errors.append(
                    f"{code}[{index}]: user {key} is not present in {registry.user_type}"
                )


def _collect_warnings(
    registry: SchemaRegistry, dataset: dict[str, list[dict[str, Any]]]
) -> list[str]:
    warnings: list[str] = []
    for code, records in dataset.items():
        if records and not registry.get_file_structure(code):
            warnings.append(f"{code}: {len(records)} records but no field table is defined")
            continue
        for index, record in enumerate(records):
            if "valor_neto" in record and to_number(record["valor_neto"]) < 0:
                warnings.append(f"{code}[{index}]: field valor_neto is negative")

    for index, record in enumerate(dataset.get(registry.control_type, [])):
        if _text(record.get("numero_factura")) != CONTROL_INVOICE_MARKER:
            continue
        target = _text(record.get("codigo_archivo"))
        declared_value = to_number(record.get("total_registros"))
        if not math.isfinite(declared_value):
            warnings.append(
                f"{registry.control_type}[{index}]: field total_registros for {target} "
                f"is unreadable: {_text(record.get('total_registros'))}"
            )
            continue
        declared = int(declared_value)
        actual = len(dataset.get(target, []))
        if declared != actual:
            warnings.append(
                f"{registry.control_type}[{index}]: field total_registros declares "
                f"{declared} records for {target}, found {actual}"
            )
    return warnings


def validate_dataset(
    dataset: dict[str, list[dict[str, Any]]], version: FormatVersion | str
) -> ValidationResult:
    """Validate a RIPS dataset across its files.

    Args:
        dataset: Record type -> ordered records, as built by ``build_dataset``
            or read back from files.
        version: Format version the dataset follows.

    Returns:
        ValidationResult; ``is_valid`` is False when any error was found.
    """
    registry = SchemaRegistry.for_version(version)
    errors: list[str] = []

    control = dataset.get(registry.control_type, [])
    users = dataset.get(registry.user_type, [])
    # --- Presence ---
    for code in registry.required_types:
        if not dataset.get(code):
            errors.append(
                f"{code} ({registry.get_file_type_name(code)}) is mandatory and has no records"
            )

    # --- Referential ---
    if users:
        _check_references(errors, registry, dataset)

    # --- Per-field ---
    _check_control(errors, registry, control)
    _check_users(errors, registry, users)

    return ValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=_collect_warnings(registry, dataset),
    )
