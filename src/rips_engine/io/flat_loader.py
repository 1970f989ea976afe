"""Flat service-line loader.

Billing exports often arrive as one row per billed service, with the invoice
and patient repeated on every line. This loader reads such a table (CSV or
Parquet) with Polars and folds it back into ``Invoice`` models.

Columns named in ``INVOICE_COLUMNS`` and ``PATIENT_COLUMNS`` describe the
invoice and the patient; ``service_type``, ``service_code``, ``service_date``
and ``service_time`` describe the service, and any other column is passed to
the service model under its own (snake_case) name.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import polars as pl
from pydantic import ValidationError

from rips_engine.schema import Invoice

REQUIRED_COLUMNS = {"invoice_number", "service_type", "document_type", "document_number"}

INVOICE_COLUMNS = {
    "invoice_number": "number",
    "invoice_prefix": "prefix",
    "invoice_date": "date",
    "start_date": "start_date",
    "end_date": "end_date",
    "invoice_total": "total_value",
    "contract_number": "contract_number",
    "benefits_plan": "benefits_plan",
}

PATIENT_COLUMNS = {
    "document_type",
    "document_number",
    "first_name",
    "second_name",
    "last_name",
    "second_last_name",
    "patient_birth_date",
    "patient_gender",
    "user_type",
    "department",
    "municipality",
    "residence_zone",
    "regime_type",
}

SERVICE_RENAMES = {
    "service_type": "type",
    "service_code": "code",
    "service_date": "date",
    "service_time": "time",
}


def _present(value: Any) -> bool:
    return value is not None and value != ""


def _patient_payload(row: dict[str, Any]) -> dict[str, Any]:
    payload = {}
    for column in PATIENT_COLUMNS:
        value = row.get(column)
        if _present(value):
            payload[column.removeprefix("patient_")] = value
    return payload


def _service_payload(row: dict[str, Any]) -> dict[str, Any]:
    payload: dict[str, Any] = {"patient": _patient_payload(row)}
    for column, value in row.items():
        if column in INVOICE_COLUMNS or column in PATIENT_COLUMNS or not _present(value):
            continue
        payload[SERVICE_RENAMES.get(column, column)] = value
    return payload


def _read_table(path: Path) -> pl.DataFrame:
    suffix = path.suffix.lower()
    try:
        if suffix == ".csv":
            # All columns as strings so document numbers keep leading zeros
            return pl.read_csv(path, infer_schema_length=0)
        if suffix == ".parquet":
            return pl.read_parquet(path)
    except Exception as e:
        raise ValueError(f"Failed to read {path}: {e}") from e
    raise ValueError(f"Unsupported service-line file type: {path.suffix}")


def load_service_lines(path: str | Path) -> list[Invoice]:
    """Load invoices from a flat service-line table.

    Args:
        path: CSV or Parquet file, one row per billed service.

    Returns:
        Invoices in order of first appearance, each carrying its services
        with their patients attached.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file cannot be read, required columns are missing,
            or a row does not describe a valid service.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Service-line file not found: {path}")

    df = _read_table(path)
    df = df.rename({c: c.strip() for c in df.columns})

    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(
            f"Missing required columns: {sorted(missing)}. Found columns: {sorted(df.columns)}"
        )

    invoices: list[Invoice] = []
    for group in df.partition_by("invoice_number", maintain_order=True):
        rows = group.to_dicts()
        head = rows[0]
        payload: dict[str, Any] = {
            field: head[column]
            for column, field in INVOICE_COLUMNS.items()
            if _present(head.get(column))
        }
        payload["services"] = [_service_payload(row) for row in rows]
        try:
            invoices.append(Invoice.model_validate(payload))
        except ValidationError as e:
            raise ValueError(
                f"Invalid service lines for invoice {head['invoice_number']} in {path}: {e}"
            ) from e
    return invoices
