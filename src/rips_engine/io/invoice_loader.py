"""JSON invoice batch loader.

Accepts either a full batch document::

    {"entity": {"code": "EPS001", "name": "..."}, "invoices": [...]}

or a bare list of invoices, in which case the payer must be given by the
caller. Attribute names may be snake_case or the billing system's camelCase.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from rips_engine.schema import Entity, InvoiceBatch


def load_invoice_batch(path: str | Path, entity: Entity | None = None) -> InvoiceBatch:
    """Load an invoice batch from a JSON file.

    Args:
        path: Path to the JSON file.
        entity: Payer to use; overrides any ``entity`` in the file and is
            required when the file holds a bare invoice list.

    Returns:
        Validated InvoiceBatch.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid JSON or does not describe a batch.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Invoice file not found: {path}")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse JSON file {path}: {e}") from e

    if isinstance(raw, list):
        raw = {"invoices": raw}
    if not isinstance(raw, dict):
        raise ValueError(f"Expected an object or a list of invoices in {path}")
    if entity is not None:
        raw = {**raw, "entity": entity.model_dump()}
    if "entity" not in raw:
        raise ValueError(f"No payer entity in {path}; pass one explicitly")

    try:
        return InvoiceBatch.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid invoice batch in {path}: {e}") from e
