"""Input loading and output writing for generation runs.

Picks the right loader for an input file by suffix and writes the generated
RIPS files, the XML document and the validation report to an output
directory.
"""

from __future__ import annotations

from pathlib import Path

from rips_engine.io import load_invoice_batch, load_service_lines
from rips_engine.schema import Entity, InvoiceBatch
from rips_engine.validate import ValidationResult

XML_FILENAME = "rips.xml"
REPORT_FILENAME = "validation_report.json"


def load_invoices(path: Path, entity: Entity | None = None) -> InvoiceBatch:
    """Load an invoice batch from JSON, CSV or Parquet.

    Args:
        path: Input file. JSON holds a batch or a list of invoices; CSV and
            Parquet hold one row per billed service.
        entity: Payer; required for CSV/Parquet and for bare JSON lists.

    Returns:
        InvoiceBatch ready for ``build_dataset``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file cannot be read or no payer is known.
    """
    suffix = path.suffix.lower()
    if suffix == ".json":
        return load_invoice_batch(path, entity)
    if suffix in (".csv", ".parquet"):
        invoices = load_service_lines(path)
        if entity is None:
            raise ValueError(f"A payer entity is required for service-line input {path}")
        return InvoiceBatch(entity=entity, invoices=invoices)
    raise ValueError(f"Unsupported input file type: {path.suffix}")


def save_rips_files(files: dict[str, str], output_dir: Path, xml: str | None = None) -> list[Path]:
    """Write one ``<CODE>.txt`` per record type, plus the XML document if given.

    Returns:
        Paths written, in the order of ``files``.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for code, content in files.items():
        path = output_dir / f"{code}.txt"
        path.write_text(content, encoding="utf-8")
        written.append(path)
    if xml is not None:
        path = output_dir / XML_FILENAME
        path.write_text(xml, encoding="utf-8")
        written.append(path)
    return written


def save_validation_report(result: ValidationResult, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / REPORT_FILENAME
    path.write_text(result.model_dump_json(indent=2), encoding="utf-8")
    return path
