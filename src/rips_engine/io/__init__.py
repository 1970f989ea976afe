"""I/O modules for loading billing input and reading RIPS files back."""

from rips_engine.io.flat_loader import load_service_lines
from rips_engine.io.invoice_loader import load_invoice_batch
from rips_engine.io.rips_reader import parse_rips_text, parse_rips_xml, read_rips_directory, read_rips_xml

__all__ = [
    "load_invoice_batch",
    "load_service_lines",
    "parse_rips_text",
    "parse_rips_xml",
    "read_rips_directory",
    "read_rips_xml",
]
