"""Readers that turn RIPS files back into a dataset.

Text files are named ``<CODE>.txt`` and hold one comma-delimited record per
line in field-table order; every value is read back as a string. The 2275
XML document is parsed with defusedxml, which refuses entity expansion and
external references.
"""

from __future__ import annotations

import logging
from pathlib import Path

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as SafeET

from rips_engine.config import FormatVersion
from rips_engine.errors import RipsFileParseError
from rips_engine.registry import SchemaRegistry

logger = logging.getLogger(__name__)

RipsDataset = dict[str, list[dict[str, str]]]

XML_VERSIONS = {"2275-2023": FormatVersion.CURRENT}


def parse_rips_text(
    file_type: str, content: str, version: FormatVersion | str
) -> list[dict[str, str]]:
    """Split the text of one RIPS file into records.

    Raises:
        RipsFileParseError: The type has no field table, or a line does not
            hold exactly one value per field.
    """
    structure = SchemaRegistry.for_version(version).get_file_structure(file_type)
    if not structure:
        raise RipsFileParseError(f"No field table for record type {file_type}")

    records = []
    for number, line in enumerate(content.splitlines(), start=1):
        if not line.strip():
            continue
        values = line.split(",")
        if len(values) != len(structure):
            raise RipsFileParseError(
                f"{file_type} line {number}: expected {len(structure)} fields, got {len(values)}"
            )
        records.append({spec.name: value for spec, value in zip(structure, values)})
    return records


def read_rips_directory(directory: str | Path, version: FormatVersion | str) -> RipsDataset:
    """Read every ``<CODE>.txt`` of a version found in ``directory``.

    Returns:
        Dataset with one list per catalog record type; missing files give
        empty lists.

    Raises:
        FileNotFoundError: If the directory does not exist.
        RipsFileParseError: If a file is malformed.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"RIPS directory not found: {directory}")

    registry = SchemaRegistry.for_version(version)
    dataset: RipsDataset = {code: [] for code in registry.record_types}
    for code in registry.record_types:
        path = directory / f"{code}.txt"
        if not path.exists() or not registry.get_file_structure(code):
            continue
        dataset[code] = parse_rips_text(code, path.read_text(encoding="utf-8"), version)

    logger.debug(
        "Read %s from %s: %s",
        registry.version.value,
        directory,
        {code: len(records) for code, records in dataset.items() if records},
    )
    return dataset


def parse_rips_xml(content: str | bytes) -> tuple[FormatVersion, RipsDataset]:
    """Parse a RIPS XML document.

    Returns:
        Tuple of (format version, dataset). Record types without elements in
        the document get empty lists.

    Raises:
        RipsFileParseError: The document is not well-formed, is not a RIPS
            document, or declares an unknown version.
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    try:
        root = SafeET.fromstring(content)
    except (SafeET.ParseError, DefusedXmlException) as e:
        raise RipsFileParseError(f"Invalid RIPS XML: {e}") from e

    if root.tag != "RIPS":
        raise RipsFileParseError(f"Expected root element RIPS, found {root.tag}")
    declared = root.get("version", "")
    version = XML_VERSIONS.get(declared)
    if version is None:
        raise RipsFileParseError(f"Unsupported RIPS XML version: {declared!r}")

    registry = SchemaRegistry.for_version(version)
    dataset: RipsDataset = {code: [] for code in registry.record_types}
    for section in root:
        if section.tag not in dataset:
            logger.warning("Ignoring unknown RIPS XML section %s", section.tag)
            continue
        dataset[section.tag].extend(dict(item.attrib) for item in section.iter("registro"))
    return version, dataset


def read_rips_xml(path: str | Path) -> tuple[FormatVersion, RipsDataset]:
    """Read a RIPS XML file from disk. See ``parse_rips_xml``."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"RIPS XML file not found: {path}")
    return parse_rips_xml(path.read_bytes())
