"""Generation summary.

Produces a per-record-type summary table (Polars) and a Markdown manifest
``summary.md`` describing one generation run: provider, period, files
written, record counts, monetary totals and validation outcome.
"""

from __future__ import annotations

from pathlib import Path

import polars as pl

from rips_engine.assemble import RipsDataset, RipsGenerationResult, type_total
from rips_engine.config import FormatVersion, RipsConfig
from rips_engine.registry import SchemaRegistry

SUMMARY_FILENAME = "summary.md"
MAX_LISTED_ISSUES = 20


def summarize_dataset(dataset: RipsDataset, version: FormatVersion | str) -> pl.DataFrame:
    """One row per catalog record type with its record count and value total.

    Args:
        dataset: Record type -> records.
        version: Format version of the dataset.

    Returns:
        DataFrame with columns record_type, name, required, records,
        total_value; catalog order.
    """
    registry = SchemaRegistry.for_version(version)
    rows = []
    for info in registry.file_types:
        records = dataset.get(info.code, [])
        rows.append(
            {
                "record_type": info.code,
                "name": info.name,
                "required": info.required,
                "records": len(records),
                "total_value": type_total(registry, info.code, records),
            }
        )
    return pl.DataFrame(
        rows,
        schema={
            "record_type": pl.Utf8,
            "name": pl.Utf8,
            "required": pl.Boolean,
            "records": pl.Int64,
            "total_value": pl.Float64,
        },
    )


def generate_summary(result: RipsGenerationResult, config: RipsConfig, output_dir: Path) -> Path:
    """Write the Markdown manifest of a generation run.

    Args:
        result: Output of ``generate_rips``.
        config: Configuration the run used.
        output_dir: Output directory.

    Returns:
        Path to the generated summary file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    registry = SchemaRegistry.for_version(result.version)
    summary = summarize_dataset(result.dataset, result.version)
    populated = summary.filter(pl.col("records") > 0)
    validation = result.validation

    lines: list[str] = []
    lines.append(f"# RIPS {registry.label}\n")
    lines.append(f"**Generated:** {config.generated_at.strftime('%Y-%m-%d %H:%M:%S')}\n")
    lines.append(
        f"**Provider:** {config.provider_code_for(registry.provider_code_length)} | "
        f"**Remission date:** {config.remission_date.isoformat()}\n"
    )
    lines.append("---\n")

    lines.append("## Key Metrics\n")
    lines.append("| Metric | Value |")
    lines.append("|---|---|")
    invoices = sum(
        1
        for r in result.dataset.get(registry.control_type, [])
        if r.get("codigo_archivo") == registry.control_type
    )
    lines.append(f"| Invoices | {invoices:,} |")
    lines.append(f"| Users | {len(result.dataset.get(registry.user_type, [])):,} |")
    lines.append(f"| Record Types | {populated.height} |")
    lines.append(f"| Total Records | {int(summary['records'].sum()):,} |")
    lines.append(f"| Files Written | {len(result.files) + (1 if result.xml else 0)} |")
    lines.append(f"| Valid | {'yes' if validation.is_valid else 'no'} |")
    lines.append("")

    lines.append("## Files\n")
    if populated.height:
        lines.append("| File | Name | Records | Total Value |")
        lines.append("|---|---|---|---|")
        for row in populated.iter_rows(named=True):
            filename = f"{row['record_type']}.txt" if row["record_type"] in result.files else "-"
            lines.append(
                f"| {filename} | {row['name']} | {row['records']:,} | "
                f"${row['total_value']:,.2f} |"
            )
        if result.xml:
            lines.append("| rips.xml | Documento XML | - | - |")
        lines.append("")
    else:
        lines.append("No records generated.\n")

    lines.append("## Validation\n")
    lines.append(f"- **Errors:** {len(validation.errors)}")
    lines.append(f"- **Warnings:** {len(validation.warnings)}")
    lines.append("")
    for title, issues in (("Errors", validation.errors), ("Warnings", validation.warnings)):
        if not issues:
            continue
        lines.append(f"### {title}\n")
        for issue in issues[:MAX_LISTED_ISSUES]:
            lines.append(f"- {issue}")
        if len(issues) > MAX_LISTED_ISSUES:
            lines.append(f"- ... and {len(issues) - MAX_LISTED_ISSUES} more")
        lines.append("")

    path = output_dir / SUMMARY_FILENAME
    path.write_text("\n".join(lines), encoding="utf-8")
    return path
