"""CLI entrypoint for the RIPS engine.

Commands:
  generate       Build RIPS files from an invoice batch
  validate       Validate a directory of RIPS files
  structure      Show the file catalog or field table of a resolution
  convert        Convert 3374 files to 2275 files
  generate-data  Generate a synthetic invoice batch
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from rips_engine.config import FormatVersion, RipsConfig, SyntheticDataConfig
from rips_engine.errors import RipsError

app = typer.Typer(
    name="rips-engine",
    help="RIPS engine: generate, validate and convert Colombian health service records.",
    add_completion=False,
)
console = Console()

RESOLUTION_HELP = "Resolution: 3374 (2000) or 2275 (2023)"


def _get_config(
    provider_code: str | None,
    habilitation_code: str | None,
    config_file: Path | None = None,
) -> RipsConfig:
    """Build the run config from an optional JSON file and CLI overrides."""
    raw: dict = {}
    if config_file and config_file.exists():
        raw = json.loads(config_file.read_text())
    if provider_code:
        raw["provider_code"] = provider_code
    if habilitation_code:
        raw["habilitation_code"] = habilitation_code
    return RipsConfig(**raw)


def _resolution(value: str) -> FormatVersion:
    try:
        return FormatVersion(value)
    except ValueError:
        raise typer.BadParameter(f"Unknown resolution {value!r}; use 3374 or 2275") from None


@contextmanager
def _cli_errors() -> Iterator[None]:
    """Expected failures exit with code 1, anything else with code 2."""
    try:
        yield
    except typer.Exit:
        raise
    except (FileNotFoundError, ValueError, RipsError) as e:
        console.print(f"[red]✗ {e}[/]")
        raise typer.Exit(code=1) from e
    except Exception as e:
        console.print(f"[red]Unexpected error: {e}[/]")
        raise typer.Exit(code=2) from e


def _print_validation(errors: list[str], warnings: list[str], limit: int = 20) -> None:
    for message in errors[:limit]:
        console.print(f"  [red]• {message}[/]")
    for message in warnings[:limit]:
        console.print(f"  [yellow]• {message}[/]")


@app.command()
def generate(
    input_file: Path = typer.Option(..., "--input", help="Invoice batch (JSON, CSV or Parquet)"),
    entity_code: str | None = typer.Option(None, help="Payer code (overrides the file)"),
    entity_name: str = typer.Option("", help="Payer name"),
    resolution: str = typer.Option("2275", "--resolution", "--version", help=RESOLUTION_HELP),
    output_dir: Path = typer.Option(Path("output"), help="Output directory"),
    provider_code: str | None = typer.Option(None, help="Provider code"),
    habilitation_code: str | None = typer.Option(None, help="Habilitation code (2275)"),
    config_file: Path | None = typer.Option(None, "--config", help="JSON config file"),
) -> None:
    """Generate RIPS files from an invoice batch."""
    from rips_engine.assemble import generate_rips
    from rips_engine.ingest import load_invoices, save_rips_files, save_validation_report
    from rips_engine.reporting import generate_summary
    from rips_engine.schema import Entity

    version = _resolution(resolution)
    with _cli_errors():
        config = _get_config(provider_code, habilitation_code, config_file)
        entity = Entity(code=entity_code, name=entity_name) if entity_code else None
        console.print(f"[bold blue]Loading invoices from {input_file}...[/]")
        batch = load_invoices(input_file, entity)

        result = generate_rips(batch, config, version)
        written = save_rips_files(result.files, output_dir, result.xml)
        save_validation_report(result.validation, output_dir)
        generate_summary(result, config, output_dir)

        console.print(
            f"[green]✓ Generated {len(written)} files for {len(batch.invoices):,} invoices "
            f"(resolution {version.value}) → {output_dir}[/]"
        )
        if not result.validation.is_valid:
            console.print(
                f"[red]✗ Validation FAILED — {len(result.validation.errors)} errors:[/]"
            )
            _print_validation(result.validation.errors, result.validation.warnings)
            raise typer.Exit(code=1)
        if result.validation.warnings:
            console.print(f"[yellow]{len(result.validation.warnings)} warnings:[/]")
            _print_validation([], result.validation.warnings)


@app.command()
def validate(
    input_dir: Path = typer.Option(Path("output"), help="Directory with <CODE>.txt files"),
    resolution: str = typer.Option("2275", "--resolution", "--version", help=RESOLUTION_HELP),
    xml: bool = typer.Option(False, "--xml", help="Validate rips.xml instead of the text files"),
) -> None:
    """Validate RIPS files across record types."""
    from rips_engine.ingest import XML_FILENAME, save_validation_report
    from rips_engine.io import read_rips_directory, read_rips_xml
    from rips_engine.validate import validate_dataset

    version = _resolution(resolution)
    with _cli_errors():
        if xml:
            console.print(f"[bold blue]Validating {input_dir / XML_FILENAME}...[/]")
            version, dataset = read_rips_xml(input_dir / XML_FILENAME)
        else:
            console.print(f"[bold blue]Validating {input_dir} (resolution {version.value})...[/]")
            dataset = read_rips_directory(input_dir, version)

        result = validate_dataset(dataset, version)
        save_validation_report(result, input_dir)

        records = sum(len(r) for r in dataset.values())
        if result.is_valid:
            console.print(
                f"[green]✓ Validation passed ({records:,} records, "
                f"{len(result.warnings)} warnings)[/]"
            )
            _print_validation([], result.warnings)
        else:
            console.print(f"[red]✗ Validation FAILED — {len(result.errors)} errors:[/]")
            _print_validation(result.errors, result.warnings)
            raise typer.Exit(code=1)


@app.command()
def structure(
    resolution: str = typer.Option("2275", "--resolution", "--version", help=RESOLUTION_HELP),
    file_type: str | None = typer.Option(None, help="Show the field table of one record type"),
) -> None:
    """Show the file catalog of a resolution, or the fields of one file."""
    from rips_engine.registry import SchemaRegistry

    registry = SchemaRegistry.for_version(_resolution(resolution))
    if file_type:
        fields = registry.get_file_structure(file_type)
        if not fields:
            console.print(f"[red]✗ No field table for {file_type} in {registry.label}[/]")
            raise typer.Exit(code=1)
        table = Table(title=f"{file_type}: {registry.get_file_type_name(file_type)}")
        table.add_column("#", justify="right")
        table.add_column("Field")
        table.add_column("Type")
        table.add_column("Max length", justify="right")
        for i, spec in enumerate(fields, 1):
            table.add_row(str(i), spec.name, spec.type, str(spec.max_length))
    else:
        catalog = registry.get_structure()
        table = Table(title=f"RIPS {catalog['version']}", caption=catalog["description"])
        table.add_column("Code")
        table.add_column("Name")
        table.add_column("Required")
        table.add_column("Fields", justify="right")
        for info in registry.file_types:
            table.add_row(
                info.code,
                info.name,
                "yes" if info.required else "no",
                str(len(registry.get_file_structure(info.code))),
            )
    console.print(table)


@app.command()
def convert(
    input_dir: Path = typer.Option(..., help="Directory with 3374 <CODE>.txt files"),
    output_dir: Path = typer.Option(Path("output_2275"), help="Output directory"),
    config_file: Path | None = typer.Option(None, "--config", help="JSON config file"),
) -> None:
    """Convert resolution 3374 files to resolution 2275."""
    from rips_engine.assemble import generate_xml, serialize_dataset
    from rips_engine.convert import convert_legacy_dataset
    from rips_engine.ingest import save_rips_files, save_validation_report
    from rips_engine.io import read_rips_directory
    from rips_engine.validate import validate_dataset

    with _cli_errors():
        config = _get_config(None, None, config_file)
        console.print(f"[bold blue]Converting {input_dir} from 3374 to 2275...[/]")
        legacy = read_rips_directory(input_dir, FormatVersion.LEGACY)
        converted = convert_legacy_dataset(legacy)

        files = serialize_dataset(converted, FormatVersion.CURRENT, config)
        xml = generate_xml(converted, FormatVersion.CURRENT, config)
        written = save_rips_files(files, output_dir, xml)
        result = validate_dataset(converted, FormatVersion.CURRENT)
        save_validation_report(result, output_dir)

        console.print(f"[green]✓ Converted {len(written)} files → {output_dir}[/]")
        if not result.is_valid:
            # Converted data lacks fields 3374 never carried; report without failing.
            console.print(
                f"[yellow]{len(result.errors)} validation errors need manual completion:[/]"
            )
            _print_validation(result.errors, result.warnings, limit=10)


@app.command()
def generate_data(
    seed: int = typer.Option(42, help="Random seed for reproducible generation"),
    num_invoices: int = typer.Option(20, help="Number of invoices to generate"),
    output: Path = typer.Option(Path("output/invoices.json"), help="JSON, CSV or Parquet path"),
    config_file: Path | None = typer.Option(None, "--config", help="JSON config file"),
) -> None:
    """Generate a synthetic invoice batch."""
    from rips_engine.generate_data import batch_to_service_lines, generate_invoice_batch

    with _cli_errors():
        if config_file and config_file.exists():
            config = SyntheticDataConfig(**json.loads(config_file.read_text()))
        else:
            config = SyntheticDataConfig(seed=seed, num_invoices=num_invoices)
        console.print(
            f"[bold blue]Generating {config.num_invoices:,} synthetic invoices "
            f"(seed={config.seed})...[/]"
        )

        batch = generate_invoice_batch(config)
        output.parent.mkdir(parents=True, exist_ok=True)
        suffix = output.suffix.lower()
        if suffix == ".json":
            output.write_text(batch.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        elif suffix == ".csv":
            batch_to_service_lines(batch).write_csv(output)
        elif suffix == ".parquet":
            batch_to_service_lines(batch).write_parquet(output)
        else:
            raise ValueError(f"Unsupported output file type: {output.suffix}")

        services = sum(len(i.services) for i in batch.invoices)
        console.print(
            f"[green]✓ Generated {len(batch.invoices):,} invoices, {services:,} services → {output}[/]"
        )


if __name__ == "__main__":
    app()
