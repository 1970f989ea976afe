"""Tests for the command-line interface."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from rips_engine.cli import app

runner = CliRunner()


@pytest.fixture
def invoices_json(tmp_path: Path) -> Path:
    path = tmp_path / "invoices.json"
    result = runner.invoke(
        app, ["generate-data", "--seed", "7", "--num-invoices", "8", "--output", str(path)]
    )
    assert result.exit_code == 0, result.output
    return path


class TestGenerateData:
    def test_json_output(self, invoices_json: Path) -> None:
        data = json.loads(invoices_json.read_text())
        assert data["entity"]["code"] == "EPS037"
        assert len(data["invoices"]) == 8

    def test_csv_output(self, tmp_path: Path) -> None:
        path = tmp_path / "lines.csv"
        result = runner.invoke(app, ["generate-data", "--num-invoices", "5", "--output", str(path)])
        assert result.exit_code == 0, result.output
        assert path.read_text().startswith("invoice_number,")

    def test_unsupported_output(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["generate-data", "--output", str(tmp_path / "out.xlsx")])
        assert result.exit_code == 1


class TestGenerate:
    def test_current_resolution(self, tmp_path: Path, invoices_json: Path) -> None:
        out = tmp_path / "rips"
        result = runner.invoke(
            app, ["generate", "--input", str(invoices_json), "--output-dir", str(out)]
        )
        assert result.exit_code == 0, result.output
        for name in ("AFCT.txt", "ATUS.txt", "rips.xml", "validation_report.json", "summary.md"):
            assert (out / name).exists(), name

    def test_legacy_resolution(self, tmp_path: Path, invoices_json: Path) -> None:
        out = tmp_path / "rips"
        result = runner.invoke(
            app,
            ["generate", "--input", str(invoices_json), "--version", "3374", "--output-dir", str(out)],
        )
        assert result.exit_code == 0, result.output
        assert (out / "AF.txt").exists()
        assert not (out / "rips.xml").exists()

    def test_provider_code_override(self, tmp_path: Path, invoices_json: Path) -> None:
        out = tmp_path / "rips"
        result = runner.invoke(
            app,
            [
                "generate",
                "--input", str(invoices_json),
                "--output-dir", str(out),
                "--provider-code", "999999999999",
            ],
        )
        assert result.exit_code == 0, result.output
        assert (out / "AFCT.txt").read_text().startswith("9999999999990000,")

    def test_csv_input_with_entity(self, tmp_path: Path) -> None:
        lines = tmp_path / "lines.csv"
        runner.invoke(app, ["generate-data", "--num-invoices", "5", "--output", str(lines)])
        out = tmp_path / "rips"
        result = runner.invoke(
            app,
            [
                "generate",
                "--input", str(lines),
                "--entity-code", "EPS037",
                "--entity-name", "NUEVA EPS S.A.",
                "--output-dir", str(out),
            ],
        )
        assert result.exit_code == 0, result.output
        assert (out / "AFCT.txt").read_text().count("EPS037") >= 5

    def test_missing_input(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["generate", "--input", str(tmp_path / "missing.json")])
        assert result.exit_code == 1

    def test_unknown_resolution(self, invoices_json: Path) -> None:
        result = runner.invoke(
            app, ["generate", "--input", str(invoices_json), "--resolution", "1999"]
        )
        assert result.exit_code != 0

    def test_invalid_output_fails(self, tmp_path: Path, invoices_json: Path) -> None:
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"habilitation_code": ""}))
        result = runner.invoke(
            app,
            [
                "generate",
                "--input", str(invoices_json),
                "--output-dir", str(tmp_path / "rips"),
                "--config", str(config),
            ],
        )
        assert result.exit_code == 1
        report = json.loads((tmp_path / "rips" / "validation_report.json").read_text())
        assert report["is_valid"] is False


class TestValidate:
    def test_generated_files_pass(self, tmp_path: Path, invoices_json: Path) -> None:
        out = tmp_path / "rips"
        runner.invoke(app, ["generate", "--input", str(invoices_json), "--output-dir", str(out)])
        result = runner.invoke(app, ["validate", "--input-dir", str(out)])
        assert result.exit_code == 0, result.output
        result = runner.invoke(app, ["validate", "--input-dir", str(out), "--xml"])
        assert result.exit_code == 0, result.output

    def test_empty_directory_fails(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["validate", "--input-dir", str(tmp_path), "--version", "3374"])
        assert result.exit_code == 1
        report = json.loads((tmp_path / "validation_report.json").read_text())
        assert len(report["errors"]) == 2

    def test_malformed_file(self, tmp_path: Path) -> None:
        (tmp_path / "US.txt").write_text("CC,123\n")
        result = runner.invoke(app, ["validate", "--input-dir", str(tmp_path), "--version", "3374"])
        assert result.exit_code == 1


class TestStructure:
    def test_catalog(self) -> None:
        result = runner.invoke(app, ["structure", "--resolution", "2275"])
        assert result.exit_code == 0, result.output
        assert "AFCT" in result.output
        assert "ADCT" in result.output

    def test_file_fields(self) -> None:
        result = runner.invoke(app, ["structure", "--version", "3374", "--file-type", "US"])
        assert result.exit_code == 0, result.output
        assert "numero_documento" in result.output

    def test_unknown_file_type(self) -> None:
        result = runner.invoke(app, ["structure", "--file-type", "XXXX"])
        assert result.exit_code == 1


class TestConvert:
    def test_convert_generated_legacy_files(self, tmp_path: Path, invoices_json: Path) -> None:
        legacy = tmp_path / "legacy"
        runner.invoke(
            app,
            ["generate", "--input", str(invoices_json), "--version", "3374", "--output-dir", str(legacy)],
        )
        out = tmp_path / "converted"
        result = runner.invoke(
            app, ["convert", "--input-dir", str(legacy), "--output-dir", str(out)]
        )
        assert result.exit_code == 0, result.output
        assert (out / "AFCT.txt").exists()
        assert (out / "ATUS.txt").exists()
        assert (out / "rips.xml").exists()
        report = json.loads((out / "validation_report.json").read_text())
        assert any("fecha_nacimiento" in e for e in report["errors"])

    def test_missing_input_dir(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["convert", "--input-dir", str(tmp_path / "nope")])
        assert result.exit_code == 1
