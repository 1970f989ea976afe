"""Tests for reporting module."""

from pathlib import Path

from rips_engine.assemble import build_dataset, generate_rips
from rips_engine.config import RipsConfig
from rips_engine.reporting import SUMMARY_FILENAME, generate_summary, summarize_dataset
from rips_engine.schema import InvoiceBatch


class TestSummarizeDataset:
    def test_one_row_per_catalog_type(self, batch: InvoiceBatch, rips_config: RipsConfig) -> None:
        dataset = build_dataset(batch.entity, batch.invoices, rips_config, "3374")
        summary = summarize_dataset(dataset, "3374")
        assert summary.height == 10
        assert summary["record_type"].to_list()[:3] == ["AF", "US", "AC"]

    def test_counts_and_totals(self, batch: InvoiceBatch, rips_config: RipsConfig) -> None:
        dataset = build_dataset(batch.entity, batch.invoices, rips_config, "2275")
        rows = {r["record_type"]: r for r in summarize_dataset(dataset, "2275").iter_rows(named=True)}
        assert rows["AFCT"]["records"] == 3
        assert rows["AFCT"]["required"] is True
        assert rows["ACCT"]["records"] == 1
        assert rows["ACCT"]["total_value"] == 45000.0
        assert rows["APCT"]["records"] == 0


class TestGenerateSummary:
    def test_summary_written(
        self, tmp_path: Path, batch: InvoiceBatch, rips_config: RipsConfig
    ) -> None:
        result = generate_rips(batch, rips_config, "2275")
        path = generate_summary(result, rips_config, tmp_path)
        assert path == tmp_path / SUMMARY_FILENAME
        content = path.read_text()
        assert content.startswith("# RIPS 2275 de 2023")
        assert "**Generated:** 2024-03-15 10:30:00" in content
        assert "**Provider:** 1234567890120000" in content
        assert "| Invoices | 1 |" in content
        assert "| Users | 1 |" in content
        assert "| Total Records | 5 |" in content
        assert "| Files Written | 4 |" in content
        assert "| ACCT.txt | Archivo de consultas (nuevo formato) | 1 | $45,000.00 |" in content
        assert "rips.xml" in content
        assert "- **Errors:** 0" in content

    def test_invalid_run_lists_errors(
        self, tmp_path: Path, batch: InvoiceBatch, rips_config: RipsConfig
    ) -> None:
        config = rips_config.model_copy(update={"habilitation_code": ""})
        result = generate_rips(batch, config, "2275")
        content = generate_summary(result, config, tmp_path).read_text()
        assert "| Valid | no |" in content
        assert "### Errors" in content
        assert "codigo_habilitacion is required" in content

    def test_empty_run(self, tmp_path: Path, batch: InvoiceBatch, rips_config: RipsConfig) -> None:
        empty = batch.model_copy(update={"invoices": []})
        result = generate_rips(empty, rips_config, "3374")
        content = generate_summary(result, rips_config, tmp_path).read_text()
        assert "No records generated." in content
        assert "| Valid | no |" in content
