"""Tests for cross-file validation."""

import copy

import pytest

from rips_engine.assemble import RipsDataset, build_dataset, serialize_dataset
from rips_engine.config import RipsConfig
from rips_engine.io import parse_rips_text
from rips_engine.schema import InvoiceBatch
from rips_engine.validate import is_iso_date, validate_dataset


@pytest.fixture
def current_dataset(batch: InvoiceBatch, rips_config: RipsConfig) -> RipsDataset:
    return build_dataset(batch.entity, batch.invoices, rips_config, "2275")


@pytest.fixture
def legacy_dataset(batch: InvoiceBatch, rips_config: RipsConfig) -> RipsDataset:
    return build_dataset(batch.entity, batch.invoices, rips_config, "3374")


class TestValidData:
    def test_current_scenario_valid(self, current_dataset: RipsDataset) -> None:
        result = validate_dataset(current_dataset, "2275")
        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []

    def test_legacy_scenario_valid(self, legacy_dataset: RipsDataset) -> None:
        assert validate_dataset(legacy_dataset, "3374").is_valid

    def test_text_read_back_valid(
        self, current_dataset: RipsDataset, rips_config: RipsConfig
    ) -> None:
        """Values read back from files are strings; validation is unchanged."""
        files = serialize_dataset(current_dataset, "2275", rips_config)
        dataset = {code: parse_rips_text(code, text, "2275") for code, text in files.items()}
        result = validate_dataset(dataset, "2275")
        assert result.is_valid
        assert result.warnings == []

    def test_dataset_not_modified(self, current_dataset: RipsDataset) -> None:
        before = copy.deepcopy(current_dataset)
        validate_dataset(current_dataset, "2275")
        assert current_dataset == before


class TestErrors:
    def test_missing_mandatory_files(self) -> None:
        result = validate_dataset({}, "2275")
        assert not result.is_valid
        assert len(result.errors) == 2
        assert result.errors[0].startswith("AFCT")
        assert "is mandatory and has no records" in result.errors[1]

    def test_unknown_user_reference(self, current_dataset: RipsDataset) -> None:
        current_dataset["ACCT"].append({**current_dataset["ACCT"][0], "numero_documento": "999"})
        result = validate_dataset(current_dataset, "2275")
        assert not result.is_valid
        assert result.errors == ["ACCT[1]: user CC|999 is not present in ATUS"]

    def test_invalid_document_type(self, current_dataset: RipsDataset) -> None:
        current_dataset["ATUS"][0]["tipo_documento"] = "XX"
        result = validate_dataset(current_dataset, "2275")
        assert "ATUS[0]: field tipo_documento value XX is not valid" in result.errors

    def test_provider_code_length(self, current_dataset: RipsDataset) -> None:
        for record in current_dataset["AFCT"]:
            record["codigo_prestador"] = "123"
        result = validate_dataset(current_dataset, "2275")
        assert len(result.errors) == 3
        assert all("codigo_prestador must have 16 characters" in e for e in result.errors)

    def test_habilitation_code_required_in_current_only(
        self, current_dataset: RipsDataset, legacy_dataset: RipsDataset
    ) -> None:
        current_dataset["AFCT"][0]["codigo_habilitacion"] = ""
        assert validate_dataset(current_dataset, "2275").errors == [
            "AFCT[0]: field codigo_habilitacion is required"
        ]
        assert "codigo_habilitacion" not in legacy_dataset["AF"][0]
        assert validate_dataset(legacy_dataset, "3374").is_valid

    def test_remission_date_format(self, legacy_dataset: RipsDataset) -> None:
        legacy_dataset["AF"][0]["fecha_remision"] = "2024-13-01"
        result = validate_dataset(legacy_dataset, "3374")
        assert result.errors == [
            "AF[0]: field fecha_remision has an invalid format, expected YYYY-MM-DD"
        ]

    def test_birth_date_required_in_current(self, current_dataset: RipsDataset) -> None:
        current_dataset["ATUS"][0]["fecha_nacimiento"] = ""
        result = validate_dataset(current_dataset, "2275")
        assert result.errors == ["ATUS[0]: field fecha_nacimiento is required"]


class TestWarnings:
    def test_negative_net_value(self, current_dataset: RipsDataset) -> None:
        current_dataset["ACCT"][0]["valor_neto"] = -1500
        result = validate_dataset(current_dataset, "2275")
        assert result.is_valid
        assert result.warnings == ["ACCT[0]: field valor_neto is negative"]

    def test_summary_count_mismatch(self, legacy_dataset: RipsDataset) -> None:
        legacy_dataset["AF"][2]["total_registros"] = "5"
        result = validate_dataset(legacy_dataset, "3374")
        assert result.is_valid
        assert result.warnings == [
            "AF[2]: field total_registros declares 5 records for AC, found 1"
        ]

    @pytest.mark.parametrize("count", ["nan", "inf", "1e999"])
    def test_unreadable_summary_count(self, current_dataset: RipsDataset, count: str) -> None:
        current_dataset["AFCT"][1]["total_registros"] = count
        result = validate_dataset(current_dataset, "2275")
        assert result.is_valid
        assert result.warnings == [
            f"AFCT[1]: field total_registros for ATUS is unreadable: {count}"
        ]

    def test_records_without_field_table(self, legacy_dataset: RipsDataset) -> None:
        legacy_dataset["AD"] = [{"codigo": "1"}]
        result = validate_dataset(legacy_dataset, "3374")
        assert result.is_valid
        assert result.warnings == ["AD: 1 records but no field table is defined"]


class TestIsoDate:
    def test_values(self) -> None:
        assert is_iso_date("2024-02-29")
        assert not is_iso_date("2023-02-29")
        assert not is_iso_date("2024-3-1")
        assert not is_iso_date(None)
