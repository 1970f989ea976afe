"""Tests for config module."""

from datetime import date

import pytest

from rips_engine.config import (
    DeduplicationPolicy,
    FormatVersion,
    MalformedFieldPolicy,
    NumericOverflowPolicy,
    RipsConfig,
    SyntheticDataConfig,
)


class TestRipsConfig:
    def test_defaults(self) -> None:
        config = RipsConfig()
        assert config.provider_code == "123456789012"
        assert config.dedup_policy is DeduplicationPolicy.FIRST_WINS
        assert config.malformed_policy is MalformedFieldPolicy.DEGRADE_TO_EMPTY
        assert config.numeric_policy is NumericOverflowPolicy.TRUNCATE
        assert config.generated_at.microsecond == 0

    def test_provider_code_padded_per_version(self) -> None:
        config = RipsConfig(provider_code="123456789012")
        assert config.provider_code_for(12) == "123456789012"
        assert config.provider_code_for(16) == "1234567890120000"

    def test_short_provider_code_padded(self) -> None:
        assert RipsConfig(provider_code="987").provider_code_for(6) == "987000"

    def test_json_round_trip(self) -> None:
        config = RipsConfig(
            provider_code="111",
            remission_date=date(2024, 5, 2),
            dedup_policy="strict",
        )
        restored = RipsConfig.model_validate_json(config.model_dump_json())
        assert restored.provider_code == "111"
        assert restored.remission_date == date(2024, 5, 2)
        assert restored.dedup_policy is DeduplicationPolicy.STRICT


class TestFormatVersion:
    def test_values_are_resolution_numbers(self) -> None:
        assert FormatVersion("3374") is FormatVersion.LEGACY
        assert FormatVersion("2275") is FormatVersion.CURRENT


class TestSyntheticDataConfig:
    def test_defaults(self) -> None:
        config = SyntheticDataConfig()
        assert config.seed == 42
        assert config.num_invoices == 20
        assert config.period_start < config.period_end
        assert sum(config.service_type_weights.values()) == pytest.approx(1.0)
