"""Tests for Pydantic config schema validation and the config loader."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from econsim import config as config_module
from econsim.config_schema import AppConfig, load_validated_config, validate_config_dict


class TestValidConfig:
    """Test that valid configs are accepted."""

    def test_empty_config_uses_defaults(self) -> None:
        """Empty config should use all defaults."""
        config = validate_config_dict({})
        assert config.simulation.seed == 0
        assert config.simulation.max_ticks == 100
        assert config.simulation.ticks_per_year == 365
        assert config.simulation.parallel_decisions is True
        assert config.pool.num_workers == 4
        assert config.banking.deposit_rate == 0.0
        assert config.checkpoint.interval_ticks == 0

    def test_partial_config_merges_defaults(self) -> None:
        config = validate_config_dict({"simulation": {"seed": 9}})
        assert config.simulation.seed == 9
        assert config.simulation.max_ticks == 100  # Default

    def test_full_config_loads(self) -> None:
        """The shipped config file should load without errors."""
        config = load_validated_config(config_module.DEFAULT_CONFIG_PATH)
        assert config.simulation.seed == 42
        assert config.banking.deposit_rate == 0.02

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_validated_config(path) == AppConfig()


class TestInvalidConfig:
    """Test that invalid configs are rejected with clear errors."""

    def test_typo_in_key_rejected(self) -> None:
        """Typos in config keys should be rejected (extra='forbid')."""
        with pytest.raises(ValidationError) as exc_info:
            validate_config_dict({"simulaton": {"seed": 1}})
        assert "simulaton" in str(exc_info.value)

    def test_wrong_type_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_config_dict({"simulation": {"max_ticks": "not a number"}})
        assert "max_ticks" in str(exc_info.value)

    @pytest.mark.parametrize(
        "section,key,value",
        [
            ("simulation", "seed", -1),
            ("simulation", "ticks_per_year", 0),
            ("pool", "num_workers", 0),
            ("banking", "deposit_rate", -0.01),
        ],
    )
    def test_out_of_range_rejected(self, section: str, key: str, value: object) -> None:
        with pytest.raises(ValidationError):
            validate_config_dict({section: {key: value}})

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_validated_config(tmp_path / "nope.yaml")


class TestConfigLoader:
    """Tests for the module-level loader and dot-path helpers."""

    def test_get_by_dot_path(self) -> None:
        config_module.load_config()
        assert config_module.get("simulation.seed") == 42
        assert config_module.get("simulation.nope", "fallback") == "fallback"

    def test_set_config_value_revalidates(self) -> None:
        config_module.load_config()
        config_module.set_config_value("simulation.seed", 5)
        assert config_module.get_validated_config().simulation.seed == 5

        with pytest.raises(ValidationError):
            config_module.set_config_value("pool.num_workers", 0)

    def test_reset_forgets_overrides(self) -> None:
        config_module.load_config()
        config_module.set_config_value("simulation.seed", 5)
        config_module.reset_config()
        assert config_module.get_validated_config().simulation.seed == 42
