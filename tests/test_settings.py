from __future__ import annotations

from dataclasses import asdict

import pytest
import yaml

from fsmodel.exceptions import ConfigError
from fsmodel.settings import (
    DEFAULT_ASSUMPTIONS_PATH, EngineConfig, config_from_dict, load_engine_config, validate_engine_config,
)


def write_yaml(tmp_path, data, name="assumptions.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data))
    return str(path)


def test_packaged_defaults_match_built_in_defaults():
    assert load_engine_config() == EngineConfig()


def test_packaged_defaults_spell_out_every_assumption():
    with open(DEFAULT_ASSUMPTIONS_PATH) as f:
        raw = yaml.safe_load(f)
    built_in = asdict(EngineConfig())
    assert set(raw) == set(built_in)
    for section, values in built_in.items():
        assert set(raw[section]) == set(values), section
        for key, value in values.items():
            assert raw[section][key] == pytest.approx(value), f"{section}.{key}"


def test_overlay_only_replaces_given_keys(tmp_path):
    path = write_yaml(tmp_path, {"tax": {"csll_rate": 0.1}, "validation": {"max_overrides": 3}})
    config = load_engine_config(path)

    assert config.tax.csll_rate == 0.1
    assert config.tax.irpj_rate == 0.15
    assert config.validation.max_overrides == 3
    assert isinstance(config.validation.max_overrides, int)
    assert config.balance_sheet == EngineConfig().balance_sheet


def test_unknown_key_raises(tmp_path):
    path = write_yaml(tmp_path, {"tax": {"csl_rate": 0.1}})
    with pytest.raises(ConfigError, match="unknown key 'tax.csl_rate'"):
        load_engine_config(path)


def test_unknown_section_and_bad_values_raise():
    with pytest.raises(ConfigError, match="unknown section 'taxes'"):
        config_from_dict({"taxes": {}})
    with pytest.raises(ConfigError, match="must be numeric"):
        config_from_dict({"tax": {"csll_rate": "high"}})
    with pytest.raises(ConfigError, match="between 0 and 1"):
        config_from_dict({"balance_sheet": {"current_asset_share": 1.5}})


def test_unreadable_file_raises_config_error(tmp_path):
    with pytest.raises(ConfigError):
        load_engine_config(str(tmp_path / "missing.yaml"))

    path = tmp_path / "broken.yaml"
    path.write_text("tax: [unclosed")
    with pytest.raises(ConfigError):
        load_engine_config(str(path))


def test_config_is_immutable():
    config = EngineConfig()
    with pytest.raises(AttributeError):
        config.tax.csll_rate = 0.5


def test_validate_config_ok(tmp_path):
    path = write_yaml(tmp_path, {"working_capital": {"default_payable_days": 45}})
    assert validate_engine_config(path) == ["OK: Config is valid"]


def test_validate_config_reports_problems(tmp_path):
    path = write_yaml(tmp_path, {"balance_sheet": {"current_asset_share": 0.7}})
    [warning] = validate_engine_config(path)
    assert warning.startswith("WARNING: balance_sheet asset shares sum to 1.10")

    path = write_yaml(tmp_path, {"cash_flow": {"default_capex_rate": -1}}, "bad.yaml")
    assert validate_engine_config(path) == [
        "ERROR: 'cash_flow.default_capex_rate' must not be negative (got -1)"
    ]

    assert validate_engine_config(str(tmp_path / "missing.yaml"))[0].startswith("ERROR:")
