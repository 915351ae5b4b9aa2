from __future__ import annotations

import json
import logging

import pytest
import yaml

from fsmodel.exceptions import InputValidationError
from fsmodel.field_mapper import FieldMapper, load_mapping_config, normalize, split_override_key
from fsmodel.models import OverrideField, PeriodInput
from fsmodel.parsers import build_period_input, load_periods, parse_number


@pytest.fixture(scope="module")
def mapper():
    return FieldMapper()


def test_normalize():
    assert normalize("grossMarginPercent") == "gross margin percent"
    assert normalize("gross_margin_percent") == "gross margin percent"
    assert normalize("Revenue (R$)") == "revenue"
    assert normalize("  D&A ") == "d&a"


def test_split_override_key():
    assert split_override_key("override_netIncome") == "net income"
    assert split_override_key("overrideCogs") == "cogs"
    assert split_override_key("revenue") is None


def test_resolve_exact_alias_and_filler_words(mapper):
    exact = mapper.resolve_field("Net Sales")
    assert exact.internal_field == "revenue"
    assert exact.match_type == "exact"

    loose = mapper.resolve_field("Total Revenue")
    assert loose.internal_field == "revenue"
    assert loose.match_type == "alias"

    assert mapper.resolve_field("operating income", "override").internal_field == "ebit"


def test_unknown_field_gets_suggestion(mapper):
    result = mapper.resolve_field("revenu")
    assert result.internal_field is None
    assert result.suggestions[0][0] == "revenue"
    assert result.hint == " (did you mean 'revenue'?)"

    assert mapper.resolve_field("zzz").hint == ""


def test_available_fields(mapper):
    assert "closing_cash" in mapper.get_available_fields("override")
    assert "label" in mapper.get_available_fields("period_input")


def test_build_period_input_mixed_keys(mapper):
    period = build_period_input({
        "Period": "Jan",
        "Net Sales": "R$ 1,000",
        "grossMarginPercent": 35,
        "override_netIncome": "(500)",
        "overrides": {"EBITDA": 10, "cogs": ""},
    }, mapper)

    assert period.label == "Jan"
    assert period.revenue == 1_000
    assert period.gross_margin_percent == 35
    assert period.overrides == {OverrideField.NET_INCOME: -500, OverrideField.EBITDA: 10}
    assert period.override_count == 2


def test_from_dict_and_to_dict():
    period = PeriodInput.from_dict({"revenue": 100, "override_capex": 5})
    assert period.override(OverrideField.CAPEX) == 5
    assert period.to_dict()["overrides"] == {"capex": 5}


def test_unknown_override_raises(mapper):
    with pytest.raises(InputValidationError, match="Unknown override field 'revenu'"):
        build_period_input({"override_revenu": 1}, mapper)


def test_unknown_plain_key_warns_by_default(mapper, caplog):
    with caplog.at_level(logging.WARNING, logger="fsmodel.parsers"):
        period = build_period_input({"revenue": 10, "revenu": 1}, mapper)
    assert period.revenue == 10
    assert "did you mean 'revenue'" in caplog.text


def test_unknown_plain_key_policy_error():
    config = load_mapping_config()
    config.settings["unmapped_fields"] = "error"
    with pytest.raises(InputValidationError) as excinfo:
        build_period_input({"revenu": 1}, FieldMapper(config))
    assert excinfo.value.errors == ["Unknown input field 'revenu' (did you mean 'revenue'?)"]


def test_non_mapping_input_is_rejected(mapper):
    with pytest.raises(InputValidationError):
        build_period_input([1, 2, 3], mapper)


def test_alias_collision_keeps_first(tmp_path, caplog):
    path = tmp_path / "fields.yaml"
    path.write_text(yaml.safe_dump({
        "period_input": {
            "revenue": {"aliases": ["sales"]},
            "cogs": {"aliases": ["sales"]},
        },
    }, sort_keys=False))
    with caplog.at_level(logging.WARNING, logger="fsmodel.field_mapper"):
        config = load_mapping_config(str(path))
    assert config.reverse_index["period_input"]["sales"] == "revenue"
    assert "maps to both" in caplog.text


@pytest.mark.parametrize("raw, expected", [
    (1234.5, 1234.5),
    (0, 0.0),
    ("$1,234.56", 1234.56),
    ("R$ 2,000", 2000.0),
    ("(123)", -123.0),
    ("12%", 12.0),
    ("abc", None),
    ("", None),
    ("N/A", None),
    (None, None),
    (True, None),
    (float("nan"), None),
    (float("inf"), None),
])
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


def test_load_periods_yaml_and_json(tmp_path):
    yaml_path = tmp_path / "periods.yaml"
    yaml_path.write_text(yaml.safe_dump({
        "period_type": "QUARTERLY",
        "periods": [{"revenue": 100}, {"revenue": 200}],
    }))
    periods, period_type = load_periods(str(yaml_path))
    assert period_type == "QUARTERLY"
    assert [p["revenue"] for p in periods] == [100, 200]

    json_path = tmp_path / "periods.json"
    json_path.write_text(json.dumps([{"revenue": 1}]))
    assert load_periods(str(json_path)) == ([{"revenue": 1}], None)


def test_load_periods_rejects_unknown_format(tmp_path):
    path = tmp_path / "periods.csv"
    path.write_text("revenue\n1\n")
    with pytest.raises(ValueError, match="Unsupported file format"):
        load_periods(str(path))


def test_load_periods_reports_malformed_yaml(tmp_path):
    path = tmp_path / "periods.yaml"
    path.write_text("- revenue: [unclosed")
    with pytest.raises(ValueError, match="Invalid YAML"):
        load_periods(str(path))


def test_batch_uses_the_mapper_it_is_given():
    from fsmodel.pipeline import process_periods

    config = load_mapping_config()
    config.settings["unmapped_fields"] = "error"
    strict = FieldMapper(config)
    with pytest.raises(InputValidationError) as excinfo:
        process_periods([{"revenue": 1}, {"revenu": 2}], mapper=strict)
    assert excinfo.value.errors == ["Period 2: Unknown input field 'revenu' (did you mean 'revenue'?)"]

    # without a mapper each call starts from the packaged defaults
    [result] = process_periods([{"revenue": 1, "revenu": 2}])
    assert result.income_statement.revenue == 1
