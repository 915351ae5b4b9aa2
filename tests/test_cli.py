from __future__ import annotations

import json
import logging

import yaml

from main import main


def test_run_writes_json_report(tmp_path, two_month_inputs):
    source = tmp_path / "periods.json"
    source.write_text(json.dumps({"period_type": "QUARTERLY", "periods": two_month_inputs}))
    out = tmp_path / "report.json"

    code = main([str(source), "--quiet", "--output-json", str(out), "--include-results"])

    payload = json.loads(out.read_text())
    summary = payload["report"]["summary"]
    assert payload["report"]["mode"] == "latest"
    assert summary["latest_period"] == 2
    assert [r["days_in_period"] for r in payload["results"]] == [90, 90]
    assert code == (2 if summary["overall_health"] == "CRITICAL" else 0)


def test_invalid_input_exits_with_one(tmp_path, capsys):
    source = tmp_path / "periods.yaml"
    source.write_text(yaml.safe_dump([{"revenue": -5}]))

    assert main([str(source), "--quiet"]) == 1
    assert "Revenue cannot be negative" in capsys.readouterr().err


def test_bad_config_exits_with_one(tmp_path, capsys):
    source = tmp_path / "periods.yaml"
    source.write_text(yaml.safe_dump([{"revenue": 5}]))
    config = tmp_path / "assumptions.yaml"
    config.write_text(yaml.safe_dump({"tax": {"nope": 1}}))

    assert main([str(source), "--config", str(config)]) == 1
    assert "unknown key 'tax.nope'" in capsys.readouterr().err


def test_validate_config(tmp_path, capsys):
    config = tmp_path / "assumptions.yaml"
    config.write_text(yaml.safe_dump({"cash_flow": {"default_capex_rate": 0.03}}))

    assert main(["--validate-config", str(config)]) == 0
    assert "OK: Config is valid" in capsys.readouterr().out


def test_unreadable_input_exits_with_one(tmp_path, capsys):
    assert main([str(tmp_path / "missing.json"), "--quiet"]) == 1
    assert "Cannot read" in capsys.readouterr().err

    csv = tmp_path / "periods.csv"
    csv.write_text("revenue\n1\n")
    assert main([str(csv), "--quiet"]) == 1
    assert "Unsupported file format" in capsys.readouterr().err

    broken = tmp_path / "periods.json"
    broken.write_text("[{\"revenue\": ")
    assert main([str(broken), "--quiet"]) == 1

    bad_yaml = tmp_path / "periods.yaml"
    bad_yaml.write_text("- revenue: [unclosed")
    assert main([str(bad_yaml), "--quiet"]) == 1
    assert "Invalid YAML" in capsys.readouterr().err


def test_logging_is_configured_once_per_process():
    from rich.logging import RichHandler

    from fsmodel.log import configure_logging

    logger = configure_logging(verbose=True)
    assert logger.level == logging.DEBUG
    logger = configure_logging()
    assert logger.level == logging.WARNING
    assert sum(isinstance(h, RichHandler) for h in logger.handlers) == 1
