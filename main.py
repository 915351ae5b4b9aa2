#!/usr/bin/env python3
"""
Financial Model Engine - Main Entry Point

Usage:
    # Calculate statements and validate the latest period
    python main.py periods.json

    # Quarterly periods, custom assumptions, full report as JSON
    python main.py periods.yaml --period-type QUARTERLY --config my_assumptions.yaml \\
        --mode all --output-json report.json

    # Validate an assumptions file
    python main.py --validate-config my_assumptions.yaml
"""

import argparse
import json
import logging
import sys

from fsmodel import (
    ConfigError, InputValidationError, load_engine_config, load_periods, run_model,
    validate_engine_config,
)
from fsmodel.log import configure_logging
from fsmodel.runner import RUN_MODES

logger = logging.getLogger("fsmodel.cli")

ICONS = {"critical": "[X]", "warning": "[!]", "info": "[i]", "success": "[+]"}


def print_statements(results):
    """Print the key figures of each period."""
    print(f"\n{'─'*70}")
    print(f"  {'Period':<14}{'Revenue':>14}{'EBITDA':>14}{'Net income':>14}{'Closing cash':>14}")
    print(f"{'─'*70}")
    for r in results:
        print(f"  {r.label:<14}{r.income_statement.revenue:>14,.2f}{r.income_statement.ebitda:>14,.2f}"
              f"{r.income_statement.net_income:>14,.2f}{r.cash_flow.closing_cash:>14,.2f}")


def print_issues(title, issues):
    if not issues:
        return
    print(f"\n  {title} ({len(issues)}):")
    for i in issues:
        where = ", ".join(i.affected_periods) if i.is_consolidated else (i.period_label or "all periods")
        print(f"    {ICONS.get(i.severity.value, '')} [{i.check_id}] {where}: {i.message}")
        if i.suggestion:
            print(f"       → {i.suggestion}")


def print_summary(run):
    """Print a formatted summary to console."""
    report = run.report
    print(f"\n{'='*70}")
    print(f"  FINANCIAL MODEL REPORT ({run.period_type or 'MONTHLY'}, {len(run.results)} periods)")
    print(f"{'='*70}")
    print_statements(run.results)
    print(f"\n  Overall Health: {report.overall_health}")
    if run.mode == 'all':
        print_issues("ERRORS", report.errors)
        print_issues("WARNINGS", report.warnings)
        print_issues("INFO", report.infos)
        print_issues("POSITIVE", report.successes)
    else:
        print(f"  Latest period: {report.latest_label} (#{report.latest_period})")
        print_issues("CRITICAL", report.critical)
        print_issues("WARNINGS", report.warnings)
        print_issues("TRENDS", report.trends)
        print_issues("INFO", report.infos)
        print_issues("POSITIVE", report.successes)
    print(f"\n{'='*70}\n")


def cmd_run(args):
    """Main calculation + validation run."""
    try:
        periods, file_period_type = load_periods(args.input)
    except (OSError, ValueError) as e:
        print(f"Cannot read {args.input}: {e}", file=sys.stderr)
        return 1
    period_type = args.period_type or file_period_type or "MONTHLY"
    config = load_engine_config(args.config)
    logger.info("Loaded %d periods from %s", len(periods), args.input)

    try:
        run = run_model(periods, period_type, config, mode=args.mode)
    except InputValidationError as e:
        print(str(e), file=sys.stderr)
        return 1

    if not args.quiet:
        print_summary(run)

    if args.output_json:
        payload = {"report": run.report.to_dict()}
        if args.include_results:
            payload["results"] = [r.to_dict() for r in run.results]
        with open(args.output_json, 'w') as f:
            json.dump(payload, f, indent=2, default=str)
        print(f"JSON report saved: {args.output_json}")

    return 2 if run.report.overall_health == "CRITICAL" else 0


def cmd_validate_config(args):
    """Validate an assumptions file."""
    print(f"Validating: {args.validate_config}")
    issues = validate_engine_config(args.validate_config)
    for issue in issues:
        print(f"  {issue}")
    return 1 if any(i.startswith("ERROR") for i in issues) else 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Financial statement model and validation engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s periods.json                                   # Monthly, latest-period report
  %(prog)s periods.yaml --period-type YEARLY --mode all   # Yearly, every finding
  %(prog)s periods.json --config assumptions.yaml         # Custom assumptions
  %(prog)s --validate-config assumptions.yaml             # Validate config
        """
    )
    parser.add_argument("input", nargs='?', help="Period inputs (JSON or YAML)")

    model_group = parser.add_argument_group("Model")
    model_group.add_argument(
        "--period-type", choices=["MONTHLY", "QUARTERLY", "YEARLY"], type=str.upper,
        help="Period length (default: from the input file, else MONTHLY)"
    )
    model_group.add_argument("--config", metavar="YAML", help="Custom assumptions YAML")
    model_group.add_argument(
        "--validate-config", metavar="YAML",
        help="Validate an assumptions file and exit"
    )

    output_group = parser.add_argument_group("Output")
    output_group.add_argument(
        "--mode", choices=RUN_MODES, default="latest",
        help="Validation mode: every finding (all) or focused on the latest period (default)"
    )
    output_group.add_argument("--output-json", help="Path for JSON report output")
    output_group.add_argument(
        "--include-results", action="store_true",
        help="Include calculated statements in the JSON output"
    )
    output_group.add_argument("--quiet", action="store_true", help="Suppress console output")
    output_group.add_argument("--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.validate_config:
        return cmd_validate_config(args)

    if not args.input:
        parser.error("Input file is required (unless using --validate-config)")

    try:
        return cmd_run(args)
    except (ConfigError, InputValidationError) as e:
        print(str(e), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
