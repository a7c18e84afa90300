from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from analytics.evaluate_scenario import VALIDATION_MODES, evaluate_scenario, result_as_dict
from analytics.export_helpers import ExcelExporter, export_csv_bundle
from analytics.scenario_loader import ScenarioConfigError
from analytics.schema_guard import ConfigValidationError

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="solarprop",
        description="Solar proposal evaluator (rateio, cash flow, payback/IRR/NPV).",
    )
    p.add_argument(
        "config",
        type=str,
        help="Path to scenario config (YAML or JSON).",
    )
    p.add_argument(
        "--format",
        dest="format",
        choices=["text", "json"],
        default="text",
        help="Summary output format (default: text).",
    )
    p.add_argument(
        "--outdir",
        type=str,
        default=None,
        help="If set, write CSV tables (summary, cash flow, rateio, payment options) here.",
    )
    p.add_argument(
        "--excel",
        action="store_true",
        help="Also write an .xlsx workbook to --outdir (default: outputs).",
    )
    p.add_argument(
        "--validation-mode",
        choices=list(VALIDATION_MODES),
        default="strict",
        help="Config validation mode (default: strict).",
    )
    p.add_argument(
        "--log-level",
        choices=list(LOG_LEVELS),
        default="WARNING",
        help="Logging level (default: WARNING).",
    )
    return p


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    return _build_parser().parse_args(argv)


def _format_text(summary: dict) -> str:
    lines = [
        f"Scenario: {summary['scenario_name']}",
        f"  Investment: {summary['investment_price']:.2f}",
        f"  Upfront payment: {summary['upfront_payment']:.2f}",
    ]
    if summary["num_installments"] > 0:
        lines.append(
            f"  Installments: {summary['num_installments']} x {summary['installment_amount']:.2f}"
        )
    lines += [
        f"  Year-1 generation: {summary['base_generation_kwh']:.0f} kWh",
        f"  Payback: {summary['payback_years']} years {summary['payback_months']} months "
        f"({summary['payback_total_months']} months)",
        f"  IRR: {summary['irr_percent']:.2f}%",
        f"  NPV @ {summary['discount_rate_percent']:.2f}%: {summary['npv']:.2f}",
        f"  ROI: {summary['roi_percent']:.2f}%",
        f"  Net savings (25y): {summary['total_net_savings']:.2f}",
    ]

    options = summary.get("payment_options") or []
    if options:
        lines.append("  Payment options:")
        for opt in options:
            label = opt["name"] or opt["kind"]
            marker = " *" if opt["primary"] else ""
            if opt["num_installments"] > 0:
                terms = (
                    f"{opt['upfront_payment']:.2f} + {opt['num_installments']} x "
                    f"{opt['installment_amount']:.2f}"
                )
            else:
                terms = f"{opt['upfront_payment']:.2f} upfront"
            lines.append(f"    {label} ({opt['kind']}){marker}: {terms}, total {opt['total_paid']:.2f}")

    alloc = summary.get("credit_allocation")
    if alloc:
        lines.append(
            f"  Rateio ({alloc['mode']}, {alloc['generation_kwh_month']:.2f} kWh/month):"
        )
        for unit in alloc["units"]:
            lines.append(
                f"    {unit['name']}: {unit['allocated_kwh']:.2f} kWh ({unit['effective_percent']}%)"
            )
        lines.append(f"    unallocated: {alloc['unallocated_kwh']:.2f} kWh")

    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        result = evaluate_scenario(args.config, validation_mode=args.validation_mode)
    except (FileNotFoundError, ScenarioConfigError, ConfigValidationError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    summary = result_as_dict(result)

    if args.outdir or args.excel:
        outdir = Path(args.outdir or "outputs")
        if args.outdir:
            export_csv_bundle(result, outdir)
        if args.excel:
            ExcelExporter(outdir / f"{result.scenario_name}.xlsx").export_proposal(result)

    if args.format == "json":
        print(json.dumps(summary, indent=2))
    else:
        print(_format_text(summary))

    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
