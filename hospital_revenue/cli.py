"""Command line interface for revenue splits, summaries and reports."""
from __future__ import annotations

import argparse
import json
import logging
from datetime import date
from pathlib import Path
from typing import Dict, List

from hospital_revenue.config import get_settings
from hospital_revenue.finance.aggregation import aggregate_visits
from hospital_revenue.finance.engine import FEE_CATEGORIES, split_fees
from hospital_revenue.finance.formatting import format_money
from hospital_revenue.records import clamp_fees, clamp_percentages
from hospital_revenue.rendering.report import render_daily_summary, render_report, write_html
from hospital_revenue.reports import REPORT_TYPES, generate_report
from hospital_revenue.store import RecordStore
from hospital_revenue.windows import PERIODS, ReportingWindow, day_window, period_window, today_in

LOGGER = logging.getLogger(__name__)


def _pairs(values: List[str]) -> Dict[str, str]:
    parsed: Dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep:
            raise argparse.ArgumentTypeError(f"Expected CATEGORY=AMOUNT, got '{item}'")
        parsed[key.strip().upper()] = value.strip()
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Doctor/hospital revenue split tools")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    split = sub.add_parser("split", help="Preview the split of a single visit")
    split.add_argument("--fee", nargs="*", default=[], metavar="CAT=AMOUNT")
    split.add_argument("--percent", nargs="*", default=[], metavar="CAT=PCT")

    summary = sub.add_parser("summary", help="Per-doctor summary for one day")
    summary.add_argument("data", type=Path, help="JSON export with doctors and patients")
    summary.add_argument("--date", type=date.fromisoformat, help="Day (YYYY-MM-DD), default today")
    summary.add_argument("--html", type=Path, help="Also write an HTML summary here")

    report = sub.add_parser("report", help="Generate a tabular report")
    report.add_argument("data", type=Path, help="JSON export with doctors and patients")
    report.add_argument("--type", dest="report_type", choices=REPORT_TYPES, required=True)
    report.add_argument("--period", choices=PERIODS, default="monthly")
    report.add_argument("--start", type=date.fromisoformat)
    report.add_argument("--end", type=date.fromisoformat)
    report.add_argument("--html", type=Path, help="Also write an HTML report here")
    return parser


def _print_split(args: argparse.Namespace) -> None:
    settings = get_settings()
    fees, fee_issues = clamp_fees(_pairs(args.fee), "split")
    percentages, pct_issues = clamp_percentages(_pairs(args.percent), "split")
    result = split_fees(fees, percentages)
    for category in FEE_CATEGORIES:
        print(
            f"{category.value:<11} fee {format_money(result.fee_by_cat[category], settings.currency, settings.money_places)}"
            f"  doctor {format_money(result.doctor_by_cat[category], settings.currency, settings.money_places)}"
            f"  hospital {format_money(result.hospital_by_cat[category], settings.currency, settings.money_places)}"
        )
    print(f"Total fees      {format_money(result.fee_total, settings.currency, settings.money_places)}")
    print(f"Doctor earns    {format_money(result.doctor_total, settings.currency, settings.money_places)}")
    print(f"Hospital profit {format_money(result.hospital_total, settings.currency, settings.money_places)}")
    for issue in fee_issues + pct_issues:
        print(f"Adjusted {issue.field}: {issue.message} (got {issue.raw_value}, used {issue.applied_value})")


def _print_summary(args: argparse.Namespace) -> None:
    settings = get_settings()
    store = RecordStore.from_json(args.data, settings=settings)
    window = day_window(args.date or today_in(settings.tz), settings.tz)
    snapshot = store.snapshot()
    selection = store.visits_in(window)
    summary = aggregate_visits(
        selection.visits,
        snapshot.doctors,
        settings.unmatched_doctor_policy,
        snapshot.issues + selection.issues,
        undated_visits=selection.undated,
    )
    payload = {
        "date": window.start.isoformat(),
        "doctors": [
            {
                "doctor": row.doctor.name,
                "fees": str(row.fee_total),
                "doctor_total": str(row.doctor_total),
                "hospital_total": str(row.hospital_total),
                "visits": row.visit_count,
            }
            for row in summary.doctor_rows()
        ],
        "unattributed_fees": str(summary.unattributed.fee_total),
        "grand": {
            "fees": str(summary.grand.fee_total),
            "doctor_total": str(summary.grand.doctor_total),
            "hospital_total": str(summary.grand.hospital_total),
        },
        "skipped_visits": summary.skipped_visits,
        "undated_visits": summary.undated_visits,
        "issues": len(summary.issues),
    }
    print(json.dumps(payload, indent=2))
    if args.html:
        write_html(render_daily_summary(summary, window, settings=settings), args.html)
        LOGGER.info("Summary written to %s", args.html)


def _print_report(args: argparse.Namespace) -> None:
    settings = get_settings()
    store = RecordStore.from_json(args.data, settings=settings)
    if args.start or args.end:
        window = ReportingWindow(start=args.start or args.end, end=args.end or args.start, tz=settings.tz)
    else:
        window = period_window(args.period, today_in(settings.tz), settings.tz)
    snapshot = store.snapshot()
    selection = store.visits_in(window)
    table = generate_report(
        args.report_type, selection.visits, snapshot.doctors, settings, snapshot.issues + selection.issues
    )
    payload = {
        "title": table.title,
        "columns": table.columns,
        "rows": table.rows,
        "undated_visits": selection.undated,
    }
    print(json.dumps(payload, indent=2, default=str))
    if args.html:
        write_html(render_report(table, window, settings=settings), args.html)
        LOGGER.info("Report written to %s", args.html)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)
    commands = {"split": _print_split, "summary": _print_summary, "report": _print_report}
    try:
        commands[args.command](args)
    except (ValueError, OSError, argparse.ArgumentTypeError) as exc:
        LOGGER.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
