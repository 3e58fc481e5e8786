"""HTML rendering for daily summaries and printable reports."""
from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from hospital_revenue.config import AppSettings, get_settings
from hospital_revenue.finance.aggregation import RevenueSummary
from hospital_revenue.finance.engine import FEE_CATEGORIES
from hospital_revenue.finance.formatting import format_money
from hospital_revenue.reports import ReportTable
from hospital_revenue.windows import ReportingWindow


def _build_environment(settings: AppSettings) -> Environment:
    loader = FileSystemLoader(str(settings.template_dir))
    env = Environment(loader=loader, autoescape=select_autoescape(["html", "xml", "j2"]))

    def money(value: Any) -> str:
        return format_money(value, settings.currency, settings.money_places)

    def cell(value: Any) -> str:
        return money(value) if isinstance(value, Decimal) else str(value)

    env.filters["money"] = money
    env.filters["cell"] = cell
    return env


def render_daily_summary(
    summary: RevenueSummary,
    window: ReportingWindow,
    settings: AppSettings | None = None,
) -> str:
    settings = settings or get_settings()
    template = _build_environment(settings).get_template("daily_summary.html.j2")
    return template.render(
        summary=summary,
        window=window,
        categories=FEE_CATEGORIES,
        settings=settings,
    )


def render_report(
    table: ReportTable,
    window: ReportingWindow,
    settings: AppSettings | None = None,
) -> str:
    settings = settings or get_settings()
    template = _build_environment(settings).get_template("report.html.j2")
    return template.render(table=table, window=window, settings=settings)


def write_html(content: str, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(content, encoding="utf-8")
    return output_path


__all__ = ["render_daily_summary", "render_report", "write_html"]
