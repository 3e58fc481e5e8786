"""Tabular reports and the revenue dashboard view built on the aggregator."""
from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence

from hospital_revenue.config import AppSettings, get_settings
from hospital_revenue.finance.aggregation import (
    DoctorMatcher,
    DoctorSummary,
    RevenueSummary,
    SplitTotals,
    UnmatchedDoctorPolicy,
    aggregate_visits,
)
from hospital_revenue.finance.engine import FEE_CATEGORIES, HUNDRED, ZERO
from hospital_revenue.finance.formatting import iso_date_only
from hospital_revenue.models import DataQualityIssue, Doctor, Visit

LOGGER = logging.getLogger(__name__)


@dataclass
class ReportTable:
    title: str
    description: str
    columns: List[str]
    rows: List[Dict[str, Any]] = field(default_factory=list)


def hospital_share(hospital: Decimal, total: Decimal) -> str:
    if not total:
        return "0%"
    return f"{hospital / total * HUNDRED:.1f}%"


def _totals_row(label_column: str, label: str, totals: SplitTotals) -> Dict[str, Any]:
    return {
        label_column: label,
        "Patient Count": totals.visit_count,
        "Total Revenue": totals.fee_total,
        "Hospital Profit": totals.hospital_total,
        "Doctor Profit": totals.doctor_total,
        "Hospital %": hospital_share(totals.hospital_total, totals.fee_total),
    }


def doctor_performance_report(summary: RevenueSummary, visits: Sequence[Visit]) -> ReportTable:
    rows = []
    for row in summary.doctor_rows():
        entry = _totals_row("Doctor Name", row.doctor.name, row)
        entry["Specialization"] = row.doctor.specialization or "N/A"
        rows.append(entry)
    return ReportTable(
        title="Doctor Performance Report",
        description="Patient count, revenue and hospital vs doctor profit per doctor",
        columns=[
            "Doctor Name",
            "Specialization",
            "Patient Count",
            "Total Revenue",
            "Hospital Profit",
            "Doctor Profit",
            "Hospital %",
        ],
        rows=rows,
    )


def revenue_analysis_report(summary: RevenueSummary, visits: Sequence[Visit]) -> ReportTable:
    grand = summary.grand
    counted = _folded_visits(summary, visits)
    rows = []
    for category in FEE_CATEGORIES:
        rows.append(
            {
                "Fee Category": category.value,
                "Total Revenue": grand.fee_by_cat[category],
                "Hospital Profit": grand.hospital_by_cat[category],
                "Doctor Profit": grand.doctor_by_cat[category],
                "Hospital %": hospital_share(
                    grand.hospital_by_cat[category], grand.fee_by_cat[category]
                ),
                "Patient Count": sum(
                    1 for visit in counted if visit.fees.get(category, ZERO) > ZERO
                ),
            }
        )
    return ReportTable(
        title="Revenue Analysis Report",
        description="Revenue by fee category with hospital vs doctor profit splits",
        columns=[
            "Fee Category",
            "Total Revenue",
            "Hospital Profit",
            "Doctor Profit",
            "Hospital %",
            "Patient Count",
        ],
        rows=rows,
    )


def hospital_profit_report(summary: RevenueSummary, visits: Sequence[Visit]) -> ReportTable:
    rows = [_totals_row("Doctor Name", row.doctor.name, row) for row in summary.doctor_rows()]
    if summary.unattributed.visit_count:
        rows.append(_totals_row("Doctor Name", "Unattributed", summary.unattributed))
    rows.append(_totals_row("Doctor Name", "Total", summary.grand))
    return ReportTable(
        title="Hospital Profit Report",
        description="Hospital profit per doctor with unattributed visits and totals",
        columns=[
            "Doctor Name",
            "Patient Count",
            "Total Revenue",
            "Hospital Profit",
            "Doctor Profit",
            "Hospital %",
        ],
        rows=rows,
    )


def _folded_visits(summary: RevenueSummary, visits: Sequence[Visit]) -> List[Visit]:
    if summary.policy is not UnmatchedDoctorPolicy.SKIP:
        return list(visits)
    matcher = DoctorMatcher([row.doctor for row in summary.doctor_rows()])
    return [visit for visit in visits if matcher.match(visit) is not None]


def patient_volume_report(
    visits: Sequence[Visit],
    doctors: Sequence[Doctor],
    settings: AppSettings,
) -> ReportTable:
    by_day: Dict[str, List[Visit]] = OrderedDict()
    for visit in sorted(visits, key=lambda v: (v.occurred_at is None, v.occurred_at or 0)):
        day = iso_date_only(visit.occurred_at, settings.tz) if visit.occurred_at else "undated"
        by_day.setdefault(day, []).append(visit)
    rows = []
    for day, day_visits in by_day.items():
        grand = aggregate_visits(day_visits, doctors, settings.unmatched_doctor_policy).grand
        average = (grand.fee_total / grand.visit_count).quantize(Decimal("0.01")) if grand.visit_count else ZERO
        rows.append(
            {
                "Date": day,
                "Patient Count": grand.visit_count,
                "Total Revenue": grand.fee_total,
                "Hospital Profit": grand.hospital_total,
                "Doctor Profit": grand.doctor_total,
                "Average Revenue per Patient": average,
            }
        )
    return ReportTable(
        title="Patient Volume Report",
        description="Daily patient volume and revenue",
        columns=[
            "Date",
            "Patient Count",
            "Total Revenue",
            "Hospital Profit",
            "Doctor Profit",
            "Average Revenue per Patient",
        ],
        rows=rows,
    )


def payment_status_report(visits: Sequence[Visit], settings: AppSettings) -> ReportTable:
    rows = []
    for visit in visits:
        total = visit.fee_total()
        rows.append(
            {
                "Patient Name": visit.patient_name,
                "Contact": visit.contact or "",
                "Doctor": visit.doctor_name or visit.doctor_id or "",
                "Total Fees": total,
                "Date": iso_date_only(visit.occurred_at, settings.tz) if visit.occurred_at else "",
                "Status": "Pending" if total > ZERO else "No Fees",
            }
        )
    return ReportTable(
        title="Payment Status Report",
        description="Patient fee totals and outstanding status",
        columns=["Patient Name", "Contact", "Doctor", "Total Fees", "Date", "Status"],
        rows=rows,
    )


_SUMMARY_REPORTS: Dict[str, Callable[[RevenueSummary, Sequence[Visit]], ReportTable]] = {
    "doctor-performance": doctor_performance_report,
    "revenue-analysis": revenue_analysis_report,
    "hospital-profit": hospital_profit_report,
}

REPORT_TYPES = tuple(_SUMMARY_REPORTS) + ("patient-volume", "payment-status")


def generate_report(
    report_type: str,
    visits: Sequence[Visit],
    doctors: Sequence[Doctor],
    settings: Optional[AppSettings] = None,
    issues: Optional[Sequence[DataQualityIssue]] = None,
) -> ReportTable:
    """Build ``report_type`` over ``visits`` using one doctor snapshot."""

    settings = settings or get_settings()
    if report_type == "patient-volume":
        return patient_volume_report(visits, doctors, settings)
    if report_type == "payment-status":
        return payment_status_report(visits, settings)
    try:
        builder = _SUMMARY_REPORTS[report_type]
    except KeyError as exc:
        raise ValueError(
            f"Unknown report type '{report_type}'; expected one of {', '.join(REPORT_TYPES)}"
        ) from exc
    summary = aggregate_visits(visits, doctors, settings.unmatched_doctor_policy, issues)
    LOGGER.info("Generated %s report over %s visits", report_type, len(visits))
    return builder(summary, visits)


SORT_FIELDS: Dict[str, Callable[[DoctorSummary], Any]] = {
    "name": lambda row: row.doctor.name.lower(),
    "visits": lambda row: row.visit_count,
    "totalRevenue": lambda row: row.fee_total,
    "hospitalRevenue": lambda row: row.hospital_total,
    "doctorRevenue": lambda row: row.doctor_total,
    "profitMargin": lambda row: row.profit_margin,
}


def revenue_dashboard(
    summary: RevenueSummary,
    doctor_id: Optional[str] = None,
    search: Optional[str] = None,
    sort_field: str = "totalRevenue",
    direction: str = "desc",
) -> List[DoctorSummary]:
    """Filter and sort the per-doctor rows of ``summary``."""

    if sort_field not in SORT_FIELDS:
        raise ValueError(f"Unknown sort field '{sort_field}'")
    if direction not in {"asc", "desc"}:
        raise ValueError("Sort direction must be 'asc' or 'desc'")
    rows = summary.doctor_rows()
    if doctor_id:
        if doctor_id not in summary.doctors:
            raise KeyError(f"Unknown doctor '{doctor_id}'")
        rows = [summary.doctors[doctor_id]]
    if search:
        needle = search.lower()
        rows = [row for row in rows if needle in row.doctor.name.lower()]
    return sorted(rows, key=SORT_FIELDS[sort_field], reverse=direction == "desc")


__all__ = [
    "REPORT_TYPES",
    "ReportTable",
    "SORT_FIELDS",
    "generate_report",
    "hospital_share",
    "revenue_dashboard",
]
