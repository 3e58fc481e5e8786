"""Revenue-split domain logic shared by summaries, reports and dashboards."""

from .engine import FEE_CATEGORIES, FeeCategory, VisitSplit, compute_visit_split, split_fees
from .formatting import format_money, iso_date_only
from .aggregation import (
    DoctorMatcher,
    DoctorSummary,
    RevenueSummary,
    SplitTotals,
    UnmatchedDoctorPolicy,
    aggregate_visits,
)

__all__ = [
    "FEE_CATEGORIES",
    "FeeCategory",
    "VisitSplit",
    "compute_visit_split",
    "split_fees",
    "format_money",
    "iso_date_only",
    "DoctorMatcher",
    "DoctorSummary",
    "RevenueSummary",
    "SplitTotals",
    "UnmatchedDoctorPolicy",
    "aggregate_visits",
]
