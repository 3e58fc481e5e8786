"""Convert database rows into models, normalising bad values at the boundary."""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from hospital_revenue.config import AppSettings, get_settings
from hospital_revenue.finance.engine import FEE_CATEGORIES, HUNDRED, ZERO, FeeCategory
from hospital_revenue.finance.formatting import parse_timestamp
from hospital_revenue.models import DataQualityIssue, Doctor, Visit

LOGGER = logging.getLogger(__name__)

Row = Mapping[str, Any]

_TRUE_TEXT = {"true", "t", "yes", "y", "1"}
_FALSE_TEXT = {"false", "f", "no", "n", "0"}


def _parse_number(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
    return amount if amount.is_finite() else None


def _issue(
    issues: List[DataQualityIssue],
    record_id: str,
    field: str,
    raw_value: Any,
    applied_value: Any,
    message: str,
) -> None:
    LOGGER.warning("%s %s: %s (raw=%r, using %s)", record_id, field, message, raw_value, applied_value)
    issues.append(
        DataQualityIssue(
            record_id=record_id,
            field=field,
            raw_value=raw_value,
            applied_value=applied_value,
            message=message,
        )
    )


def _category_value(row: Row, nested_key: str, category: FeeCategory, column: str) -> Any:
    nested = row.get(nested_key)
    if isinstance(nested, Mapping):
        return nested.get(category.value, nested.get(category.value.lower()))
    return row.get(column)


def _parse_flag(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_TEXT:
        return True
    if text in _FALSE_TEXT:
        return False
    return None


def clamp_fees(
    raw_fees: Mapping[Any, Any], record: str
) -> Tuple[Dict[FeeCategory, Decimal], List[DataQualityIssue]]:
    """Normalise fee amounts keyed by category; absent fees are 0.

    Negative and unparseable amounts become 0 and are reported.
    """

    issues: List[DataQualityIssue] = []
    fees: Dict[FeeCategory, Decimal] = {}
    for category in FEE_CATEGORIES:
        field = category.fee_column
        raw = raw_fees.get(category.value)
        if raw is None or raw == "":
            fees[category] = ZERO
            continue
        parsed = _parse_number(raw)
        if parsed is None:
            fees[category] = ZERO
            _issue(issues, record, field, raw, ZERO, "unparseable fee")
        elif parsed < ZERO:
            fees[category] = ZERO
            _issue(issues, record, field, raw, ZERO, "negative fee clamped")
        else:
            fees[category] = parsed
    return fees, issues


def clamp_percentages(
    raw_percentages: Mapping[Any, Any],
    record: str,
    default: Optional[Decimal] = None,
) -> Tuple[Dict[FeeCategory, Decimal], List[DataQualityIssue]]:
    """Normalise split percentages keyed by category into ``[0, 100]``.

    A missing percentage is 0, or ``default`` when one is given; using the
    default is reported like any other adjustment.
    """

    issues: List[DataQualityIssue] = []
    percentages: Dict[FeeCategory, Decimal] = {}
    for category in FEE_CATEGORIES:
        field = category.percentage_column
        raw = raw_percentages.get(category.value)
        if raw is None or raw == "":
            if default is None:
                value = ZERO
            else:
                value = default
                _issue(issues, record, field, raw, value, "missing percentage")
        else:
            parsed = _parse_number(raw)
            if parsed is None:
                value = ZERO
                _issue(issues, record, field, raw, value, "unparseable percentage")
            elif parsed < ZERO:
                value = ZERO
                _issue(issues, record, field, raw, value, "percentage below 0 clamped")
            elif parsed > HUNDRED:
                value = HUNDRED
                _issue(issues, record, field, raw, value, "percentage above 100 clamped")
            else:
                value = parsed
        percentages[category] = value
    return percentages, issues


def doctor_from_row(
    row: Row, settings: Optional[AppSettings] = None
) -> Tuple[Doctor, List[DataQualityIssue]]:
    """Build a :class:`Doctor` from a ``doctors`` table row.

    Percentages outside ``[0, 100]`` are clamped, unparseable values become 0
    and missing ones take the configured default. Each adjustment is reported.
    """

    settings = settings or get_settings()
    doctor_id = str(row.get("id") or "")
    record = f"doctor {doctor_id or '?'}"
    raw_percentages = {
        category.value: _category_value(row, "percentages", category, category.percentage_column)
        for category in FEE_CATEGORIES
    }
    percentages, issues = clamp_percentages(
        raw_percentages, record, default=settings.default_doctor_percentage
    )
    raw_active = row.get("is_active")
    is_active = True if raw_active is None or raw_active == "" else _parse_flag(raw_active)
    if is_active is None:
        is_active = True
        _issue(issues, record, "is_active", raw_active, True, "unparseable flag")
    doctor = Doctor(
        id=doctor_id,
        name=str(row.get("name") or "").strip(),
        percentages=percentages,
        is_active=is_active,
        specialization=row.get("specialization"),
        department=row.get("department"),
    )
    return doctor, issues


def visit_from_row(
    row: Row, settings: Optional[AppSettings] = None
) -> Tuple[Visit, List[DataQualityIssue]]:
    """Build a :class:`Visit` from a ``patients`` or ``visits`` table row."""

    visit_id = str(row.get("id") or "")
    record = f"visit {visit_id or '?'}"
    raw_fees = {
        category.value: _category_value(row, "fees", category, category.fee_column)
        for category in FEE_CATEGORIES
    }
    fees, issues = clamp_fees(raw_fees, record)

    occurred_at = None
    raw_when = row.get("visit_date") or row.get("created_at") or row.get("date")
    if not raw_when:
        _issue(issues, record, "created_at", raw_when, None, "missing timestamp")
    else:
        try:
            occurred_at = parse_timestamp(raw_when)
        except ValueError:
            _issue(issues, record, "created_at", raw_when, None, "unparseable timestamp")

    doctor_id = row.get("doctor_id") or row.get("doctorId")
    visit = Visit(
        id=visit_id,
        patient_name=str(row.get("patient_name") or row.get("patientName") or "").strip(),
        fees=fees,
        doctor_id=str(doctor_id) if doctor_id else None,
        doctor_name=row.get("doctor_name"),
        occurred_at=occurred_at,
        contact=row.get("contact_number") or row.get("contact"),
    )
    return visit, issues


def load_doctors(
    rows: Iterable[Row], settings: Optional[AppSettings] = None
) -> Tuple[List[Doctor], List[DataQualityIssue]]:
    """Convert doctor rows, skipping rows without an id or with a repeated id."""

    doctors: List[Doctor] = []
    issues: List[DataQualityIssue] = []
    seen = set()
    for position, row in enumerate(rows):
        doctor, row_issues = doctor_from_row(row, settings)
        issues.extend(row_issues)
        if not doctor.id:
            _issue(issues, f"doctor row {position}", "id", row.get("id"), None, "missing id; row skipped")
            continue
        if doctor.id in seen:
            _issue(issues, f"doctor {doctor.id}", "id", doctor.id, None, "duplicate id; row skipped")
            continue
        seen.add(doctor.id)
        doctors.append(doctor)
    return doctors, issues


def load_visits(
    rows: Iterable[Row], settings: Optional[AppSettings] = None
) -> Tuple[List[Visit], List[DataQualityIssue]]:
    visits: List[Visit] = []
    issues: List[DataQualityIssue] = []
    for row in rows:
        visit, row_issues = visit_from_row(row, settings)
        visits.append(visit)
        issues.extend(row_issues)
    return visits, issues


__all__ = [
    "clamp_fees",
    "clamp_percentages",
    "doctor_from_row",
    "load_doctors",
    "load_visits",
    "visit_from_row",
]
