from datetime import date
from decimal import Decimal

import pytest

from hospital_revenue.config import AppSettings
from hospital_revenue.finance.aggregation import UnmatchedDoctorPolicy, aggregate_visits
from hospital_revenue.reports import REPORT_TYPES, generate_report, hospital_share, revenue_dashboard
from hospital_revenue.store import RecordStore
from hospital_revenue.windows import ReportingWindow, day_window


@pytest.fixture()
def store(settings, doctor_rows, patient_rows) -> RecordStore:
    return RecordStore(doctor_rows, patient_rows, settings=settings)


@pytest.fixture()
def records(store, settings):
    snapshot = store.snapshot()
    window = ReportingWindow(start=date(2025, 8, 1), end=date(2025, 8, 31), tz=settings.tz)
    return snapshot.doctors, store.visits_in(window).visits


def test_snapshot_orders_doctors_by_name(store) -> None:
    snapshot = store.snapshot()
    assert [doctor.id for doctor in snapshot.doctors] == ["d-1", "d-2"]
    assert [doctor.id for doctor in snapshot.active()] == ["d-1"]
    with pytest.raises(KeyError):
        snapshot.get("missing")


def test_visits_in_day_window(store, settings) -> None:
    selection = store.visits_in(day_window(date(2025, 8, 10), settings.tz))
    assert [visit.id for visit in selection.visits] == ["p-1", "p-2", "p-3"]
    assert selection.undated == 0


def test_undated_visits_are_counted_with_their_issues(settings, doctor_rows, patient_rows) -> None:
    rows = patient_rows + [
        {"id": "p-5", "doctor_name": "Ayesha Khan", "opd_fee": 800, "created_at": "10/08/2025 09:00"},
        {"id": "p-6", "doctor_name": "Ayesha Khan", "opd_fee": 200},
    ]
    store = RecordStore(doctor_rows, rows, settings=settings)
    selection = store.visits_in(day_window(date(2025, 8, 10), settings.tz))
    assert [visit.id for visit in selection.visits] == ["p-1", "p-2", "p-3"]
    assert selection.undated == 2
    assert [(issue.record_id, issue.message) for issue in selection.issues] == [
        ("visit p-5", "unparseable timestamp"),
        ("visit p-6", "missing timestamp"),
    ]
    summary = aggregate_visits(
        selection.visits, store.snapshot().doctors, issues=selection.issues, undated_visits=selection.undated
    )
    assert summary.undated_visits == 2
    assert len(summary.issues) == 2


def test_doctor_performance_report(records, settings) -> None:
    doctors, visits = records
    table = generate_report("doctor-performance", visits, doctors, settings)
    ayesha, imran = table.rows
    assert ayesha["Doctor Name"] == "Dr. Ayesha Khan"
    assert ayesha["Patient Count"] == 2
    assert ayesha["Total Revenue"] == Decimal("3600")
    assert ayesha["Doctor Profit"] == Decimal("2020")
    assert ayesha["Hospital Profit"] == Decimal("1580")
    assert ayesha["Hospital %"] == "43.9%"
    assert imran["Hospital %"] == "66.7%"
    assert table.columns[0] == "Doctor Name"


def test_revenue_analysis_report(records, settings) -> None:
    doctors, visits = records
    table = generate_report("revenue-analysis", visits, doctors, settings)
    by_category = {row["Fee Category"]: row for row in table.rows}
    assert list(by_category) == ["OPD", "LAB", "OT", "ULTRASOUND", "ECG"]
    assert by_category["OPD"]["Total Revenue"] == Decimal("2300")
    assert by_category["OPD"]["Doctor Profit"] == Decimal("1320")
    assert by_category["OPD"]["Hospital Profit"] == Decimal("980")
    assert by_category["OPD"]["Patient Count"] == 4
    assert by_category["ULTRASOUND"]["Patient Count"] == 1
    assert by_category["OT"]["Hospital %"] == "0%"


def test_revenue_analysis_counts_only_folded_visits_when_skipping(records) -> None:
    doctors, visits = records
    settings = AppSettings(_env_file=None, unmatched_doctor_policy=UnmatchedDoctorPolicy.SKIP)
    table = generate_report("revenue-analysis", visits, doctors, settings)
    opd = table.rows[0]
    assert opd["Patient Count"] == 3
    assert opd["Total Revenue"] == Decimal("2000")


def test_hospital_profit_report_reconciles(records, settings) -> None:
    doctors, visits = records
    table = generate_report("hospital-profit", visits, doctors, settings)
    labels = [row["Doctor Name"] for row in table.rows]
    assert labels == ["Dr. Ayesha Khan", "Imran Ali", "Unattributed", "Total"]
    total = table.rows[-1]
    assert total["Total Revenue"] == Decimal("4500")
    assert total["Total Revenue"] == sum(row["Total Revenue"] for row in table.rows[:-1])
    assert total["Doctor Profit"] + total["Hospital Profit"] == total["Total Revenue"]


def test_patient_volume_report_groups_by_reporting_day(records, settings) -> None:
    doctors, visits = records
    table = generate_report("patient-volume", visits, doctors, settings)
    assert [row["Date"] for row in table.rows] == ["2025-08-10", "2025-08-11"]
    first = table.rows[0]
    assert first["Patient Count"] == 3
    assert first["Total Revenue"] == Decimal("2400")
    assert first["Hospital Profit"] == Decimal("1200")
    assert first["Average Revenue per Patient"] == Decimal("800.00")


def test_payment_status_report(records, settings) -> None:
    doctors, visits = records
    table = generate_report("payment-status", visits, doctors, settings)
    assert len(table.rows) == 4
    assert {row["Status"] for row in table.rows} == {"Pending"}
    assert table.rows[0]["Date"] == "2025-08-10"


def test_unknown_report_type(records, settings) -> None:
    doctors, visits = records
    with pytest.raises(ValueError):
        generate_report("cash-flow", visits, doctors, settings)
    assert "hospital-profit" in REPORT_TYPES


def test_revenue_dashboard_sort_and_filter(records, settings) -> None:
    doctors, visits = records
    summary = aggregate_visits(visits, doctors, settings.unmatched_doctor_policy)
    assert [row.doctor.id for row in revenue_dashboard(summary)] == ["d-1", "d-2"]
    assert [row.doctor.id for row in revenue_dashboard(summary, sort_field="profitMargin", direction="asc")] == [
        "d-1",
        "d-2",
    ]
    assert [row.doctor.id for row in revenue_dashboard(summary, sort_field="name", direction="desc")] == [
        "d-2",
        "d-1",
    ]
    assert [row.doctor.id for row in revenue_dashboard(summary, search="IMRAN")] == ["d-2"]
    assert [row.doctor.id for row in revenue_dashboard(summary, doctor_id="d-1")] == ["d-1"]
    with pytest.raises(KeyError):
        revenue_dashboard(summary, doctor_id="nobody")
    with pytest.raises(ValueError):
        revenue_dashboard(summary, sort_field="age")


def test_hospital_share_formatting() -> None:
    assert hospital_share(Decimal("1"), Decimal("3")) == "33.3%"
    assert hospital_share(Decimal("0"), Decimal("0")) == "0%"
