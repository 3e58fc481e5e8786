from datetime import date, datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from hospital_revenue.config import AppSettings
from hospital_revenue.finance.engine import FEE_CATEGORIES, split_fees
from hospital_revenue.finance.formatting import (
    format_money,
    iso_date_only,
    parse_timestamp,
    quantize_money,
)

KARACHI = ZoneInfo("Asia/Karachi")


def test_format_money_defaults() -> None:
    assert format_money(Decimal("1234.5")) == "PKR 1,234.50"
    assert format_money(0) == "PKR 0.00"
    assert format_money(None) == "PKR 0.00"
    assert format_money(Decimal("-12.345")) == "-PKR 12.35"


def test_format_money_whole_units_round_half_up() -> None:
    assert format_money(Decimal("1234.5"), "usd".upper(), places=0) == "USD 1,235"
    assert format_money(Decimal("0.5"), "PKR", places=0) == "PKR 1"


def test_quantize_money() -> None:
    assert quantize_money("2.675") == Decimal("2.68")
    assert quantize_money(2.5, places=0) == Decimal("3")


def _shown_amount(text: str) -> Decimal:
    return Decimal(text.split(" ")[-1].replace(",", ""))


@pytest.mark.parametrize("places", [2, 3, 4])
def test_displayed_subtotals_sum_to_total(places: int) -> None:
    split = split_fees({"OPD": 1, "LAB": 1, "ECG": "0.05"}, {"OPD": 50, "LAB": 50, "ECG": 50})
    shown_parts = [format_money(split.doctor_by_cat[category], places=places) for category in FEE_CATEGORIES]
    shown_total = format_money(split.doctor_total, places=places)
    assert sum(_shown_amount(part) for part in shown_parts) == _shown_amount(shown_total)


def test_settings_reject_fewer_places_than_stored_amounts() -> None:
    with pytest.raises(ValidationError):
        AppSettings(_env_file=None, money_places=0)
    with pytest.raises(ValidationError):
        AppSettings(_env_file=None, money_places=1)
    assert AppSettings(_env_file=None, money_places=3).money_places == 3


def test_iso_date_only_uses_reporting_zone() -> None:
    stamp = "2025-08-10T20:30:00+00:00"
    assert iso_date_only(stamp) == "2025-08-10"
    assert iso_date_only(stamp, KARACHI) == "2025-08-11"


def test_iso_date_only_accepts_dates_and_naive_datetimes() -> None:
    assert iso_date_only(date(2025, 1, 2)) == "2025-01-02"
    assert iso_date_only("2025-01-02") == "2025-01-02"
    assert iso_date_only(datetime(2025, 1, 2, 23, 0), KARACHI) == "2025-01-03"
    assert iso_date_only("2025-01-02T10:00:00Z", KARACHI) == "2025-01-02"


def test_parse_timestamp() -> None:
    assert parse_timestamp(None) is None
    parsed = parse_timestamp("2025-08-10T08:48:55.810664+00:00")
    assert parsed == datetime(2025, 8, 10, 8, 48, 55, 810664, tzinfo=timezone.utc)
    with pytest.raises(ValueError):
        parse_timestamp("not a date")
