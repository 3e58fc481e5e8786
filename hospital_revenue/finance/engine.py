"""Fee-split engine allocating visit fees between doctor and hospital."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Mapping, Optional

MINOR_UNIT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


class FeeCategory(str, Enum):
    """Billable service types tracked on every visit."""

    OPD = "OPD"
    LAB = "LAB"
    OT = "OT"
    ULTRASOUND = "ULTRASOUND"
    ECG = "ECG"

    @property
    def fee_column(self) -> str:
        return f"{self.value.lower()}_fee"

    @property
    def percentage_column(self) -> str:
        return f"{self.value.lower()}_percentage"


# Canonical display and summation order.
FEE_CATEGORIES = (
    FeeCategory.OPD,
    FeeCategory.LAB,
    FeeCategory.OT,
    FeeCategory.ULTRASOUND,
    FeeCategory.ECG,
)


def zero_by_category() -> Dict[FeeCategory, Decimal]:
    return {category: ZERO for category in FEE_CATEGORIES}


def safe_decimal(value: Any) -> Decimal:
    """Coerce ``value`` to a finite Decimal, falling back to zero."""

    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip() or "0")
        except (InvalidOperation, ValueError):
            return ZERO
    if not amount.is_finite():
        return ZERO
    return amount


def quantize(value: Decimal) -> Decimal:
    return value.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def _lookup(mapping: Optional[Mapping[Any, Any]], category: FeeCategory) -> Decimal:
    if not mapping:
        return ZERO
    if category in mapping:
        return safe_decimal(mapping[category])
    # Plain string keys from JSON payloads.
    return safe_decimal(mapping.get(category.value))


@dataclass(frozen=True)
class VisitSplit:
    """Doctor and hospital allocation for a single visit."""

    doctor_by_cat: Dict[FeeCategory, Decimal] = field(default_factory=zero_by_category)
    hospital_by_cat: Dict[FeeCategory, Decimal] = field(default_factory=zero_by_category)
    fee_by_cat: Dict[FeeCategory, Decimal] = field(default_factory=zero_by_category)
    doctor_total: Decimal = ZERO
    hospital_total: Decimal = ZERO
    fee_total: Decimal = ZERO


def split_fees(
    fees: Optional[Mapping[Any, Any]],
    percentages: Optional[Mapping[Any, Any]],
) -> VisitSplit:
    """Split raw fee amounts using the doctor's per-category percentages.

    The doctor share of each category is rounded half-up to the minor unit and
    the hospital receives the remainder, so ``doctor + hospital == fee`` holds
    exactly for every category and for the totals.
    """

    doctor_by_cat: Dict[FeeCategory, Decimal] = {}
    hospital_by_cat: Dict[FeeCategory, Decimal] = {}
    fee_by_cat: Dict[FeeCategory, Decimal] = {}
    for category in FEE_CATEGORIES:
        fee = quantize(_lookup(fees, category))
        pct = _lookup(percentages, category)
        doctor_amount = quantize(fee * pct / HUNDRED)
        fee_by_cat[category] = fee
        doctor_by_cat[category] = doctor_amount
        hospital_by_cat[category] = fee - doctor_amount
    return VisitSplit(
        doctor_by_cat=doctor_by_cat,
        hospital_by_cat=hospital_by_cat,
        fee_by_cat=fee_by_cat,
        doctor_total=sum(doctor_by_cat.values(), ZERO),
        hospital_total=sum(hospital_by_cat.values(), ZERO),
        fee_total=sum(fee_by_cat.values(), ZERO),
    )


def compute_visit_split(visit: Any, doctor: Any = None) -> VisitSplit:
    """Compute the split for ``visit`` against ``doctor``.

    ``visit`` needs a ``fees`` mapping and ``doctor`` a ``percentages`` mapping.
    Passing ``doctor=None`` attributes every category to the hospital.
    """

    percentages = getattr(doctor, "percentages", None) if doctor is not None else None
    return split_fees(getattr(visit, "fees", None), percentages)


__all__ = [
    "FEE_CATEGORIES",
    "FeeCategory",
    "VisitSplit",
    "compute_visit_split",
    "quantize",
    "safe_decimal",
    "split_fees",
    "zero_by_category",
]
