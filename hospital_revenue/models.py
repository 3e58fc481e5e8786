"""Data models for doctor and visit records pulled from the hosted database."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from hospital_revenue.finance.engine import FEE_CATEGORIES, FeeCategory


@dataclass
class Doctor:
    """A doctor and their share of each fee category (0-100)."""

    id: str
    name: str
    percentages: Dict[FeeCategory, Decimal] = field(default_factory=dict)
    is_active: bool = True
    specialization: Optional[str] = None
    department: Optional[str] = None


@dataclass
class Visit:
    """Fees charged for one patient visit."""

    id: str
    patient_name: str
    fees: Dict[FeeCategory, Decimal] = field(default_factory=dict)
    doctor_id: Optional[str] = None
    doctor_name: Optional[str] = None
    occurred_at: Optional[datetime] = None
    contact: Optional[str] = None

    def fee_total(self) -> Decimal:
        return sum((self.fees.get(category, Decimal("0")) for category in FEE_CATEGORIES), Decimal("0"))


@dataclass
class DataQualityIssue:
    """A value that was normalised while reading a database row."""

    record_id: str
    field: str
    raw_value: Any
    applied_value: Any
    message: str


__all__ = ["DataQualityIssue", "Doctor", "Visit"]
