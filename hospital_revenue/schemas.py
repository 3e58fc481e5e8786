"""Pydantic schemas for the revenue service API."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from hospital_revenue.finance.aggregation import SplitTotals
from hospital_revenue.finance.engine import FEE_CATEGORIES, VisitSplit


class LoginRequest(BaseModel):
    password: str


class SessionResponse(BaseModel):
    token: str
    expires_at: datetime


class DoctorResponse(BaseModel):
    id: str
    name: str
    percentages: Dict[str, Decimal]
    is_active: bool
    specialization: Optional[str] = None
    department: Optional[str] = None


class SplitPreviewRequest(BaseModel):
    fees: Dict[str, Decimal] = Field(default_factory=dict)
    doctor_id: Optional[str] = None
    percentages: Optional[Dict[str, Decimal]] = None

    @field_validator("fees", "percentages")
    @classmethod
    def _known_categories(cls, value: Optional[Dict[str, Decimal]]) -> Optional[Dict[str, Decimal]]:
        if value is None:
            return value
        known = {category.value for category in FEE_CATEGORIES}
        normalized = {key.upper(): amount for key, amount in value.items()}
        unknown = set(normalized) - known
        if unknown:
            raise ValueError(f"Unknown fee categories: {', '.join(sorted(unknown))}")
        return normalized


class SplitBreakdown(BaseModel):
    doctor_by_cat: Dict[str, Decimal]
    hospital_by_cat: Dict[str, Decimal]
    fee_by_cat: Dict[str, Decimal]
    doctor_total: Decimal
    hospital_total: Decimal
    fee_total: Decimal
    visit_count: Optional[int] = None

    @classmethod
    def from_totals(cls, totals: SplitTotals | VisitSplit) -> "SplitBreakdown":
        return cls(
            doctor_by_cat={c.value: totals.doctor_by_cat[c] for c in FEE_CATEGORIES},
            hospital_by_cat={c.value: totals.hospital_by_cat[c] for c in FEE_CATEGORIES},
            fee_by_cat={c.value: totals.fee_by_cat[c] for c in FEE_CATEGORIES},
            doctor_total=totals.doctor_total,
            hospital_total=totals.hospital_total,
            fee_total=totals.fee_total,
            visit_count=getattr(totals, "visit_count", None),
        )


class DoctorSummaryResponse(BaseModel):
    doctor_id: str
    doctor_name: str
    profit_margin: Decimal
    totals: SplitBreakdown


class DataQualityIssueResponse(BaseModel):
    record_id: str
    field: str
    raw_value: Any = None
    applied_value: Any = None
    message: str


class SplitPreviewResponse(SplitBreakdown):
    issues: List[DataQualityIssueResponse] = Field(default_factory=list)


class RevenueSummaryResponse(BaseModel):
    start: date
    end: date
    policy: str
    doctors: List[DoctorSummaryResponse]
    unattributed: SplitBreakdown
    grand: SplitBreakdown
    skipped_visits: int
    undated_visits: int = 0
    issues: List[DataQualityIssueResponse]


class ReportResponse(BaseModel):
    title: str
    description: str
    start: date
    end: date
    columns: List[str]
    rows: List[Dict[str, Any]]
    undated_visits: int = 0
