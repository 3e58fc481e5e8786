"""Fold visit splits into per-doctor and grand revenue summaries."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from hospital_revenue.finance.engine import (
    FEE_CATEGORIES,
    HUNDRED,
    ZERO,
    FeeCategory,
    VisitSplit,
    compute_visit_split,
    zero_by_category,
)
from hospital_revenue.models import DataQualityIssue, Doctor, Visit

LOGGER = logging.getLogger(__name__)

_DR_PREFIX = re.compile(r"^dr\.?(\s+|$)")
_WHITESPACE = re.compile(r"\s+")


class UnmatchedDoctorPolicy(str, Enum):
    """What to do with a visit whose doctor cannot be resolved."""

    ATTRIBUTE_TO_HOSPITAL = "attribute_to_hospital"
    SKIP = "skip"


def normalize_doctor_name(name: Optional[str]) -> str:
    """Lowercase, trim and drop a leading ``Dr``/``Dr.`` token."""

    text = _WHITESPACE.sub(" ", (name or "").strip().lower())
    return _DR_PREFIX.sub("", text).strip()


class DoctorMatcher:
    """Resolve visits to doctors by id, then by normalised name.

    Name precedence is exact match, then substring in either direction, then
    a prefix match on the visit name's first token. Doctors are scanned in
    the order given and the first hit wins.
    """

    def __init__(self, doctors: Sequence[Doctor]) -> None:
        self._doctors = list(doctors)
        self._by_id = {doctor.id: doctor for doctor in self._doctors}
        self._names = [
            (normalize_doctor_name(doctor.name), doctor)
            for doctor in self._doctors
            if normalize_doctor_name(doctor.name)
        ]

    def match(self, visit: Visit) -> Optional[Doctor]:
        if visit.doctor_id and visit.doctor_id in self._by_id:
            return self._by_id[visit.doctor_id]
        return self.match_name(visit.doctor_name)

    def match_name(self, name: Optional[str]) -> Optional[Doctor]:
        norm = normalize_doctor_name(name)
        if not norm:
            return None
        for candidate, doctor in self._names:
            if candidate == norm:
                return doctor
        for candidate, doctor in self._names:
            if norm in candidate or candidate in norm:
                return doctor
        first = norm.split(" ")[0]
        for candidate, doctor in self._names:
            if candidate.startswith(first):
                return doctor
        return None


@dataclass
class SplitTotals:
    """Running sums of visit splits."""

    doctor_by_cat: Dict[FeeCategory, Decimal] = field(default_factory=zero_by_category)
    hospital_by_cat: Dict[FeeCategory, Decimal] = field(default_factory=zero_by_category)
    fee_by_cat: Dict[FeeCategory, Decimal] = field(default_factory=zero_by_category)
    doctor_total: Decimal = ZERO
    hospital_total: Decimal = ZERO
    fee_total: Decimal = ZERO
    visit_count: int = 0

    def add_split(self, split: VisitSplit) -> None:
        for category in FEE_CATEGORIES:
            self.doctor_by_cat[category] += split.doctor_by_cat[category]
            self.hospital_by_cat[category] += split.hospital_by_cat[category]
            self.fee_by_cat[category] += split.fee_by_cat[category]
        self.doctor_total += split.doctor_total
        self.hospital_total += split.hospital_total
        self.fee_total += split.fee_total
        self.visit_count += 1

    def merge(self, other: "SplitTotals") -> "SplitTotals":
        """Return a new total combining ``self`` and ``other``."""

        merged = SplitTotals()
        for totals in (self, other):
            for category in FEE_CATEGORIES:
                merged.doctor_by_cat[category] += totals.doctor_by_cat[category]
                merged.hospital_by_cat[category] += totals.hospital_by_cat[category]
                merged.fee_by_cat[category] += totals.fee_by_cat[category]
            merged.doctor_total += totals.doctor_total
            merged.hospital_total += totals.hospital_total
            merged.fee_total += totals.fee_total
            merged.visit_count += totals.visit_count
        return merged

    @property
    def profit_margin(self) -> Decimal:
        """Hospital share of fees as a percentage."""

        if not self.fee_total:
            return ZERO
        return (self.hospital_total / self.fee_total * HUNDRED).quantize(Decimal("0.1"))


@dataclass
class DoctorSummary(SplitTotals):
    doctor: Optional[Doctor] = None


@dataclass
class RevenueSummary:
    """Result of one aggregation pass."""

    doctors: Dict[str, DoctorSummary]
    unattributed: SplitTotals
    grand: SplitTotals
    policy: UnmatchedDoctorPolicy
    skipped_visits: int = 0
    undated_visits: int = 0
    issues: List[DataQualityIssue] = field(default_factory=list)

    def doctor_rows(self) -> List[DoctorSummary]:
        return list(self.doctors.values())


def _unique_doctors(doctors: Sequence[Doctor]) -> List[Doctor]:
    unique: Dict[str, Doctor] = {}
    for doctor in doctors:
        if doctor.id in unique:
            LOGGER.warning("Ignoring doctor '%s': id '%s' already used", doctor.name, doctor.id)
            continue
        unique[doctor.id] = doctor
    return list(unique.values())


def aggregate_visits(
    visits: Iterable[Visit],
    doctors: Sequence[Doctor],
    policy: UnmatchedDoctorPolicy = UnmatchedDoctorPolicy.ATTRIBUTE_TO_HOSPITAL,
    issues: Optional[Sequence[DataQualityIssue]] = None,
    undated_visits: int = 0,
) -> RevenueSummary:
    """Fold every visit into per-doctor summaries and a grand summary.

    ``doctors`` is the snapshot used for the whole pass; callers fetch it once.
    Only the first doctor carrying a given id takes part. ``undated_visits``
    records how many visits the caller could not place in the window.
    """

    doctors = _unique_doctors(doctors)
    matcher = DoctorMatcher(doctors)
    summary = RevenueSummary(
        doctors={doctor.id: DoctorSummary(doctor=doctor) for doctor in doctors},
        unattributed=SplitTotals(),
        grand=SplitTotals(),
        policy=policy,
        undated_visits=undated_visits,
        issues=list(issues or []),
    )
    for visit in visits:
        doctor = matcher.match(visit)
        if doctor is None:
            if policy is UnmatchedDoctorPolicy.SKIP:
                LOGGER.warning(
                    "Skipping visit %s: no doctor matches '%s'", visit.id, visit.doctor_name
                )
                summary.skipped_visits += 1
                continue
            LOGGER.warning(
                "Visit %s has no matching doctor for '%s'; attributing fees to hospital",
                visit.id,
                visit.doctor_name or visit.doctor_id,
            )
            split = compute_visit_split(visit, None)
            summary.unattributed.add_split(split)
            summary.grand.add_split(split)
            continue
        split = compute_visit_split(visit, doctor)
        summary.doctors[doctor.id].add_split(split)
        summary.grand.add_split(split)
    LOGGER.debug(
        "Aggregated %s visits across %s doctors (fees=%s, skipped=%s)",
        summary.grand.visit_count,
        len(summary.doctors),
        summary.grand.fee_total,
        summary.skipped_visits,
    )
    return summary


__all__ = [
    "DoctorMatcher",
    "DoctorSummary",
    "RevenueSummary",
    "SplitTotals",
    "UnmatchedDoctorPolicy",
    "aggregate_visits",
    "normalize_doctor_name",
]
