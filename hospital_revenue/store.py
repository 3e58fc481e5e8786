"""Read-only access to exported doctor and patient rows."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from hospital_revenue.config import AppSettings, get_settings
from hospital_revenue.models import DataQualityIssue, Doctor, Visit
from hospital_revenue.records import load_doctors, load_visits, visit_from_row
from hospital_revenue.windows import ReportingWindow

LOGGER = logging.getLogger(__name__)


@dataclass
class DoctorSnapshot:
    """Doctor records fetched once and reused for a whole aggregation pass."""

    doctors: List[Doctor]
    issues: List[DataQualityIssue] = field(default_factory=list)

    def get(self, doctor_id: str) -> Doctor:
        for doctor in self.doctors:
            if doctor.id == doctor_id:
                return doctor
        raise KeyError(f"Unknown doctor '{doctor_id}'")

    def active(self) -> List[Doctor]:
        return [doctor for doctor in self.doctors if doctor.is_active]


@dataclass
class VisitSelection:
    """Visits selected for one reporting window."""

    visits: List[Visit] = field(default_factory=list)
    issues: List[DataQualityIssue] = field(default_factory=list)
    undated: int = 0


class RecordStore:
    """In-memory view over a JSON export of the ``doctors`` and ``patients`` tables."""

    def __init__(
        self,
        doctor_rows: Sequence[Mapping[str, Any]] = (),
        visit_rows: Sequence[Mapping[str, Any]] = (),
        settings: Optional[AppSettings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._doctor_rows = [dict(row) for row in doctor_rows]
        self._visit_rows = [dict(row) for row in visit_rows]

    @classmethod
    def from_json(cls, path: Path, settings: Optional[AppSettings] = None) -> "RecordStore":
        payload: Dict[str, Any] = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError(f"{path}: expected an object with 'doctors' and 'patients' lists")
        visit_rows = payload.get("patients", []) + payload.get("visits", [])
        LOGGER.info(
            "Loaded %s doctors and %s visits from %s",
            len(payload.get("doctors", [])),
            len(visit_rows),
            path,
        )
        return cls(payload.get("doctors", []), visit_rows, settings=settings)

    def snapshot(self) -> DoctorSnapshot:
        doctors, issues = load_doctors(self._doctor_rows, self._settings)
        doctors.sort(key=lambda doctor: doctor.name.lower())
        return DoctorSnapshot(doctors=doctors, issues=issues)

    def visits(self) -> Tuple[List[Visit], List[DataQualityIssue]]:
        return load_visits(self._visit_rows, self._settings)

    def visits_in(self, window: ReportingWindow) -> VisitSelection:
        """Visits whose timestamp falls inside ``window``, with their issues.

        Visits without a usable timestamp cannot be placed in any window; they
        are counted in ``undated`` and their issues are always returned.
        """

        selection = VisitSelection()
        for row in self._visit_rows:
            visit, row_issues = visit_from_row(row, self._settings)
            if visit.occurred_at is None:
                selection.undated += 1
                selection.issues.extend(row_issues)
            elif window.contains(visit.occurred_at):
                selection.visits.append(visit)
                selection.issues.extend(row_issues)
        if selection.undated:
            LOGGER.warning("%s visits have no usable timestamp and are excluded", selection.undated)
        LOGGER.debug(
            "%s of %s visits fall in %s..%s",
            len(selection.visits),
            len(self._visit_rows),
            window.start,
            window.end,
        )
        return selection


__all__ = ["DoctorSnapshot", "RecordStore", "VisitSelection"]
