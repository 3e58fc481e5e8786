"""FastAPI application exposing revenue splits, summaries and reports."""
from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.responses import HTMLResponse

from hospital_revenue.config import AppSettings, get_settings
from hospital_revenue.finance.aggregation import DoctorSummary, RevenueSummary, aggregate_visits
from hospital_revenue.finance.engine import split_fees
from hospital_revenue.records import clamp_fees, clamp_percentages
from hospital_revenue.rendering.report import render_daily_summary
from hospital_revenue.reports import generate_report, revenue_dashboard
from hospital_revenue.schemas import (
    DataQualityIssueResponse,
    DoctorResponse,
    DoctorSummaryResponse,
    LoginRequest,
    ReportResponse,
    RevenueSummaryResponse,
    SessionResponse,
    SplitBreakdown,
    SplitPreviewRequest,
    SplitPreviewResponse,
)
from hospital_revenue.session import (
    InvalidPasswordError,
    LoginLockedError,
    PasswordGate,
    SessionRegistry,
)
from hospital_revenue.store import RecordStore
from hospital_revenue.windows import ReportingWindow, day_window, period_window, today_in

LOGGER = logging.getLogger(__name__)

_settings = get_settings()

app = FastAPI(title=_settings.app_name, version="0.1.0")


def get_store(settings: AppSettings = Depends(get_settings)) -> RecordStore:
    store = getattr(app.state, "store", None)
    if store is None:
        if settings.data_file is not None:
            store = RecordStore.from_json(settings.data_file, settings=settings)
        else:
            LOGGER.warning("No data file configured; serving an empty record store")
            store = RecordStore(settings=settings)
        app.state.store = store
    return store


def get_sessions() -> SessionRegistry:
    registry = getattr(app.state, "sessions", None)
    if registry is None:
        registry = SessionRegistry()
        app.state.sessions = registry
    return registry


def get_gate(settings: AppSettings = Depends(get_settings)) -> PasswordGate:
    gate = getattr(app.state, "gate", None)
    if gate is None:
        gate = PasswordGate(settings)
        app.state.gate = gate
    return gate


def require_session(
    x_session_token: Optional[str] = Header(default=None),
    token: Optional[str] = Query(default=None),
    sessions: SessionRegistry = Depends(get_sessions),
) -> None:
    if not sessions.validate(x_session_token or token):
        raise HTTPException(status_code=401, detail="Session missing or expired")


def _window(
    settings: AppSettings,
    period: str,
    start: Optional[date],
    end: Optional[date],
) -> ReportingWindow:
    try:
        if start is not None or end is not None:
            return ReportingWindow(start=start or end, end=end or start, tz=settings.tz)
        return period_window(period, today_in(settings.tz), settings.tz)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _summary_response(
    summary: RevenueSummary,
    window: ReportingWindow,
    rows: Optional[List[DoctorSummary]] = None,
) -> RevenueSummaryResponse:
    rows = summary.doctor_rows() if rows is None else rows
    return RevenueSummaryResponse(
        start=window.start,
        end=window.end,
        policy=summary.policy.value,
        doctors=[
            DoctorSummaryResponse(
                doctor_id=row.doctor.id,
                doctor_name=row.doctor.name,
                profit_margin=row.profit_margin,
                totals=SplitBreakdown.from_totals(row),
            )
            for row in rows
        ],
        unattributed=SplitBreakdown.from_totals(summary.unattributed),
        grand=SplitBreakdown.from_totals(summary.grand),
        skipped_visits=summary.skipped_visits,
        undated_visits=summary.undated_visits,
        issues=[DataQualityIssueResponse(**asdict(issue)) for issue in summary.issues],
    )


def _aggregate(store: RecordStore, window: ReportingWindow, settings: AppSettings) -> RevenueSummary:
    snapshot = store.snapshot()
    selection = store.visits_in(window)
    return aggregate_visits(
        selection.visits,
        snapshot.doctors,
        settings.unmatched_doctor_policy,
        snapshot.issues + selection.issues,
        undated_visits=selection.undated,
    )


@app.post("/api/session", response_model=SessionResponse, status_code=201)
def login(
    payload: LoginRequest,
    gate: PasswordGate = Depends(get_gate),
    sessions: SessionRegistry = Depends(get_sessions),
) -> SessionResponse:
    try:
        session = gate.login(payload.password)
    except LoginLockedError as exc:
        raise HTTPException(status_code=429, detail=str(exc)) from exc
    except InvalidPasswordError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    sessions.add(session)
    return SessionResponse(token=session.token, expires_at=session.expires_at)


@app.get("/api/doctors", response_model=List[DoctorResponse], dependencies=[Depends(require_session)])
def list_doctors(
    active_only: bool = False,
    store: RecordStore = Depends(get_store),
) -> List[DoctorResponse]:
    snapshot = store.snapshot()
    doctors = snapshot.active() if active_only else snapshot.doctors
    return [
        DoctorResponse(
            id=doctor.id,
            name=doctor.name,
            percentages={category.value: pct for category, pct in doctor.percentages.items()},
            is_active=doctor.is_active,
            specialization=doctor.specialization,
            department=doctor.department,
        )
        for doctor in doctors
    ]


@app.post("/api/split/preview", response_model=SplitPreviewResponse, dependencies=[Depends(require_session)])
def preview_split(
    payload: SplitPreviewRequest,
    store: RecordStore = Depends(get_store),
) -> SplitPreviewResponse:
    fees, issues = clamp_fees(payload.fees, "preview")
    if payload.percentages is not None:
        percentages, pct_issues = clamp_percentages(payload.percentages, "preview")
        issues.extend(pct_issues)
    elif payload.doctor_id:
        try:
            percentages = store.snapshot().get(payload.doctor_id).percentages
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc.args[0])) from exc
    else:
        raise HTTPException(status_code=400, detail="Provide a doctor_id or percentages")
    response = SplitPreviewResponse.from_totals(split_fees(fees, percentages))
    response.issues = [DataQualityIssueResponse(**asdict(issue)) for issue in issues]
    return response


@app.get("/api/summary/daily", response_model=RevenueSummaryResponse, dependencies=[Depends(require_session)])
def daily_summary(
    day: Optional[date] = None,
    store: RecordStore = Depends(get_store),
    settings: AppSettings = Depends(get_settings),
) -> RevenueSummaryResponse:
    window = day_window(day or today_in(settings.tz), settings.tz)
    return _summary_response(_aggregate(store, window, settings), window)


@app.get("/api/revenue", response_model=RevenueSummaryResponse, dependencies=[Depends(require_session)])
def revenue(
    period: str = "monthly",
    start: Optional[date] = None,
    end: Optional[date] = None,
    doctor_id: Optional[str] = None,
    search: Optional[str] = None,
    sort: str = "totalRevenue",
    direction: str = "desc",
    store: RecordStore = Depends(get_store),
    settings: AppSettings = Depends(get_settings),
) -> RevenueSummaryResponse:
    window = _window(settings, period, start, end)
    summary = _aggregate(store, window, settings)
    try:
        rows = revenue_dashboard(summary, doctor_id, search, sort, direction)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc.args[0])) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _summary_response(summary, window, rows)


@app.get("/api/reports/{report_type}", response_model=ReportResponse, dependencies=[Depends(require_session)])
def report(
    report_type: str,
    period: str = "monthly",
    start: Optional[date] = None,
    end: Optional[date] = None,
    store: RecordStore = Depends(get_store),
    settings: AppSettings = Depends(get_settings),
) -> ReportResponse:
    window = _window(settings, period, start, end)
    snapshot = store.snapshot()
    selection = store.visits_in(window)
    try:
        table = generate_report(
            report_type, selection.visits, snapshot.doctors, settings, snapshot.issues + selection.issues
        )
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return ReportResponse(
        title=table.title,
        description=table.description,
        start=window.start,
        end=window.end,
        columns=table.columns,
        rows=table.rows[: settings.max_rows_returned],
        undated_visits=selection.undated,
    )


@app.get("/", response_class=HTMLResponse, dependencies=[Depends(require_session)])
def index(
    day: Optional[date] = None,
    store: RecordStore = Depends(get_store),
    settings: AppSettings = Depends(get_settings),
) -> str:
    window = day_window(day or today_in(settings.tz), settings.tz)
    return render_daily_summary(_aggregate(store, window, settings), window, settings=settings)


__all__ = ["app"]
