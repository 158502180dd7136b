"""
PoliceDeskVN – Statistics

Dashboard figures and the per-period summary fed to the report generator.
"""
from __future__ import annotations
from collections import Counter
from datetime import date
from typing import Dict, List, Optional

from pydantic import Field

from core.periods import Period, in_period, overlaps
from core.schemas import AppData, WireModel, VehicleRegistration, Event
from database.models import VehicleType, AlcoholLevel, VerificationStatus

TOTAL_ROW = "Tổng cộng"


class RegistrationStat(WireModel):
    type:     str
    first:    int = 0
    transfer: int = 0
    recall:   int = 0
    renewal:  int = 0
    total:    int = 0


class CountRow(WireModel):
    label: str
    count: int


class EventProgress(WireModel):
    name:     str
    progress: float


class DashboardOverview(WireModel):
    total_accidents:     int = 0
    total_deaths:        int = 0
    total_injuries:      int = 0
    registrations_today: int = 0
    active_events:       int = 0
    tasks_today:         int = 0
    accident_trend:      List[CountRow] = Field(default_factory=list)
    registration_stats:  List[RegistrationStat] = Field(default_factory=list)
    event_progress:      List[EventProgress] = Field(default_factory=list)


class ReportSummary(WireModel):
    date_from:                  Optional[str] = None
    date_to:                    Optional[str] = None
    total_accidents:            int = 0
    total_deaths:               int = 0
    total_injuries:             int = 0
    total_alcohol_accidents:    int = 0
    total_damage:               int = 0
    registration_stats:         List[RegistrationStat] = Field(default_factory=list)
    total_vehicle_registrations: int = 0
    total_events:               int = 0
    event_goal_percentage:      str = "0%"
    total_daily_tasks:          int = 0
    daily_task_categories:      List[CountRow] = Field(default_factory=list)
    total_verification_requests: int = 0
    verification_results:       Dict[str, int] = Field(default_factory=dict)
    total_advisory_documents:   int = 0
    advisory_doc_types:         List[CountRow] = Field(default_factory=list)


# ── Building blocks ───────────────────────────────────────────────────────
def registration_stats(regs: List[VehicleRegistration]) -> List[RegistrationStat]:
    rows = {
        VehicleType.CAR.value:       RegistrationStat(type=VehicleType.CAR.value),
        VehicleType.MOTORBIKE.value: RegistrationStat(type=VehicleType.MOTORBIKE.value),
        TOTAL_ROW:                   RegistrationStat(type=TOTAL_ROW),
    }
    for reg in regs:
        targets = [rows[TOTAL_ROW]]
        if reg.vehicle_type.value in rows:
            targets.append(rows[reg.vehicle_type.value])
        for row in targets:
            row.first    += reg.first_time_count
            row.transfer += reg.transfer_count
            row.recall   += reg.recall_count
            row.renewal  += reg.renewal_count
            row.total    += reg.total
    return list(rows.values())


def event_progress(event: Event) -> float:
    goal = sum(t.goal for t in event.targets)
    achieved = sum(r.result for t in event.targets for r in t.results)
    return round(achieved / goal * 100, 2) if goal > 0 else 0.0


def event_goal_percentage(events: List[Event], period: Period) -> str:
    """Results dated inside the period over the total goal of the events."""
    goal = achieved = 0.0
    for ev in events:
        for t in ev.targets:
            goal += t.goal
            achieved += sum(r.result for r in t.results if in_period(r.date, period))
    if goal == 0:
        return "0%"
    return f"{achieved / goal * 100:.1f}%"


def _counts(values) -> List[CountRow]:
    return [CountRow(label=k, count=v) for k, v in Counter(values).items()]


# ── Dashboard ─────────────────────────────────────────────────────────────
def dashboard_overview(data: AppData, today: Optional[date] = None) -> DashboardOverview:
    today_s = (today or date.today()).isoformat()
    trend = Counter(a.date[:7] for a in data.traffic_accidents if a.date)
    return DashboardOverview(
        total_accidents=len(data.traffic_accidents),
        total_deaths=sum(a.deaths for a in data.traffic_accidents),
        total_injuries=sum(a.injuries for a in data.traffic_accidents),
        registrations_today=sum(r.total for r in data.vehicle_registrations if r.date == today_s),
        active_events=sum(1 for e in data.events if e.from_date <= today_s <= e.to_date),
        tasks_today=sum(1 for t in data.daily_tasks if t.date == today_s),
        accident_trend=[CountRow(label=m, count=trend[m]) for m in sorted(trend)],
        registration_stats=registration_stats(data.vehicle_registrations),
        event_progress=[EventProgress(name=e.name, progress=event_progress(e)) for e in data.events],
    )


# ── Period report ─────────────────────────────────────────────────────────
def filter_period(data: AppData, period: Period) -> AppData:
    """Records of each list falling inside the period (events by overlap)."""
    return data.model_copy(update={
        "traffic_accidents":     [a for a in data.traffic_accidents if in_period(a.date, period)],
        "vehicle_registrations": [r for r in data.vehicle_registrations if in_period(r.date, period)],
        "events":                [e for e in data.events if overlaps(e.from_date, e.to_date, period)],
        "daily_tasks":           [t for t in data.daily_tasks if in_period(t.date, period)],
        "verification_requests": [v for v in data.verification_requests if in_period(v.doc_date, period)],
        "advisory_documents":    [d for d in data.advisory_documents if in_period(d.doc_date, period)],
    })


def build_report_summary(data: AppData, period: Period) -> ReportSummary:
    f = filter_period(data, period)
    regs = registration_stats(f.vehicle_registrations)
    statuses = Counter(v.verification_result for v in f.verification_requests)

    return ReportSummary(
        date_from=period.start.isoformat() if period.start else None,
        date_to=period.end.isoformat() if period.end else None,
        total_accidents=len(f.traffic_accidents),
        total_deaths=sum(a.deaths for a in f.traffic_accidents),
        total_injuries=sum(a.injuries for a in f.traffic_accidents),
        total_alcohol_accidents=sum(1 for a in f.traffic_accidents if a.alcohol_level == AlcoholLevel.YES),
        total_damage=sum(a.estimated_damage_vnd for a in f.traffic_accidents),
        registration_stats=regs,
        total_vehicle_registrations=regs[-1].total,
        total_events=len(f.events),
        event_goal_percentage=event_goal_percentage(f.events, period),
        total_daily_tasks=len(f.daily_tasks),
        daily_task_categories=_counts(t.category.value for t in f.daily_tasks),
        total_verification_requests=len(f.verification_requests),
        verification_results={
            s.value: statuses.get(s, 0) for s in (
                VerificationStatus.VERIFIED, VerificationStatus.IN_PROGRESS,
                VerificationStatus.NOT_STARTED, VerificationStatus.UNDETERMINED,
            )
        },
        total_advisory_documents=len(f.advisory_documents),
        advisory_doc_types=_counts(d.doc_type.value for d in f.advisory_documents),
    )


def accident_details(data: AppData, period: Period, kind: str = "total"):
    """Drill-down list behind one accident figure (total|alcohol|deaths|injuries; damage lists all)."""
    rows = [a for a in data.traffic_accidents if in_period(a.date, period)]
    if kind == "alcohol":
        rows = [a for a in rows if a.alcohol_level == AlcoholLevel.YES]
    elif kind == "deaths":
        rows = [a for a in rows if a.deaths > 0]
    elif kind == "injuries":
        rows = [a for a in rows if a.injuries > 0]
    return rows
