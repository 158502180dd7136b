"""Dashboard figures and the period report summary."""
from datetime import date

from core.periods import Period, period_range
from core.schemas import Event, EventTarget, EventTargetResult
from core.stats import (
    TOTAL_ROW, registration_stats, event_progress, event_goal_percentage,
    dashboard_overview, build_report_summary, accident_details,
)

MAY = Period(date(2024, 5, 1), date(2024, 5, 31))


class TestRegistrationStats:
    def test_rows_per_type_and_total(self, sample_data):
        rows = {r.type: r for r in registration_stats(sample_data.vehicle_registrations)}
        assert list(rows) == ["Ô tô", "Xe máy", TOTAL_ROW]
        assert rows["Ô tô"].total == 4
        assert rows["Xe máy"].recall == 1
        assert rows[TOTAL_ROW].first == 7
        assert rows[TOTAL_ROW].total == 10

    def test_empty(self):
        assert all(r.total == 0 for r in registration_stats([]))


class TestEventProgress:
    def test_progress_over_goal(self, sample_data):
        assert event_progress(sample_data.events[0]) == 25.0

    def test_zero_goal(self):
        assert event_progress(Event(targets=[EventTarget(goal=0)])) == 0.0

    def test_goal_percentage_counts_results_inside_period(self, sample_data):
        assert event_goal_percentage(sample_data.events, MAY) == "20.0%"

    def test_goal_percentage_without_goal(self):
        assert event_goal_percentage([], MAY) == "0%"

    def test_rounding(self):
        ev = Event(targets=[EventTarget(goal=3, results=[EventTargetResult(date="2024-05-01", result=1)])])
        assert event_progress(ev) == 33.33


class TestDashboard:
    def test_overview(self, sample_data):
        ov = dashboard_overview(sample_data, today=date(2024, 5, 4))
        assert ov.total_accidents == 3
        assert ov.total_deaths == 1
        assert ov.total_injuries == 2
        assert ov.registrations_today == 6
        assert ov.active_events == 1
        assert ov.tasks_today == 0
        assert [(t.label, t.count) for t in ov.accident_trend] == [("2024-05", 2), ("2024-07", 1)]
        assert ov.event_progress[0].progress == 25.0

    def test_wire_keys(self, sample_data):
        wire = dashboard_overview(sample_data, today=date(2024, 5, 4)).to_wire()
        assert {"totalAccidents", "registrationsToday", "accidentTrend"} <= set(wire)


class TestReportSummary:
    def test_may_summary(self, sample_data):
        s = build_report_summary(sample_data, MAY)
        assert (s.date_from, s.date_to) == ("2024-05-01", "2024-05-31")
        assert s.total_accidents == 2
        assert s.total_deaths == 1
        assert s.total_injuries == 2
        assert s.total_alcohol_accidents == 1
        assert s.total_damage == 15_000_000
        assert s.total_vehicle_registrations == 10
        assert s.total_events == 1
        assert s.event_goal_percentage == "20.0%"
        assert s.total_daily_tasks == 3
        assert {c.label: c.count for c in s.daily_task_categories} == {"Tuần tra xử lý": 2, "Tuyên truyền": 1}
        assert s.total_verification_requests == 2
        assert s.verification_results == {
            "Đã xác minh": 1, "Đang xác minh": 0, "Chưa xác minh": 1, "Không xác định": 0}
        assert s.total_advisory_documents == 1
        assert s.advisory_doc_types[0].label == "Kế hoạch"

    def test_period_outside_data(self, sample_data):
        s = build_report_summary(sample_data, period_range("yearly", "2021-01-01"))
        assert s.total_accidents == 0
        assert s.total_events == 0
        assert s.event_goal_percentage == "0%"

    def test_unbounded_period_takes_everything(self, sample_data):
        s = build_report_summary(sample_data, Period(None, None))
        assert s.total_accidents == 3
        assert s.date_from is None


class TestAccidentDetails:
    def test_kinds(self, sample_data):
        ids = lambda kind: [a.id for a in accident_details(sample_data, MAY, kind)]
        assert ids("total") == ["a1", "a2"]
        assert ids("alcohol") == ["a1"]
        assert ids("deaths") == ["a1"]
        assert ids("injuries") == ["a2"]
        assert ids("damage") == ["a1", "a2"]
