"""
PoliceDeskVN – Reporting periods

Vietnamese commune police report on fixed administrative cycles:
  weekly   : Wednesday → Tuesday, the week closing on the next Tuesday
  monthly  : 16th → 15th, split on day 15/16 of the reference month
  quarterly / halfYearly / yearly : calendar aligned
  custom   : caller-supplied bounds
Malformed input is not reported; it just yields a period without bounds,
which the filters treat as "everything".
"""
from __future__ import annotations
import calendar
import enum
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union

DateLike = Union[date, str, None]

TUESDAY = 1


class PeriodKind(str, enum.Enum):
    WEEKLY      = "weekly"
    MONTHLY     = "monthly"
    QUARTERLY   = "quarterly"
    HALF_YEARLY = "halfYearly"
    YEARLY      = "yearly"
    CUSTOM      = "custom"
    ALL         = "all"

PERIOD_LABELS = {
    PeriodKind.WEEKLY:      "Hàng Tuần",
    PeriodKind.MONTHLY:     "Hàng Tháng",
    PeriodKind.QUARTERLY:   "Hàng Quý",
    PeriodKind.HALF_YEARLY: "6 Tháng",
    PeriodKind.YEARLY:      "Hàng Năm",
    PeriodKind.CUSTOM:      "Tùy Chọn",
    PeriodKind.ALL:         "Toàn bộ",
}

ALL_FROM = date(2020, 1, 1)
ALL_TO   = date(2030, 12, 31)


@dataclass(frozen=True)
class Period:
    start: Optional[date]
    end:   Optional[date]

    @property
    def bounded(self) -> bool:
        return self.start is not None and self.end is not None

    def as_dict(self) -> dict:
        return {
            "from": self.start.isoformat() if self.start else None,
            "to":   self.end.isoformat() if self.end else None,
        }


def parse_date(value: DateLike) -> Optional[date]:
    """Accept a date, a datetime or an ISO string (time part ignored)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def _add_months(d: date, months: int, day: int) -> date:
    idx = d.month - 1 + months
    year, month = d.year + idx // 12, idx % 12 + 1
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


def week_range(ref: date) -> Period:
    end = ref + timedelta(days=(TUESDAY - ref.weekday()) % 7)
    return Period(end - timedelta(days=6), end)

def month_range(ref: date) -> Period:
    if ref.day <= 15:
        return Period(_add_months(ref, -1, 16), ref.replace(day=15))
    return Period(ref.replace(day=16), _add_months(ref, 1, 15))

def quarter_range(ref: date) -> Period:
    first = (ref.month - 1) // 3 * 3 + 1
    last = first + 2
    return Period(date(ref.year, first, 1),
                  date(ref.year, last, calendar.monthrange(ref.year, last)[1]))

def half_year_range(ref: date) -> Period:
    if ref.month <= 6:
        return Period(date(ref.year, 1, 1), date(ref.year, 6, 30))
    return Period(date(ref.year, 7, 1), date(ref.year, 12, 31))

def year_range(ref: date) -> Period:
    return Period(date(ref.year, 1, 1), date(ref.year, 12, 31))


_CALCULATORS = {
    PeriodKind.WEEKLY:      week_range,
    PeriodKind.MONTHLY:     month_range,
    PeriodKind.QUARTERLY:   quarter_range,
    PeriodKind.HALF_YEARLY: half_year_range,
    PeriodKind.YEARLY:      year_range,
}


def period_range(
    kind: Union[PeriodKind, str],
    reference: DateLike = None,
    custom_from: DateLike = None,
    custom_to: DateLike = None,
    today: Optional[date] = None,
) -> Period:
    """Inclusive [from, to] bounds of the reporting period containing `reference`."""
    try:
        kind = PeriodKind(kind)
    except ValueError:
        kind = PeriodKind.ALL

    if kind == PeriodKind.CUSTOM:
        return Period(parse_date(custom_from), parse_date(custom_to))
    if kind == PeriodKind.ALL:
        return Period(ALL_FROM, ALL_TO)

    if reference is None or reference == "":
        ref = today or date.today()
    else:
        ref = parse_date(reference)
        if ref is None:
            return Period(None, None)
    return _CALCULATORS[kind](ref)


# ── Filters ───────────────────────────────────────────────────────────────
def in_period(value: DateLike, period: Period) -> bool:
    if not period.bounded:
        return True
    d = parse_date(value)
    return d is not None and period.start <= d <= period.end

def overlaps(start: DateLike, end: DateLike, period: Period) -> bool:
    """Event rule: starts inside, ends inside, or spans the whole period."""
    if not period.bounded:
        return True
    s, e = parse_date(start), parse_date(end)
    if s is not None and period.start <= s <= period.end:
        return True
    if e is not None and period.start <= e <= period.end:
        return True
    return s is not None and e is not None and s <= period.start and e >= period.end
