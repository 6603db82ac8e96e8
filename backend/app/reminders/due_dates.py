"""Due-date calculator: next occurrence of a recurring bill.

Pure and deterministic: every function takes the reference instant as an
argument and performs no I/O. All "day" arithmetic happens on the bill's
local calendar (``BillState.timezone``); results are local midnight of the
due date as timezone-aware datetimes.

Cycle rules:
  weekly     due_day 0-6 (0=Sunday); next matching weekday strictly after today
  biweekly   start_date + 14·k days, first one strictly after today
  monthly    day min(due_day, month length); next month once today reaches it
  quarterly  same clamping on quarter-start months (Jan, Apr, Jul, Oct)
  yearly     month of start_date, day min(due_day, month length)
  custom     start_date + custom_interval_days·k; monthly when no interval set
"""
import calendar
import logging
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import settings
from app.reminders.bill import (
    CYCLE_BIWEEKLY,
    CYCLE_CUSTOM,
    CYCLE_MONTHLY,
    CYCLE_QUARTERLY,
    CYCLE_WEEKLY,
    CYCLE_YEARLY,
    BillState,
)

logger = logging.getLogger(__name__)

BIWEEKLY_INTERVAL_DAYS = 14
QUARTER_START_MONTHS = (1, 4, 7, 10)


# ─── Timezone helpers ───

@lru_cache(maxsize=256)
def resolve_timezone(name: str | None) -> ZoneInfo:
    """Return the ZoneInfo for ``name``; unknown zones fall back to the default, then UTC."""
    for candidate in (name, settings.DEFAULT_TIMEZONE):
        candidate = (candidate or "").strip()
        if not candidate:
            continue
        try:
            return ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r; falling back", candidate)
    return ZoneInfo("UTC")


def as_aware(instant: datetime) -> datetime:
    # Naive values coming back from the store are UTC
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant


def local_date(instant: datetime, tz: ZoneInfo) -> date:
    return as_aware(instant).astimezone(tz).date()


def local_midnight(day: date, tz: ZoneInfo) -> datetime:
    """Absolute instant of 00:00 on ``day`` in ``tz``.

    Round-tripping through UTC normalises wall times that fall inside a DST gap.
    """
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc).astimezone(tz)


def date_key(instant: datetime, tz: ZoneInfo) -> str:
    """Calendar-date key (YYYY-MM-DD) of ``instant`` on the local calendar."""
    return local_date(instant, tz).isoformat()


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _add_months(year: int, month: int, months: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def _clamped(year: int, month: int, due_day: int) -> date:
    return date(year, month, min(max(due_day, 1), last_day_of_month(year, month)))


# ─── Per-cycle rules (local calendar dates in, local date out) ───

def _weekly(today: date, due_day: int) -> date:
    current_weekday = (today.weekday() + 1) % 7  # Python Monday=0 → Sunday=0
    days_until = due_day - current_weekday
    if days_until <= 0:
        days_until += 7
    return today + timedelta(days=days_until)


def _every_n_days(today: date, start: date, interval: int) -> date:
    days_since_start = (today - start).days
    k = max(days_since_start // interval + 1, 0)
    return start + timedelta(days=interval * k)


def _monthly(today: date, due_day: int) -> date:
    this_month = _clamped(today.year, today.month, due_day)
    if today.day >= this_month.day:
        year, month = _add_months(today.year, today.month, 1)
        return _clamped(year, month, due_day)
    return this_month


def _quarterly(today: date, due_day: int) -> date:
    quarter_month = QUARTER_START_MONTHS[(today.month - 1) // 3]
    if today.month == quarter_month:
        this_quarter = _clamped(today.year, quarter_month, due_day)
        if today.day < this_quarter.day:
            return this_quarter
    year, month = _add_months(today.year, quarter_month, 3)
    return _clamped(year, month, due_day)


def _yearly(today: date, due_day: int, anchor_month: int) -> date:
    this_year = _clamped(today.year, anchor_month, due_day)
    if (today.month, today.day) >= (this_year.month, this_year.day):
        return _clamped(today.year + 1, anchor_month, due_day)
    return this_year


def _one_month_overflow(today: date) -> date:
    # Unclamped: Jan 31 → Mar 3 (or Mar 2 in leap years)
    year, month = _add_months(today.year, today.month, 1)
    return date(year, month, 1) + timedelta(days=today.day - 1)


def _next_local_date(bill: BillState, today: date, tz: ZoneInfo) -> date:
    cycle = bill.cycle

    if cycle == CYCLE_WEEKLY:
        return _weekly(today, bill.due_day)

    if cycle == CYCLE_BIWEEKLY:
        return _every_n_days(today, local_date(bill.start_date, tz), BIWEEKLY_INTERVAL_DAYS)

    if cycle == CYCLE_MONTHLY:
        return _monthly(today, bill.due_day)

    if cycle == CYCLE_QUARTERLY:
        return _quarterly(today, bill.due_day)

    if cycle == CYCLE_YEARLY:
        return _yearly(today, bill.due_day, local_date(bill.start_date, tz).month)

    if cycle == CYCLE_CUSTOM:
        if not bill.custom_interval_days:
            logger.warning("Bill %s: custom cycle without custom_interval_days; using monthly", bill.id)
            return _monthly(today, bill.due_day)
        return _every_n_days(today, local_date(bill.start_date, tz), bill.custom_interval_days)

    logger.warning("Bill %s: unrecognised cycle %r; advancing one calendar month", bill.id, cycle)
    return _one_month_overflow(today)


# ─── Public API ───

def next_due_date(bill: BillState, from_instant: datetime) -> datetime:
    """Next occurrence after ``from_instant``'s local day, as local midnight.

    On the due day itself this reports the following cycle's date; use
    :func:`current_due_date` for the "due today counts" view.
    """
    tz = resolve_timezone(bill.timezone)
    return local_midnight(_next_local_date(bill, local_date(from_instant, tz), tz), tz)


def current_due_date(bill: BillState, now: datetime) -> datetime:
    """Earliest occurrence on or after ``now``'s local day."""
    tz = resolve_timezone(bill.timezone)
    yesterday = local_date(now, tz) - timedelta(days=1)
    return local_midnight(_next_local_date(bill, yesterday, tz), tz)


def upcoming_due_dates(bill: BillState, count: int, now: datetime | None = None) -> list[datetime]:
    """The next ``count`` occurrences after ``now`` (default: current time).

    Each lookup starts from the previous occurrence itself rather than the
    day after it, since :func:`next_due_date` is already strictly after its
    input; a one-day custom interval would otherwise lose every other date.
    """
    reference = now or datetime.now(timezone.utc)
    dates: list[datetime] = []
    for _ in range(count):
        due = next_due_date(bill, reference)
        dates.append(due)
        reference = due
    return dates
