from __future__ import annotations

import calendar
import logging
from bisect import bisect_left, bisect_right
from collections.abc import Iterator
from datetime import date, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo

from ._ast import (
    FieldSpec,
    LastBusinessDay,
    LastDay,
    LastWeekdayOf,
    NearestWeekday,
    NthWeekdayOf,
    StepRange,
    SubPattern,
)
from ._error import NoMatchError

logger = logging.getLogger(__name__)

# =============================================================================
# Search Limits
# =============================================================================
# DEFAULT_SEARCH_YEARS (10): how many distinct years one sub-pattern search
# may visit before the sub-pattern is considered unable to match. Every
# carry into a new year counts once; jumps straight to a far year allowed by
# the year column (e.g. "2090") count once too. Ten years cover the longest
# leap-year gap (8 years around 2100) with margin.
#
# MAX_DST_RESOLVE (64): how many times a wall-clock candidate may be pushed
# forward because it is not a usable instant (inside a DST gap, or already
# consumed during a DST fold) before the search gives up.
# =============================================================================

# =============================================================================
# Search Algorithm
# =============================================================================
# Searches run on wall-clock fields (year, month, day, hour, minute, second)
# like an odometer: each field is moved to its smallest allowed value at or
# above the cursor. Moving a field up resets everything below it to the
# bottom of its range; running out of values in a field carries one unit into
# the next more significant field and restarts the pass from the year.
#
# Days are special: the allowed days of a month are derived from the real
# calendar (month length, weekday of each date, L/W/# tokens), and the
# day-of-month and day-of-week columns are OR-ed when both are restricted.
#
# The reverse search (previous_before) is the mirror image using floors.
# =============================================================================

# =============================================================================
# DST (Daylight Saving Time) Handling
# =============================================================================
# 1. DST Gap (Spring Forward): wall times inside the gap do not exist. The
#    search resumes from the first wall time after the gap.
# 2. DST Fold (Fall Back): a wall time occurring twice resolves to its first
#    occurrence (fold=0), unless that one is not after the reference; then the
#    second occurrence (fold=1) is used.
# Instants are always compared through their POSIX timestamps because
# aware datetimes sharing a tzinfo compare by wall time and ignore `fold`.
# =============================================================================

DEFAULT_SEARCH_YEARS = 10
MAX_DST_RESOLVE = 64

Zone = str | tzinfo | None

# year, month, day, hour, minute, second
_Wall = tuple[int, int, int, int, int, int]

_ONE_SECOND = timedelta(seconds=1)


# --- Timezone resolution ---


def _resolve_tz(zone: Zone, dt: datetime) -> tzinfo:
    """An explicit zone wins, then the instant's own tzinfo, then UTC."""
    if isinstance(zone, str):
        return ZoneInfo(zone)
    if zone is not None:
        return zone
    if dt.tzinfo is not None:
        return dt.tzinfo
    return ZoneInfo("UTC")


def _localize(dt: datetime, tz: tzinfo) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def _wall_of(dt: datetime) -> _Wall:
    return (dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second)


def _round_trip(naive: datetime, tz: tzinfo, fold: int) -> datetime:
    aware = naive.replace(tzinfo=tz, fold=fold)
    return datetime.fromtimestamp(aware.timestamp(), tz=tz)


# --- Calendar helpers ---


def _cron_weekday(d: date) -> int:
    """Cron weekday number: Sunday=0, Monday=1, ..., Saturday=6."""
    return d.isoweekday() % 7


def _first_hit(first_weekday: int, weekday: int) -> int:
    """Day of month of the first `weekday`, given the weekday of the 1st."""
    return 1 + (weekday - first_weekday) % 7


def _last_business_day(year: int, month: int, last: int) -> int:
    dow = date(year, month, last).isoweekday()
    if dow == 6:
        return last - 1
    if dow == 7:
        return last - 2
    return last


def _nearest_weekday(year: int, month: int, target_day: int, last: int) -> int | None:
    """Closest Monday-Friday to `target_day` without leaving the month."""
    if target_day > last:
        return None

    dow = date(year, month, target_day).isoweekday()
    if dow <= 5:
        return target_day

    if dow == 6:
        # Saturday: Friday before, or Monday after when the 1st is a Saturday
        return target_day + 2 if target_day == 1 else target_day - 1

    # Sunday: Monday after, or Friday before when it is the last day
    return target_day - 2 if target_day >= last else target_day + 1


def _month_days(spec: FieldSpec, year: int, month: int, last: int) -> set[int]:
    days: set[int] = set()
    for term in spec.terms:
        match term:
            case StepRange(start=start, end=end, step=step):
                days.update(range(start, min(end, last) + 1, step))
            case LastDay(offset=offset):
                if last - offset >= 1:
                    days.add(last - offset)
            case LastBusinessDay():
                days.add(_last_business_day(year, month, last))
            case NearestWeekday(day=target_day):
                nearest = _nearest_weekday(year, month, target_day, last)
                if nearest is not None:
                    days.add(nearest)
    return days


def _weekday_days(spec: FieldSpec, first_weekday: int, last: int) -> set[int]:
    days: set[int] = set()
    for weekday in spec.values():
        days.update(range(_first_hit(first_weekday, weekday), last + 1, 7))
    for term in spec.calendar_terms:
        match term:
            case LastWeekdayOf(weekday=weekday):
                first = _first_hit(first_weekday, weekday)
                days.add(first + ((last - first) // 7) * 7)
            case NthWeekdayOf(weekday=weekday, n=n):
                nth = _first_hit(first_weekday, weekday) + (n - 1) * 7
                if nth <= last:
                    days.add(nth)
    return days


def allowed_days(sub: SubPattern, year: int, month: int) -> list[int]:
    """Sorted days of `year`-`month` accepted by the sub-pattern's day columns.

    Day-of-month and day-of-week are OR-ed when both are restricted; a
    wildcard column contributes nothing unless both are wildcards.
    """
    first_monday_based, last = calendar.monthrange(year, month)
    dom, dow = sub.day_of_month, sub.day_of_week

    if dom.is_wildcard and dow.is_wildcard:
        return list(range(1, last + 1))

    days: set[int] = set()
    if not dom.is_wildcard:
        days |= _month_days(dom, year, month, last)
    if not dow.is_wildcard:
        days |= _weekday_days(dow, (first_monday_based + 1) % 7, last)
    return sorted(days)


# --- Matching ---


def _matches_wall(sub: SubPattern, wall: _Wall, include_seconds: bool | None) -> bool:
    year, month, day, hour, minute, second = wall
    honor_seconds = sub.has_seconds if include_seconds is None else include_seconds
    if honor_seconds and not sub.second.matches(second):
        return False
    return (
        sub.minute.matches(minute)
        and sub.hour.matches(hour)
        and sub.month.matches(month)
        and sub.year.matches(year)
        and day in allowed_days(sub, year, month)
    )


def matches(
    subpatterns: tuple[SubPattern, ...],
    dt: datetime,
    zone: Zone = None,
    include_seconds: bool | None = None,
) -> bool:
    tz = _resolve_tz(zone, dt)
    wall = _wall_of(_localize(dt, tz))
    return any(_matches_wall(sub, wall, include_seconds) for sub in subpatterns)


# --- Wall-clock search ---


def _next_wall(sub: SubPattern, start: _Wall, search_years: int) -> _Wall | None:
    year, month, day, hour, minute, second = start
    visited_year: int | None = None
    years_visited = 0

    while True:
        y = sub.year.ceiling(year)
        if y is None:
            return None
        if y != year:
            year, month, day, hour, minute, second = y, 1, 1, 0, 0, 0
        if year != visited_year:
            visited_year = year
            years_visited += 1
            if years_visited > search_years:
                logger.debug("search gave up after visiting %d year(s)", search_years)
                return None

        m = sub.month.ceiling(month)
        if m is None:
            year, month, day, hour, minute, second = year + 1, 1, 1, 0, 0, 0
            continue
        if m != month:
            month, day, hour, minute, second = m, 1, 0, 0, 0

        days = allowed_days(sub, year, month)
        i = bisect_left(days, day)
        if i == len(days):
            month, day, hour, minute, second = month + 1, 1, 0, 0, 0
            if month > 12:
                year, month = year + 1, 1
            continue
        if days[i] != day:
            day, hour, minute, second = days[i], 0, 0, 0

        h = sub.hour.ceiling(hour)
        if h is None:
            day, hour, minute, second = day + 1, 0, 0, 0
            continue
        if h != hour:
            hour, minute, second = h, 0, 0

        mi = sub.minute.ceiling(minute)
        if mi is None:
            hour, minute, second = hour + 1, 0, 0
            continue
        if mi != minute:
            minute, second = mi, 0

        s = sub.second.ceiling(second)
        if s is None:
            minute, second = minute + 1, 0
            continue

        return (year, month, day, hour, minute, s)


def _previous_wall(sub: SubPattern, start: _Wall, search_years: int) -> _Wall | None:
    year, month, day, hour, minute, second = start
    visited_year: int | None = None
    years_visited = 0

    while True:
        y = sub.year.floor(year)
        if y is None:
            return None
        if y != year:
            year, month, day, hour, minute, second = y, 12, 31, 23, 59, 59
        if year != visited_year:
            visited_year = year
            years_visited += 1
            if years_visited > search_years:
                logger.debug("reverse search gave up after visiting %d year(s)", search_years)
                return None

        m = sub.month.floor(month)
        if m is None:
            year, month, day, hour, minute, second = year - 1, 12, 31, 23, 59, 59
            continue
        if m != month:
            month, day, hour, minute, second = m, 31, 23, 59, 59

        days = allowed_days(sub, year, month)
        i = bisect_right(days, day) - 1
        if i < 0:
            month, day, hour, minute, second = month - 1, 31, 23, 59, 59
            if month < 1:
                year, month = year - 1, 12
            continue
        if days[i] != day:
            day, hour, minute, second = days[i], 23, 59, 59

        h = sub.hour.floor(hour)
        if h is None:
            day, hour, minute, second = day - 1, 23, 59, 59
            continue
        if h != hour:
            hour, minute, second = h, 59, 59

        mi = sub.minute.floor(minute)
        if mi is None:
            hour, minute, second = hour - 1, 59, 59
            continue
        if mi != minute:
            minute, second = mi, 59

        s = sub.second.floor(second)
        if s is None:
            minute, second = minute - 1, 59
            continue

        return (year, month, day, hour, minute, s)


# --- Wall-clock to instant ---


def _next_instant(
    sub: SubPattern,
    cursor: datetime,
    now_ts: float,
    tz: tzinfo,
    search_years: int,
) -> datetime | None:
    for _ in range(MAX_DST_RESOLVE):
        wall = _next_wall(sub, _wall_of(cursor), search_years)
        if wall is None:
            return None
        naive = datetime(*wall)

        earliest = _round_trip(naive, tz, 0)
        if earliest.replace(tzinfo=None) != naive:
            logger.debug("%s falls in a DST gap in %s, skipping ahead", naive, tz)
            cursor = earliest.replace(tzinfo=None)
            continue
        if earliest.timestamp() > now_ts:
            return earliest

        latest = _round_trip(naive, tz, 1)
        if latest.timestamp() > now_ts:
            return latest
        cursor = naive + _ONE_SECOND

    return None


def _previous_instant(
    sub: SubPattern,
    cursor: datetime,
    now_ts: float,
    tz: tzinfo,
    search_years: int,
) -> datetime | None:
    for _ in range(MAX_DST_RESOLVE):
        wall = _previous_wall(sub, _wall_of(cursor), search_years)
        if wall is None:
            return None
        naive = datetime(*wall)

        latest = _round_trip(naive, tz, 1)
        if latest.replace(tzinfo=None) != naive:
            logger.debug("%s falls in a DST gap in %s, skipping back", naive, tz)
            cursor = latest.replace(tzinfo=None)
            continue
        if latest.timestamp() < now_ts:
            return latest

        earliest = _round_trip(naive, tz, 0)
        if earliest.timestamp() < now_ts:
            return earliest
        cursor = naive - _ONE_SECOND

    return None


# --- Public API ---


def next_after(
    subpatterns: tuple[SubPattern, ...],
    now: datetime,
    zone: Zone = None,
    search_years: int = DEFAULT_SEARCH_YEARS,
) -> datetime:
    tz = _resolve_tz(zone, now)
    local = _localize(now, tz)
    now_ts = local.timestamp()

    # At least one whole second after `now`
    cursor = local.replace(tzinfo=None, microsecond=0) + _ONE_SECOND
    if local.microsecond:
        cursor += _ONE_SECOND

    best: datetime | None = None
    for sub in subpatterns:
        candidate = _next_instant(sub, cursor, now_ts, tz, search_years)
        if candidate is not None and (best is None or candidate.timestamp() < best.timestamp()):
            best = candidate

    if best is None:
        raise NoMatchError(
            f"no matching time after {local.isoformat()} within {search_years} year(s)"
        )
    return best


def previous_before(
    subpatterns: tuple[SubPattern, ...],
    now: datetime,
    zone: Zone = None,
    search_years: int = DEFAULT_SEARCH_YEARS,
) -> datetime:
    tz = _resolve_tz(zone, now)
    local = _localize(now, tz)
    now_ts = local.timestamp()

    cursor = local.replace(tzinfo=None, microsecond=0)
    if not local.microsecond:
        cursor -= _ONE_SECOND

    best: datetime | None = None
    for sub in subpatterns:
        candidate = _previous_instant(sub, cursor, now_ts, tz, search_years)
        if candidate is not None and (best is None or candidate.timestamp() > best.timestamp()):
            best = candidate

    if best is None:
        raise NoMatchError(
            f"no matching time before {local.isoformat()} within {search_years} year(s)"
        )
    return best


def next_n(
    subpatterns: tuple[SubPattern, ...],
    now: datetime,
    n: int,
    zone: Zone = None,
    search_years: int = DEFAULT_SEARCH_YEARS,
) -> list[datetime]:
    results: list[datetime] = []
    current = now
    for _ in range(n):
        try:
            nxt = next_after(subpatterns, current, zone, search_years)
        except NoMatchError:
            if not results:
                raise
            break
        results.append(nxt)
        current = nxt
    return results


def occurrences(
    subpatterns: tuple[SubPattern, ...],
    start: datetime,
    zone: Zone = None,
    search_years: int = DEFAULT_SEARCH_YEARS,
) -> Iterator[datetime]:
    current = start
    found_any = False
    while True:
        try:
            nxt = next_after(subpatterns, current, zone, search_years)
        except NoMatchError:
            if not found_any:
                raise
            return
        found_any = True
        yield nxt
        current = nxt


def between(
    subpatterns: tuple[SubPattern, ...],
    start: datetime,
    end: datetime,
    limit: int | None = None,
    zone: Zone = None,
    search_years: int = DEFAULT_SEARCH_YEARS,
) -> Iterator[datetime]:
    if limit is not None and limit <= 0:
        return
    end_ts = _localize(end, _resolve_tz(zone, start)).timestamp()

    count = 0
    for occurrence in occurrences(subpatterns, start, zone, search_years):
        if occurrence.timestamp() > end_ts:
            return
        yield occurrence
        count += 1
        if limit is not None and count >= limit:
            return
