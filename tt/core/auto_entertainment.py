"""Keeps a single synthetic entry covering the time nobody logged since the daily baseline.

The synthetic entry is recomputed from scratch on every call and upserted, so
its value depends only on the current entries and never on how many times
reconciliation already ran.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Sequence

from tt.common.logger import log
from tt.core.calendar import logical_date, logical_day_end, logical_day_start
from tt.core.caps import DEFAULT_SETTINGS, is_auto_category
from tt.core.config import Settings
from tt.core.models import TimeEntry, TimeEntryDraft
from tt.util.misc import iso_from_ms, parse_iso_ms, to_ms


def overlap_ms(start_a: int, end_a: int, start_b: int, end_b: int) -> int:
    return max(0, min(end_a, end_b) - max(start_a, start_b))


def baseline_start(now: datetime, settings: Settings = DEFAULT_SETTINGS) -> datetime:
    day = logical_date(now, settings.day_boundary_hour)
    return datetime(day.year, day.month, day.day,
                    settings.auto_baseline_hour, settings.auto_baseline_minute).astimezone()


def compute_unlogged_ms(entries: Sequence[TimeEntry], now: datetime, settings: Settings = DEFAULT_SETTINGS) -> int:
    window_start = max(to_ms(logical_day_start(now, settings.day_boundary_hour)),
                       to_ms(baseline_start(now, settings)))
    window_end = to_ms(now)
    if window_end <= window_start:
        return 0

    logged_ms = 0
    for entry in entries:
        if is_auto_category(entry.category, settings):
            continue
        started_at = parse_iso_ms(entry.started_at)
        stopped_at = parse_iso_ms(entry.stopped_at)
        if started_at is None or stopped_at is None or stopped_at <= started_at:
            continue
        logged_ms += overlap_ms(started_at, stopped_at, window_start, window_end)

    return max(0, (window_end - window_start) - logged_ms)


def todays_auto_entries(entries: Sequence[TimeEntry], now: datetime, settings: Settings = DEFAULT_SETTINGS) -> list[TimeEntry]:
    """Synthetic entries stopping inside the current logical day, latest stop first."""
    day_start = to_ms(logical_day_start(now, settings.day_boundary_hour))
    day_end = to_ms(logical_day_end(now, settings.day_boundary_hour))
    found = []
    for entry in entries:
        if not is_auto_category(entry.category, settings):
            continue
        stopped_at = parse_iso_ms(entry.stopped_at)
        if stopped_at is None or not day_start <= stopped_at < day_end:
            continue
        found.append((stopped_at, entry))
    found.sort(key=lambda pair: pair[0], reverse=True)
    return [entry for _, entry in found]


def reconcile_auto_entertainment(
    store,
    entries: Sequence[TimeEntry],
    now: datetime,
    settings: Settings = DEFAULT_SETTINGS,
) -> TimeEntry | None:
    """Upserts the synthetic entry for the logical day of ``now``.

    Returns the synthetic entry as it stands afterwards, or None when there is
    no unlogged time and every synthetic entry for the day was removed.
    """
    unlogged_ms = compute_unlogged_ms(entries, now, settings)
    autos = todays_auto_entries(entries, now, settings)

    if unlogged_ms <= 0:
        for entry in autos:
            store.delete(entry.id)
        if autos:
            log.info(f"No unlogged time left, removed {len(autos)} auto entries")
        return None

    now_ms = to_ms(now)
    target = TimeEntryDraft(
        started_at=iso_from_ms(now_ms - unlogged_ms),
        stopped_at=iso_from_ms(now_ms),
        duration_ms=unlogged_ms,
        category=settings.auto_category,
    )

    if not autos:
        result = store.add(target)
        log.info(f"Created auto entry {result.id} for {unlogged_ms}ms of unlogged time")
    else:
        primary = autos[0]
        result = replace(primary,
                         started_at=target.started_at,
                         stopped_at=target.stopped_at,
                         duration_ms=target.duration_ms,
                         category=target.category)
        if result != primary:
            store.update(result)
            log.debug(f"Refreshed auto entry {primary.id} to {unlogged_ms}ms")

    for duplicate in autos[1:]:
        store.delete(duplicate.id)
        log.info(f"Removed duplicate auto entry {duplicate.id}")
    return result
