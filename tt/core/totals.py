from __future__ import annotations

from datetime import datetime
from typing import Sequence

from tt.core.calendar import logical_date, logical_day_end, logical_day_start
from tt.core.caps import (
    DEFAULT_SETTINGS,
    UNCATEGORIZED,
    apply_caps_to_category_totals,
    to_aggregation_category,
)
from tt.core.config import Settings
from tt.core.models import CategoryTotal, DaySummary, TimeEntry
from tt.util.misc import from_ms, parse_iso_ms, to_ms


def _aggregate(entries, settings):
    raw = [
        CategoryTotal(
            category=to_aggregation_category(entry.category, settings) or UNCATEGORIZED,
            duration_ms=max(0, entry.duration_ms),
        )
        for entry in entries
    ]
    totals = apply_caps_to_category_totals(raw, settings)
    return totals, sum(total.duration_ms for total in totals)


def compute_day_totals(
    entries: Sequence[TimeEntry],
    day_reference: datetime,
    settings: Settings = DEFAULT_SETTINGS,
) -> tuple[list[CategoryTotal], int]:
    """Capped per-category totals for the logical day containing ``day_reference``."""
    day_start = to_ms(logical_day_start(day_reference, settings.day_boundary_hour))
    day_end = to_ms(logical_day_end(day_reference, settings.day_boundary_hour))
    in_day = []
    for entry in entries:
        stopped_at = parse_iso_ms(entry.stopped_at)
        if stopped_at is None or not day_start <= stopped_at < day_end:
            continue
        in_day.append(entry)
    return _aggregate(in_day, settings)


def build_history(entries: Sequence[TimeEntry], settings: Settings = DEFAULT_SETTINGS) -> list[DaySummary]:
    """One summary per logical day that has entries, newest day first."""
    days: dict = {}
    for entry in entries:
        stopped_at = parse_iso_ms(entry.stopped_at)
        if stopped_at is None:
            continue
        day = logical_date(from_ms(stopped_at), settings.day_boundary_hour)
        days.setdefault(day, []).append(entry)

    history = []
    for day in sorted(days, reverse=True):
        totals, total_ms = _aggregate(days[day], settings)
        history.append(DaySummary(day=day.isoformat(), total_ms=total_ms, categories=totals))
    return history
