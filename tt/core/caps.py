"""Per-logical-day ceilings on designated categories.

Overflow is never rejected: whatever exceeds a ceiling is reassigned to the
fallback category, either by splitting a draft before it is written or by
re-aggregating totals when they are displayed.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Iterable

from tt.core.calendar import logical_day_end, logical_day_start
from tt.core.config import Settings
from tt.core.models import CategoryTotal, TimeEntry, TimeEntryDraft
from tt.common.logger import log
from tt.util.misc import iso_from_ms, parse_iso_ms, to_ms

UNCATEGORIZED = "Uncategorized"

DEFAULT_SETTINGS = Settings()


def normalize_category_key(category: str) -> str:
    return category.strip().lower()


def is_auto_category(category: str, settings: Settings = DEFAULT_SETTINGS) -> bool:
    return normalize_category_key(category) == normalize_category_key(settings.auto_category)


def to_aggregation_category(category: str, settings: Settings = DEFAULT_SETTINGS) -> str:
    """Display name a category is totalled under: auto entries fold into the fallback."""
    trimmed = category.strip()
    if is_auto_category(trimmed, settings):
        return settings.fallback_category
    return trimmed


def capped_category_key(category: str, settings: Settings = DEFAULT_SETTINGS) -> str | None:
    key = normalize_category_key(to_aggregation_category(category, settings))
    if key and key in settings.capped_limits_ms:
        return key
    return None


def used_capped_ms_for_day(
    entries: Iterable[TimeEntry],
    capped_key: str,
    day_reference: datetime,
    settings: Settings = DEFAULT_SETTINGS,
) -> int:
    day_start = to_ms(logical_day_start(day_reference, settings.day_boundary_hour))
    day_end = to_ms(logical_day_end(day_reference, settings.day_boundary_hour))
    used_ms = 0
    for entry in entries:
        stopped_at = parse_iso_ms(entry.stopped_at)
        if stopped_at is None or stopped_at < day_start or stopped_at >= day_end:
            continue
        if normalize_category_key(to_aggregation_category(entry.category, settings)) != capped_key:
            continue
        used_ms += max(0, entry.duration_ms)
    return used_ms


def split_draft_for_cap_overflow(
    draft: TimeEntryDraft,
    allowed_ms: int,
    settings: Settings = DEFAULT_SETTINGS,
    now: datetime | None = None,
) -> list[TimeEntryDraft]:
    """Splits a draft into the part that fits under the cap and the overflow.

    The overflow keeps the draft's time window but moves to the fallback
    category. When both parts exist they are contiguous: the overflow starts
    exactly where the capped part stops.
    """
    duration_ms = max(0, int(draft.duration_ms))
    if duration_ms <= allowed_ms:
        return [draft]

    if allowed_ms <= 0:
        return [replace(draft, category=settings.fallback_category)]

    stop_ms = parse_iso_ms(draft.stopped_at)
    if stop_ms is None:
        stop_ms = to_ms(now or datetime.now())
    start_ms = parse_iso_ms(draft.started_at)
    if start_ms is None or start_ms > stop_ms:
        start_ms = stop_ms - duration_ms

    allowed_ms = int(allowed_ms)
    split_ms = min(start_ms + allowed_ms, stop_ms)
    split_iso = iso_from_ms(split_ms)
    return [
        TimeEntryDraft(
            started_at=iso_from_ms(start_ms),
            stopped_at=split_iso,
            duration_ms=allowed_ms,
            category=draft.category,
        ),
        TimeEntryDraft(
            started_at=split_iso,
            stopped_at=iso_from_ms(stop_ms),
            duration_ms=duration_ms - allowed_ms,
            category=settings.fallback_category,
        ),
    ]


def apply_caps_to_category_totals(
    totals: Iterable[CategoryTotal],
    settings: Settings = DEFAULT_SETTINGS,
) -> list[CategoryTotal]:
    """Re-aggregates totals by normalized category and clamps capped ones.

    The result does not depend on input order: the display name for a key is
    the lexically smallest spelling seen, and ties in duration sort by key.
    """
    aggregate: dict[str, list] = {}
    for total in totals:
        display = to_aggregation_category(total.category, settings) or UNCATEGORIZED
        key = normalize_category_key(display)
        duration_ms = max(0, int(total.duration_ms))
        row = aggregate.get(key)
        if row is None:
            aggregate[key] = [display, duration_ms]
            continue
        row[0] = min(row[0], display)
        row[1] += duration_ms

    overflow_ms = 0
    for key, limit_ms in settings.capped_limits_ms.items():
        row = aggregate.get(key)
        if row is None or row[1] <= limit_ms:
            continue
        overflow_ms += row[1] - limit_ms
        row[1] = limit_ms

    fallback_key = normalize_category_key(settings.fallback_category)
    if fallback_key in aggregate:
        # Spelling of the fallback is fixed by configuration, not by whichever entry came first.
        aggregate[fallback_key][0] = settings.fallback_category
    if overflow_ms > 0:
        log.debug(f"Clamped capped categories, moving {overflow_ms}ms to '{settings.fallback_category}'")
        row = aggregate.setdefault(fallback_key, [settings.fallback_category, 0])
        row[1] += overflow_ms

    ordered = sorted(aggregate.items(), key=lambda item: (-item[1][1], item[0]))
    return [CategoryTotal(category=display, duration_ms=duration_ms) for _, (display, duration_ms) in ordered]
