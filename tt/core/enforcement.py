"""Write-time enforcement of category caps against the entry store."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from tt.common.logger import log
from tt.core.caps import (
    DEFAULT_SETTINGS,
    capped_category_key,
    split_draft_for_cap_overflow,
    used_capped_ms_for_day,
)
from tt.core.config import Settings
from tt.core.models import TimeEntry, TimeEntryDraft
from tt.util.misc import from_ms, parse_iso_ms


def normalize_draft(draft: TimeEntryDraft) -> TimeEntryDraft:
    try:
        duration_ms = max(0, int(draft.duration_ms))
    except (TypeError, ValueError, OverflowError):
        duration_ms = 0
    return replace(draft, category=draft.category.strip(), duration_ms=duration_ms)


def enforce_capped_add(
    store,
    draft: TimeEntryDraft,
    settings: Settings = DEFAULT_SETTINGS,
    now: datetime | None = None,
) -> list[TimeEntry]:
    """Persists a draft, splitting off whatever would push a capped category over its ceiling.

    Reads the store, computes and writes without isolation; callers are
    expected to be the only writer.
    """
    draft = normalize_draft(draft)
    capped_key = capped_category_key(draft.category, settings)

    if capped_key is None:
        drafts = [draft]
    else:
        stopped_ms = parse_iso_ms(draft.stopped_at)
        day_reference = from_ms(stopped_ms) if stopped_ms is not None else (now or datetime.now().astimezone())
        used_ms = used_capped_ms_for_day(store.list(), capped_key, day_reference, settings)
        remaining_ms = max(0, settings.capped_limits_ms[capped_key] - used_ms)
        drafts = split_draft_for_cap_overflow(draft, remaining_ms, settings, now=now)
        if len(drafts) > 1 or drafts[0].category != draft.category:
            log.info(f"Category '{draft.category}' is capped with {remaining_ms}ms remaining today, "
                     f"overflow of {draft.duration_ms - remaining_ms}ms goes to '{settings.fallback_category}'")

    return [store.add(next_draft) for next_draft in drafts]


def enforce_capped_edit(
    store,
    entry_id: str,
    draft: TimeEntryDraft,
    settings: Settings = DEFAULT_SETTINGS,
    now: datetime | None = None,
) -> list[TimeEntry]:
    """Replaces an entry by deleting it and re-adding the draft through enforce_capped_add.

    Returns the full entry list after the edit.
    """
    store.delete(entry_id)
    enforce_capped_add(store, draft, settings, now=now)
    return store.list()
