import math
import time
from dataclasses import replace
from datetime import datetime
from tt.common.logger import log
from tt.core.auto_entertainment import reconcile_auto_entertainment
from tt.core.config import load_settings
from tt.core.enforcement import enforce_capped_add, enforce_capped_edit
from tt.core.models import TimeEntryDraft
from tt.core.store import EntryStore
from tt.core.timer_state import DurableTimer
from tt.core.totals import build_history, compute_day_totals
from tt.util.misc import iso_from_ms, to_ms

MINUTE_MS = 60 * 1000
# No single entry can outlast a logical day.
MAX_ENTRY_MINUTES = 24 * 60


# Parses a user supplied minute count. Returns None for anything that isn't a positive number of minutes no longer
# than a day.
def parse_minutes(text):
    try:
        minutes = float(str(text).strip())
    except ValueError:
        return None
    if not math.isfinite(minutes) or minutes <= 0 or minutes > MAX_ENTRY_MINUTES:
        return None
    return minutes


# Headless controller wiring the stopwatch, the cap ledger, the auto entry reconciler and the entry store. Whatever
# drives the tick loop gets a reference to self.timer.
class Tracker:

    def __init__(self, store=None, settings=None, timer=None, wall=time.time):
        self.settings = settings or load_settings()
        self.store = store or EntryStore()
        self._wall = wall
        self.timer = timer or DurableTimer(wall=wall)
        self.pending_draft = None

    def now(self):
        return datetime.fromtimestamp(self._wall()).astimezone()

    # Restores any persisted stopwatch session. Called once on launch.
    def init(self):
        return self.timer.restore()

    #region === Stopwatch ===

    def start(self):
        return self.timer.start()

    def pause(self):
        return self.timer.pause()

    def resume(self):
        return self.timer.resume()

    def reset(self):
        self.pending_draft = None
        self.timer.reset()

    # Stops the stopwatch and holds the draft until it gets a category.
    def stop(self):
        draft = self.timer.stop()
        if draft is not None:
            self.pending_draft = draft
        return draft

    def submit_category(self, category):
        if self.pending_draft is None:
            log.debug("No pending draft to categorize")
            return []
        category = (category or "").strip()
        if not category:
            log.debug("Rejected empty category for pending draft")
            return []
        saved = enforce_capped_add(self.store, replace(self.pending_draft, category=category), self.settings, now=self.now())
        self.pending_draft = None
        self.timer.reset()
        return saved

    def cancel_pending(self):
        self.pending_draft = None
        self.timer.reset()

    #endregion === Stopwatch ===

    #region === Entries ===

    # Logs a block of time that ends now. Invalid input never reaches the ledger.
    def add_manual_entry(self, category, minutes_text):
        category = (category or "").strip()
        minutes = parse_minutes(minutes_text)
        if not category or minutes is None:
            log.debug(f"Rejected manual entry with category {category!r} and minutes {minutes_text!r}")
            return []
        now_ms = to_ms(self.now())
        duration_ms = int(minutes * MINUTE_MS)
        draft = TimeEntryDraft(
            started_at=iso_from_ms(now_ms - duration_ms),
            stopped_at=iso_from_ms(now_ms),
            duration_ms=duration_ms,
            category=category,
        )
        return enforce_capped_add(self.store, draft, self.settings, now=self.now())

    # Edits go back through the ledger, so a changed category or duration is capped like a new entry.
    def edit_entry(self, entry_id, category=None, minutes_text=None):
        entry = self.store.get(entry_id)
        if entry is None:
            log.debug(f"Ignoring edit for unknown entry {entry_id}")
            return None
        draft = entry.as_draft()
        if category is not None:
            category = category.strip()
            if not category:
                return None
            draft = replace(draft, category=category)
        if minutes_text is not None:
            minutes = parse_minutes(minutes_text)
            if minutes is None:
                return None
            draft = replace(draft, duration_ms=int(minutes * MINUTE_MS))
        return enforce_capped_edit(self.store, entry_id, draft, self.settings, now=self.now())

    def delete_entry(self, entry_id):
        self.store.delete(entry_id)

    #endregion === Entries ===

    #region === Views ===

    # Re-derives the auto entry and returns today's capped totals along with the grand total.
    def refresh(self):
        now = self.now()
        reconcile_auto_entertainment(self.store, self.store.list(), now, self.settings)
        return compute_day_totals(self.store.list(), now, self.settings)

    def history(self):
        return build_history(self.store.list(), self.settings)

    #endregion === Views ===
