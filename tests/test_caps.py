"""Tests for the category cap ledger's pure functions."""

import itertools
import unittest
from datetime import datetime, timedelta

from tt.core.caps import (
    apply_caps_to_category_totals,
    capped_category_key,
    is_auto_category,
    normalize_category_key,
    split_draft_for_cap_overflow,
    to_aggregation_category,
    used_capped_ms_for_day,
)
from tt.core.models import CategoryTotal, TimeEntry, TimeEntryDraft
from tt.util.misc import parse_iso_ms

MINUTE = 60 * 1000


def _iso(*args):
    return datetime(*args).astimezone().isoformat(timespec="milliseconds")


def _entry(idx, category, start, stop, duration_ms):
    return TimeEntry(id=str(idx), started_at=start, stopped_at=stop, duration_ms=duration_ms, category=category)


class TestCategoryKeys(unittest.TestCase):

    def test_normalize_trims_and_lowercases(self):
        self.assertEqual(normalize_category_key("  Shower "), "shower")

    def test_auto_category_detection(self):
        self.assertTrue(is_auto_category(" entertainment (auto) "))
        self.assertFalse(is_auto_category("Entertainment"))

    def test_auto_category_folds_into_fallback(self):
        self.assertEqual(to_aggregation_category("Entertainment (Auto)"), "Entertainment")
        self.assertEqual(to_aggregation_category("  Work "), "Work")

    def test_capped_key_is_case_insensitive(self):
        self.assertEqual(capped_category_key("SHOWER"), "shower")
        self.assertEqual(capped_category_key(" Python"), "python")

    def test_uncapped_and_empty_categories(self):
        self.assertIsNone(capped_category_key("Work"))
        self.assertIsNone(capped_category_key("   "))
        self.assertIsNone(capped_category_key("Entertainment (Auto)"))


class TestSplitDraft(unittest.TestCase):

    def _draft(self, minutes, category="Shower"):
        stop = datetime(2026, 1, 5, 20, 0).astimezone()
        start = stop - timedelta(minutes=minutes)
        return TimeEntryDraft(
            started_at=start.isoformat(timespec="milliseconds"),
            stopped_at=stop.isoformat(timespec="milliseconds"),
            duration_ms=minutes * MINUTE,
            category=category,
        )

    def test_within_allowance_is_unchanged(self):
        draft = self._draft(20)
        self.assertEqual(split_draft_for_cap_overflow(draft, 20 * MINUTE), [draft])

    def test_no_allowance_moves_everything_to_fallback(self):
        draft = self._draft(20)
        result = split_draft_for_cap_overflow(draft, 0)
        self.assertEqual(len(result), 1)
        self.assertEqual(result[0].category, "Entertainment")
        self.assertEqual(result[0].started_at, draft.started_at)
        self.assertEqual(result[0].stopped_at, draft.stopped_at)
        self.assertEqual(result[0].duration_ms, draft.duration_ms)

    def test_negative_allowance_behaves_like_zero(self):
        result = split_draft_for_cap_overflow(self._draft(10), -5 * MINUTE)
        self.assertEqual([d.category for d in result], ["Entertainment"])

    def test_partial_allowance_splits_contiguously(self):
        draft = self._draft(20)
        first, second = split_draft_for_cap_overflow(draft, 5 * MINUTE)
        self.assertEqual(first.category, "Shower")
        self.assertEqual(first.duration_ms, 5 * MINUTE)
        self.assertEqual(second.category, "Entertainment")
        self.assertEqual(second.duration_ms, 15 * MINUTE)
        self.assertEqual(first.stopped_at, second.started_at)
        self.assertEqual(parse_iso_ms(first.started_at), parse_iso_ms(draft.started_at))
        self.assertEqual(parse_iso_ms(second.stopped_at), parse_iso_ms(draft.stopped_at))
        self.assertEqual(parse_iso_ms(first.stopped_at) - parse_iso_ms(first.started_at), 5 * MINUTE)

    def test_split_preserves_total_for_any_allowance(self):
        draft = self._draft(30)
        for allowed in (1, MINUTE, 7 * MINUTE, 29 * MINUTE, 30 * MINUTE, 45 * MINUTE):
            parts = split_draft_for_cap_overflow(draft, allowed)
            self.assertEqual(sum(p.duration_ms for p in parts), draft.duration_ms)
            for left, right in zip(parts, parts[1:]):
                self.assertEqual(left.stopped_at, right.started_at)

    def test_unparsable_start_is_derived_from_stop(self):
        draft = TimeEntryDraft(started_at="garbage", stopped_at=_iso(2026, 1, 5, 20, 0),
                               duration_ms=20 * MINUTE, category="Shower")
        first, second = split_draft_for_cap_overflow(draft, 5 * MINUTE)
        self.assertEqual(parse_iso_ms(first.started_at), parse_iso_ms(_iso(2026, 1, 5, 19, 40)))
        self.assertEqual(parse_iso_ms(second.started_at), parse_iso_ms(_iso(2026, 1, 5, 19, 45)))


class TestUsedCappedMs(unittest.TestCase):

    def test_sums_matching_entries_in_logical_day(self):
        entries = [
            _entry(1, "Shower", _iso(2026, 1, 5, 8, 0), _iso(2026, 1, 5, 8, 20), 20 * MINUTE),
            _entry(2, " shower ", _iso(2026, 1, 6, 1, 0), _iso(2026, 1, 6, 1, 10), 10 * MINUTE),
            _entry(3, "Work", _iso(2026, 1, 5, 9, 0), _iso(2026, 1, 5, 10, 0), 60 * MINUTE),
            _entry(4, "Shower", _iso(2026, 1, 6, 8, 0), _iso(2026, 1, 6, 8, 30), 30 * MINUTE),
            _entry(5, "Shower", _iso(2026, 1, 5, 2, 0), _iso(2026, 1, 5, 2, 30), 30 * MINUTE),
        ]
        used = used_capped_ms_for_day(entries, "shower", datetime(2026, 1, 5, 12, 0).astimezone())
        self.assertEqual(used, 30 * MINUTE)

    def test_skips_unparsable_timestamps(self):
        entries = [
            _entry(1, "Shower", "nope", "also nope", 20 * MINUTE),
            _entry(2, "Shower", _iso(2026, 1, 5, 8, 0), _iso(2026, 1, 5, 8, 5), 5 * MINUTE),
        ]
        used = used_capped_ms_for_day(entries, "shower", datetime(2026, 1, 5, 12, 0).astimezone())
        self.assertEqual(used, 5 * MINUTE)


class TestApplyCaps(unittest.TestCase):

    def test_clamps_capped_category_into_fallback(self):
        totals = apply_caps_to_category_totals([
            CategoryTotal("Shower", 60 * MINUTE),
            CategoryTotal("Entertainment", 10 * MINUTE),
        ])
        by_name = {t.category: t.duration_ms for t in totals}
        self.assertEqual(by_name["Shower"], 45 * MINUTE)
        self.assertEqual(by_name["Entertainment"], 25 * MINUTE)

    def test_creates_fallback_row_when_missing(self):
        totals = apply_caps_to_category_totals([CategoryTotal("python", 50 * MINUTE)])
        self.assertEqual(totals, [
            CategoryTotal("python", 30 * MINUTE),
            CategoryTotal("Entertainment", 20 * MINUTE),
        ])

    def test_merges_spellings_and_auto_entries(self):
        totals = apply_caps_to_category_totals([
            CategoryTotal("Entertainment (Auto)", 40 * MINUTE),
            CategoryTotal("entertainment", 5 * MINUTE),
            CategoryTotal("Work", 5 * MINUTE),
            CategoryTotal("work ", 5 * MINUTE),
            CategoryTotal("  ", 3 * MINUTE),
        ])
        self.assertEqual(totals, [
            CategoryTotal("Entertainment", 45 * MINUTE),
            CategoryTotal("Work", 10 * MINUTE),
            CategoryTotal("Uncategorized", 3 * MINUTE),
        ])

    def test_under_cap_untouched(self):
        totals = apply_caps_to_category_totals([CategoryTotal("Shower", 45 * MINUTE)])
        self.assertEqual(totals, [CategoryTotal("Shower", 45 * MINUTE)])

    def test_invariant_under_permutation(self):
        totals = [
            CategoryTotal("Shower", 30 * MINUTE),
            CategoryTotal("shower", 30 * MINUTE),
            CategoryTotal("Python", 45 * MINUTE),
            CategoryTotal("Entertainment (Auto)", 15 * MINUTE),
            CategoryTotal("Work", 15 * MINUTE),
            CategoryTotal("entertainment", 5 * MINUTE),
        ]
        expected = apply_caps_to_category_totals(totals)
        for ordering in itertools.permutations(totals):
            self.assertEqual(apply_caps_to_category_totals(list(ordering)), expected)


if __name__ == "__main__":
    unittest.main()
