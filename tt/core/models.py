"""Plain data records shared by the accounting engine."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TimeEntryDraft:
    started_at: str
    stopped_at: str
    duration_ms: int
    category: str


@dataclass(frozen=True)
class TimeEntry:
    id: str
    started_at: str
    stopped_at: str
    duration_ms: int
    category: str

    @classmethod
    def from_draft(cls, entry_id: str, draft: TimeEntryDraft) -> "TimeEntry":
        return cls(
            id=entry_id,
            started_at=draft.started_at,
            stopped_at=draft.stopped_at,
            duration_ms=draft.duration_ms,
            category=draft.category.strip(),
        )

    @classmethod
    def from_dict(cls, data: dict) -> "TimeEntry | None":
        """Builds an entry from its stored form, or None when the record has no usable id.

        Timestamps are kept verbatim even when they do not parse; consumers skip
        such entries instead of the store dropping them.
        """
        if not isinstance(data, dict):
            return None
        entry_id = data.get("id")
        if not isinstance(entry_id, str) or not entry_id:
            return None
        try:
            duration_ms = max(0, int(data.get("duration_ms", 0)))
        except (TypeError, ValueError):
            duration_ms = 0
        return cls(
            id=entry_id,
            started_at=str(data.get("started_at", "")),
            stopped_at=str(data.get("stopped_at", "")),
            duration_ms=duration_ms,
            category=str(data.get("category", "")).strip(),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "started_at": self.started_at,
            "stopped_at": self.stopped_at,
            "duration_ms": int(self.duration_ms),
            "category": self.category,
        }

    def as_draft(self) -> TimeEntryDraft:
        return TimeEntryDraft(
            started_at=self.started_at,
            stopped_at=self.stopped_at,
            duration_ms=self.duration_ms,
            category=self.category,
        )


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    duration_ms: int


@dataclass(frozen=True)
class DaySummary:
    day: str
    total_ms: int
    categories: list[CategoryTotal] = field(default_factory=list)
