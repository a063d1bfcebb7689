import json
import uuid
from pathlib import Path
from tt.common.logger import log
from tt.common.setup import PATHS
from tt.core.models import TimeEntry, TimeEntryDraft

ENTRIES_PATH = PATHS.current / "entries.json"

# Durable list of time entries kept in a single JSON file. Newest entries are written first.
class EntryStore:

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path is not None else ENTRIES_PATH
        self.path.parent.mkdir(parents=True, exist_ok=True)

    # Returns every stored entry. An unreadable or corrupt file reads as empty, and single bad records are skipped.
    def list(self) -> list[TimeEntry]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError):
            log.warning(f"Ran into an error while reading entries from '{self.path}', treating the store as empty.", exc_info=True)
            return []
        if not isinstance(raw, list):
            log.warning(f"Entries file '{self.path}' doesn't hold a list, treating the store as empty.")
            return []

        entries = []
        for record in raw:
            entry = TimeEntry.from_dict(record)
            if entry is None:
                log.warning(f"Skipping malformed entry record in '{self.path}': {record!r}")
                continue
            entries.append(entry)
        return entries

    def add(self, draft: TimeEntryDraft) -> TimeEntry:
        entry = TimeEntry.from_draft(str(uuid.uuid4()), draft)
        self._write([entry, *self.list()])
        log.info(f"Added entry {entry.id} '{entry.category}' ({entry.duration_ms}ms, {entry.started_at} -> {entry.stopped_at})")
        return entry

    # Replaces the entry with the same id. Nothing happens when the id is unknown.
    def update(self, entry: TimeEntry) -> None:
        entries = self.list()
        for index, existing in enumerate(entries):
            if existing.id == entry.id:
                entries[index] = entry
                self._write(entries)
                log.info(f"Updated entry {entry.id} '{entry.category}' ({entry.duration_ms}ms)")
                return
        log.debug(f"Ignoring update for unknown entry {entry.id}")

    def delete(self, entry_id: str) -> None:
        entries = self.list()
        remaining = [entry for entry in entries if entry.id != entry_id]
        if len(remaining) == len(entries):
            log.debug(f"Ignoring delete for unknown entry {entry_id}")
            return
        self._write(remaining)
        log.info(f"Deleted entry {entry_id}")

    def get(self, entry_id: str) -> TimeEntry | None:
        for entry in self.list():
            if entry.id == entry_id:
                return entry
        return None

    def _write(self, entries):
        tmp_path = self.path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump([entry.to_dict() for entry in entries], f, ensure_ascii=False, indent=2)
        tmp_path.replace(self.path)
