"""Session history of observations and actions."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum


class EntryKind(str, Enum):
    OBSERVED = "observed"
    ACTION = "action"


@dataclass(frozen=True)
class HistoryEntry:
    kind: EntryKind
    content: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class SessionHistory:
    entries: list[HistoryEntry] = field(default_factory=list)

    def add_observation(self, content: str) -> HistoryEntry:
        entry = HistoryEntry(kind=EntryKind.OBSERVED, content=content)
        self.entries.append(entry)
        return entry

    def add_action(self, content: str) -> HistoryEntry:
        entry = HistoryEntry(kind=EntryKind.ACTION, content=content)
        self.entries.append(entry)
        return entry

    def window(self, limit: int) -> list[tuple[int, HistoryEntry]]:
        """Return the last ``limit`` entries paired with their 1-based positions."""
        start = max(0, len(self.entries) - limit)
        return [(index + 1, self.entries[index]) for index in range(start, len(self.entries))]

    def render(self, limit: int) -> str:
        window = self.window(limit)
        if not window:
            return "(No history yet)"
        return "\n".join(
            f"{position}. [{entry.kind.value.upper()}] {entry.content}" for position, entry in window
        )

    def __len__(self) -> int:
        return len(self.entries)
