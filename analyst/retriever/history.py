"""Conversation history: append-only record of answered questions."""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, Iterator, List, Optional


@dataclass(frozen=True)
class HistoryEntry:
    question: str
    answer: str
    strategy: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ConversationHistory:
    """
    Answered questions in the order they completed.

    Unbounded unless ``max_entries`` is given, in which case the oldest
    entries are dropped first.
    """

    def __init__(self, max_entries: Optional[int] = None):
        if max_entries is not None and max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self._entries: Deque[HistoryEntry] = deque(maxlen=max_entries)

    def append(self, question: str, answer: str, strategy: str = "") -> HistoryEntry:
        entry = HistoryEntry(question=question, answer=answer, strategy=strategy)
        self._entries.append(entry)
        return entry

    @property
    def entries(self) -> List[HistoryEntry]:
        return list(self._entries)

    @property
    def last(self) -> Optional[HistoryEntry]:
        return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(list(self._entries))
