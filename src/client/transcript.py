"""
Client-side transcript model.

The transcript is a local projection of a chat: stored messages, optimistic
user entries that have not been confirmed yet, and committed assistant
replies with locally generated ids.
"""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Optional


class ChatState(str, Enum):
    """Lifecycle of one turn in a chat session."""

    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    COMMITTED = "committed"
    ABORTED = "aborted"
    ERRORED = "errored"


def temp_id(prefix: str) -> str:
    """Locally unique id for entries not yet known to the server."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


@dataclass
class TranscriptEntry:
    """A message as shown to the user."""

    id: str
    role: str
    content: str
    created_at: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "TranscriptEntry":
        return cls(
            id=data["id"],
            role=data["role"],
            content=data["content"],
            created_at=data.get("created_at") or data.get("createdAt"),
        )


class Transcript:
    """Ordered list of transcript entries."""

    def __init__(self, entries: Optional[list[TranscriptEntry]] = None):
        self._entries: list[TranscriptEntry] = list(entries or [])

    def __iter__(self) -> Iterator[TranscriptEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> TranscriptEntry:
        return self._entries[index]

    @property
    def entries(self) -> list[TranscriptEntry]:
        return list(self._entries)

    def append(self, entry: TranscriptEntry) -> None:
        self._entries.append(entry)

    def remove(self, entry_id: str) -> bool:
        """Drop the entry with this id. Returns False if absent."""
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.id != entry_id]
        return len(self._entries) != before

    def index_of(self, entry_id: str) -> Optional[int]:
        for index, entry in enumerate(self._entries):
            if entry.id == entry_id:
                return index
        return None

    def truncate_before(self, entry_id: str) -> bool:
        """Keep only entries strictly before the given one. Returns False if absent."""
        index = self.index_of(entry_id)
        if index is None:
            return False
        self._entries = self._entries[:index]
        return True

    def replace(self, entries: list[TranscriptEntry]) -> None:
        self._entries = list(entries)

    def clear(self) -> None:
        self._entries = []
