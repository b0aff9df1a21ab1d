"""In-memory conversation log with placeholder replacement (single writer)."""
from __future__ import annotations

import io
import threading
from typing import Iterator, List, Optional, Set, Tuple

from .models import ConversationEntry, ImageBlock, TextBlock, VideoBlock


class ConversationStore:
    """Ordered, append-mostly log of :class:`ConversationEntry`.

    Only the orchestrator writes; render collaborators read through
    :meth:`all`, which returns an immutable snapshot. A placeholder is swapped
    for its final entry in one step under the lock, so no reader ever sees
    both or neither.

    API:
        append(entry) -> None
        insert_placeholder(entry) -> str
        replace_placeholder(placeholder_id, final_entry) -> bool
        all() -> Tuple[ConversationEntry, ...]
    """

    def __init__(self) -> None:
        self._entries: List[ConversationEntry] = []
        self._placeholders: Set[str] = set()
        self._lock = threading.RLock()

    # --------- core API ----------
    def append(self, entry: ConversationEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def insert_placeholder(self, entry: ConversationEntry) -> str:
        """Append a transient entry and return its id for later replacement."""
        with self._lock:
            self._entries.append(entry)
            self._placeholders.add(entry.id)
        return entry.id

    def replace_placeholder(self, placeholder_id: str, final_entry: ConversationEntry) -> bool:
        """Remove the placeholder (if still present) and append ``final_entry``.

        Removal is idempotent: repeating the call with the same id only
        appends. Returns True when a placeholder was actually removed.
        """
        with self._lock:
            removed = placeholder_id in self._placeholders
            if removed:
                self._placeholders.discard(placeholder_id)
                self._entries = [e for e in self._entries if e.id != placeholder_id]
            self._entries.append(final_entry)
        return removed

    def all(self) -> Tuple[ConversationEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    # --------- convenience ----------
    def get(self, entry_id: str) -> Optional[ConversationEntry]:
        with self._lock:
            for e in self._entries:
                if e.id == entry_id:
                    return e
        return None

    def is_placeholder(self, entry_id: str) -> bool:
        with self._lock:
            return entry_id in self._placeholders

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[ConversationEntry]:
        return iter(self.all())

    def export_text(self, limit_chars: int = 8000) -> str:
        """Export a human-readable transcript of the conversation."""
        buf = io.StringIO()
        for e in self.all():
            label = e.role.value
            if e.perspective is not None:
                label = f"{label} [{e.perspective.value}]"
            parts: List[str] = []
            for b in e.content:
                if isinstance(b, TextBlock):
                    parts.append(b.text.strip())
                elif isinstance(b, ImageBlock):
                    parts.append("<image>")
                elif isinstance(b, VideoBlock):
                    parts.append("<video>")
            buf.write(f"{label}: {' '.join(p for p in parts if p)}\n")
        return buf.getvalue()[:limit_chars]
