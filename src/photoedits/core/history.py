"""
History - Linear undo/redo stack of editor snapshots.

Pushing discards every entry above the cursor (branch discard), appends,
then evicts the oldest entries beyond the limit. The cursor always points
at the snapshot that matches the current editor state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from photoedits.core.errors import InvalidInput
from photoedits.core.layers import LayerManager
from photoedits.core.raster import Raster


logger = logging.getLogger(__name__)


HISTORY_LIMIT = 50


@dataclass(frozen=True)
class Snapshot:
    """
    Immutable editor state sufficient for restore.

    ``base`` is shared between consecutive snapshots until the base image
    changes; the editor never mutates a raster once it is snapshotted.
    """
    reason: str
    base: Raster | None
    canvas_width: int
    canvas_height: int
    layers: LayerManager
    metadata: dict[str, Any] = field(default_factory=dict)


class HistoryManager:
    """Bounded snapshot stack with a cursor."""

    def __init__(self, limit: int = HISTORY_LIMIT) -> None:
        if int(limit) < 1:
            raise InvalidInput(f"History limit must be at least 1, got {limit}")
        self.limit = int(limit)
        self._entries: list[Snapshot] = []
        self._cursor = -1

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def entries(self) -> list[Snapshot]:
        return list(self._entries)

    @property
    def current(self) -> Snapshot | None:
        if self._cursor < 0:
            return None
        return self._entries[self._cursor]

    def __len__(self) -> int:
        return len(self._entries)

    def can_undo(self) -> bool:
        return self._cursor > 0

    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    def push(self, snapshot: Snapshot) -> None:
        del self._entries[self._cursor + 1:]
        self._entries.append(snapshot)
        overflow = len(self._entries) - self.limit
        if overflow > 0:
            del self._entries[:overflow]
        self._cursor = len(self._entries) - 1
        logger.debug("History push '%s' (%d/%d)", snapshot.reason, len(self._entries), self.limit)

    def undo(self) -> Snapshot | None:
        """Step back one entry and return it, or None at the bottom."""
        if not self.can_undo():
            return None
        self._cursor -= 1
        return self._entries[self._cursor]

    def redo(self) -> Snapshot | None:
        """Step forward one entry and return it, or None at the top."""
        if not self.can_redo():
            return None
        self._cursor += 1
        return self._entries[self._cursor]

    def clear(self) -> None:
        self._entries = []
        self._cursor = -1
