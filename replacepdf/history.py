"""Undo/redo snapshot logic for document edits."""

from .config import MAX_UNDO


class History:
    """Bounded undo/redo stacks of serialized document bytes."""

    def __init__(self, limit: int = MAX_UNDO):
        self.limit = limit
        self._undo: list[bytes] = []
        self._redo: list[bytes] = []

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def snapshot(self, pdf_bytes: bytes) -> None:
        """Save the current bytes to the undo stack before a mutation."""
        self._undo.append(pdf_bytes)
        if len(self._undo) > self.limit:
            self._undo.pop(0)
        # Any new mutation clears the redo stack
        self._redo.clear()

    def undo(self, current: bytes) -> bytes | None:
        """Return the previous snapshot, or None if there is nothing to undo."""
        if not self._undo:
            return None
        self._redo.append(current)
        return self._undo.pop()

    def redo(self, current: bytes) -> bytes | None:
        """Return the last undone snapshot, or None if there is nothing to redo."""
        if not self._redo:
            return None
        self._undo.append(current)
        return self._redo.pop()

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
