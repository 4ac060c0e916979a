"""Imperative undo/redo history wrapping history_reducer."""

from __future__ import annotations

from collections.abc import Sequence

from .models import Block
from .reducers import HistoryState, Redo, SetHistory, Undo, history_reducer
from .settings import settings


class BlockHistory:
    """Bounded undo/redo stack of block-list snapshots."""

    def __init__(
        self,
        initial_blocks: Sequence[Block] = (),
        max_steps: int = settings.history_max_steps,
    ) -> None:
        self.max_steps = max_steps
        self._state = HistoryState(present=list(initial_blocks))

    @property
    def state(self) -> HistoryState:
        return self._state

    @property
    def present(self) -> list[Block]:
        return self._state.present

    def push(self, blocks: Sequence[Block]) -> None:
        self._state = history_reducer(self._state, SetHistory(list(blocks), self.max_steps))

    def undo(self) -> list[Block] | None:
        """Step back; returns the restored blocks or None if nothing to undo."""
        if not self._state.past:
            return None
        self._state = history_reducer(self._state, Undo())
        return self._state.present

    def redo(self) -> list[Block] | None:
        """Step forward; returns the restored blocks or None if nothing to redo."""
        if not self._state.future:
            return None
        self._state = history_reducer(self._state, Redo())
        return self._state.present

    def can_undo(self) -> bool:
        return bool(self._state.past)

    def can_redo(self) -> bool:
        return bool(self._state.future)

    def clear(self, blocks: Sequence[Block]) -> None:
        self._state = HistoryState(present=list(blocks))
