"""Tests for reducers.py and history.py."""

from __future__ import annotations

import pytest

from blocktree.errors import ContainerError
from blocktree.history import BlockHistory
from blocktree.index import compute_normalized_index
from blocktree.models import Block
from blocktree.reducers import (
    AddItem,
    DeleteItem,
    HistoryState,
    InsertItem,
    MoveItem,
    Redo,
    SetAll,
    SetAllExpanded,
    SetHistory,
    ToggleExpand,
    Undo,
    block_reducer,
    expand_reducer,
    history_reducer,
)
from conftest import make_block


def snapshot(name: str) -> list[Block]:
    return [make_block(name)]


# =============================================================================
# History Reducer
# =============================================================================


class TestHistoryReducer:
    def test_max_steps_bounds_undo(self) -> None:
        state = HistoryState(present=snapshot("s0"))
        for i in range(1, 6):
            state = history_reducer(state, SetHistory(snapshot(f"s{i}"), max_steps=3))

        undos = 0
        while state.past:
            state = history_reducer(state, Undo())
            undos += 1

        assert undos == 3
        assert state.present[0].id == "s2"

    def test_undo_redo(self) -> None:
        state = HistoryState(present=snapshot("a"))
        state = history_reducer(state, SetHistory(snapshot("b"), max_steps=10))

        undone = history_reducer(state, Undo())
        assert undone.present[0].id == "a"
        assert undone.future[0][0].id == "b"

        redone = history_reducer(undone, Redo())
        assert redone.present[0].id == "b"
        assert redone.future == ()

    def test_set_clears_future(self) -> None:
        state = HistoryState(present=snapshot("a"))
        state = history_reducer(state, SetHistory(snapshot("b"), max_steps=10))
        state = history_reducer(state, Undo())
        state = history_reducer(state, SetHistory(snapshot("c"), max_steps=10))

        assert state.future == ()
        assert [s[0].id for s in state.past] == ["a"]

    def test_empty_stacks_return_same_state(self) -> None:
        state = HistoryState(present=snapshot("a"))
        assert history_reducer(state, Undo()) is state
        assert history_reducer(state, Redo()) is state

    def test_zero_steps_keeps_no_past(self) -> None:
        state = HistoryState(present=snapshot("a"))
        state = history_reducer(state, SetHistory(snapshot("b"), max_steps=0))
        assert state.past == ()


class TestBlockHistory:
    def test_push_undo_redo(self) -> None:
        history = BlockHistory(snapshot("a"), max_steps=5)
        assert not history.can_undo()

        history.push(snapshot("b"))
        assert history.can_undo()
        assert history.undo()[0].id == "a"
        assert history.can_redo()
        assert history.redo()[0].id == "b"
        assert history.present[0].id == "b"

    def test_empty_undo_returns_none(self) -> None:
        history = BlockHistory(snapshot("a"))
        assert history.undo() is None
        assert history.redo() is None

    def test_clear(self) -> None:
        history = BlockHistory(snapshot("a"))
        history.push(snapshot("b"))
        history.clear(snapshot("c"))
        assert not history.can_undo()
        assert history.present[0].id == "c"


# =============================================================================
# Block / Expand Reducers
# =============================================================================


class TestBlockReducer:
    def test_actions(self, outline_blocks: list[Block]) -> None:
        index = compute_normalized_index(outline_blocks)
        containers = {"section"}

        index = block_reducer(index, AddItem(make_block("t4", "task", "s2", 1)), containers)
        assert index.by_parent["s2"] == ["t3", "t4"]

        index = block_reducer(index, InsertItem(make_block("t0", "task"), "s1", 0), containers)
        assert index.by_parent["s1"] == ["t0", "t1", "t2"]

        index = block_reducer(index, MoveItem("t0", "end-s2"), containers)
        assert index.by_parent["s2"] == ["t3", "t4", "t0"]

        index = block_reducer(index, DeleteItem("s2"), containers)
        assert "t0" not in index

        index = block_reducer(index, SetAll([make_block("only")]), containers)
        assert list(index.by_id) == ["only"]

    def test_rejected_move_returns_same_state(self, outline_blocks: list[Block]) -> None:
        index = compute_normalized_index(outline_blocks)
        assert block_reducer(index, MoveItem("t1", "after-t1"), {"section"}) is index

    def test_add_under_non_container_raises(self, outline_blocks: list[Block]) -> None:
        index = compute_normalized_index(outline_blocks)
        with pytest.raises(ContainerError):
            block_reducer(index, AddItem(make_block("x", "task", "t1")), {"section"})

    def test_insert_under_non_container_raises(self, outline_blocks: list[Block]) -> None:
        index = compute_normalized_index(outline_blocks)
        with pytest.raises(ContainerError):
            block_reducer(index, InsertItem(make_block("x", "task"), "t1", 0), {"section"})


class TestExpandReducer:
    def test_toggle_defaults_to_expanded(self) -> None:
        state = expand_reducer({}, ToggleExpand("s1"))
        assert state == {"s1": False}
        assert expand_reducer(state, ToggleExpand("s1")) == {"s1": True}

    def test_set_all(self) -> None:
        state = expand_reducer({"old": True}, SetAllExpanded(False, ["s1", "s2"]))
        assert state == {"s1": False, "s2": False}

    def test_input_not_modified(self) -> None:
        original = {"s1": True}
        expand_reducer(original, ToggleExpand("s1"))
        assert original == {"s1": True}
