"""Pure reducers: (state, action) -> state.

- block_reducer: structural edits over a BlockIndex
- expand_reducer: container expand/collapse flags
- history_reducer: undo/redo stacks of block snapshots

Reducers never mutate their input. An action that changes nothing returns
the input state object.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from dataclasses import dataclass, field
from typing import Union

from .blocks_tree import (
    add_block_to_index,
    delete_block_and_descendants,
    insert_block_into_index,
    reparent_block_index,
)
from .index import compute_normalized_index
from .models import Block, BlockIndex, OrderingStrategy


# =============================================================================
# Block Reducer
# =============================================================================


@dataclass(frozen=True)
class AddItem:
    block: Block


@dataclass(frozen=True)
class InsertItem:
    block: Block
    parent_id: str | None
    index: int


@dataclass(frozen=True)
class DeleteItem:
    id: str


@dataclass(frozen=True)
class SetAll:
    blocks: Sequence[Block]


@dataclass(frozen=True)
class MoveItem:
    active_id: str
    target_zone: str


BlockAction = Union[AddItem, InsertItem, DeleteItem, SetAll, MoveItem]


def block_reducer(
    state: BlockIndex,
    action: BlockAction,
    container_types: Collection[str] = (),
    strategy: OrderingStrategy | str = OrderingStrategy.INTEGER,
    max_depth: int | None = None,
) -> BlockIndex:
    """Apply one structural action to an index."""
    if isinstance(action, AddItem):
        return add_block_to_index(state, action.block, container_types)
    if isinstance(action, InsertItem):
        return insert_block_into_index(
            state, action.block, action.parent_id, action.index, container_types
        )
    if isinstance(action, DeleteItem):
        return delete_block_and_descendants(state, action.id)
    if isinstance(action, SetAll):
        return compute_normalized_index(action.blocks, strategy)
    if isinstance(action, MoveItem):
        return reparent_block_index(
            state, action.active_id, action.target_zone, container_types, strategy, max_depth
        )
    return state


# =============================================================================
# Expand Reducer
# =============================================================================


@dataclass(frozen=True)
class ToggleExpand:
    id: str


@dataclass(frozen=True)
class SetAllExpanded:
    expanded: bool
    ids: Sequence[str]


ExpandAction = Union[ToggleExpand, SetAllExpanded]


def expand_reducer(state: dict[str, bool], action: ExpandAction) -> dict[str, bool]:
    """Containers missing from the map count as expanded."""
    if isinstance(action, ToggleExpand):
        return {**state, action.id: not state.get(action.id, True)}
    if isinstance(action, SetAllExpanded):
        return {block_id: action.expanded for block_id in action.ids}
    return state


# =============================================================================
# History Reducer
# =============================================================================


@dataclass(frozen=True)
class HistoryState:
    present: list[Block]
    past: tuple[list[Block], ...] = field(default=())
    future: tuple[list[Block], ...] = field(default=())


@dataclass(frozen=True)
class SetHistory:
    blocks: list[Block]
    max_steps: int


@dataclass(frozen=True)
class Undo:
    pass


@dataclass(frozen=True)
class Redo:
    pass


HistoryAction = Union[SetHistory, Undo, Redo]


def history_reducer(state: HistoryState, action: HistoryAction) -> HistoryState:
    """Undo/redo over whole-tree snapshots.

    SET pushes the present onto ``past`` (dropping the oldest entries beyond
    ``max_steps``) and clears ``future``. UNDO and REDO return the same state
    object when their stack is empty.
    """
    if isinstance(action, SetHistory):
        past = (*state.past, state.present)
        if len(past) > action.max_steps:
            past = past[len(past) - action.max_steps:] if action.max_steps > 0 else ()
        return HistoryState(present=action.blocks, past=past, future=())

    if isinstance(action, Undo):
        if not state.past:
            return state
        return HistoryState(
            present=state.past[-1],
            past=state.past[:-1],
            future=(state.present, *state.future),
        )

    if isinstance(action, Redo):
        if not state.future:
            return state
        return HistoryState(
            present=state.future[0],
            past=(*state.past, state.present),
            future=state.future[1:],
        )

    return state
