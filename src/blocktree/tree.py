"""Stateful block tree with a drag lifecycle.

BlockTree is the integration point for UI adapters. It owns the committed
BlockIndex, expand and selection state, optional undo history and a per-tree
event emitter. Input sensors drive it through the drag state machine:

    IDLE --start_drag--> DRAGGING --end_drag / cancel_drag--> IDLE

While dragging, every update_drag() recomputes the candidate index from the
snapshot taken at start_drag(), never from the previous candidate, so repeated
pointer moves cannot drift. Previews are published through a debouncer; with
the default scheduler nothing runs on another thread, and the adapter pumps
poll_preview() from its own frame or idle loop.

Usage:
    tree = BlockTree(blocks, container_types={"section"})
    tree.on("blocks:change", save)

    tree.start_drag("task-1")
    tree.update_drag("into-section-2")
    tree.poll_preview()
    result = tree.end_drag()
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Collection, Iterable, Sequence
from dataclasses import dataclass, replace
from enum import Enum
from typing import Literal, Union

from .blocks_tree import (
    add_block_to_index,
    delete_block_and_descendants,
    insert_block_into_index,
    reparent_block_index,
    reparent_multiple_blocks,
)
from .collision import (
    CollisionCandidate,
    CollisionStrategy,
    Rect,
    weighted_vertical_collision,
)
from .debounce import Debouncer, Scheduler
from .errors import BlockNotFoundError, ValidationError
from .events import (
    BlockAddEvent,
    BlockDeleteEvent,
    BlockMoveEvent,
    DragEndEvent,
    DragMoveEvent,
    DragStartEvent,
    EventEmitter,
    ExpandChangeEvent,
    Handler,
    HoverChangeEvent,
)
from .history import BlockHistory
from .index import (
    build_ordered_blocks,
    compute_normalized_index,
    get_descendant_ids,
    validate_block_tree,
)
from .models import Block, BlockIndex, BlockPosition, OrderingStrategy
from .ordering import generate_key_between
from .reducers import SetAllExpanded, ToggleExpand, expand_reducer
from .settings import settings
from .zones import extract_block_id, get_drop_zone_type

logger = logging.getLogger(__name__)

CanDragFn = Callable[[Block], bool]
CanDropFn = Callable[[Block, str, Union[Block, None]], bool]
IdGeneratorFn = Callable[[], str]
SelectMode = Literal["single", "toggle", "range"]


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


@dataclass(frozen=True)
class DropResult:
    """What end_drag() committed."""

    blocks: list[Block]
    target_zone: str


@dataclass(frozen=True)
class MoveOperation:
    """A pending drop, handed to ``on_before_move`` before it is committed."""

    block: Block
    from_position: BlockPosition
    target_zone: str


# Return False to veto, a zone id to redirect, or None/True to accept.
BeforeMoveFn = Callable[[MoveOperation], Union[bool, str, None]]


def _default_id() -> str:
    return uuid.uuid4().hex


def _position(index: BlockIndex, block_id: str) -> BlockPosition:
    block = index.by_id[block_id]
    siblings = index.by_parent.get(block.parent_id, [])
    position = siblings.index(block_id) if block_id in siblings else len(siblings)
    return BlockPosition(parent_id=block.parent_id, index=position)


def _renumbered(index: BlockIndex) -> BlockIndex:
    """Copy of ``index`` whose integer orders match sibling positions."""
    by_id = dict(index.by_id)
    changed = False
    for ids in index.by_parent.values():
        for position, block_id in enumerate(ids):
            block = by_id.get(block_id)
            if block is not None and block.order != position:
                by_id[block_id] = replace(block, order=position)
                changed = True
    if not changed:
        return index
    return BlockIndex(by_id=by_id, by_parent=index.by_parent)


class BlockTree:
    """Block tree state machine with events, selection and history."""

    def __init__(
        self,
        initial_blocks: Iterable[Block] = (),
        container_types: Collection[str] = (),
        ordering_strategy: OrderingStrategy | str = OrderingStrategy.INTEGER,
        max_depth: int | None = None,
        collision_detection: CollisionStrategy | None = None,
        initial_expanded: Literal["all", "none"] | Collection[str] = "all",
        preview_debounce: float = settings.preview_debounce,
        can_drag: CanDragFn | None = None,
        can_drop: CanDropFn | None = None,
        on_before_move: BeforeMoveFn | None = None,
        id_generator: IdGeneratorFn = _default_id,
        history_steps: int | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        """Create a tree.

        Args:
            initial_blocks: Starting blocks (flat list).
            container_types: Block types allowed to own children.
            ordering_strategy: Integer reindexing or fractional keys.
            max_depth: Maximum nesting depth for moves (1 = flat list).
            collision_detection: Strategy used by detect_collision(); a
                StickyCollision is reset at every start_drag().
            initial_expanded: "all", "none" or the container ids to expand.
            preview_debounce: Seconds between the last update_drag() and the
                drag:move preview. Zero publishes inline.
            can_drag: Veto for start_drag().
            can_drop: Veto for individual zones in update_drag().
            on_before_move: Last chance to veto or redirect a drop.
            id_generator: Id factory for add_block() and insert_block().
            history_steps: Enable undo history with this many steps.
            scheduler: Timer factory for the preview debounce. The default
                parks the preview until poll_preview(); pass
                thread_timer_scheduler to publish from a timer thread.
        """
        self.container_types = frozenset(container_types)
        self.ordering_strategy = OrderingStrategy(ordering_strategy)
        self.max_depth = max_depth
        self.collision_detection = collision_detection
        self.can_drag = can_drag
        self.can_drop = can_drop
        self.on_before_move = on_before_move
        self.id_generator = id_generator

        self._emitter = EventEmitter()
        self._index = self._normalized(compute_normalized_index(initial_blocks, self.ordering_strategy))
        self._expanded = self._initial_expanded(initial_expanded)
        self._selected: list[str] = []
        self._anchor_id: str | None = None
        self._history: BlockHistory | None = None

        self._preview_debouncer = Debouncer(self._publish_preview, preview_debounce, scheduler)
        self._reset_drag()

        if history_steps is not None:
            self.enable_history(history_steps)

    def _initial_expanded(
        self, initial_expanded: Literal["all", "none"] | Collection[str]
    ) -> dict[str, bool]:
        containers = [b.id for b in self._index.by_id.values() if b.type in self.container_types]
        if initial_expanded == "all":
            return {block_id: True for block_id in containers}
        if initial_expanded == "none":
            return {block_id: False for block_id in containers}
        wanted = set(initial_expanded)
        return {block_id: block_id in wanted for block_id in containers}

    def _reset_drag(self) -> None:
        self._drag_state = DragState.IDLE
        self._active_id: str | None = None
        self._dragged_ids: tuple[str, ...] = ()
        self._snapshot: BlockIndex | None = None
        self._from_position: BlockPosition | None = None
        self._candidate: BlockIndex | None = None
        self._candidate_zone: str | None = None
        self._hover_zone: str | None = None
        self._preview: BlockIndex | None = None

    # =========================================================================
    # State Reads
    # =========================================================================

    @property
    def state(self) -> DragState:
        return self._drag_state

    @property
    def is_dragging(self) -> bool:
        return self._drag_state is DragState.DRAGGING

    def get_blocks(self) -> list[Block]:
        """Committed blocks in document order."""
        return build_ordered_blocks(self._index, self.container_types, self.ordering_strategy)

    def get_block_index(self) -> BlockIndex:
        return self._index

    def get_block(self, block_id: str) -> Block | None:
        return self._index.by_id.get(block_id)

    def get_children(self, parent_id: str | None) -> list[Block]:
        return [
            self._index.by_id[child_id]
            for child_id in self._index.by_parent.get(parent_id, ())
            if child_id in self._index.by_id
        ]

    def get_ancestors(self, block_id: str) -> list[Block]:
        """Ancestors of a block, nearest first."""
        ancestors: list[Block] = []
        visited = {block_id}
        current = self._index.by_id.get(block_id)
        while current is not None and current.parent_id is not None:
            if current.parent_id in visited:
                break
            visited.add(current.parent_id)
            current = self._index.by_id.get(current.parent_id)
            if current is not None:
                ancestors.append(current)
        return ancestors

    def get_expanded_map(self) -> dict[str, bool]:
        return dict(self._expanded)

    def get_active_id(self) -> str | None:
        return self._active_id

    def get_hover_zone(self) -> str | None:
        return self._hover_zone

    def get_effective_blocks(self) -> list[Block]:
        """The published drag preview if there is one, else the committed blocks."""
        index = self._preview if self._preview is not None else self._index
        return build_ordered_blocks(index, self.container_types, self.ordering_strategy)

    # =========================================================================
    # Block Mutations
    # =========================================================================

    def _normalized(self, index: BlockIndex) -> BlockIndex:
        if self.ordering_strategy is OrderingStrategy.INTEGER:
            return _renumbered(index)
        return index

    def _commit(self, index: BlockIndex, record: bool = True) -> None:
        self._index = self._normalized(index)
        if record and self._history is not None:
            self._history.push(self.get_blocks())

    def _emit_blocks_change(self) -> None:
        self._emitter.emit("blocks:change", self.get_blocks())

    def _order_between(self, siblings: Sequence[str], position: int) -> int | str:
        if self.ordering_strategy is OrderingStrategy.INTEGER:
            return position
        low = str(self._index.by_id[siblings[position - 1]].order) if position > 0 else None
        high = str(self._index.by_id[siblings[position]].order) if position < len(siblings) else None
        return generate_key_between(low, high)

    def add_block(
        self,
        block_type: str,
        parent_id: str | None = None,
        properties: dict | None = None,
    ) -> Block:
        """Append a new block as the last child of ``parent_id``.

        Raises:
            BlockNotFoundError: If the parent does not exist.
            ContainerError: If the parent is not a container type.
        """
        siblings = self._index.by_parent.get(parent_id, [])
        if parent_id is not None and parent_id not in self._index.by_id:
            raise BlockNotFoundError(parent_id, operation="add")
        position = len(siblings)
        block = Block(
            id=self.id_generator(),
            type=block_type,
            parent_id=parent_id,
            order=self._order_between(siblings, position),
            properties=dict(properties or {}),
        )
        self._commit(add_block_to_index(self._index, block, self.container_types))
        if block_type in self.container_types:
            self._expanded[block.id] = True

        block = self._index.by_id[block.id]
        self._emitter.emit("block:add", BlockAddEvent(block=block, parent_id=parent_id, index=position))
        self._emit_blocks_change()
        return block

    def insert_block(
        self,
        block_type: str,
        reference_id: str,
        position: Literal["before", "after"] = "after",
        properties: dict | None = None,
    ) -> Block:
        """Insert a new block next to an existing one.

        Raises:
            BlockNotFoundError: If the reference block does not exist.
            ValidationError: If position is not "before" or "after".
        """
        reference = self._index.by_id.get(reference_id)
        if reference is None:
            raise BlockNotFoundError(reference_id, operation="insert")
        if position not in ("before", "after"):
            raise ValidationError(
                "Insert position must be 'before' or 'after'",
                field="position",
                value=position,
            )

        parent_id = reference.parent_id
        siblings = self._index.by_parent.get(parent_id, [])
        ref_position = siblings.index(reference_id) if reference_id in siblings else len(siblings)
        insert_at = ref_position if position == "before" else ref_position + 1

        block = Block(
            id=self.id_generator(),
            type=block_type,
            parent_id=parent_id,
            order=self._order_between(siblings, insert_at),
            properties=dict(properties or {}),
        )
        self._commit(
            insert_block_into_index(self._index, block, parent_id, insert_at, self.container_types)
        )
        if block_type in self.container_types:
            self._expanded[block.id] = True

        block = self._index.by_id[block.id]
        self._emitter.emit("block:add", BlockAddEvent(block=block, parent_id=parent_id, index=insert_at))
        self._emit_blocks_change()
        return block

    def delete_block(self, block_id: str) -> bool:
        """Delete a block and its subtree. Returns False if it did not exist."""
        block = self._index.by_id.get(block_id)
        if block is None:
            return False

        deleted = get_descendant_ids(self._index, block_id)
        visible = [b.id for b in self.get_blocks() if b.id in deleted]
        deleted_ids = tuple(visible + sorted(deleted.difference(visible)))
        self._commit(delete_block_and_descendants(self._index, block_id))

        for removed_id in deleted:
            self._expanded.pop(removed_id, None)
        if self._anchor_id in deleted:
            self._anchor_id = None

        self._emitter.emit(
            "block:delete",
            BlockDeleteEvent(block=block, deleted_ids=deleted_ids, parent_id=block.parent_id),
        )
        self._set_selection([i for i in self._selected if i not in deleted])
        self._emit_blocks_change()
        return True

    def move_block(self, block_id: str, target_zone: str) -> bool:
        """Move a block outside of a drag. Returns False if the move was rejected or a no-op."""
        if block_id not in self._index.by_id:
            return False
        from_position = _position(self._index, block_id)
        moved = reparent_block_index(
            self._index,
            block_id,
            target_zone,
            self.container_types,
            self.ordering_strategy,
            self.max_depth,
        )
        if moved is self._index:
            return False

        self._commit(moved)
        self._emit_move(block_id, from_position, (block_id,))
        self._emit_blocks_change()
        return True

    def _emit_move(
        self, block_id: str, from_position: BlockPosition, moved_ids: tuple[str, ...]
    ) -> None:
        self._emitter.emit(
            "block:move",
            BlockMoveEvent(
                block=self._index.by_id[block_id],
                from_position=from_position,
                to_position=_position(self._index, block_id),
                blocks=self.get_blocks(),
                moved_ids=moved_ids,
            ),
        )

    def set_blocks(self, blocks: Iterable[Block]) -> None:
        """Replace the whole tree, e.g. with a resolved remote payload."""
        index = compute_normalized_index(blocks, self.ordering_strategy)
        if settings.validate_on_set:
            validate_block_tree(index, self.container_types)
        self._commit(index)
        for block in self._index.by_id.values():
            if block.type in self.container_types:
                self._expanded.setdefault(block.id, True)
        self._emit_blocks_change()

    # =========================================================================
    # Expand / Collapse
    # =========================================================================

    def toggle_expand(self, block_id: str) -> bool:
        """Flip a container's expanded flag and return the new value."""
        expanded = not self.is_expanded(block_id)
        self._expanded = expand_reducer(self._expanded, ToggleExpand(block_id))
        block = self._index.by_id.get(block_id)
        if block is not None:
            self._emitter.emit(
                "expand:change",
                ExpandChangeEvent(block=block, block_id=block_id, expanded=expanded),
            )
        return expanded

    def set_expand_all(self, expanded: bool) -> None:
        container_ids = [
            b.id for b in self._index.by_id.values() if b.type in self.container_types
        ]
        self._expanded = expand_reducer(self._expanded, SetAllExpanded(expanded, container_ids))

    def is_expanded(self, block_id: str) -> bool:
        return self._expanded.get(block_id, True)

    # =========================================================================
    # Selection
    # =========================================================================

    @property
    def selected_ids(self) -> tuple[str, ...]:
        return tuple(self._selected)

    def _set_selection(self, ids: list[str]) -> None:
        if ids == self._selected:
            return
        self._selected = ids
        self._emitter.emit("selection:change", tuple(ids))

    def select(self, block_id: str, mode: SelectMode = "single") -> tuple[str, ...]:
        """Update the selection and return it.

        "single" selects only ``block_id``. "toggle" adds or removes it.
        "range" selects every visible block between the last clicked block
        and ``block_id``, in document order.

        Raises:
            BlockNotFoundError: If the block does not exist.
            ValidationError: If the mode is unknown.
        """
        if block_id not in self._index.by_id:
            raise BlockNotFoundError(block_id, operation="select")

        if mode == "single":
            self._set_selection([block_id])
            self._anchor_id = block_id
        elif mode == "toggle":
            if block_id in self._selected:
                self._set_selection([i for i in self._selected if i != block_id])
            else:
                self._set_selection([*self._selected, block_id])
            self._anchor_id = block_id
        elif mode == "range":
            order = [b.id for b in self.get_blocks()]
            anchor = self._anchor_id
            if anchor is None or anchor not in order or block_id not in order:
                self._set_selection([block_id])
                self._anchor_id = block_id
            else:
                start, stop = sorted((order.index(anchor), order.index(block_id)))
                self._set_selection(order[start:stop + 1])
        else:
            raise ValidationError("Unknown selection mode", field="mode", value=mode)

        return self.selected_ids

    def clear_selection(self) -> None:
        self._anchor_id = None
        self._set_selection([])

    # =========================================================================
    # History
    # =========================================================================

    def enable_history(self, max_steps: int = settings.history_max_steps) -> None:
        """Start recording undo history from the current blocks."""
        self._history = BlockHistory(self.get_blocks(), max_steps)

    def can_undo(self) -> bool:
        return self._history is not None and self._history.can_undo()

    def can_redo(self) -> bool:
        return self._history is not None and self._history.can_redo()

    def undo(self) -> bool:
        """Restore the previous snapshot. Not available while dragging."""
        if self._history is None or self.is_dragging:
            return False
        return self._restore(self._history.undo())

    def redo(self) -> bool:
        if self._history is None or self.is_dragging:
            return False
        return self._restore(self._history.redo())

    def _restore(self, blocks: list[Block] | None) -> bool:
        if blocks is None:
            return False
        self._commit(compute_normalized_index(blocks, self.ordering_strategy), record=False)
        self._emit_blocks_change()
        return True

    # =========================================================================
    # Drag Lifecycle
    # =========================================================================

    def start_drag(self, active_id: str, dragged_ids: Sequence[str] | None = None) -> bool:
        """Begin a drag. Returns False when the drag is refused.

        Args:
            active_id: The block under the pointer.
            dragged_ids: Every block being dragged (multi-select). Defaults
                to just ``active_id``.
        """
        if self.is_dragging:
            logger.debug("start_drag(%s) ignored: already dragging %s", active_id, self._active_id)
            return False

        ids = list(dict.fromkeys(dragged_ids)) if dragged_ids else [active_id]
        if active_id not in ids:
            ids.insert(0, active_id)
        missing = [i for i in ids if i not in self._index.by_id]
        if missing:
            logger.debug("start_drag refused: unknown blocks %s", missing)
            return False

        block = self._index.by_id[active_id]
        if self.can_drag is not None and not self.can_drag(block):
            logger.debug("start_drag refused by can_drag for %s", active_id)
            return False

        self._reset_drag()
        self._drag_state = DragState.DRAGGING
        self._active_id = active_id
        self._dragged_ids = tuple(ids)
        self._snapshot = self._index
        self._from_position = _position(self._index, active_id)

        reset = getattr(self.collision_detection, "reset", None)
        if callable(reset):
            reset()

        logger.debug("Drag started: %s (%d blocks)", active_id, len(ids))
        self._emitter.emit(
            "drag:start",
            DragStartEvent(block=block, block_id=active_id, dragged_ids=self._dragged_ids),
        )
        return True

    def _reparent_snapshot(self, target_zone: str) -> BlockIndex:
        if self._snapshot is None or self._active_id is None:
            raise RuntimeError("No drag in progress")
        if len(self._dragged_ids) > 1:
            return reparent_multiple_blocks(
                self._snapshot,
                self._dragged_ids,
                target_zone,
                self.container_types,
                self.ordering_strategy,
                self.max_depth,
            )
        return reparent_block_index(
            self._snapshot,
            self._active_id,
            target_zone,
            self.container_types,
            self.ordering_strategy,
            self.max_depth,
        )

    def update_drag(self, target_zone: str) -> None:
        """Point the drag at a zone and schedule a preview."""
        if not self.is_dragging or target_zone == self._candidate_zone:
            return
        if self._snapshot is None or self._active_id is None:
            return

        active_block = self._snapshot.by_id[self._active_id]
        target_block = self._snapshot.by_id.get(extract_block_id(target_zone))
        if self.can_drop is not None and not self.can_drop(active_block, target_zone, target_block):
            return

        if self._hover_zone != target_zone:
            self._hover_zone = target_zone
            self._emitter.emit(
                "hover:change",
                HoverChangeEvent(
                    zone_id=target_zone,
                    zone_type=get_drop_zone_type(target_zone),
                    target_block=target_block,
                ),
            )

        self._candidate = self._reparent_snapshot(target_zone)
        self._candidate_zone = target_zone
        self._preview_debouncer(self._candidate, target_zone)

    def _publish_preview(self, candidate: BlockIndex, target_zone: str) -> None:
        if not self.is_dragging or self._active_id is None:
            return
        self._preview = candidate
        self._emitter.emit(
            "drag:move",
            DragMoveEvent(
                block=candidate.by_id[self._active_id],
                block_id=self._active_id,
                over_zone=target_zone,
                blocks=build_ordered_blocks(candidate, self.container_types, self.ordering_strategy),
            ),
        )

    def poll_preview(self, force: bool = False) -> bool:
        """Publish the pending drag:move preview on the calling thread.

        Args:
            force: Publish now instead of waiting out the debounce.

        Returns:
            True when a preview was published.
        """
        if force:
            return self._preview_debouncer.flush()
        return self._preview_debouncer.poll()

    def end_drag(self) -> DropResult | None:
        """Commit the cached candidate, if it changes anything.

        Returns:
            The committed blocks and zone, or None when nothing was moved.
        """
        if not self.is_dragging:
            return None
        if self._snapshot is None or self._active_id is None or self._from_position is None:
            return None
        self._preview_debouncer.cancel()
        self._preview = None

        active_id = self._active_id
        block = self._snapshot.by_id[active_id]
        candidate = self._candidate
        target_zone = self._candidate_zone
        result: DropResult | None = None

        if candidate is not None and candidate is not self._snapshot and target_zone is not None:
            if self.on_before_move is not None:
                decision = self.on_before_move(MoveOperation(block, self._from_position, target_zone))
                if decision is False:
                    logger.debug("Drop of %s on %s vetoed", active_id, target_zone)
                    candidate = None
                elif isinstance(decision, str) and decision != target_zone:
                    target_zone = decision
                    candidate = self._reparent_snapshot(target_zone)

        if candidate is not None and candidate is not self._snapshot and target_zone is not None:
            self._commit(candidate)
            logger.debug("Drag committed: %s -> %s", active_id, target_zone)
            self._emit_move(active_id, self._from_position, self._dragged_ids)
            self._emit_blocks_change()
            result = DropResult(blocks=self.get_blocks(), target_zone=target_zone)

        self._reset_drag()
        self._emitter.emit(
            "drag:end",
            DragEndEvent(
                block=self._index.by_id.get(active_id, block),
                block_id=active_id,
                target_zone=target_zone,
                cancelled=False,
            ),
        )
        return result

    def cancel_drag(self) -> None:
        """Abandon the drag. The committed blocks were never touched."""
        if not self.is_dragging:
            return
        if self._snapshot is None or self._active_id is None:
            return
        self._preview_debouncer.cancel()

        active_id = self._active_id
        block = self._snapshot.by_id[active_id]
        self._reset_drag()
        logger.debug("Drag cancelled: %s", active_id)

        self._emitter.emit(
            "drag:end",
            DragEndEvent(block=block, block_id=active_id, target_zone=None, cancelled=True),
        )
        self._emitter.emit("drag:cancel")

    # =========================================================================
    # Collision / Events / Cleanup
    # =========================================================================

    def detect_collision(
        self, candidates: Sequence[CollisionCandidate], pointer_rect: Rect
    ) -> str | None:
        """Winning zone id for a pointer, using the configured strategy."""
        strategy = self.collision_detection or weighted_vertical_collision
        results = strategy(candidates, pointer_rect)
        return results[0].id if results else None

    def on(self, event: str, handler: Handler) -> Callable[[], None]:
        return self._emitter.on(event, handler)

    def off(self, event: str, handler: Handler) -> None:
        self._emitter.off(event, handler)

    def destroy(self) -> None:
        """Drop pending previews, drag state and every listener."""
        self._preview_debouncer.cancel()
        self._reset_drag()
        self._emitter.remove_all_listeners()
