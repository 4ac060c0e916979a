"""Tree operations for block hierarchy.

This module provides the structural mutations over a BlockIndex:
- Moving one block or a multi-selection to a drop zone
- Adding and inserting new blocks
- Deleting a block together with its descendants

Every mutation returns a new index. A move that is not allowed returns the
exact index object it was given, so callers can test ``result is index``.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from dataclasses import replace

from .errors import BlockNotFoundError, ContainerError, ValidationError
from .index import (
    clone_map,
    clone_parent_map,
    get_block_depth,
    get_descendant_ids,
    get_subtree_depth,
)
from .models import Block, BlockIndex, OrderingStrategy
from .ordering import generate_key_between, generate_n_keys_between
from .zones import DropZone, parse_zone

logger = logging.getLogger(__name__)


class _MoveRejected(Exception):
    """Internal signal: the requested move is not allowed."""


# =============================================================================
# Move Validation
# =============================================================================


def _parse(target_zone: str) -> DropZone:
    zone = parse_zone(target_zone)
    if zone is None:
        raise _MoveRejected(f"unrecognized zone id {target_zone!r}")
    return zone


def _new_parent_id(index: BlockIndex, zone: DropZone) -> str | None:
    """Parent the dropped block(s) will end up under."""
    if zone.is_root:
        return None
    target = index.by_id.get(zone.target_id)  # type: ignore[arg-type]
    if target is None:
        raise _MoveRejected(f"target block {zone.target_id} does not exist")
    if zone.relation in ("into", "end"):
        return target.id
    return target.parent_id


def _check_destination(
    index: BlockIndex,
    block: Block,
    new_parent_id: str | None,
    container_types: Collection[str],
    max_depth: int | None,
) -> None:
    if new_parent_id is not None:
        parent = index.by_id[new_parent_id]
        if parent.type not in container_types:
            raise _MoveRejected(f"parent {new_parent_id} of type {parent.type!r} is not a container")
        if new_parent_id in get_descendant_ids(index, block.id):
            raise _MoveRejected(f"{new_parent_id} is inside the subtree of {block.id}")

    if max_depth is not None:
        parent_depth = get_block_depth(index, new_parent_id) if new_parent_id is not None else 0
        if parent_depth + get_subtree_depth(index, block.id) > max_depth:
            raise _MoveRejected(f"max depth {max_depth} exceeded")


def _insert_position(siblings: Sequence[str], zone: DropZone) -> int:
    if zone.relation == "into":
        return 0
    if zone.relation == "end":
        return len(siblings)
    try:
        position = siblings.index(zone.target_id)  # type: ignore[arg-type]
    except ValueError:
        return len(siblings)
    return position + 1 if zone.relation == "after" else position


def _neighbour_keys(
    index: BlockIndex, siblings: Sequence[str], start: int, count: int
) -> tuple[str | None, str | None]:
    """Order keys just before and just after ``siblings[start:start + count]``."""
    low = str(index.by_id[siblings[start - 1]].order) if start > 0 else None
    stop = start + count
    high = str(index.by_id[siblings[stop]].order) if stop < len(siblings) else None
    return low, high


# =============================================================================
# Move Operations
# =============================================================================


def reparent_block_index(
    index: BlockIndex,
    active_id: str,
    target_zone: str,
    container_types: Collection[str] = (),
    strategy: OrderingStrategy | str = OrderingStrategy.INTEGER,
    max_depth: int | None = None,
) -> BlockIndex:
    """Move one block to the slot named by a drop zone id.

    Args:
        index: Current index (never modified).
        active_id: The dragged block.
        target_zone: Zone id such as ``after-<id>`` or ``root-end``.
        container_types: Block types allowed to own children.
        strategy: With FRACTIONAL the moved block gets a new key between its
            new neighbours; with INTEGER order is fixed by build_ordered_blocks.
        max_depth: Maximum nesting depth (1 = flat list).

    Returns:
        A new index, or ``index`` itself when the move is rejected or would
        leave the block exactly where it is.
    """
    try:
        zone = _parse(target_zone)
        dragged = index.by_id.get(active_id)
        if dragged is None:
            raise _MoveRejected(f"dragged block {active_id} does not exist")
        if zone.target_id == active_id:
            raise _MoveRejected("cannot drop a block onto itself")
        new_parent_id = _new_parent_id(index, zone)
        _check_destination(index, dragged, new_parent_id, container_types, max_depth)
    except _MoveRejected as exc:
        logger.debug("Rejected move of %s to %s: %s", active_id, target_zone, exc)
        return index

    old_parent_id = dragged.parent_id
    old_siblings = index.by_parent.get(old_parent_id, [])

    # No-op detection against the pre-removal lists
    if old_parent_id == new_parent_id and active_id in old_siblings:
        current = old_siblings.index(active_id)
        target = _insert_position(old_siblings, zone)
        if target > current:
            target -= 1
        if target == current:
            return index

    by_id = clone_map(index.by_id)
    by_parent = clone_parent_map(index.by_parent)

    if old_parent_id in by_parent:
        by_parent[old_parent_id] = [i for i in by_parent[old_parent_id] if i != active_id]

    new_siblings = by_parent.setdefault(new_parent_id, [])
    insert_at = _insert_position(new_siblings, zone)
    new_siblings.insert(insert_at, active_id)

    order = dragged.order
    if OrderingStrategy(strategy) is OrderingStrategy.FRACTIONAL:
        low, high = _neighbour_keys(index, new_siblings, insert_at, 1)
        order = generate_key_between(low, high)

    by_id[active_id] = replace(dragged, parent_id=new_parent_id, order=order)
    return BlockIndex(by_id=by_id, by_parent=by_parent)


def reparent_multiple_blocks(
    index: BlockIndex,
    active_ids: Sequence[str],
    target_zone: str,
    container_types: Collection[str] = (),
    strategy: OrderingStrategy | str = OrderingStrategy.INTEGER,
    max_depth: int | None = None,
) -> BlockIndex:
    """Move a multi-selection to a drop zone as one contiguous run.

    The run keeps the blocks' original document order, whatever order the
    caller listed them in. Selected blocks whose ancestor is also selected
    travel inside that ancestor instead of being moved on their own.

    Returns:
        A new index, or ``index`` itself when the move is rejected or a no-op.
    """
    unique_ids = list(dict.fromkeys(active_ids))
    if not unique_ids:
        return index
    if len(unique_ids) == 1:
        return reparent_block_index(
            index, unique_ids[0], target_zone, container_types, strategy, max_depth
        )

    try:
        zone = _parse(target_zone)
        missing = [i for i in unique_ids if i not in index.by_id]
        if missing:
            raise _MoveRejected(f"dragged blocks {missing} do not exist")

        selected = set(unique_ids)
        roots = [i for i in unique_ids if not _has_selected_ancestor(index, i, selected)]
        carried: set[str] = set()
        for block_id in roots:
            carried |= get_descendant_ids(index, block_id)
        if zone.target_id is not None and zone.target_id in carried:
            raise _MoveRejected(f"target {zone.target_id} is part of the moved selection")

        new_parent_id = _new_parent_id(index, zone)
        for block_id in roots:
            _check_destination(index, index.by_id[block_id], new_parent_id, container_types, max_depth)
    except _MoveRejected as exc:
        logger.debug("Rejected move of %s to %s: %s", unique_ids, target_zone, exc)
        return index

    positions = _document_positions(index)
    moving = sorted(roots, key=lambda i: positions.get(i, len(positions)))

    by_parent = clone_parent_map(index.by_parent)
    for block_id in moving:
        siblings = by_parent.get(index.by_id[block_id].parent_id)
        if siblings is not None and block_id in siblings:
            siblings.remove(block_id)

    new_siblings = by_parent.setdefault(new_parent_id, [])
    insert_at = _insert_position(new_siblings, zone)
    new_siblings[insert_at:insert_at] = moving

    unchanged_parent = all(index.by_id[i].parent_id == new_parent_id for i in moving)
    if unchanged_parent and new_siblings == index.by_parent.get(new_parent_id, []):
        return index

    if OrderingStrategy(strategy) is OrderingStrategy.FRACTIONAL:
        low, high = _neighbour_keys(index, new_siblings, insert_at, len(moving))
        orders: list[int | str] = list(generate_n_keys_between(low, high, len(moving)))
    else:
        orders = [index.by_id[i].order for i in moving]

    by_id = clone_map(index.by_id)
    for block_id, order in zip(moving, orders):
        by_id[block_id] = replace(by_id[block_id], parent_id=new_parent_id, order=order)

    return BlockIndex(by_id=by_id, by_parent=by_parent)


def _has_selected_ancestor(index: BlockIndex, block_id: str, selected: set[str]) -> bool:
    visited = {block_id}
    parent_id = index.by_id[block_id].parent_id
    while parent_id is not None and parent_id not in visited:
        if parent_id in selected:
            return True
        visited.add(parent_id)
        parent = index.by_id.get(parent_id)
        parent_id = parent.parent_id if parent else None
    return False


def _document_positions(index: BlockIndex) -> dict[str, int]:
    """Pre-order position of every block reachable from the root."""
    positions: dict[str, int] = {}
    stack = list(reversed(index.by_parent.get(None, [])))
    while stack:
        block_id = stack.pop()
        if block_id in positions:
            continue
        positions[block_id] = len(positions)
        stack.extend(reversed(index.by_parent.get(block_id, [])))
    return positions


# =============================================================================
# Add / Insert / Delete
# =============================================================================


def _check_new_parent(
    index: BlockIndex,
    parent_id: str | None,
    container_types: Collection[str] | None,
    operation: str,
) -> None:
    if parent_id is None:
        return
    parent = index.by_id.get(parent_id)
    if parent is None:
        raise BlockNotFoundError(parent_id, operation=operation)
    if container_types is not None and parent.type not in container_types:
        raise ContainerError(parent.id, parent.type)


def add_block_to_index(
    index: BlockIndex,
    block: Block,
    container_types: Collection[str] | None = None,
) -> BlockIndex:
    """Add a new block under its ``parent_id``.

    An integer ``order`` within range is used as the insert position; anything
    else appends.

    Raises:
        ValidationError: If the id is already taken.
        BlockNotFoundError: If the parent does not exist.
        ContainerError: If container_types is given and the parent is not one.
    """
    if block.id in index.by_id:
        raise ValidationError("Block id already exists", field="id", value=block.id)
    _check_new_parent(index, block.parent_id, container_types, "add")

    by_id = clone_map(index.by_id)
    by_parent = clone_parent_map(index.by_parent)
    by_id[block.id] = block

    siblings = by_parent.setdefault(block.parent_id, [])
    if isinstance(block.order, int) and 0 <= block.order <= len(siblings):
        siblings.insert(block.order, block.id)
    else:
        siblings.append(block.id)

    return BlockIndex(by_id=by_id, by_parent=by_parent)


def insert_block_into_index(
    index: BlockIndex,
    block: Block,
    parent_id: str | None,
    position: int,
    container_types: Collection[str] | None = None,
) -> BlockIndex:
    """Splice a new block into a sibling list at ``position`` (clamped).

    Raises:
        ValidationError: If the id is already taken.
        BlockNotFoundError: If the parent does not exist.
        ContainerError: If container_types is given and the parent is not one.
    """
    if block.id in index.by_id:
        raise ValidationError("Block id already exists", field="id", value=block.id)
    _check_new_parent(index, parent_id, container_types, "insert")

    if block.parent_id != parent_id:
        block = replace(block, parent_id=parent_id)

    by_id = clone_map(index.by_id)
    by_parent = clone_parent_map(index.by_parent)
    by_id[block.id] = block

    siblings = by_parent.setdefault(parent_id, [])
    siblings.insert(max(0, min(position, len(siblings))), block.id)

    return BlockIndex(by_id=by_id, by_parent=by_parent)


def delete_block_and_descendants(index: BlockIndex, block_id: str) -> BlockIndex:
    """Remove a block and its whole subtree from both maps.

    Returns ``index`` unchanged when the block does not exist.
    """
    if block_id not in index.by_id:
        return index

    doomed = get_descendant_ids(index, block_id)
    by_id = {k: v for k, v in index.by_id.items() if k not in doomed}
    by_parent = {
        parent_id: [i for i in ids if i not in doomed]
        for parent_id, ids in index.by_parent.items()
        if parent_id not in doomed
    }

    logger.debug("Deleted %d blocks under %s", len(doomed), block_id)
    return BlockIndex(by_id=by_id, by_parent=by_parent)
