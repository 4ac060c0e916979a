"""Normalized block index.

This module builds and reads the two lookup tables every tree operation works
on:
- Building an index from a flat block list
- Walking it back into an ordered flat list
- Descendant and depth queries
- Structural validation for diagnostics
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Collection, Iterable
from dataclasses import replace
from functools import cmp_to_key
from typing import TypeVar

from .models import Block, BlockIndex, OrderingStrategy
from .ordering import compare_fractional_keys

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


# =============================================================================
# Copy-on-write Helpers
# =============================================================================


def clone_map(mapping: dict[K, V]) -> dict[K, V]:
    """Shallow copy of a lookup table."""
    return dict(mapping)


def clone_parent_map(mapping: dict[str | None, list[str]]) -> dict[str | None, list[str]]:
    """Copy a parent map, including each sibling list."""
    return {key: list(ids) for key, ids in mapping.items()}


# =============================================================================
# Build / Flatten
# =============================================================================


def compute_normalized_index(
    blocks: Iterable[Block],
    strategy: OrderingStrategy | str = OrderingStrategy.INTEGER,
) -> BlockIndex:
    """Build an index from a flat block list in a single pass.

    Sibling lists keep input order. With the fractional strategy each sibling
    list is then sorted by its blocks' keys. Invariants are not checked; call
    validate_block_tree() for that.
    """
    by_id: dict[str, Block] = {}
    by_parent: dict[str | None, list[str]] = {}

    for block in blocks:
        by_id[block.id] = block
        by_parent.setdefault(block.parent_id, []).append(block.id)

    if OrderingStrategy(strategy) is OrderingStrategy.FRACTIONAL:
        by_key = cmp_to_key(compare_fractional_keys)
        for ids in by_parent.values():
            ids.sort(key=lambda block_id: by_key(str(by_id[block_id].order)))

    return BlockIndex(by_id=by_id, by_parent=by_parent)


def build_ordered_blocks(
    index: BlockIndex,
    container_types: Collection[str] = (),
    strategy: OrderingStrategy | str = OrderingStrategy.INTEGER,
) -> list[Block]:
    """Flatten an index into depth-first document order.

    Only container blocks are descended into. With the integer strategy each
    emitted block's ``order`` is rewritten to its sibling position, so the
    output is consistent even when stale ``order`` fields disagree with the
    sibling lists. Fractional keys are left untouched.
    """
    reindex = OrderingStrategy(strategy) is OrderingStrategy.INTEGER
    result: list[Block] = []
    visited: set[str] = set()

    # Each frame is (sibling ids, next position to emit).
    stack: list[tuple[list[str], int]] = [(index.by_parent.get(None, []), 0)]
    while stack:
        siblings, position = stack.pop()
        if position >= len(siblings):
            continue
        stack.append((siblings, position + 1))

        block = index.by_id.get(siblings[position])
        if block is None or block.id in visited:
            continue
        visited.add(block.id)

        if reindex and block.order != position:
            block = replace(block, order=position)
        result.append(block)

        if block.type in container_types:
            stack.append((index.by_parent.get(block.id, []), 0))

    return result


# =============================================================================
# Descendant / Depth Queries
# =============================================================================


def get_descendant_ids(index: BlockIndex, block_id: str) -> set[str]:
    """The block id itself plus every transitive child id.

    Iterative so very deep trees cannot exhaust the call stack.
    """
    found: set[str] = set()
    stack = [block_id]

    while stack:
        current = stack.pop()
        if current in found:
            continue
        found.add(current)
        stack.extend(index.by_parent.get(current, ()))

    return found


def get_block_depth(index: BlockIndex, block_id: str) -> int:
    """Nesting depth via the parent chain. Root-level blocks have depth 1."""
    depth = 0
    current: str | None = block_id
    visited: set[str] = set()

    while current is not None and current not in visited:
        visited.add(current)
        depth += 1
        block = index.by_id.get(current)
        current = block.parent_id if block else None

    return depth


def get_subtree_depth(index: BlockIndex, block_id: str) -> int:
    """Height of the subtree rooted at ``block_id`` (inclusive). A leaf is 1."""
    max_depth = 0
    visited: set[str] = set()
    queue: deque[tuple[str, int]] = deque([(block_id, 1)])

    while queue:
        current, depth = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        max_depth = max(max_depth, depth)
        for child_id in index.by_parent.get(current, ()):
            queue.append((child_id, depth + 1))

    return max_depth


# =============================================================================
# Validation
# =============================================================================


def validate_block_tree(
    index: BlockIndex,
    container_types: Collection[str] | None = None,
) -> list[str]:
    """Check an index for structural problems.

    Never raises and never repairs anything. Returns human-readable issue
    strings (empty when the tree is sound) and logs each one as a warning.

    Args:
        index: The index to inspect.
        container_types: When given, also report non-container blocks that
            own children.
    """
    issues: list[str] = []

    # Duplicate and stale sibling-list entries
    listed_under: dict[str, str | None] = {}
    for parent_id, child_ids in index.by_parent.items():
        for child_id in child_ids:
            if child_id in listed_under:
                issues.append(
                    f'Duplicate id: block "{child_id}" is listed under both '
                    f'"{listed_under[child_id]}" and "{parent_id}"'
                )
                continue
            listed_under[child_id] = parent_id
            block = index.by_id.get(child_id)
            if block is None:
                issues.append(
                    f'Stale ref: byParent key "{parent_id}" lists non-existent block "{child_id}"'
                )
            elif block.parent_id != parent_id:
                issues.append(
                    f'Parent mismatch: block "{child_id}" has parentId "{block.parent_id}" '
                    f'but is listed under "{parent_id}"'
                )

    for block_id, block in index.by_id.items():
        if block_id not in listed_under:
            issues.append(f'Unlisted: block "{block_id}" does not appear in any sibling list')
        if block.parent_id is not None and block.parent_id not in index.by_id:
            issues.append(
                f'Orphan: block "{block_id}" references non-existent parent "{block.parent_id}"'
            )

    issues.extend(_find_cycles(index))

    if container_types is not None:
        for parent_id, child_ids in index.by_parent.items():
            parent = index.by_id.get(parent_id) if parent_id is not None else None
            if parent is not None and child_ids and parent.type not in container_types:
                issues.append(
                    f'Non-container parent: block "{parent_id}" of type "{parent.type}" has children'
                )

    for issue in issues:
        logger.warning("Block tree issue: %s", issue)

    return issues


def _find_cycles(index: BlockIndex) -> list[str]:
    """Detect parent-chain cycles with a DFS over parent links.

    Blocks currently on the walk are "on stack"; reaching one again closes a
    cycle. Finished blocks are never re-walked.
    """
    issues: list[str] = []
    done: set[str] = set()

    for start in index.by_id:
        if start in done:
            continue
        on_stack: list[str] = []
        on_stack_set: set[str] = set()
        current: str | None = start

        while current is not None and current in index.by_id and current not in done:
            if current in on_stack_set:
                cycle = on_stack[on_stack.index(current):]
                issues.append(
                    f'Cycle detected: blocks {" -> ".join(cycle)} -> {current} form a circular parentId chain'
                )
                break
            on_stack.append(current)
            on_stack_set.add(current)
            current = index.by_id[current].parent_id

        done.update(on_stack)

    return issues
