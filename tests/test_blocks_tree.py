"""Tests for blocks_tree.py - Tree operations for block hierarchy.

Tests:
- Single block moves and rejections
- Multi-select moves
- Fractional reordering
- Add / insert / delete
"""

from __future__ import annotations

import pytest

from blocktree.blocks_tree import (
    add_block_to_index,
    delete_block_and_descendants,
    insert_block_into_index,
    reparent_block_index,
    reparent_multiple_blocks,
)
from blocktree.errors import BlockNotFoundError, ContainerError, ValidationError
from blocktree.index import build_ordered_blocks, compute_normalized_index
from blocktree.models import Block, BlockIndex, OrderingStrategy
from conftest import make_block

CONTAINERS = {"section"}


@pytest.fixture
def index(outline_blocks: list[Block]) -> BlockIndex:
    return compute_normalized_index(outline_blocks)


def _ids(index: BlockIndex) -> list[str]:
    return [b.id for b in build_ordered_blocks(index, CONTAINERS)]


# =============================================================================
# Single Move Tests
# =============================================================================


class TestReparentBlock:
    def test_move_after_sibling(self, index: BlockIndex) -> None:
        result = reparent_block_index(index, "t1", "after-t2", CONTAINERS)

        assert result is not index
        assert result.by_parent["s1"] == ["t2", "t1"]

    def test_move_into_container_is_first_child(self, index: BlockIndex) -> None:
        result = reparent_block_index(index, "t1", "into-s2", CONTAINERS)

        assert result.by_parent["s2"] == ["t1", "t3"]
        assert result.by_parent["s1"] == ["t2"]
        assert result.by_id["t1"].parent_id == "s2"

    def test_move_to_end_of_container(self, index: BlockIndex) -> None:
        result = reparent_block_index(index, "t1", "end-s2", CONTAINERS)
        assert result.by_parent["s2"] == ["t3", "t1"]

    def test_move_to_root_start_and_end(self, index: BlockIndex) -> None:
        start = reparent_block_index(index, "t3", "root-start", CONTAINERS)
        assert start.by_parent[None][0] == "t3"
        assert start.by_id["t3"].parent_id is None

        end = reparent_block_index(index, "s1", "root-end", CONTAINERS)
        assert end.by_parent[None] == ["s2", "n1", "s1"]

    def test_move_before_block_in_other_parent(self, index: BlockIndex) -> None:
        result = reparent_block_index(index, "n1", "before-t3", CONTAINERS)
        assert result.by_parent["s2"] == ["n1", "t3"]
        assert _ids(result) == ["s1", "t1", "t2", "s2", "n1", "t3"]

    def test_original_index_untouched(self, index: BlockIndex) -> None:
        before = {k: list(v) for k, v in index.by_parent.items()}
        reparent_block_index(index, "t1", "into-s2", CONTAINERS)
        assert index.by_parent == before
        assert index.by_id["t1"].parent_id == "s1"

    def test_drop_onto_itself_is_rejected(self, index: BlockIndex) -> None:
        assert reparent_block_index(index, "t1", "after-t1", CONTAINERS) is index
        assert reparent_block_index(index, "s1", "into-s1", CONTAINERS) is index

    def test_nesting_into_non_container_is_rejected(self, index: BlockIndex) -> None:
        assert reparent_block_index(index, "s2", "into-n1", CONTAINERS) is index
        assert reparent_block_index(index, "t1", "into-n1", CONTAINERS) is index

    def test_exceeding_max_depth_is_rejected(self, index: BlockIndex) -> None:
        # s2 has depth 2 with its child; under s1 it would need 3 levels.
        assert reparent_block_index(index, "s2", "into-s1", CONTAINERS, max_depth=2) is index
        assert reparent_block_index(index, "s2", "into-s1", CONTAINERS, max_depth=3) is not index

    def test_max_depth_one_keeps_flat_list(self, index: BlockIndex) -> None:
        assert reparent_block_index(index, "n1", "into-s1", CONTAINERS, max_depth=1) is index

    def test_cannot_drop_into_own_descendant(self) -> None:
        index = compute_normalized_index([
            make_block("a", "section"),
            make_block("b", "section", parent_id="a"),
        ])
        assert reparent_block_index(index, "a", "into-b", CONTAINERS) is index

    def test_missing_blocks_and_bad_zones_are_rejected(self, index: BlockIndex) -> None:
        assert reparent_block_index(index, "ghost", "after-t1", CONTAINERS) is index
        assert reparent_block_index(index, "t1", "after-ghost", CONTAINERS) is index
        assert reparent_block_index(index, "t1", "sideways-t2", CONTAINERS) is index

    def test_same_position_returns_same_index(self, index: BlockIndex) -> None:
        assert reparent_block_index(index, "t1", "before-t2", CONTAINERS) is index
        assert reparent_block_index(index, "t2", "after-t1", CONTAINERS) is index
        assert reparent_block_index(index, "t1", "into-s1", CONTAINERS) is index
        assert reparent_block_index(index, "n1", "root-end", CONTAINERS) is index

    def test_fractional_move_gets_key_between_neighbours(self) -> None:
        blocks = [
            make_block("a", order="9"),
            make_block("b", order="i"),
            make_block("c", order="r"),
        ]
        index = compute_normalized_index(blocks, OrderingStrategy.FRACTIONAL)

        result = reparent_block_index(index, "c", "after-a", (), OrderingStrategy.FRACTIONAL)

        assert result.by_parent[None] == ["a", "c", "b"]
        assert "9" < result.by_id["c"].order < "i"
        # Other blocks keep their keys
        assert result.by_id["a"] is index.by_id["a"]
        assert result.by_id["b"] is index.by_id["b"]


# =============================================================================
# Multi Move Tests
# =============================================================================


class TestReparentMultiple:
    def test_preserves_original_document_order(self) -> None:
        index = compute_normalized_index([
            make_block("y", order=0),
            make_block("x", order=1),
            make_block("dest", "section", order=2),
        ])

        result = reparent_multiple_blocks(index, ["x", "y"], "into-dest", CONTAINERS)

        assert result.by_parent["dest"] == ["y", "x"]
        assert result.by_parent[None] == ["dest"]

    def test_contiguous_run_at_destination(self, index: BlockIndex) -> None:
        result = reparent_multiple_blocks(index, ["n1", "t1"], "after-t3", CONTAINERS)

        assert result.by_parent["s2"] == ["t3", "t1", "n1"]
        assert result.by_parent["s1"] == ["t2"]

    def test_selected_descendants_travel_with_ancestor(self, index: BlockIndex) -> None:
        result = reparent_multiple_blocks(index, ["t1", "s1"], "root-end", CONTAINERS)

        assert result.by_parent[None] == ["s2", "n1", "s1"]
        assert result.by_parent["s1"] == ["t1", "t2"]

    def test_target_inside_selection_is_rejected(self, index: BlockIndex) -> None:
        assert reparent_multiple_blocks(index, ["s1", "n1"], "after-t1", CONTAINERS) is index

    def test_any_invalid_block_rejects_whole_move(self, index: BlockIndex) -> None:
        assert reparent_multiple_blocks(index, ["t1", "s2"], "into-s1", CONTAINERS, max_depth=2) is index
        assert reparent_multiple_blocks(index, ["t1", "ghost"], "into-s2", CONTAINERS) is index

    def test_single_id_delegates(self, index: BlockIndex) -> None:
        result = reparent_multiple_blocks(index, ["t1"], "into-s2", CONTAINERS)
        assert result.by_parent["s2"] == ["t1", "t3"]

    def test_no_op_returns_same_index(self, index: BlockIndex) -> None:
        assert reparent_multiple_blocks(index, ["t1", "t2"], "into-s1", CONTAINERS) is index
        assert reparent_multiple_blocks(index, [], "into-s1", CONTAINERS) is index

    def test_fractional_run_keys_ascend(self) -> None:
        blocks = [
            make_block("a", order="4"),
            make_block("b", order="9"),
            make_block("c", order="i"),
            make_block("d", order="r"),
        ]
        index = compute_normalized_index(blocks, OrderingStrategy.FRACTIONAL)

        result = reparent_multiple_blocks(index, ["d", "c"], "after-a", (), OrderingStrategy.FRACTIONAL)

        assert result.by_parent[None] == ["a", "c", "d", "b"]
        keys = [result.by_id[i].order for i in result.by_parent[None]]
        assert keys == sorted(keys)
        assert len(set(keys)) == 4


# =============================================================================
# Add / Insert / Delete Tests
# =============================================================================


class TestAddInsertDelete:
    def test_add_appends(self, index: BlockIndex) -> None:
        result = add_block_to_index(index, make_block("t9", "task", "s2", 99), CONTAINERS)
        assert result.by_parent["s2"] == ["t3", "t9"]
        assert "t9" not in index

    def test_add_uses_integer_order_as_position(self, index: BlockIndex) -> None:
        result = add_block_to_index(index, make_block("t0", "task", "s1", 0), CONTAINERS)
        assert result.by_parent["s1"] == ["t0", "t1", "t2"]

    def test_add_duplicate_id_raises(self, index: BlockIndex) -> None:
        with pytest.raises(ValidationError):
            add_block_to_index(index, make_block("t1"))

    def test_add_missing_parent_raises(self, index: BlockIndex) -> None:
        with pytest.raises(BlockNotFoundError) as exc_info:
            add_block_to_index(index, make_block("z", parent_id="ghost"))
        assert exc_info.value.block_id == "ghost"

    def test_add_under_non_container_raises(self, index: BlockIndex) -> None:
        with pytest.raises(ContainerError):
            add_block_to_index(index, make_block("z", parent_id="n1"), CONTAINERS)

    def test_insert_at_position(self, index: BlockIndex) -> None:
        result = insert_block_into_index(index, make_block("z"), "s1", 1)
        assert result.by_parent["s1"] == ["t1", "z", "t2"]
        assert result.by_id["z"].parent_id == "s1"

    def test_insert_position_clamped(self, index: BlockIndex) -> None:
        result = insert_block_into_index(index, make_block("z"), None, 50)
        assert result.by_parent[None][-1] == "z"

    def test_insert_missing_parent_raises(self, index: BlockIndex) -> None:
        with pytest.raises(BlockNotFoundError):
            insert_block_into_index(index, make_block("z"), "ghost", 0)

    def test_delete_removes_descendants(self) -> None:
        index = compute_normalized_index([
            make_block("A", "section"),
            make_block("B", "section", parent_id="A"),
            make_block("C", parent_id="B"),
        ])

        result = delete_block_and_descendants(index, "B")

        assert set(result.by_id) == {"A"}
        assert result.by_parent["A"] == []
        assert "B" not in result.by_parent

    def test_delete_missing_returns_same_index(self, index: BlockIndex) -> None:
        assert delete_block_and_descendants(index, "ghost") is index
