"""Tests for serialization.py and the Block model's dict form."""

from __future__ import annotations

from blocktree.models import Block
from blocktree.serialization import NestedBlock, flat_to_nested, nested_to_flat
from conftest import make_block


class TestBlockDict:
    def test_from_dict_folds_unknown_keys(self) -> None:
        block = Block.from_dict({"id": "a", "type": "task", "parentId": "s", "order": 2, "title": "T"})

        assert block.parent_id == "s"
        assert block.properties == {"title": "T"}
        assert block.get("title") == "T"
        assert block.get("order") == 2
        assert block.get("missing", "x") == "x"

    def test_to_dict_round_trip(self) -> None:
        block = make_block("a", "task", "s", "i", title="T")
        assert Block.from_dict(block.to_dict()) == block


class TestFlatToNested:
    def test_builds_tree(self, outline_blocks: list[Block]) -> None:
        nested = flat_to_nested(outline_blocks)

        assert [n.id for n in nested] == ["s1", "s2", "n1"]
        assert [c.id for c in nested[0].children] == ["t1", "t2"]
        assert nested[0].properties == {"title": "Inbox"}

    def test_sorts_by_order(self) -> None:
        blocks = [make_block("b", order=1), make_block("a", order=0), make_block("c", order="i")]
        assert [n.id for n in flat_to_nested(blocks)] == ["a", "b", "c"]

    def test_orphans_are_dropped(self) -> None:
        blocks = [make_block("a"), make_block("lost", parent_id="ghost")]
        assert [n.id for n in flat_to_nested(blocks)] == ["a"]

    def test_to_dict(self) -> None:
        nested = flat_to_nested([make_block("s", "section"), make_block("t", parent_id="s", title="x")])
        assert nested[0].to_dict() == {
            "id": "s",
            "type": "section",
            "properties": {},
            "children": [{"id": "t", "type": "item", "properties": {"title": "x"}, "children": []}],
        }


class TestNestedToFlat:
    def test_depth_first_with_positions(self) -> None:
        nested = [
            NestedBlock("s1", "section", {}, [NestedBlock("a", "item"), NestedBlock("b", "item")]),
            NestedBlock("s2", "section"),
        ]

        flat = nested_to_flat(nested)

        assert [(b.id, b.parent_id, b.order) for b in flat] == [
            ("s1", None, 0),
            ("a", "s1", 0),
            ("b", "s1", 1),
            ("s2", None, 1),
        ]

    def test_round_trip(self, outline_blocks: list[Block]) -> None:
        flat = nested_to_flat(flat_to_nested(outline_blocks))
        assert [b.to_dict() for b in flat] == [b.to_dict() for b in outline_blocks]

    def test_from_dict(self) -> None:
        data = {"id": "s", "type": "section", "children": [{"id": "t", "type": "item"}]}
        node = NestedBlock.from_dict(data)
        assert node.children[0].id == "t"
        assert node.to_dict()["children"][0]["properties"] == {}
