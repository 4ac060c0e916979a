"""Tests for outline.py - Markdown outline import/export."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from blocktree.models import Block
from blocktree.outline import parse_outline, render_outline
from conftest import make_block


@pytest.fixture
def ids() -> Callable[[], str]:
    counter = iter(range(1000))
    return lambda: f"b{next(counter)}"


class TestParseOutline:
    def test_nested_list(self, ids: Callable[[], str]) -> None:
        markdown = "- Fruit\n  - Apples\n  - Pears\n- Bread\n"

        blocks = parse_outline(markdown, "group", "item", id_generator=ids)

        assert [(b.id, b.type, b.parent_id, b.order, b.properties["title"]) for b in blocks] == [
            ("b0", "group", None, 0, "Fruit"),
            ("b1", "item", "b0", 0, "Apples"),
            ("b2", "item", "b0", 1, "Pears"),
            ("b3", "item", None, 1, "Bread"),
        ]

    def test_headings_become_sections(self, ids: Callable[[], str]) -> None:
        markdown = "# Groceries\n\n- Milk\n\n# Chores\n\n- Dishes\n"

        blocks = parse_outline(markdown, "section", "task", id_generator=ids)

        by_title = {b.properties["title"]: b for b in blocks}
        assert by_title["Groceries"].type == "section"
        assert by_title["Milk"].parent_id == by_title["Groceries"].id
        assert by_title["Dishes"].parent_id == by_title["Chores"].id

    def test_checkboxes(self, ids: Callable[[], str]) -> None:
        blocks = parse_outline("- [x] Done\n- [ ] Todo\n", id_generator=ids)

        assert blocks[0].properties == {"title": "Done", "checked": True}
        assert blocks[1].properties == {"title": "Todo", "checked": False}

    def test_custom_text_field(self, ids: Callable[[], str]) -> None:
        blocks = parse_outline("- Hello\n", text_field="name", id_generator=ids)
        assert blocks[0].properties == {"name": "Hello"}

    def test_default_ids_are_unique(self) -> None:
        blocks = parse_outline("- a\n- b\n- c\n")
        assert len({b.id for b in blocks}) == 3

    def test_empty(self) -> None:
        assert parse_outline("") == []


class TestRenderOutline:
    def test_renders_nested_bullets(self, outline_blocks: list[Block]) -> None:
        text = render_outline(outline_blocks, {"section"})

        assert text == (
            "- Inbox\n"
            "  - Write\n"
            "  - Review\n"
            "- Later\n"
            "  - Ship\n"
            "- Loose"
        )

    def test_checked_marker(self) -> None:
        text = render_outline([make_block("a", title="Done", checked=True)])
        assert text == "- [x] Done"

    def test_round_trip(self, ids: Callable[[], str]) -> None:
        markdown = "- Fruit\n  - [x] Apples\n  - Pears\n- Bread"

        blocks = parse_outline(markdown, id_generator=ids)

        assert render_outline(blocks, {"group"}) == markdown
