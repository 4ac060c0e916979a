"""Markdown outline import/export.

Converts between block trees and nested Markdown bullet lists using the
mistletoe library for parsing:

    # Groceries            -> container block
    - Fruit                -> container block (it has nested items)
      - [x] Apples         -> item block, properties {"checked": True}
    - Bread                -> item block

Headings start a new root-level container that following lists nest under.
Rendering only emits bullets, so an empty container comes back as an item.
"""

from __future__ import annotations

import re
import uuid
from collections import defaultdict
from collections.abc import Callable, Collection, Iterable
from typing import Any

from mistletoe import Document
from mistletoe.block_token import Heading, List, ListItem, Paragraph
from mistletoe.span_token import LineBreak, RawText

from .models import Block
from .serialization import NestedBlock, flat_to_nested

_CHECKBOX_RE = re.compile(r"^\[([xX ])\]\s*(.*)$", re.DOTALL)


def parse_outline(
    markdown: str,
    container_type: str = "group",
    item_type: str = "item",
    text_field: str = "title",
    id_generator: Callable[[], str] | None = None,
) -> list[Block]:
    """Parse a Markdown outline into integer-ordered blocks.

    Args:
        markdown: The Markdown text to parse.
        container_type: Type for headings and list items with nested lists.
        item_type: Type for leaf list items and loose paragraphs.
        text_field: Property that receives each node's text.
        id_generator: Id factory; defaults to random hex ids.

    Returns:
        Blocks in depth-first document order.
    """
    new_id = id_generator or (lambda: uuid.uuid4().hex)
    blocks: list[Block] = []
    next_order: dict[str | None, int] = defaultdict(int)

    def add(block_type: str, parent_id: str | None, properties: dict[str, Any]) -> str:
        block_id = new_id()
        blocks.append(
            Block(
                id=block_id,
                type=block_type,
                parent_id=parent_id,
                order=next_order[parent_id],
                properties=properties,
            )
        )
        next_order[parent_id] += 1
        return block_id

    section: str | None = None
    for token in Document(markdown).children:
        if isinstance(token, Heading):
            section = add(container_type, None, {text_field: _extract_text(token)})
        elif isinstance(token, List):
            _add_list(token, section, add, container_type, item_type, text_field)
        elif isinstance(token, Paragraph):
            add(item_type, section, _text_properties(_extract_text(token), text_field))

    return blocks


def _add_list(
    root: List,
    parent_id: str | None,
    add: Callable[[str, str | None, dict[str, Any]], str],
    container_type: str,
    item_type: str,
    text_field: str,
) -> None:
    # Stack of (list token, parent id); items are pushed reversed to keep order.
    stack: list[tuple[ListItem, str | None]] = [
        (item, parent_id) for item in reversed(_list_items(root))
    ]
    while stack:
        item, item_parent = stack.pop()
        text = "".join(
            _extract_text(child) for child in item.children if isinstance(child, Paragraph)
        )
        nested = [child for child in item.children if isinstance(child, List)]
        block_type = container_type if nested else item_type
        block_id = add(block_type, item_parent, _text_properties(text, text_field))

        children: list[ListItem] = []
        for sublist in nested:
            children.extend(_list_items(sublist))
        stack.extend((child, block_id) for child in reversed(children))


def _list_items(token: List) -> list[ListItem]:
    return [child for child in token.children if isinstance(child, ListItem)]


def _text_properties(text: str, text_field: str) -> dict[str, Any]:
    checkbox_match = _CHECKBOX_RE.match(text)
    if checkbox_match:
        return {
            text_field: checkbox_match.group(2),
            "checked": checkbox_match.group(1).lower() == "x",
        }
    return {text_field: text}


def _extract_text(token: Any) -> str:
    """Extract plain text from a token."""
    if isinstance(token, RawText):
        return token.content
    if isinstance(token, LineBreak):
        return " "
    if getattr(token, "children", None):
        return "".join(_extract_text(child) for child in token.children)
    return ""


def render_outline(
    blocks: Iterable[Block],
    container_types: Collection[str] | None = None,
    text_field: str = "title",
) -> str:
    """Render blocks as a nested Markdown bullet list.

    Args:
        blocks: Flat block list (any order; siblings sort by ``order``).
        container_types: When given, children of non-container blocks are
            not rendered.
        text_field: Property holding each node's text.

    Returns:
        Markdown text, two spaces of indent per level.
    """
    lines: list[str] = []
    stack: list[tuple[NestedBlock, int]] = [
        (node, 0) for node in reversed(flat_to_nested(blocks))
    ]
    while stack:
        node, depth = stack.pop()
        text = str(node.properties.get(text_field, ""))
        checked = node.properties.get("checked")
        marker = "" if checked is None else ("[x] " if checked else "[ ] ")
        lines.append(f"{'  ' * depth}- {marker}{text}".rstrip())

        if container_types is None or node.type in container_types:
            stack.extend((child, depth + 1) for child in reversed(node.children))

    return "\n".join(lines)
