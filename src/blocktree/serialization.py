"""Convert between flat block lists and nested trees.

The nested form drops ``parent_id`` and ``order``: both are implied by where
a node sits. Flattening assigns integer orders, so the round trip is lossless
for integer-ordered trees whose orders match sibling positions.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from .models import Block
from .ordering import order_sort_key


@dataclass
class NestedBlock:
    """A block with its children inlined."""

    id: str
    type: str
    properties: dict[str, Any] = field(default_factory=dict)
    children: list[NestedBlock] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "type": self.type,
            "properties": dict(self.properties),
            "children": [child.to_dict() for child in self.children],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NestedBlock:
        """Create from dictionary."""
        return cls(
            id=data["id"],
            type=data["type"],
            properties=dict(data.get("properties", {})),
            children=[cls.from_dict(child) for child in data.get("children", [])],
        )


def flat_to_nested(blocks: Iterable[Block]) -> list[NestedBlock]:
    """Build a nested tree from a flat list, ordering siblings by ``order``.

    Blocks whose parent is missing from the list are dropped with their
    subtree. Siblings with equal ``order`` keep input order.
    """
    groups: dict[str | None, list[Block]] = {}
    for block in blocks:
        groups.setdefault(block.parent_id, []).append(block)
    for siblings in groups.values():
        siblings.sort(key=order_sort_key)

    nodes: dict[str, NestedBlock] = {}
    roots = [_node(block, nodes) for block in groups.get(None, [])]

    # Attach children breadth-first; no recursion so depth is unbounded.
    queue = deque(roots)
    while queue:
        node = queue.popleft()
        for child in groups.get(node.id, ()):
            if child.id in nodes:
                continue
            child_node = _node(child, nodes)
            node.children.append(child_node)
            queue.append(child_node)

    return roots


def _node(block: Block, nodes: dict[str, NestedBlock]) -> NestedBlock:
    node = NestedBlock(id=block.id, type=block.type, properties=dict(block.properties))
    nodes[block.id] = node
    return node


def nested_to_flat(nested: Sequence[NestedBlock]) -> list[Block]:
    """Flatten a nested tree into depth-first order with integer orders."""
    result: list[Block] = []
    stack: list[tuple[NestedBlock, str | None, int]] = [
        (node, None, i) for i, node in reversed(list(enumerate(nested)))
    ]

    while stack:
        node, parent_id, position = stack.pop()
        result.append(
            Block(
                id=node.id,
                type=node.type,
                parent_id=parent_id,
                order=position,
                properties=dict(node.properties),
            )
        )
        stack.extend((child, node.id, i) for i, child in reversed(list(enumerate(node.children))))

    return result
