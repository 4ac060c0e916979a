"""Data models for the block tree.

This module defines the core data structures shared by every component:
blocks, the normalized block index and the ordering strategy switch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class OrderingStrategy(str, Enum):
    """How sibling order is recorded in each block's ``order`` field.

    INTEGER rewrites every sibling to its 0-based position after each change.
    FRACTIONAL only touches the moved block, giving it a string key that sorts
    between its new neighbours.
    """

    INTEGER = "integer"
    FRACTIONAL = "fractional"


# Top-level Block attributes; anything else in a dict lands in properties.
BLOCK_FIELDS = frozenset({"id", "type", "parent_id", "order", "properties"})

_KEY_ALIASES = {"parentId": "parent_id"}


@dataclass(frozen=True)
class Block:
    """A typed node in the block tree.

    Blocks are immutable. Structural changes produce new Block objects via
    ``dataclasses.replace`` so earlier snapshots stay valid.
    Content fields (title, checked, ...) live in ``properties``.
    """

    id: str
    type: str
    parent_id: str | None = None
    order: int | str = 0
    properties: dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        """Read an attribute or, failing that, a property."""
        if name in BLOCK_FIELDS:
            return getattr(self, name)
        return self.properties.get(name, default)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "type": self.type,
            "parent_id": self.parent_id,
            "order": self.order,
            "properties": dict(self.properties),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Block:
        """Create from dictionary.

        Accepts ``parentId`` as an alias and folds unknown top-level keys
        (e.g. ``title``) into ``properties``.
        """
        normalized = {_KEY_ALIASES.get(k, k): v for k, v in data.items()}
        properties = dict(normalized.get("properties") or {})
        for key, value in normalized.items():
            if key not in BLOCK_FIELDS:
                properties[key] = value

        return cls(
            id=normalized["id"],
            type=normalized["type"],
            parent_id=normalized.get("parent_id"),
            order=normalized.get("order", 0),
            properties=properties,
        )


@dataclass(frozen=True)
class BlockIndex:
    """Normalized lookup tables for a block tree.

    ``by_parent`` holds the authoritative sibling order; ``None`` is the root
    key. An index is never mutated after construction.
    """

    by_id: dict[str, Block] = field(default_factory=dict)
    by_parent: dict[str | None, list[str]] = field(default_factory=dict)

    def children_of(self, parent_id: str | None) -> list[str]:
        """Sibling id list under a parent (a copy)."""
        return list(self.by_parent.get(parent_id, ()))

    def __len__(self) -> int:
        return len(self.by_id)

    def __contains__(self, block_id: object) -> bool:
        return block_id in self.by_id


@dataclass(frozen=True)
class BlockPosition:
    """Where a block sits: its parent and its index among siblings."""

    parent_id: str | None
    index: int
