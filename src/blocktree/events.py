"""Per-tree publish/subscribe and event payloads.

Dispatch is synchronous and unbuffered: emit() calls every handler before it
returns. Each BlockTree owns its own emitter; there is no global bus.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .models import Block, BlockPosition
from .zones import DropZoneType

Handler = Callable[..., None]

EVENT_NAMES = frozenset({
    "blocks:change",
    "drag:start",
    "drag:move",
    "drag:end",
    "drag:cancel",
    "block:move",
    "expand:change",
    "hover:change",
    "block:add",
    "block:delete",
    "selection:change",
})


class EventEmitter:
    """Minimal emitter; on() returns an unsubscribe callable."""

    def __init__(self, event_names: frozenset[str] = EVENT_NAMES) -> None:
        self.event_names = event_names
        self._handlers: dict[str, list[Handler]] = {}

    def _check(self, event: str) -> None:
        if event not in self.event_names:
            raise ValueError(f"Unknown event: {event}")

    def on(self, event: str, handler: Handler) -> Callable[[], None]:
        self._check(event)
        handlers = self._handlers.setdefault(event, [])
        if handler not in handlers:
            handlers.append(handler)
        return lambda: self.off(event, handler)

    def off(self, event: str, handler: Handler) -> None:
        handlers = self._handlers.get(event)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, *args: Any) -> None:
        self._check(event)
        # Copy so handlers may unsubscribe while being called
        for handler in list(self._handlers.get(event, ())):
            handler(*args)

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, ()))

    def remove_all_listeners(self, event: str | None = None) -> None:
        if event is None:
            self._handlers.clear()
        else:
            self._handlers.pop(event, None)


# =============================================================================
# Event Payloads
# =============================================================================


@dataclass(frozen=True)
class DragStartEvent:
    block: Block
    block_id: str
    dragged_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class DragMoveEvent:
    """Debounced preview of where the drag would land."""

    block: Block
    block_id: str
    over_zone: str | None
    blocks: list[Block] = field(default_factory=list)


@dataclass(frozen=True)
class DragEndEvent:
    block: Block
    block_id: str
    target_zone: str | None
    cancelled: bool


@dataclass(frozen=True)
class BlockMoveEvent:
    block: Block
    from_position: BlockPosition
    to_position: BlockPosition
    blocks: list[Block]
    moved_ids: tuple[str, ...]


@dataclass(frozen=True)
class ExpandChangeEvent:
    block: Block
    block_id: str
    expanded: bool


@dataclass(frozen=True)
class HoverChangeEvent:
    zone_id: str | None
    zone_type: DropZoneType | None
    target_block: Block | None


@dataclass(frozen=True)
class BlockAddEvent:
    block: Block
    parent_id: str | None
    index: int


@dataclass(frozen=True)
class BlockDeleteEvent:
    block: Block
    deleted_ids: tuple[str, ...]
    parent_id: str | None
