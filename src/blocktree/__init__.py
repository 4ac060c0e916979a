"""Drag-and-drop block tree engine.

This package provides the framework-free core of a hierarchical block editor:
- A normalized, copy-on-write block index
- Reparenting with container, cycle and depth checks
- Integer or fractional sibling ordering
- Collision strategies that turn a pointer into a drop zone
- Undo history, deferred remote sync and field-split merge
- A stateful BlockTree driving the drag lifecycle

Nothing here renders or reads input devices. UI adapters call BlockTree and
redraw from its events.
"""

from __future__ import annotations

from .blocks_tree import (
    add_block_to_index,
    delete_block_and_descendants,
    insert_block_into_index,
    reparent_block_index,
    reparent_multiple_blocks,
)
from .collision import (
    CollisionCandidate,
    CollisionResult,
    Rect,
    StickyCollision,
    closest_center_collision,
    create_sticky_collision,
    weighted_indent_collision,
    weighted_vertical_collision,
)
from .debounce import Debouncer, deferred_scheduler, thread_timer_scheduler
from .errors import (
    BlockNotFoundError,
    BlockTreeError,
    ContainerError,
    FractionalKeyError,
    ValidationError,
)
from .events import EVENT_NAMES, EventEmitter
from .history import BlockHistory
from .index import (
    build_ordered_blocks,
    clone_map,
    clone_parent_map,
    compute_normalized_index,
    get_block_depth,
    get_descendant_ids,
    get_subtree_depth,
    validate_block_tree,
)
from .merge import merge_block_versions
from .models import Block, BlockIndex, BlockPosition, OrderingStrategy
from .ordering import (
    compare_fractional_keys,
    generate_initial_keys,
    generate_key_between,
    generate_n_keys_between,
    init_fractional_order,
)
from .outline import parse_outline, render_outline
from .reducers import block_reducer, expand_reducer, history_reducer, HistoryState
from .serialization import NestedBlock, flat_to_nested, nested_to_flat
from .sync import DeferredSync, SyncStrategy
from .tree import BlockTree, DragState, DropResult, MoveOperation
from .zones import (
    ROOT_END,
    ROOT_START,
    DropZone,
    extract_block_id,
    get_drop_zone_type,
    parse_zone,
)

__version__ = "0.1.0"

__all__ = [
    # Models
    "Block",
    "BlockIndex",
    "BlockPosition",
    "OrderingStrategy",
    # Index
    "build_ordered_blocks",
    "clone_map",
    "clone_parent_map",
    "compute_normalized_index",
    "get_block_depth",
    "get_descendant_ids",
    "get_subtree_depth",
    "validate_block_tree",
    # Reparent engine
    "add_block_to_index",
    "delete_block_and_descendants",
    "insert_block_into_index",
    "reparent_block_index",
    "reparent_multiple_blocks",
    # Ordering
    "compare_fractional_keys",
    "generate_initial_keys",
    "generate_key_between",
    "generate_n_keys_between",
    "init_fractional_order",
    # Zones
    "DropZone",
    "ROOT_END",
    "ROOT_START",
    "extract_block_id",
    "get_drop_zone_type",
    "parse_zone",
    # Collision
    "CollisionCandidate",
    "CollisionResult",
    "Rect",
    "StickyCollision",
    "closest_center_collision",
    "create_sticky_collision",
    "weighted_indent_collision",
    "weighted_vertical_collision",
    # Merge / sync / history
    "merge_block_versions",
    "DeferredSync",
    "SyncStrategy",
    "BlockHistory",
    "HistoryState",
    "block_reducer",
    "expand_reducer",
    "history_reducer",
    # Serialization
    "NestedBlock",
    "flat_to_nested",
    "nested_to_flat",
    "parse_outline",
    "render_outline",
    # Facade
    "BlockTree",
    "DragState",
    "DropResult",
    "MoveOperation",
    "EVENT_NAMES",
    "EventEmitter",
    "Debouncer",
    "deferred_scheduler",
    "thread_timer_scheduler",
    # Errors
    "BlockTreeError",
    "BlockNotFoundError",
    "ContainerError",
    "FractionalKeyError",
    "ValidationError",
]
