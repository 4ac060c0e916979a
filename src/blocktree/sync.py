"""Deferred sync for realtime collaboration.

While the local user is mid-action (dragging, editing) remote updates are held
back instead of yanking the tree out from under them. Only the latest remote
payload is kept. When the action finishes the caller resolves it once, either
keeping its own blocks (last write wins) or merging.

Usage:
    sync = DeferredSync(on_resolve=tree.set_blocks)
    channel.subscribe(sync.apply)

    tree.on("drag:start", lambda _event: sync.enter_busy())
    tree.on("drag:end", lambda _event: publish(sync.exit_busy(tree.get_blocks(), "merge")))
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from enum import Enum

from .errors import ValidationError
from .merge import merge_block_versions
from .models import Block

logger = logging.getLogger(__name__)


class SyncStrategy(str, Enum):
    LWW = "lww"
    MERGE = "merge"


class DeferredSync:
    """Busy/queue/resolve gate in front of remote block updates."""

    def __init__(
        self,
        on_resolve: Callable[[list[Block]], None] | None = None,
        structural_fields: Iterable[str] | None = None,
    ) -> None:
        self.on_resolve = on_resolve
        self.structural_fields = tuple(structural_fields) if structural_fields is not None else None
        self._busy = False
        self._queued: list[Block] | None = None

    def is_busy(self) -> bool:
        return self._busy

    @property
    def has_pending(self) -> bool:
        return self._queued is not None

    def enter_busy(self) -> None:
        self._busy = True

    def apply(self, remote_blocks: Sequence[Block]) -> None:
        """Deliver remote blocks now, or queue them (replacing any earlier queue) while busy."""
        if self._busy:
            if self._queued is not None:
                logger.debug("Replacing queued remote payload (%d blocks)", len(self._queued))
            self._queued = list(remote_blocks)
            return
        if self.on_resolve is not None:
            self.on_resolve(list(remote_blocks))

    def exit_busy(
        self,
        local_blocks: Sequence[Block],
        strategy: SyncStrategy | str,
    ) -> list[Block] | None:
        """Leave the busy state and resolve the queued payload.

        Args:
            local_blocks: The caller's current blocks.
            strategy: "lww" keeps the local blocks and drops the queued
                payload; "merge" takes structure from the queued payload and
                content from the local blocks.

        Returns:
            The resolved blocks, or None when nothing was queued.

        Raises:
            ValidationError: If the strategy is unknown.
        """
        try:
            resolved_strategy = SyncStrategy(strategy)
        except ValueError as exc:
            raise ValidationError(
                "Unknown sync strategy", field="strategy", value=strategy
            ) from exc

        self._busy = False
        queued, self._queued = self._queued, None
        if queued is None:
            return None

        if resolved_strategy is SyncStrategy.LWW:
            logger.debug("Discarding queued remote payload (last write wins)")
            return list(local_blocks)
        return merge_block_versions(local_blocks, queued, self.structural_fields)
