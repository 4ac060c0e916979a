"""Collision detection strategies.

A strategy maps candidate drop-zone rectangles and the pointer rectangle to a
ranked list of results (lowest ``value`` wins). Sensors gather the rectangles;
nothing here touches real display geometry.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .settings import settings

logger = logging.getLogger(__name__)

# Score bonus for zones whose vertical centre is above the pointer.
BELOW_CENTER_BIAS = 5.0

# Zones whose left edges differ by more than this are at different depths.
CROSS_DEPTH_PX = 20.0
CROSS_DEPTH_FACTOR = 0.25


@dataclass(frozen=True)
class Rect:
    top: float
    left: float
    width: float
    height: float
    right: float
    bottom: float

    @classmethod
    def from_bounds(cls, left: float, top: float, width: float, height: float) -> Rect:
        return cls(
            top=top,
            left=left,
            width=width,
            height=height,
            right=left + width,
            bottom=top + height,
        )

    @property
    def center_x(self) -> float:
        return self.left + self.width / 2

    @property
    def center_y(self) -> float:
        return self.top + self.height / 2


@dataclass(frozen=True)
class CollisionCandidate:
    id: str
    rect: Rect


@dataclass(frozen=True)
class CollisionResult:
    """A scored zone. ``left`` is the zone's left edge, used for depth hints."""

    id: str
    value: float
    left: float = 0.0


CollisionStrategy = Callable[[Sequence[CollisionCandidate], Rect], list[CollisionResult]]


# =============================================================================
# Scoring
# =============================================================================


def _vertical_score(rect: Rect, pointer_y: float) -> float:
    edge_distance = min(abs(pointer_y - rect.top), abs(pointer_y - rect.bottom))
    if pointer_y > rect.center_y:
        return edge_distance - BELOW_CENTER_BIAS
    return edge_distance


def _horizontal_score(rect: Rect, pointer_x: float) -> float:
    if rect.left <= pointer_x <= rect.right:
        return (pointer_x - rect.left) * 0.3
    if pointer_x < rect.left:
        return (rect.left - pointer_x) * 2
    return (pointer_x - rect.right) * 2


def _best(results: list[CollisionResult]) -> list[CollisionResult]:
    results.sort(key=lambda r: r.value)
    return results[:1]


def weighted_vertical_collision(
    candidates: Sequence[CollisionCandidate], pointer_rect: Rect
) -> list[CollisionResult]:
    """Nearest horizontal edge wins, with a bias toward the zone below.

    Pointers below a zone's midpoint get the zone's score lowered by
    BELOW_CENTER_BIAS, so a pointer resting near the middle of a row settles
    on the "after" zone instead of flickering between before and after.
    """
    pointer_y = pointer_rect.center_y
    return _best(
        [
            CollisionResult(c.id, _vertical_score(c.rect, pointer_y), c.rect.left)
            for c in candidates
        ]
    )


def weighted_indent_collision(
    candidates: Sequence[CollisionCandidate], pointer_rect: Rect
) -> list[CollisionResult]:
    """Vertical scoring plus a horizontal term that matches indentation.

    Zones the pointer is horizontally inside score by how far right of their
    left edge it is; zones it is outside of are penalised more steeply.
    """
    pointer_x = pointer_rect.center_x
    pointer_y = pointer_rect.center_y
    return _best(
        [
            CollisionResult(
                c.id,
                _vertical_score(c.rect, pointer_y) + _horizontal_score(c.rect, pointer_x),
                c.rect.left,
            )
            for c in candidates
        ]
    )


def closest_center_collision(
    candidates: Sequence[CollisionCandidate], pointer_rect: Rect
) -> list[CollisionResult]:
    """Euclidean distance between centres; the nearest zone wins."""
    return _best(
        [
            CollisionResult(
                c.id,
                math.hypot(
                    pointer_rect.center_x - c.rect.center_x,
                    pointer_rect.center_y - c.rect.center_y,
                ),
                c.rect.left,
            )
            for c in candidates
        ]
    )


# =============================================================================
# Sticky (hysteresis) Wrapper
# =============================================================================


class StickyCollision:
    """Hysteresis around a base strategy to stop flicker between zones.

    The first winner is locked. Later frames only switch when the new winner
    beats the locked zone's current score by more than ``threshold``. Call
    reset() at the start of every drag so a previous lock cannot leak in.

    Usage:
        detect = create_sticky_collision(20)
        detect.reset()
        winner = detect(candidates, pointer_rect)
    """

    def __init__(
        self,
        threshold: float = settings.sticky_threshold,
        base: CollisionStrategy = weighted_vertical_collision,
    ) -> None:
        self.threshold = threshold
        self.base = base
        self.locked_id: str | None = None
        self._snapshot: dict[str, Rect] | None = None

    def snapshot(self, candidates: Sequence[CollisionCandidate]) -> None:
        """Freeze zone rects; later frames score against these instead.

        Keeps live preview layout shifts from feeding back into detection.
        """
        self._snapshot = {c.id: c.rect for c in candidates}

    def reset(self) -> None:
        self.locked_id = None
        self._snapshot = None

    def __call__(
        self, candidates: Sequence[CollisionCandidate], pointer_rect: Rect
    ) -> list[CollisionResult]:
        if self._snapshot is not None:
            candidates = [
                CollisionCandidate(c.id, self._snapshot.get(c.id, c.rect)) for c in candidates
            ]

        results = self.base(candidates, pointer_rect)
        if not results:
            return []
        best = results[0]

        if self.locked_id is not None and self.locked_id != best.id:
            locked = self._score_locked(candidates, pointer_rect, results)
            if locked is not None:
                threshold = self.threshold
                if abs(locked.left - best.left) > CROSS_DEPTH_PX:
                    threshold *= CROSS_DEPTH_FACTOR
                if locked.value - best.value <= threshold:
                    return [locked]

        if best.id != self.locked_id:
            logger.debug("Sticky collision switched %s -> %s", self.locked_id, best.id)
        self.locked_id = best.id
        return [best]

    def _score_locked(
        self,
        candidates: Sequence[CollisionCandidate],
        pointer_rect: Rect,
        results: list[CollisionResult],
    ) -> CollisionResult | None:
        for result in results:
            if result.id == self.locked_id:
                return result
        for candidate in candidates:
            if candidate.id == self.locked_id:
                scored = self.base([candidate], pointer_rect)
                return scored[0] if scored else None
        return None


def create_sticky_collision(
    threshold: float = settings.sticky_threshold,
    base: CollisionStrategy = weighted_vertical_collision,
) -> StickyCollision:
    """Wrap ``base`` with hysteresis of ``threshold`` pixels."""
    return StickyCollision(threshold, base)
