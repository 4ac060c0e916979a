from __future__ import annotations

from collections.abc import Callable

import pytest

from blocktree.models import Block


def make_block(
    block_id: str,
    block_type: str = "item",
    parent_id: str | None = None,
    order: int | str = 0,
    **properties,
) -> Block:
    return Block(id=block_id, type=block_type, parent_id=parent_id, order=order, properties=properties)


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual stand-in for threading.Timer; call fire() to run due callbacks."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]

    def fire(self) -> int:
        fired = 0
        for timer in self.active:
            timer.cancelled = True
            timer.callback()
            fired += 1
        return fired


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def outline_blocks() -> list[Block]:
    """Two sections with tasks, plus a loose root note.

    s1
      t1
      t2
    s2
      t3
    n1
    """
    return [
        make_block("s1", "section", None, 0, title="Inbox"),
        make_block("t1", "task", "s1", 0, title="Write"),
        make_block("t2", "task", "s1", 1, title="Review"),
        make_block("s2", "section", None, 1, title="Later"),
        make_block("t3", "task", "s2", 0, title="Ship"),
        make_block("n1", "note", None, 2, title="Loose"),
    ]


@pytest.fixture
def container_types() -> frozenset[str]:
    return frozenset({"section"})
