"""Fractional ordering keys.

Generates lexicographically sortable string keys so a block can be placed
between any two siblings without renumbering the others.

Alphabet: 0-9a-z (base 36). Plain string comparison matches numeric order
because '0' < ... < '9' < 'a' < ... < 'z' in ASCII. Generated keys never end
in '0', which keeps a free slot between every pair of adjacent keys.

Uppercase digits are outside the alphabet, so base-62 keys such as "a0V"
from other writers raise FractionalKeyError on the next key generation.
Re-key such a payload with init_fractional_order() before using it; plain
ASCII order is kept, so the sibling sequence survives.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import replace

from .errors import FractionalKeyError
from .models import Block

logger = logging.getLogger(__name__)

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
BASE = len(ALPHABET)
MID_CHAR = ALPHABET[BASE // 2]
_FLOOR = ALPHABET[0]
_CEIL = ALPHABET[-1]
_DIGITS = {c: i for i, c in enumerate(ALPHABET)}


# =============================================================================
# Key Arithmetic
# =============================================================================


def _check_key(key: str) -> None:
    if not key:
        raise FractionalKeyError("Fractional key must not be empty", key=key, reason="empty")
    for char in key:
        if char not in _DIGITS:
            raise FractionalKeyError(
                f'Invalid fractional key character: "{char}"',
                key=key,
                reason="alphabet",
            )


def _to_int(key: str, width: int) -> int:
    value = 0
    for char in key.ljust(width, _FLOOR):
        value = value * BASE + _DIGITS[char]
    return value


def _to_key(value: int, width: int) -> str:
    digits = []
    for _ in range(width):
        value, digit = divmod(value, BASE)
        digits.append(ALPHABET[digit])
    return "".join(reversed(digits))


def _midpoint(low: str, high: str) -> str:
    """Arithmetic midpoint of two keys.

    Both keys are right-padded to one digit longer than the longer key, so
    their difference is at least BASE and the halved sum lands strictly inside.
    """
    width = max(len(low), len(high)) + 1
    low_value = _to_int(low, width)
    high_value = _to_int(high, width)
    if low_value >= high_value:
        # Only reachable when high == low + "0...": nothing sorts in between.
        raise FractionalKeyError(
            f'No key exists between "{low}" and "{high}"',
            key=high,
            reason="trailing-zero",
        )
    return _to_key((low_value + high_value) // 2, width).rstrip(_FLOOR)


def _key_before(high: str) -> str:
    stripped = high.lstrip(_FLOOR)
    if not stripped:
        raise FractionalKeyError(f'No key sorts before "{high}"', key=high, reason="minimum")

    prefix = high[: len(high) - len(stripped)]
    first = _DIGITS[stripped[0]]
    if first > 1:
        return prefix + ALPHABET[first // 2]
    return prefix + _FLOOR + MID_CHAR


def _key_after(low: str) -> str:
    stripped = low.lstrip(_CEIL)
    prefix = low[: len(low) - len(stripped)]
    if not stripped:
        return low + MID_CHAR
    return prefix + ALPHABET[(_DIGITS[stripped[0]] + BASE) // 2]


# =============================================================================
# Public API
# =============================================================================


def generate_key_between(low: str | None, high: str | None) -> str:
    """Generate a key that sorts strictly between ``low`` and ``high``.

    Args:
        low: Lower bound (None means no lower bound).
        high: Upper bound (None means no upper bound).

    Returns:
        A new key with ``low < key < high``.

    Raises:
        FractionalKeyError: If a bound is malformed or ``low >= high``.
    """
    if low is not None:
        _check_key(low)
    if high is not None:
        _check_key(high)

    if low is None and high is None:
        return MID_CHAR
    if low is None:
        return _key_before(high)  # type: ignore[arg-type]
    if high is None:
        return _key_after(low)

    if low >= high:
        raise FractionalKeyError(
            f'Lower bound must sort before upper bound: "{low}" >= "{high}"',
            key=low,
            reason="order",
        )
    return _midpoint(low, high)


def generate_n_keys_between(low: str | None, high: str | None, n: int) -> list[str]:
    """Generate ``n`` ascending keys between two bounds.

    Uses binary subdivision so key length grows with log(n) rather than n,
    which is both shorter and more evenly spaced than n sequential calls.
    """
    if n <= 0:
        return []
    if n == 1:
        return [generate_key_between(low, high)]

    keys: list[str] = [""] * n

    def fill(lo: str | None, hi: str | None, start: int, stop: int) -> None:
        if start >= stop:
            return
        mid = (start + stop) // 2
        keys[mid] = generate_key_between(lo, hi)
        fill(lo, keys[mid], start, mid)
        fill(keys[mid], hi, mid + 1, stop)

    fill(low, high, 0, n)
    return keys


def generate_initial_keys(n: int) -> list[str]:
    """Seed keys for a fresh sibling list of ``n`` items."""
    return generate_n_keys_between(None, None, n)


def compare_fractional_keys(a: str, b: str) -> int:
    """Total order over keys: -1, 0 or 1 by plain lexicographic comparison."""
    return (a > b) - (a < b)


def order_sort_key(block: Block) -> tuple[bool, int | str]:
    """Sort key for mixed integer/string ``order`` values.

    Integers sort numerically and before any string key.
    """
    if isinstance(block.order, int):
        return (False, block.order)
    return (True, str(block.order))


def init_fractional_order(blocks: Iterable[Block]) -> list[Block]:
    """Convert an integer-ordered tree to fractional order.

    Siblings keep their existing sequence; each sibling group gets a fresh set
    of evenly spaced keys. Blocks are returned in input order.
    """
    block_list = list(blocks)
    groups: dict[str | None, list[Block]] = defaultdict(list)
    for block in block_list:
        groups[block.parent_id].append(block)

    updated: dict[str, Block] = {}
    for siblings in groups.values():
        ordered: Sequence[Block] = sorted(siblings, key=order_sort_key)
        keys = generate_initial_keys(len(ordered))
        for block, key in zip(ordered, keys):
            updated[block.id] = replace(block, order=key)

    logger.debug("Assigned fractional keys to %d blocks in %d groups", len(updated), len(groups))
    return [updated.get(block.id, block) for block in block_list]
