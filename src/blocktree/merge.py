"""Field-split merge of two concurrently edited block lists.

The remote list owns the structural fields (where a block sits); the local
list owns everything else (what a block says). This is a fixed per-field
policy, not a CRDT: two writers editing the same content field, or both
moving the same block, still lose one side's change. Callers doing real
multi-writer collaboration need causal history on top of this.

`order` is taken from remote verbatim. Fractional keys from writers using
a wider alphabet than ordering.ALPHABET must be re-keyed with
init_fractional_order() before the next fractional move.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import replace
from typing import Any

from .models import BLOCK_FIELDS, Block

DEFAULT_STRUCTURAL_FIELDS: tuple[str, ...] = ("parent_id", "order")

_FIELD_ALIASES = {"parentId": "parent_id"}


def merge_block_versions(
    local: Sequence[Block],
    remote: Sequence[Block],
    structural_fields: Iterable[str] | None = None,
) -> list[Block]:
    """Combine local content edits with remote structure.

    Args:
        local: Blocks owning content fields (type, properties).
        remote: Blocks owning structural fields and the output ordering.
        structural_fields: Field names taken from ``remote``. Names that are
            not Block attributes refer to keys in ``properties``.

    Returns:
        Remote blocks in remote order with local content overlaid, followed
        by local-only blocks unchanged. Remote-only blocks are additions and
        pass through as-is.
    """
    fields = [
        _FIELD_ALIASES.get(name, name)
        for name in (structural_fields if structural_fields is not None else DEFAULT_STRUCTURAL_FIELDS)
    ]
    local_by_id = {block.id: block for block in local}
    remote_ids = {block.id for block in remote}

    merged = []
    for remote_block in remote:
        local_block = local_by_id.get(remote_block.id)
        if local_block is None:
            merged.append(remote_block)
        else:
            merged.append(_overlay(local_block, remote_block, fields))

    merged.extend(block for block in local if block.id not in remote_ids)
    return merged


def _overlay(content: Block, structure: Block, fields: Sequence[str]) -> Block:
    attrs: dict[str, Any] = {}
    properties = dict(content.properties)
    properties_changed = False

    for name in fields:
        if name == "id":
            continue
        if name in BLOCK_FIELDS:
            attrs[name] = getattr(structure, name)
        elif name in structure.properties:
            properties[name] = structure.properties[name]
            properties_changed = True

    if properties_changed and "properties" not in attrs:
        attrs["properties"] = properties
    return replace(content, **attrs)
