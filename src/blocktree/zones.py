"""Drop zone id protocol.

Renderers and collision geometry name drop targets with plain strings:

- ``before-<id>`` / ``after-<id>``: sibling slot next to a block
- ``into-<id>``: first child of a container
- ``end-<id>``: last child of a container
- ``root-start`` / ``root-end``: first / last root-level slot
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

DropZoneType = Literal["before", "after", "into"]
Relation = Literal["before", "after", "into", "end"]

ROOT_START = "root-start"
ROOT_END = "root-end"

_ZONE_RE = re.compile(r"^(before|after|into|end)-(.+)$", re.DOTALL)


@dataclass(frozen=True)
class DropZone:
    """A decoded zone id. ``target_id`` is None for the root zones."""

    target_id: str | None
    relation: Relation

    @property
    def is_root(self) -> bool:
        return self.target_id is None


def parse_zone(zone_id: str) -> DropZone | None:
    """Decode a zone id, or return None if it does not follow the protocol."""
    if zone_id == ROOT_START:
        return DropZone(None, "into")
    if zone_id == ROOT_END:
        return DropZone(None, "end")

    match = _ZONE_RE.match(zone_id)
    if not match:
        return None
    return DropZone(match.group(2), match.group(1))  # type: ignore[arg-type]


def get_drop_zone_type(zone_id: str) -> DropZoneType:
    """Coarse zone type used for hover feedback.

    ``end-`` zones and ``root-end`` report "after"; ``root-start`` reports "into".
    """
    if zone_id.startswith("before-"):
        return "before"
    if zone_id.startswith("into-") or zone_id == ROOT_START:
        return "into"
    return "after"


def extract_block_id(zone_id: str) -> str:
    """Strip the relation prefix from a zone id."""
    match = _ZONE_RE.match(zone_id)
    if match:
        return match.group(2)
    return zone_id


def before_zone(block_id: str) -> str:
    return f"before-{block_id}"


def after_zone(block_id: str) -> str:
    return f"after-{block_id}"


def into_zone(block_id: str) -> str:
    return f"into-{block_id}"


def end_zone(block_id: str) -> str:
    return f"end-{block_id}"
