"""Block tree error hierarchy.

Provides a structured error hierarchy for caller-driven tree operations:
- BlockTreeError: Base exception for all package errors
- ValidationError: Invalid input values (bad fractional keys, unknown strategies)
- BlockNotFoundError: A caller referenced a block id that does not exist
- ContainerError: A caller tried to give children to a non-container block

Invalid drag moves are NOT errors. The reparent functions signal a rejected
move by returning the very same index object they were given.

Usage:
    from blocktree.errors import BlockNotFoundError

    if reference_id not in index.by_id:
        raise BlockNotFoundError(reference_id)
"""

from __future__ import annotations

from typing import Any


# =============================================================================
# Error Base Class
# =============================================================================


class BlockTreeError(Exception):
    """Base exception for all block tree errors.

    Attributes:
        message: Human-readable error description
        recoverable: Whether the operation can be retried
        context: Additional context for debugging
    """

    def __init__(
        self,
        message: str,
        *,
        recoverable: bool = False,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to a structured dictionary for diagnostics."""
        return {
            "type": type(self).__name__.lower().replace("error", ""),
            "message": self.message,
            "recoverable": self.recoverable,
            **{k: v for k, v in self.context.items() if v is not None},
        }


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(BlockTreeError):
    """Input validation failed.

    Example:
        raise ValidationError("Unknown sync strategy", field="strategy", value="xyz")
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {})
        if field:
            context["field"] = field
        if constraint:
            context["constraint"] = constraint
        if value is not None:
            context["value"] = _truncate(str(value), 100)
        super().__init__(message, recoverable=False, context=context)
        self.field = field
        self.constraint = constraint


class FractionalKeyError(ValidationError):
    """A fractional order key is malformed or the bounds are out of order."""

    def __init__(
        self,
        message: str,
        *,
        key: str | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(message, field="order", value=key, constraint=reason)


# =============================================================================
# Structural Errors
# =============================================================================


class BlockNotFoundError(BlockTreeError):
    """A caller referenced a block id that is not in the tree.

    This is a contract violation by the caller, not a data problem.
    """

    def __init__(self, block_id: str, *, operation: str | None = None) -> None:
        super().__init__(
            f"Block not found: {block_id}",
            recoverable=False,
            context={"block_id": block_id, "operation": operation},
        )
        self.block_id = block_id


class ContainerError(BlockTreeError):
    """A block type that cannot own children was used as a parent."""

    def __init__(self, block_id: str, block_type: str) -> None:
        super().__init__(
            f"Block type '{block_type}' does not support children",
            recoverable=False,
            context={"block_id": block_id, "block_type": block_type},
        )
        self.block_id = block_id
        self.block_type = block_type


# =============================================================================
# Helpers
# =============================================================================


def _truncate(value: str | None, max_len: int) -> str | None:
    """Truncate a string value for safe logging."""
    if value is None:
        return None
    if len(value) <= max_len:
        return value
    return value[:max_len] + "..."
