from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    if val in {"1", "true", "yes", "y", "on"}:
        return True
    if val in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclass(frozen=True)
class Settings:
    """Defaults for tree instances created without explicit options.

    Every value can be overridden per instance; the environment only changes
    what an instance gets when the caller does not say.
    """

    # Delay before a drag preview is published (milliseconds).
    preview_debounce_ms: int = int(os.environ.get("BLOCKTREE_PREVIEW_DEBOUNCE_MS", "150"))

    # Undo depth used by BlockTree.enable_history() and BlockHistory.
    history_max_steps: int = int(os.environ.get("BLOCKTREE_HISTORY_MAX_STEPS", "50"))

    # Score improvement (px) a new zone needs before the sticky collision switches.
    sticky_threshold: float = float(os.environ.get("BLOCKTREE_STICKY_THRESHOLD", "15"))

    # Run validate_block_tree() whenever BlockTree.set_blocks() replaces the tree.
    validate_on_set: bool = _env_bool("BLOCKTREE_VALIDATE_ON_SET", False)

    @property
    def preview_debounce(self) -> float:
        """Preview debounce in seconds."""
        return self.preview_debounce_ms / 1000.0


settings = Settings()
