"""Tunable thresholds for the flattening engine.

Defaults can be overridden through environment variables:
- CLAUDE_CODE_FLATTEN_TASK_WINDOW_MS: agent task grouping window (ms)
- CLAUDE_CODE_FLATTEN_ORPHAN_RATIO: orphan recovery threshold (0.0-1.0)
"""

import logging
import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, TypeVar


logger = logging.getLogger(__name__)

TASK_WINDOW_ENV = "CLAUDE_CODE_FLATTEN_TASK_WINDOW_MS"
ORPHAN_RATIO_ENV = "CLAUDE_CODE_FLATTEN_ORPHAN_RATIO"

# Launches within this many ms of a group's first launch join that group
DEFAULT_TASK_GROUP_WINDOW_MS = 2000
# Below this share of reachable records, unreachable ones are appended
DEFAULT_ORPHAN_RECOVERY_RATIO = 0.9

_T = TypeVar("_T", int, float)


def _read_setting(
    environ: Mapping[str, str], name: str, convert: Callable[[str], _T], default: _T
) -> _T:
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return convert(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %r", name, raw, default)
        return default


@dataclass(frozen=True)
class FlattenConfig:
    """Thresholds consulted by the groupers and the tree reconstructor."""

    task_group_window_ms: int = DEFAULT_TASK_GROUP_WINDOW_MS
    orphan_recovery_ratio: float = DEFAULT_ORPHAN_RECOVERY_RATIO

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "FlattenConfig":
        """Build a config from environment variables, falling back to defaults."""
        if environ is None:
            environ = os.environ
        return cls(
            task_group_window_ms=_read_setting(
                environ, TASK_WINDOW_ENV, int, DEFAULT_TASK_GROUP_WINDOW_MS
            ),
            orphan_recovery_ratio=_read_setting(
                environ, ORPHAN_RATIO_ENV, float, DEFAULT_ORPHAN_RECOVERY_RATIO
            ),
        )
