#!/usr/bin/env python3
"""Rebuild conversation order from parent pointers.

Records arrive loosely ordered and may not form a tree: parents can be
missing, ids can repeat and parent chains can loop. This module turns them
into a single depth-annotated sequence:

1. Deduplicate by uuid (last write wins, first position kept)
2. Index children by declared parent, siblings sorted by timestamp
3. Depth-first traversal from the roots, guarded by a visited set
4. Orphan recovery when too few records were reachable from a root
"""

from dataclasses import dataclass
from typing import AbstractSet, Iterable, Optional

from .classifier import get_parent_uuid
from .config import DEFAULT_ORPHAN_RECOVERY_RATIO
from .diagnostics import (
    CYCLE,
    ORPHANS_DROPPED,
    ORPHANS_RECOVERED,
    DiagnosticEvent,
    DiagnosticsSink,
    LoggingDiagnostics,
)
from .models import TranscriptEntry
from .parser import timestamp_millis


@dataclass(frozen=True)
class TreePosition:
    """A record's place in the reconstructed order.

    Attributes:
        message: The record.
        depth: Distance from its root; 0 for roots, orphans and flat input.
        hidden: Listed in the caller's hidden set.
    """

    message: TranscriptEntry
    depth: int
    hidden: bool = False


def deduplicate_messages(messages: Iterable[TranscriptEntry]) -> list[TranscriptEntry]:
    """Collapse records sharing a uuid.

    The last occurrence wins but takes the position of the first one.
    """
    unique: dict[str, TranscriptEntry] = {}
    for message in messages:
        unique[message.uuid] = message
    return list(unique.values())


def sort_by_timestamp(messages: Iterable[TranscriptEntry]) -> list[TranscriptEntry]:
    """Stable chronological sort; unparseable timestamps count as time zero."""
    return sorted(messages, key=lambda msg: timestamp_millis(msg.timestamp))


def build_children_map(
    messages: list[TranscriptEntry],
) -> dict[Optional[str], list[TranscriptEntry]]:
    """Map each declared parent uuid (None for roots) to its sorted children."""
    children_map: dict[Optional[str], list[TranscriptEntry]] = {}
    for message in messages:
        children_map.setdefault(get_parent_uuid(message), []).append(message)

    for parent_uuid, children in children_map.items():
        children_map[parent_uuid] = sort_by_timestamp(children)
    return children_map


def find_cycle_members(messages: list[TranscriptEntry]) -> list[str]:
    """Uuids that sit on a parent-pointer loop, in input order."""
    parent_of = {msg.uuid: get_parent_uuid(msg) for msg in messages}
    on_cycle: set[str] = set()
    settled: set[str] = set()

    for message in messages:
        path: list[str] = []
        on_path: set[str] = set()
        current: Optional[str] = message.uuid
        while current is not None and current in parent_of and current not in settled:
            if current in on_path:
                on_cycle.update(path[path.index(current) :])
                break
            path.append(current)
            on_path.add(current)
            current = parent_of[current]
        settled.update(path)

    return [msg.uuid for msg in messages if msg.uuid in on_cycle]


def _report_cycles(messages: list[TranscriptEntry], diagnostics: DiagnosticsSink) -> None:
    members = find_cycle_members(messages)
    if members:
        diagnostics.report(
            DiagnosticEvent(
                CYCLE,
                f"Circular parent references among {len(members)} messages",
                tuple(members),
            )
        )


def order_messages(
    messages: list[TranscriptEntry],
    hidden_uuids: AbstractSet[str] = frozenset(),
    diagnostics: Optional[DiagnosticsSink] = None,
    orphan_recovery_ratio: float = DEFAULT_ORPHAN_RECOVERY_RATIO,
) -> list[TreePosition]:
    """Linearize records by depth-first traversal of the parent/child tree.

    Args:
        messages: Deduplicated (and merged) records, in any order
        hidden_uuids: Records the caller hides; their children stay visible
        diagnostics: Sink for cycles and broken parent links
        orphan_recovery_ratio: Unreachable records are appended when fewer
            than this share of records was reachable from a root

    Returns:
        Records in display order with depth and effective hidden flag
    """
    if diagnostics is None:
        diagnostics = LoggingDiagnostics()

    children_map = build_children_map(messages)
    roots = children_map.get(None, [])

    # No roots at all: keep input order, nothing to nest under
    if not roots:
        _report_cycles(messages, diagnostics)
        return [
            TreePosition(msg, 0, msg.uuid in hidden_uuids) for msg in messages
        ]

    ordered: list[TreePosition] = []
    visited: set[str] = set()

    # Explicit stack of (message, depth)
    stack: list[tuple[TranscriptEntry, int]] = [(root, 0) for root in reversed(roots)]
    while stack:
        message, depth = stack.pop()
        if message.uuid in visited:
            diagnostics.report(
                DiagnosticEvent(
                    CYCLE,
                    f"Circular reference detected for message: {message.uuid}",
                    (message.uuid,),
                )
            )
            continue
        visited.add(message.uuid)

        ordered.append(TreePosition(message, depth, message.uuid in hidden_uuids))

        children = children_map.get(message.uuid, [])
        for child in reversed(children):
            stack.append((child, depth + 1))

    unvisited = [msg for msg in messages if msg.uuid not in visited]
    if not unvisited:
        return ordered

    _report_cycles(unvisited, diagnostics)

    if len(ordered) < len(messages) * orphan_recovery_ratio:
        orphans = sort_by_timestamp(unvisited)
        diagnostics.report(
            DiagnosticEvent(
                ORPHANS_RECOVERED,
                f"Tree traversal found {len(ordered)}/{len(messages)} messages. "
                "Adding orphaned messages.",
                tuple(msg.uuid for msg in orphans),
            )
        )
        for msg in orphans:
            ordered.append(TreePosition(msg, 0, msg.uuid in hidden_uuids))
            visited.add(msg.uuid)
    else:
        diagnostics.report(
            DiagnosticEvent(
                ORPHANS_DROPPED,
                f"Tree traversal found {len(ordered)}/{len(messages)} messages. "
                f"Leaving {len(unvisited)} unreachable messages out.",
                tuple(msg.uuid for msg in unvisited),
            )
        )

    return ordered
