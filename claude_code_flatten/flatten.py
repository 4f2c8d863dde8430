#!/usr/bin/env python3
"""Flatten a conversation tree into a virtualization-friendly sequence.

Transforms loosely-ordered records linked by parent pointers into a flat list
of FlattenedItem, with agent group information attached and runs of hidden
records compressed into placeholders. Also builds the lookups the scroll
navigation needs.

Everything here is a pure function of its inputs; callers re-run it whenever
the records, the hidden set or the group maps change.
"""

import time
from dataclasses import dataclass, field
from typing import AbstractSet, Iterable, Optional

from .agent_progress import agent_progress_member_uuids, group_agent_progress_messages
from .agent_tasks import agent_task_member_uuids, group_agent_tasks
from .classifier import get_agent_id_from_progress
from .command_merge import merge_command_output_messages
from .config import FlattenConfig
from .diagnostics import DiagnosticsSink
from .models import (
    AgentProgressGroup,
    AgentProgressGroupView,
    AgentTaskGroup,
    FlattenedItem,
    FlattenedMessage,
    HiddenPlaceholder,
    TranscriptEntry,
)
from .timings import log_timing
from .tree import TreePosition, deduplicate_messages, order_messages


# Read once at import, like the timing flag
DEFAULT_CONFIG = FlattenConfig.from_env()


@dataclass
class _GroupIndex:
    """Group maps plus member lookups for one flatten call."""

    task_groups: dict[str, AgentTaskGroup]
    task_members: set[str]
    progress_groups: dict[str, AgentProgressGroup]
    progress_members: set[str]

    @classmethod
    def build(
        cls,
        task_groups: Optional[dict[str, AgentTaskGroup]],
        progress_groups: Optional[dict[str, AgentProgressGroup]],
    ) -> "_GroupIndex":
        task_groups = task_groups or {}
        progress_groups = progress_groups or {}
        return cls(
            task_groups=task_groups,
            task_members=agent_task_member_uuids(task_groups),
            progress_groups=progress_groups,
            progress_members=agent_progress_member_uuids(progress_groups),
        )


def create_flattened_message(
    position: TreePosition,
    original_index: int,
    groups: _GroupIndex,
) -> FlattenedMessage:
    """Create a FlattenedMessage with its group information."""
    message = position.message

    task_group = groups.task_groups.get(message.uuid)
    is_group_leader = task_group is not None
    is_group_member = not is_group_leader and message.uuid in groups.task_members

    progress_group = groups.progress_groups.get(message.uuid)
    is_progress_group_leader = progress_group is not None
    is_progress_group_member = (
        not is_progress_group_leader and message.uuid in groups.progress_members
    )

    agent_progress_group: Optional[AgentProgressGroupView] = None
    if progress_group is not None:
        agent_id = get_agent_id_from_progress(message)
        if agent_id:
            agent_progress_group = AgentProgressGroupView(
                entries=progress_group.entries, agent_id=agent_id
            )

    return FlattenedMessage(
        message=message,
        depth=position.depth,
        original_index=original_index,
        is_group_leader=is_group_leader,
        is_group_member=is_group_member,
        is_progress_group_leader=is_progress_group_leader,
        is_progress_group_member=is_progress_group_member,
        agent_task_group=task_group.tasks if task_group is not None else None,
        agent_progress_group=agent_progress_group,
    )


def flatten_with_placeholders(
    positions: list[TreePosition],
    groups: _GroupIndex,
) -> list[FlattenedItem]:
    """Emit visible records and one placeholder per run of hidden records.

    original_index counts visible records only.
    """
    result: list[FlattenedItem] = []
    pending_hidden: list[str] = []
    visible_index = 0

    for position in positions:
        if position.hidden:
            pending_hidden.append(position.message.uuid)
            continue

        if pending_hidden:
            result.append(HiddenPlaceholder(len(pending_hidden), pending_hidden))
            pending_hidden = []

        result.append(create_flattened_message(position, visible_index, groups))
        visible_index += 1

    # A trailing hidden run still gets its placeholder
    if pending_hidden:
        result.append(HiddenPlaceholder(len(pending_hidden), pending_hidden))

    return result


def flatten_message_tree(
    messages: list[TranscriptEntry],
    agent_task_groups: Optional[dict[str, AgentTaskGroup]] = None,
    agent_progress_groups: Optional[dict[str, AgentProgressGroup]] = None,
    hidden_message_ids: Iterable[str] = (),
    diagnostics: Optional[DiagnosticsSink] = None,
    config: Optional[FlattenConfig] = None,
) -> list[FlattenedItem]:
    """Flatten records by depth-first traversal while preserving depth.

    Args:
        messages: Records in any order; duplicates by uuid are allowed
        agent_task_groups: Output of group_agent_tasks, keyed by leader uuid
        agent_progress_groups: Output of group_agent_progress_messages
        hidden_message_ids: Records to compress into placeholders; unknown
            ids are ignored
        diagnostics: Sink for cycles and broken parent links
        config: Thresholds; defaults to the environment-derived config

    Returns:
        The flattened sequence
    """
    if not messages:
        return []
    processed = merge_command_output_messages(deduplicate_messages(messages))
    return _flatten_processed(
        processed,
        agent_task_groups,
        agent_progress_groups,
        hidden_message_ids,
        diagnostics,
        config,
    )


def _flatten_processed(
    processed: list[TranscriptEntry],
    agent_task_groups: Optional[dict[str, AgentTaskGroup]],
    agent_progress_groups: Optional[dict[str, AgentProgressGroup]],
    hidden_message_ids: Iterable[str],
    diagnostics: Optional[DiagnosticsSink],
    config: Optional[FlattenConfig],
) -> list[FlattenedItem]:
    """Order, flag and compress records that are already deduplicated and merged."""
    if config is None:
        config = DEFAULT_CONFIG

    hidden: AbstractSet[str] = frozenset(hidden_message_ids)
    positions = order_messages(
        processed,
        hidden,
        diagnostics=diagnostics,
        orphan_recovery_ratio=config.orphan_recovery_ratio,
    )
    groups = _GroupIndex.build(agent_task_groups, agent_progress_groups)
    return flatten_with_placeholders(positions, groups)


# -- Navigation Lookups -------------------------------------------------------


def build_uuid_to_index_map(items: list[FlattenedItem]) -> dict[str, int]:
    """Map each message item's uuid to its position; placeholders are skipped."""
    return {
        item.message.uuid: index
        for index, item in enumerate(items)
        if isinstance(item, FlattenedMessage)
    }


def _index_of_message(uuid: str, items: list[FlattenedItem]) -> Optional[int]:
    for index, item in enumerate(items):
        if isinstance(item, FlattenedMessage) and item.message.uuid == uuid:
            return index
    return None


def find_group_leader_index(
    uuid: str,
    items: list[FlattenedItem],
    agent_task_groups: dict[str, AgentTaskGroup],
    agent_progress_groups: dict[str, AgentProgressGroup],
) -> Optional[int]:
    """Position of the leader of the group uuid belongs to.

    Task groups are checked before progress groups. Returns None when uuid is
    in no group or its leader is not in the flattened output.
    """
    for leader_uuid, task_group in agent_task_groups.items():
        if uuid in task_group.message_uuids:
            return _index_of_message(leader_uuid, items)

    for leader_uuid, progress_group in agent_progress_groups.items():
        if uuid in progress_group.message_uuids:
            return _index_of_message(leader_uuid, items)

    return None


# -- Pipeline -----------------------------------------------------------------


@dataclass
class FlattenedView:
    """Everything a virtualized viewer needs for one version of the records."""

    items: list[FlattenedItem]
    agent_task_groups: dict[str, AgentTaskGroup]
    agent_progress_groups: dict[str, AgentProgressGroup]
    uuid_to_index: dict[str, int] = field(
        default_factory=lambda: {}  # type: dict[str, int]
    )

    def scroll_index_for(self, uuid: str) -> Optional[int]:
        """Where to scroll for uuid: its group leader if grouped, else itself."""
        leader_index = find_group_leader_index(
            uuid, self.items, self.agent_task_groups, self.agent_progress_groups
        )
        if leader_index is not None:
            return leader_index
        return self.uuid_to_index.get(uuid)


def build_flattened_view(
    messages: list[TranscriptEntry],
    hidden_message_ids: Iterable[str] = (),
    diagnostics: Optional[DiagnosticsSink] = None,
    config: Optional[FlattenConfig] = None,
) -> FlattenedView:
    """Group, flatten and index records in one call.

    Groups are computed from the deduplicated, merged records so they agree
    with what the tree reconstruction sees.
    """
    if config is None:
        config = DEFAULT_CONFIG

    t_start = time.perf_counter()

    with log_timing("Deduplicate and merge commands", t_start):
        processed = merge_command_output_messages(deduplicate_messages(messages))

    with log_timing(lambda: f"Group agent tasks ({len(task_groups)} groups)", t_start):
        task_groups = group_agent_tasks(processed, config.task_group_window_ms)

    with log_timing(
        lambda: f"Group agent progress ({len(progress_groups)} groups)", t_start
    ):
        progress_groups = group_agent_progress_messages(processed)

    with log_timing(lambda: f"Flatten message tree ({len(items)} items)", t_start):
        items = _flatten_processed(
            processed,
            task_groups,
            progress_groups,
            hidden_message_ids,
            diagnostics,
            config,
        )

    with log_timing("Build uuid index", t_start):
        uuid_to_index = build_uuid_to_index_map(items)

    return FlattenedView(
        items=items,
        agent_task_groups=task_groups,
        agent_progress_groups=progress_groups,
        uuid_to_index=uuid_to_index,
    )
