"""Group background sub-agent launches and link their completions.

Launches that happen within a fixed window of a group's first launch are
shown together. Completions and notifications that arrive later are linked
back to the group by agent id so navigating to them lands on the leader.
"""

from dataclasses import dataclass
from typing import Any, Optional, cast

from .classifier import (
    extract_agent_task,
    extract_task_notification_ids,
    is_agent_task_completion_message,
)
from .config import DEFAULT_TASK_GROUP_WINDOW_MS
from .models import AgentTask, AgentTaskGroup, AgentTaskStatus, TranscriptEntry
from .parser import extract_message_text, extract_task_status, timestamp_millis


@dataclass
class _Launch:
    message: TranscriptEntry
    task: AgentTask
    timestamp: int


def _find_task(group: AgentTaskGroup, agent_id: str) -> Optional[AgentTask]:
    for task in group.tasks:
        if task.agent_id == agent_id:
            return task
    return None


def _link(
    message: TranscriptEntry,
    agent_id: str,
    status: Optional[str],
    agent_id_to_group: dict[str, AgentTaskGroup],
) -> None:
    """Attach a completion/notification record to the launching group."""
    group = agent_id_to_group.get(agent_id)
    if group is None:
        return
    group.message_uuids.add(message.uuid)
    task = _find_task(group, agent_id)
    if task is not None:
        task.status = (
            AgentTaskStatus.ERROR if status == "error" else AgentTaskStatus.COMPLETED
        )


def group_agent_tasks(
    messages: list[TranscriptEntry],
    window_ms: int = DEFAULT_TASK_GROUP_WINDOW_MS,
) -> dict[str, AgentTaskGroup]:
    """Group agent task launches by timestamp proximity.

    The window is measured from the first launch of a group (the anchor) and
    does not slide, so a chain of launches 1.5s apart still splits. Grouping
    is not limited to consecutive records.

    Args:
        messages: Records in original order
        window_ms: Maximum distance from the anchor, inclusive

    Returns:
        Groups keyed by leader uuid, in anchor order
    """
    groups: dict[str, AgentTaskGroup] = {}

    launches: list[_Launch] = []
    for message in messages:
        task = extract_agent_task(message)
        if task is not None:
            launches.append(_Launch(message, task, timestamp_millis(message.timestamp)))
    launches.sort(key=lambda launch: launch.timestamp)

    agent_id_to_group: dict[str, AgentTaskGroup] = {}
    current: Optional[AgentTaskGroup] = None
    anchor = 0

    for launch in launches:
        if current is not None and abs(launch.timestamp - anchor) <= window_ms:
            current.tasks.append(launch.task)
            current.message_uuids.add(launch.message.uuid)
        else:
            current = AgentTaskGroup(
                tasks=[launch.task], message_uuids={launch.message.uuid}
            )
            anchor = launch.timestamp
            groups[launch.message.uuid] = current
        agent_id_to_group[launch.task.agent_id] = current

    if not agent_id_to_group:
        return groups

    # Second pass in original order: completions and notifications
    for message in messages:
        if is_agent_task_completion_message(message):
            result = cast(dict[str, Any], message.toolUseResult)
            _link(
                message, str(result["agentId"]), result.get("status"), agent_id_to_group
            )

        task_ids = extract_task_notification_ids(message)
        if task_ids:
            text = extract_message_text(message) or ""
            status = extract_task_status(text) if len(task_ids) == 1 else None
            for task_id in task_ids:
                _link(message, task_id.strip(), status, agent_id_to_group)

    return groups


def agent_task_member_uuids(groups: dict[str, AgentTaskGroup]) -> set[str]:
    """Every record belonging to any task group, leaders included."""
    members: set[str] = set()
    for group in groups.values():
        members.update(group.message_uuids)
    return members
