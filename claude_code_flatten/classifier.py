#!/usr/bin/env python3
"""Pure predicates over single records.

Answers the questions the rest of the engine asks about a record: is there
anything to render, does it carry tool traffic, which sub-agent does a
progress event or task result belong to, and which parent does it declare.
"""

from typing import Any, Optional, cast

from .models import (
    AgentTask,
    AgentTaskStatus,
    MessageType,
    ProgressTranscriptEntry,
    TranscriptEntry,
)
from .parser import (
    COMMAND_MESSAGE_PATTERN,
    ERROR_TAG_PATTERN,
    LOCAL_COMMAND_CAVEAT_PATTERN,
    OUTPUT_TAG_PATTERN,
    extract_message_text,
    extract_task_ids,
    has_command_name,
)


AGENT_PROGRESS = "agent_progress"


# =============================================================================
# Rendering
# =============================================================================


def is_empty_message(message: TranscriptEntry) -> bool:
    """Check if a record has nothing meaningful to display.

    Records with command-name tags are NOT empty; they render as command
    indicators (e.g. "/clear") even without further content. Records holding
    only a local-command caveat, stdout/stderr or output/error tags ARE empty.
    """
    if message.toolUse is not None or message.toolUseResult is not None:
        return False

    if isinstance(message, ProgressTranscriptEntry):
        if message.data is not None and not message.data.is_empty():
            return False

    if isinstance(message.content, list) and message.content:
        return False

    text = extract_message_text(message)
    if not text:
        return True

    if has_command_name(text):
        return False

    stripped = LOCAL_COMMAND_CAVEAT_PATTERN.sub("", text)
    stripped = OUTPUT_TAG_PATTERN.sub("", stripped)
    stripped = ERROR_TAG_PATTERN.sub("", stripped)
    return not stripped.strip()


def has_system_command_content(message: TranscriptEntry) -> bool:
    """Check if a record's text carries system command tags."""
    text = extract_message_text(message)
    if not text:
        return False
    return (
        has_command_name(text)
        or LOCAL_COMMAND_CAVEAT_PATTERN.search(text) is not None
        or COMMAND_MESSAGE_PATTERN.search(text) is not None
    )


def get_parent_uuid(message: TranscriptEntry) -> Optional[str]:
    """Declared parent uuid, tolerating the legacy parent_uuid spelling."""
    return message.parentUuid or message.parent_uuid or None


# =============================================================================
# Agent Progress
# =============================================================================


def get_agent_id_from_progress(message: TranscriptEntry) -> Optional[str]:
    """Agent id of an agent_progress event, None for anything else."""
    if not isinstance(message, ProgressTranscriptEntry) or message.data is None:
        return None
    if message.data.type != AGENT_PROGRESS:
        return None
    agent_id = message.data.agentId
    return agent_id if isinstance(agent_id, str) and agent_id else None


def is_agent_progress_message(message: TranscriptEntry) -> bool:
    return get_agent_id_from_progress(message) is not None


# =============================================================================
# Agent Tasks
# =============================================================================


def _tool_result_dict(message: TranscriptEntry) -> Optional[dict[str, Any]]:
    result = message.toolUseResult
    if isinstance(result, dict):
        return cast(dict[str, Any], result)
    return None


def is_agent_task_launch_message(message: TranscriptEntry) -> bool:
    """A background sub-agent launch: isAsync is True and agentId a string."""
    result = _tool_result_dict(message)
    if result is None:
        return False
    return result.get("isAsync") is True and isinstance(result.get("agentId"), str)


def is_agent_task_completion_message(message: TranscriptEntry) -> bool:
    """A sub-agent reporting back through its tool result.

    Either a synchronous completion (isAsync is False) or an async status
    update (isAsync absent, status "completed" or "error").
    """
    result = _tool_result_dict(message)
    if result is None or not isinstance(result.get("agentId"), str):
        return False
    if result.get("isAsync") is False:
        return True
    return result.get("isAsync") is None and result.get("status") in (
        "completed",
        "error",
    )


def extract_agent_task(message: TranscriptEntry) -> Optional[AgentTask]:
    """Build an AgentTask from a launch record, None for anything else."""
    if not is_agent_task_launch_message(message):
        return None
    result = cast(dict[str, Any], message.toolUseResult)

    status = result.get("status")
    if status == "completed":
        task_status = AgentTaskStatus.COMPLETED
    elif status == "error":
        task_status = AgentTaskStatus.ERROR
    else:
        task_status = AgentTaskStatus.ASYNC_LAUNCHED

    output_file = result.get("outputFile")
    prompt = result.get("prompt")
    return AgentTask(
        agent_id=str(result["agentId"]),
        description=str(result.get("description") or ""),
        status=task_status,
        output_file=str(output_file) if output_file else None,
        prompt=str(prompt) if prompt else None,
    )


def extract_task_notification_ids(message: TranscriptEntry) -> list[str]:
    """Task ids a notification record refers to.

    Queue operations carry a single notification, so only their first
    task-id counts; user records may batch several.
    """
    if message.type == MessageType.QUEUE_OPERATION:
        text = extract_message_text(message)
        ids = extract_task_ids(text) if text else []
        return ids[:1]
    if message.type == MessageType.USER:
        text = extract_message_text(message)
        return extract_task_ids(text) if text else []
    return []
