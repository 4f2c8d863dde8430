"""Flatten Claude Code conversation records for virtualized rendering."""

from .agent_progress import group_agent_progress_messages
from .agent_tasks import group_agent_tasks
from .classifier import (
    get_agent_id_from_progress,
    has_system_command_content,
    is_agent_progress_message,
    is_agent_task_completion_message,
    is_agent_task_launch_message,
    is_empty_message,
)
from .command_merge import merge_command_output_messages
from .config import FlattenConfig
from .diagnostics import (
    DiagnosticEvent,
    DiagnosticsSink,
    LoggingDiagnostics,
    NullDiagnostics,
    RecordingDiagnostics,
)
from .factories import create_message, parse_jsonl_lines, parse_messages
from .flatten import (
    FlattenedView,
    build_flattened_view,
    build_uuid_to_index_map,
    find_group_leader_index,
    flatten_message_tree,
)
from .models import (
    AgentProgressGroup,
    AgentTask,
    AgentTaskGroup,
    AgentTaskStatus,
    FlattenedItem,
    FlattenedMessage,
    HiddenPlaceholder,
    TranscriptEntry,
)
from .tree import deduplicate_messages

__all__ = [
    "AgentProgressGroup",
    "AgentTask",
    "AgentTaskGroup",
    "AgentTaskStatus",
    "DiagnosticEvent",
    "DiagnosticsSink",
    "FlattenConfig",
    "FlattenedItem",
    "FlattenedMessage",
    "FlattenedView",
    "HiddenPlaceholder",
    "LoggingDiagnostics",
    "NullDiagnostics",
    "RecordingDiagnostics",
    "TranscriptEntry",
    "build_flattened_view",
    "build_uuid_to_index_map",
    "create_message",
    "deduplicate_messages",
    "find_group_leader_index",
    "flatten_message_tree",
    "get_agent_id_from_progress",
    "group_agent_progress_messages",
    "group_agent_tasks",
    "has_system_command_content",
    "is_agent_progress_message",
    "is_agent_task_completion_message",
    "is_agent_task_launch_message",
    "is_empty_message",
    "merge_command_output_messages",
    "parse_jsonl_lines",
    "parse_messages",
]
