"""Pydantic models for Claude Code conversation records and flattening output.

Records are modelled as one class per message kind (a closed tagged union on
``type``). Render-time structures (agent task/progress groups and flattened
items) are plain dataclasses owned by the caller for one flatten call.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional, Union

from anthropic.types.content_block import ContentBlock
from pydantic import BaseModel, ConfigDict


class MessageType(str, Enum):
    """Record kind classification.

    Using str as base class keeps plain string comparisons working.
    """

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    SUMMARY = "summary"
    FILE_HISTORY_SNAPSHOT = "file-history-snapshot"
    PROGRESS = "progress"
    QUEUE_OPERATION = "queue-operation"


class AgentTaskStatus(str, Enum):
    ASYNC_LAUNCHED = "async_launched"
    COMPLETED = "completed"
    ERROR = "error"


# =============================================================================
# Content Items
# =============================================================================


class TextContent(BaseModel):
    type: Literal["text"]
    text: str


class ToolUseContent(BaseModel):
    type: Literal["tool_use"]
    id: str
    name: str
    input: dict[str, Any]


class ToolResultContent(BaseModel):
    type: Literal["tool_result"]
    tool_use_id: str
    content: Union[str, list[dict[str, Any]]]
    is_error: Optional[bool] = None


class ThinkingContent(BaseModel):
    type: Literal["thinking"]
    thinking: str
    signature: Optional[str] = None


class ImageSource(BaseModel):
    type: Literal["base64"]
    media_type: str
    data: str


class ImageContent(BaseModel):
    type: Literal["image"]
    source: ImageSource


# Official Anthropic content blocks are accepted after our own models
ContentItem = Union[
    TextContent,
    ToolUseContent,
    ToolResultContent,
    ThinkingContent,
    ImageContent,
    ContentBlock,
]


# =============================================================================
# Progress Payload
# =============================================================================


class ProgressData(BaseModel):
    """Payload of a ``progress`` record.

    Only ``type`` and ``agentId`` matter for grouping; everything else the
    producer emits (serverName, elapsedTimeMs, normalizedMessages, ...) is
    kept as extra fields for the renderer.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    type: Optional[str] = None  # agent_progress, mcp_progress, bash_progress, ...
    status: Optional[str] = None
    agentId: Optional[str] = None
    taskId: Optional[str] = None
    prompt: Optional[str] = None
    message: Optional[Union[str, dict[str, Any]]] = None

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


# =============================================================================
# Transcript Entries
# =============================================================================


class BaseTranscriptEntry(BaseModel):
    """Fields shared by every record kind.

    ``content`` is already lifted out of the JSONL ``message`` envelope by the
    factory. ``parent_uuid`` is the legacy spelling of ``parentUuid``.
    """

    model_config = ConfigDict(frozen=True)

    uuid: str
    parentUuid: Optional[str] = None
    parent_uuid: Optional[str] = None
    timestamp: str = ""
    sessionId: Optional[str] = None
    content: Optional[Union[str, list[ContentItem]]] = None
    toolUse: Optional[dict[str, Any]] = None
    toolUseResult: Optional[Union[dict[str, Any], str, list[Any]]] = None
    isSidechain: Optional[bool] = None


class UserTranscriptEntry(BaseTranscriptEntry):
    type: Literal["user"] = "user"


class AssistantTranscriptEntry(BaseTranscriptEntry):
    type: Literal["assistant"] = "assistant"
    model: Optional[str] = None


class SystemTranscriptEntry(BaseTranscriptEntry):
    type: Literal["system"] = "system"
    subtype: Optional[str] = None  # e.g. "stop_hook_summary", "compact_boundary"
    level: Optional[str] = None  # "info", "warning", "error", "suggestion"


class SummaryTranscriptEntry(BaseTranscriptEntry):
    type: Literal["summary"] = "summary"
    summary: Optional[str] = None
    leafUuid: Optional[str] = None


class FileHistorySnapshotTranscriptEntry(BaseTranscriptEntry):
    type: Literal["file-history-snapshot"] = "file-history-snapshot"
    snapshot: Optional[dict[str, Any]] = None
    isSnapshotUpdate: Optional[bool] = None


class ProgressTranscriptEntry(BaseTranscriptEntry):
    type: Literal["progress"] = "progress"
    data: Optional[ProgressData] = None
    toolUseID: Optional[str] = None
    parentToolUseID: Optional[str] = None


class QueueOperationTranscriptEntry(BaseTranscriptEntry):
    type: Literal["queue-operation"] = "queue-operation"
    operation: Optional[Literal["enqueue", "dequeue", "remove", "popAll"]] = None


TranscriptEntry = Union[
    UserTranscriptEntry,
    AssistantTranscriptEntry,
    SystemTranscriptEntry,
    SummaryTranscriptEntry,
    FileHistorySnapshotTranscriptEntry,
    ProgressTranscriptEntry,
    QueueOperationTranscriptEntry,
]


# =============================================================================
# Agent Groups
# =============================================================================


@dataclass
class AgentTask:
    """A sub-agent launched in the background, tracked until it reports back."""

    agent_id: str
    description: str
    status: AgentTaskStatus = AgentTaskStatus.ASYNC_LAUNCHED
    output_file: Optional[str] = None
    prompt: Optional[str] = None


@dataclass
class AgentTaskGroup:
    """Launches that share a time anchor, keyed by leader uuid.

    ``message_uuids`` holds the launches plus every completion or
    notification linked back to one of the tasks.
    """

    tasks: list[AgentTask] = field(default_factory=lambda: [])  # type: list[AgentTask]
    message_uuids: set[str] = field(default_factory=lambda: set())  # type: set[str]


@dataclass
class AgentProgressEntry:
    data: ProgressData
    timestamp: str
    uuid: str


@dataclass
class AgentProgressGroup:
    """Strictly consecutive progress events of one agent, keyed by leader uuid."""

    entries: list[AgentProgressEntry] = field(
        default_factory=lambda: []  # type: list[AgentProgressEntry]
    )
    message_uuids: set[str] = field(default_factory=lambda: set())  # type: set[str]


# =============================================================================
# Flattened Output
# =============================================================================


@dataclass
class AgentProgressGroupView:
    """Aggregated progress payload carried by a progress group leader."""

    entries: list[AgentProgressEntry]
    agent_id: str


@dataclass
class FlattenedMessage:
    """A visible record in the flattened sequence.

    Group members stay addressable by uuid but are rendered with a zero
    footprint; leaders carry the aggregated payload.
    """

    message: TranscriptEntry
    depth: int
    original_index: int
    is_group_leader: bool = False
    is_group_member: bool = False
    is_progress_group_leader: bool = False
    is_progress_group_member: bool = False
    agent_task_group: Optional[list[AgentTask]] = None
    agent_progress_group: Optional[AgentProgressGroupView] = None
    type: Literal["message"] = "message"

    @property
    def uuid(self) -> str:
        return self.message.uuid


@dataclass
class HiddenPlaceholder:
    """Stands in for a contiguous run of hidden records."""

    hidden_count: int
    hidden_uuids: list[str]
    type: Literal["hidden-placeholder"] = "hidden-placeholder"


FlattenedItem = Union[FlattenedMessage, HiddenPlaceholder]
