"""Factory for creating TranscriptEntry and ContentItem instances from raw data.

This module turns raw records, as stored in Claude Code JSONL files, into the
typed models the flattening engine consumes:
- ContentItem subclasses (Text, ToolUse, ToolResult, Thinking, Image)
- TranscriptEntry subclasses, one per record kind

Raw records keep their content inside a ``message`` envelope; the factory
lifts it to the top-level ``content`` field. String content stays a string.
"""

import json
import logging
import re
from typing import Any, Callable, Iterable, Optional, Sequence, cast

from pydantic import BaseModel

from ..models import (
    # Content types
    ContentItem,
    ImageContent,
    TextContent,
    ThinkingContent,
    ToolResultContent,
    ToolUseContent,
    # Transcript entry types
    AssistantTranscriptEntry,
    FileHistorySnapshotTranscriptEntry,
    ProgressTranscriptEntry,
    QueueOperationTranscriptEntry,
    SummaryTranscriptEntry,
    SystemTranscriptEntry,
    TranscriptEntry,
    UserTranscriptEntry,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Content Item Registry
# =============================================================================

# Maps content type strings to their model classes
CONTENT_ITEM_CREATORS: dict[str, type[BaseModel]] = {
    "text": TextContent,
    "tool_result": ToolResultContent,
    "image": ImageContent,
    "tool_use": ToolUseContent,
    "thinking": ThinkingContent,
}


def create_content_item(
    item_data: dict[str, Any],
    type_filter: Optional[Sequence[str]] = None,
) -> ContentItem:
    """Create a ContentItem from a raw content block.

    Blocks of an unknown or filtered-out type, and blocks that don't validate,
    are kept as TextContent holding their repr, so no block is ever dropped.
    """
    content_type = item_data.get("type", "")
    model_class = CONTENT_ITEM_CREATORS.get(content_type)
    allowed = type_filter is None or content_type in type_filter

    if model_class is not None and allowed:
        try:
            return cast(ContentItem, model_class.model_validate(item_data))
        except ValueError as e:
            logger.debug("Content block kept as text | %s", _describe_error(e))

    return TextContent(type="text", text=str(item_data))


def create_message_content(content_data: Any) -> "str | list[ContentItem] | None":
    """Create record content from raw content data.

    Strings and None pass through; lists become typed content items.
    """
    if content_data is None or isinstance(content_data, str):
        return content_data
    if isinstance(content_data, list):
        result: list[ContentItem] = []
        for item in cast(list[Any], content_data):
            if isinstance(item, dict):
                result.append(create_content_item(cast(dict[str, Any], item)))
            else:
                # Non-dict items (e.g., raw strings) become TextContent
                result.append(TextContent(type="text", text=str(item)))
        return result
    return str(content_data)


# =============================================================================
# Transcript Entry Creation
# =============================================================================


def _normalize_record(data: dict[str, Any]) -> dict[str, Any]:
    """Lift nested fields to where the models expect them."""
    data_copy = data.copy()

    envelope = data_copy.pop("message", None)
    if isinstance(envelope, dict):
        envelope = cast(dict[str, Any], envelope)
        if "content" in envelope and data_copy.get("content") is None:
            data_copy["content"] = envelope["content"]
        if "model" in envelope and "model" not in data_copy:
            data_copy["model"] = envelope["model"]

    if "content" in data_copy:
        data_copy["content"] = create_message_content(data_copy["content"])

    return data_copy


def _create_file_history_snapshot_entry(
    data: dict[str, Any],
) -> FileHistorySnapshotTranscriptEntry:
    """Snapshots are keyed by messageId rather than uuid."""
    data_copy = _normalize_record(data)
    if not data_copy.get("uuid") and data_copy.get("messageId"):
        data_copy["uuid"] = data_copy["messageId"]
    if not data_copy.get("timestamp"):
        snapshot = data_copy.get("snapshot")
        if isinstance(snapshot, dict):
            data_copy["timestamp"] = cast(dict[str, Any], snapshot).get("timestamp", "")
    return FileHistorySnapshotTranscriptEntry.model_validate(data_copy)


# Registry mapping record types to their creator functions
ENTRY_CREATORS: dict[str, Callable[[dict[str, Any]], TranscriptEntry]] = {
    "user": lambda data: UserTranscriptEntry.model_validate(_normalize_record(data)),
    "assistant": lambda data: AssistantTranscriptEntry.model_validate(
        _normalize_record(data)
    ),
    "system": lambda data: SystemTranscriptEntry.model_validate(
        _normalize_record(data)
    ),
    "summary": lambda data: SummaryTranscriptEntry.model_validate(
        _normalize_record(data)
    ),
    "file-history-snapshot": _create_file_history_snapshot_entry,
    "progress": lambda data: ProgressTranscriptEntry.model_validate(
        _normalize_record(data)
    ),
    "queue-operation": lambda data: QueueOperationTranscriptEntry.model_validate(
        _normalize_record(data)
    ),
}


def create_message(data: dict[str, Any]) -> TranscriptEntry:
    """Create a TranscriptEntry from a JSON dictionary.

    Uses a registry-based dispatch on the 'type' field.

    Raises:
        ValueError: If the type is unknown or the data doesn't validate
            (pydantic's ValidationError is a ValueError)
    """
    entry_type = data.get("type")
    creator = ENTRY_CREATORS.get(entry_type)  # type: ignore[arg-type]
    if creator is None:
        raise ValueError(f"Unknown record type: {entry_type}")
    return creator(data)


def _describe_error(error: ValueError) -> str:
    # Drop pydantic's documentation links from validation errors
    return re.sub(
        r"    For further information visit https://errors.pydantic(.*)\n?",
        "",
        str(error),
    ).strip()


def parse_messages(records: Iterable[Any]) -> list[TranscriptEntry]:
    """Create records, skipping (and logging) the ones that don't parse."""
    messages: list[TranscriptEntry] = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            logger.warning("Record %d is not a JSON object: %r", index, record)
            continue
        try:
            messages.append(create_message(cast(dict[str, Any], record)))
        except ValueError as e:
            logger.warning("Record %d skipped | %s", index, _describe_error(e))
    return messages


def parse_jsonl_lines(lines: Iterable[str]) -> list[TranscriptEntry]:
    """Parse JSONL text lines into records.

    Blank lines are ignored; malformed lines are logged with their 1-based
    line number and skipped.
    """
    records: list[Any] = []
    for line_no, line in enumerate(lines, 1):
        line = line.strip()
        if not line:
            continue
        try:
            records.append(json.loads(line))
        except json.JSONDecodeError as e:
            logger.warning("Line %d | JSON decode error: %s", line_no, e)
    return parse_messages(records)
