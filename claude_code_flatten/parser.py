#!/usr/bin/env python3
"""Extract text and timestamps from conversation records.

This module provides utility functions shared by the classifier, the
command/output merger and the groupers:
- extract_text_content: Join all text blocks of a content list
- extract_message_text: The text a record displays (string or first text block)
- parse_timestamp / timestamp_millis: ISO timestamp parsing
- has_command_name / extract_task_ids: Pseudo-XML tag helpers

For record creation from raw data, see factories/.
"""

import re
from datetime import datetime, timezone
from typing import Optional, Union

from .models import ContentItem, TranscriptEntry


# Pseudo-XML tags emitted by Claude Code around local command traffic
COMMAND_NAME_TAG = "<command-name>"
COMMAND_NAME_PATTERN = re.compile(r"<command-name>[\s\S]*?</command-name>")
COMMAND_MESSAGE_PATTERN = re.compile(r"<command-message>[\s\S]*?</command-message>")
LOCAL_COMMAND_CAVEAT_PATTERN = re.compile(
    r"<local-command-caveat>[\s\S]*?</local-command-caveat>"
)
LOCAL_COMMAND_STDOUT_PATTERN = re.compile(
    r"<local-command-stdout>[\s\S]*?</local-command-stdout>"
)
NON_EMPTY_STDOUT_PATTERN = re.compile(r"<local-command-stdout>\s*\S")
# Any tag pair whose name mentions stdout/output, or stderr/error
OUTPUT_TAG_PATTERN = re.compile(r"<([\w-]*(?:stdout|output)[\w-]*)>[\s\S]*?</\1>")
ERROR_TAG_PATTERN = re.compile(r"<([\w-]*(?:stderr|error)[\w-]*)>[\s\S]*?</\1>")

TASK_ID_PATTERN = re.compile(r"<task-id>([^<]+)</task-id>")
TASK_STATUS_PATTERN = re.compile(r"<status>([^<]+)</status>")


def _item_text(item: ContentItem) -> Optional[str]:
    # Works for our TextContent and Anthropic's TextBlock alike
    if getattr(item, "type", None) == "text":
        text = getattr(item, "text", None)
        if isinstance(text, str):
            return text
    return None


def extract_text_content(content: Union[str, list[ContentItem], None]) -> str:
    """Extract all text from a record's content, one text block per line."""
    if not content:
        return ""
    if isinstance(content, str):
        return content
    parts = [text for text in (_item_text(item) for item in content) if text is not None]
    return "\n".join(parts)


def extract_message_text(message: TranscriptEntry) -> Optional[str]:
    """Return the text a record displays.

    String content is returned as-is; for a content list, the text of the
    first text block. Empty text and records without text give None.
    """
    content = message.content
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        for item in content:
            text = _item_text(item)
            if text is not None:
                return text or None
    return None


def parse_timestamp(timestamp_str: Optional[str]) -> Optional[datetime]:
    """Parse ISO timestamp to datetime object."""
    if not timestamp_str:
        return None
    try:
        return datetime.fromisoformat(timestamp_str.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None


def timestamp_millis(timestamp_str: Optional[str]) -> int:
    """Milliseconds since the epoch; unparseable or missing timestamps are 0.

    Naive timestamps are read as UTC.
    """
    dt = parse_timestamp(timestamp_str)
    if dt is None:
        return 0
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(round(dt.timestamp() * 1000))


def has_command_name(text: str) -> bool:
    """Check if text carries a complete command-name tag pair."""
    return COMMAND_NAME_PATTERN.search(text) is not None


def extract_task_ids(text: str) -> list[str]:
    """All task-id tag values in order of appearance."""
    return TASK_ID_PATTERN.findall(text)


def extract_task_status(text: str) -> Optional[str]:
    match = TASK_STATUS_PATTERN.search(text)
    return match.group(1).strip() if match else None
