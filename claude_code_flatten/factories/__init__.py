"""Factory modules for creating typed records from raw data."""

from .message_factory import (
    # Content item creation
    CONTENT_ITEM_CREATORS,
    create_content_item,
    create_message_content,
    # Record creation
    ENTRY_CREATORS,
    create_message,
    parse_jsonl_lines,
    parse_messages,
)

__all__ = [
    "CONTENT_ITEM_CREATORS",
    "create_content_item",
    "create_message_content",
    "ENTRY_CREATORS",
    "create_message",
    "parse_jsonl_lines",
    "parse_messages",
]
