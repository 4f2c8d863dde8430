"""Fold local command output into the command record that produced it.

When a user runs a slash command like ``/cost``, two records appear:
1. A record with ``<command-name>/cost</command-name>``
2. A child record with ``<local-command-stdout>result</local-command-stdout>``

The stdout record is merged into its parent so both render as a single card.
This must run before tree reconstruction so merged records cannot come back
as orphans.
"""

from typing import Optional

from .classifier import get_parent_uuid
from .models import ContentItem, TextContent, TranscriptEntry
from .parser import (
    COMMAND_NAME_TAG,
    LOCAL_COMMAND_CAVEAT_PATTERN,
    LOCAL_COMMAND_STDOUT_PATTERN,
    NON_EMPTY_STDOUT_PATTERN,
    extract_message_text,
)


def command_output_text(message: TranscriptEntry) -> Optional[str]:
    """Return the record's text if it is nothing but local command output.

    Only a local-command-stdout tag (plus an optional caveat and whitespace)
    may be present, and the stdout must not be blank.
    """
    text = extract_message_text(message)
    if not text:
        return None

    stripped = LOCAL_COMMAND_STDOUT_PATTERN.sub("", text)
    stripped = LOCAL_COMMAND_CAVEAT_PATTERN.sub("", stripped)
    if stripped.strip():
        return None

    if NON_EMPTY_STDOUT_PATTERN.search(text) is None:
        return None
    return text


def _append_output(parent: TranscriptEntry, output: str) -> TranscriptEntry:
    """Copy of parent with output appended to its text."""
    content = parent.content
    if isinstance(content, str):
        return parent.model_copy(update={"content": content + "\n" + output})

    items: list[ContentItem] = list(content or [])
    for index, item in enumerate(items):
        if getattr(item, "type", None) == "text":
            text = getattr(item, "text", "")
            items[index] = TextContent(type="text", text=text + "\n" + output)
            break
    else:
        items.append(TextContent(type="text", text=output))
    return parent.model_copy(update={"content": items})


def merge_command_output_messages(
    messages: list[TranscriptEntry],
) -> list[TranscriptEntry]:
    """Merge command output records into their parent command records.

    Records are never mutated; merged parents are copies that take the
    original's place. Several outputs for one parent accumulate in order.
    Records that replied to a merged output are re-parented onto the command
    record, so the rest of the conversation stays reachable.

    Args:
        messages: Deduplicated records

    Returns:
        The input list itself when nothing merges, otherwise a new list
        without the merged output records
    """
    by_uuid: dict[str, TranscriptEntry] = {msg.uuid: msg for msg in messages}
    # output uuid -> uuid of the command it was folded into
    merged_into: dict[str, str] = {}

    for msg in messages:
        output = command_output_text(msg)
        if output is None:
            continue

        parent_uuid = get_parent_uuid(msg)
        if not parent_uuid:
            continue
        parent = by_uuid.get(parent_uuid)
        if parent is None:
            continue

        parent_text = extract_message_text(parent)
        if not parent_text or COMMAND_NAME_TAG not in parent_text:
            continue

        by_uuid[parent_uuid] = _append_output(parent, output)
        merged_into[msg.uuid] = parent_uuid

    if not merged_into:
        return messages

    result: list[TranscriptEntry] = []
    for msg in messages:
        if msg.uuid in merged_into:
            continue
        current = by_uuid[msg.uuid]
        # Replies to a merged output hang off the command record instead
        current_parent = get_parent_uuid(current)
        if current_parent in merged_into:
            current = current.model_copy(
                update={
                    "parentUuid": merged_into[current_parent],
                    "parent_uuid": None,
                }
            )
        result.append(current)
    return result
