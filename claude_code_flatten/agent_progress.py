"""Group consecutive agent progress events.

Unlike task launches, progress events only group while they are strictly
adjacent in the record list and come from the same agent. Any interruption
closes the group for good; the same agent resuming later starts a new one.

The scan is a two-state machine, ``Idle`` and ``InRun(agent_id, leader)``,
advanced by the pure ``step`` function one record at a time.
"""

from dataclasses import dataclass
from typing import Optional, Union, cast

from .classifier import get_agent_id_from_progress
from .models import (
    AgentProgressEntry,
    AgentProgressGroup,
    ProgressData,
    ProgressTranscriptEntry,
    TranscriptEntry,
)


@dataclass(frozen=True)
class Idle:
    """Not inside a progress run."""


@dataclass(frozen=True)
class InRun:
    """Inside a run of progress events for one agent."""

    agent_id: str
    leader_uuid: str


ScanState = Union[Idle, InRun]


def step(state: ScanState, message: TranscriptEntry) -> ScanState:
    """Next scan state after seeing message.

    A progress event for the running agent keeps the run; one for another
    agent opens a run led by this record; anything else goes back to Idle.
    """
    agent_id = get_agent_id_from_progress(message)
    if agent_id is None:
        return Idle()
    if isinstance(state, InRun) and state.agent_id == agent_id:
        return state
    return InRun(agent_id=agent_id, leader_uuid=message.uuid)


def _entry(message: TranscriptEntry) -> AgentProgressEntry:
    progress = cast(ProgressTranscriptEntry, message)
    return AgentProgressEntry(
        data=cast(ProgressData, progress.data),
        timestamp=progress.timestamp,
        uuid=progress.uuid,
    )


def group_agent_progress_messages(
    messages: list[TranscriptEntry],
) -> dict[str, AgentProgressGroup]:
    """Group consecutive agent progress records by agent id.

    Args:
        messages: Records in original order

    Returns:
        Groups keyed by leader uuid
    """
    groups: dict[str, AgentProgressGroup] = {}
    state: ScanState = Idle()
    group: Optional[AgentProgressGroup] = None

    for message in messages:
        next_state = step(state, message)
        if not isinstance(next_state, InRun):
            state, group = next_state, None
            continue

        if next_state is not state or group is None:
            group = AgentProgressGroup()
            groups[next_state.leader_uuid] = group
        state = next_state

        # step() only enters InRun for progress records with an agent id
        group.entries.append(_entry(message))
        group.message_uuids.add(message.uuid)

    return groups


def agent_progress_member_uuids(groups: dict[str, AgentProgressGroup]) -> set[str]:
    """Every record belonging to any progress group, leaders included."""
    members: set[str] = set()
    for group in groups.values():
        members.update(group.message_uuids)
    return members
