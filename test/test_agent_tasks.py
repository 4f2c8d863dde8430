#!/usr/bin/env python3
"""Tests for background agent task grouping."""

from claude_code_flatten.agent_tasks import agent_task_member_uuids, group_agent_tasks
from claude_code_flatten.models import AgentTaskStatus
from message_builders import (
    completion,
    launch,
    notification_text,
    queue_operation,
    user,
)


class TestLaunchGrouping:
    """Tests for the anchor window."""

    def test_launches_inside_window_share_a_group(self):
        messages = [launch("L1", "agent-1", ms=0), launch("L2", "agent-2", ms=1999)]

        groups = group_agent_tasks(messages)

        assert list(groups) == ["L1"]
        assert [task.agent_id for task in groups["L1"].tasks] == ["agent-1", "agent-2"]
        assert groups["L1"].message_uuids == {"L1", "L2"}

    def test_launches_outside_window_split(self):
        messages = [launch("L1", "agent-1", ms=0), launch("L2", "agent-2", ms=2001)]

        groups = group_agent_tasks(messages)

        assert list(groups) == ["L1", "L2"]
        assert len(groups["L1"].tasks) == 1
        assert len(groups["L2"].tasks) == 1

    def test_window_boundary_is_inclusive(self):
        messages = [launch("L1", "agent-1", ms=0), launch("L2", "agent-2", ms=2000)]
        assert list(group_agent_tasks(messages)) == ["L1"]

    def test_anchor_does_not_slide(self):
        messages = [
            launch("L1", "agent-1", ms=0),
            launch("L2", "agent-2", ms=1500),
            launch("L3", "agent-3", ms=3000),
        ]

        groups = group_agent_tasks(messages)

        assert list(groups) == ["L1", "L3"]
        assert groups["L1"].message_uuids == {"L1", "L2"}

    def test_launches_need_not_be_consecutive(self):
        messages = [
            launch("L1", "agent-1", ms=0),
            user("chatter", ms=500),
            launch("L2", "agent-2", ms=1000),
        ]
        assert group_agent_tasks(messages)["L1"].message_uuids == {"L1", "L2"}

    def test_leader_is_earliest_launch(self):
        messages = [launch("late", "agent-2", ms=1000), launch("early", "agent-1", ms=0)]
        assert list(group_agent_tasks(messages)) == ["early"]

    def test_custom_window(self):
        messages = [launch("L1", "agent-1", ms=0), launch("L2", "agent-2", ms=1999)]
        assert list(group_agent_tasks(messages, window_ms=500)) == ["L1", "L2"]

    def test_no_launches(self):
        assert group_agent_tasks([user("u1"), completion("c1", "agent-1")]) == {}


class TestCompletionLinking:
    """Completions and notifications join the launching group."""

    def test_synchronous_completion(self):
        messages = [
            launch("L1", "agent-1", ms=0),
            completion("C1", "agent-1", ms=60_000, is_async=False),
        ]

        groups = group_agent_tasks(messages)

        assert groups["L1"].message_uuids == {"L1", "C1"}
        assert groups["L1"].tasks[0].status == AgentTaskStatus.COMPLETED

    def test_async_error_update(self):
        messages = [
            launch("L1", "agent-1", ms=0),
            completion("C1", "agent-1", ms=60_000, status="error"),
        ]

        groups = group_agent_tasks(messages)

        assert "C1" in groups["L1"].message_uuids
        assert groups["L1"].tasks[0].status == AgentTaskStatus.ERROR

    def test_completion_for_unknown_agent_is_ignored(self):
        messages = [
            launch("L1", "agent-1", ms=0),
            completion("C1", "agent-9", ms=10, is_async=False),
        ]

        groups = group_agent_tasks(messages)

        assert groups["L1"].message_uuids == {"L1"}
        assert groups["L1"].tasks[0].status == AgentTaskStatus.ASYNC_LAUNCHED

    def test_queue_operation_notification(self):
        messages = [
            launch("L1", "agent-1", ms=0),
            launch("L2", "agent-2", ms=10_000),
            queue_operation("Q1", notification_text("agent-2", "agent-1"), ms=20_000),
        ]

        groups = group_agent_tasks(messages)

        # Only the first task-id of a queue operation counts
        assert "Q1" in groups["L2"].message_uuids
        assert "Q1" not in groups["L1"].message_uuids
        assert groups["L2"].tasks[0].status == AgentTaskStatus.COMPLETED

    def test_user_notification_links_every_id(self):
        messages = [
            launch("L1", "agent-1", ms=0),
            launch("L2", "agent-2", ms=10_000),
            user("N1", ms=20_000, content=notification_text("agent-1", "agent-2")),
        ]

        groups = group_agent_tasks(messages)

        assert "N1" in groups["L1"].message_uuids
        assert "N1" in groups["L2"].message_uuids

    def test_notification_status_tag(self):
        messages = [
            launch("L1", "agent-1", ms=0),
            user("N1", ms=20_000, content=notification_text("agent-1", status="error")),
        ]

        groups = group_agent_tasks(messages)

        assert groups["L1"].tasks[0].status == AgentTaskStatus.ERROR

    def test_member_uuids(self):
        messages = [
            launch("L1", "agent-1", ms=0),
            launch("L2", "agent-2", ms=5000),
            completion("C2", "agent-2", ms=9000, is_async=False),
        ]

        groups = group_agent_tasks(messages)

        assert agent_task_member_uuids(groups) == {"L1", "L2", "C2"}
