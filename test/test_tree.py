#!/usr/bin/env python3
"""Tests for tree reconstruction: dedup, ordering, cycles and orphans."""

from claude_code_flatten.diagnostics import (
    CYCLE,
    ORPHANS_DROPPED,
    ORPHANS_RECOVERED,
    RecordingDiagnostics,
)
from claude_code_flatten.models import UserTranscriptEntry
from claude_code_flatten.tree import (
    build_children_map,
    deduplicate_messages,
    find_cycle_members,
    order_messages,
    sort_by_timestamp,
)
from message_builders import assistant, chain, user


def _order(positions):
    return [position.message.uuid for position in positions]


def _depths(positions):
    return {position.message.uuid: position.depth for position in positions}


class TestDeduplicate:
    """Tests for deduplicate_messages."""

    def test_last_occurrence_wins_at_first_position(self):
        first = user("a", content="draft")
        other = user("b")
        last = user("a", content="final")

        result = deduplicate_messages([first, other, last])

        assert [msg.uuid for msg in result] == ["a", "b"]
        assert result[0].content == "final"

    def test_no_duplicates(self):
        messages = chain("a", "b", "c")
        assert deduplicate_messages(messages) == messages


class TestChildrenMap:
    """Tests for sort_by_timestamp and build_children_map."""

    def test_children_sorted_by_timestamp(self):
        root = user("r", ms=0)
        late = user("late", parent="r", ms=5000)
        early = user("early", parent="r", ms=1000)

        children_map = build_children_map([root, late, early])

        assert [msg.uuid for msg in children_map[None]] == ["r"]
        assert [msg.uuid for msg in children_map["r"]] == ["early", "late"]

    def test_unparseable_timestamp_sorts_first_and_ties_are_stable(self):
        broken = UserTranscriptEntry(uuid="broken", timestamp="not a date")
        missing = UserTranscriptEntry(uuid="missing")
        dated = user("dated", ms=1)

        result = sort_by_timestamp([dated, broken, missing])

        assert [msg.uuid for msg in result] == ["broken", "missing", "dated"]


class TestOrderMessages:
    """Tests for order_messages."""

    def test_depth_first_with_depths(self, diagnostics: RecordingDiagnostics):
        messages = [
            user("root", ms=0),
            assistant("a1", parent="root", ms=1000),
            user("a1-child", parent="a1", ms=3000),
            assistant("a2", parent="root", ms=2000),
        ]

        positions = order_messages(messages, diagnostics=diagnostics)

        assert _order(positions) == ["root", "a1", "a1-child", "a2"]
        assert _depths(positions) == {"root": 0, "a1": 1, "a1-child": 2, "a2": 1}
        assert diagnostics.events == []

    def test_roots_in_timestamp_order(self, diagnostics: RecordingDiagnostics):
        messages = [user("second", ms=2000), user("first", ms=1000)]
        positions = order_messages(messages, diagnostics=diagnostics)
        assert _order(positions) == ["first", "second"]

    def test_no_roots_keeps_input_order(self, diagnostics: RecordingDiagnostics):
        messages = [
            user("b", parent="missing-1", ms=2000),
            user("a", parent="missing-2", ms=1000),
        ]

        positions = order_messages(messages, diagnostics=diagnostics)

        assert _order(positions) == ["b", "a"]
        assert _depths(positions) == {"b": 0, "a": 0}
        assert diagnostics.events == []

    def test_deep_chain_does_not_recurse(self, diagnostics: RecordingDiagnostics):
        uuids = [f"m{i}" for i in range(5000)]
        positions = order_messages(chain(*uuids, step_ms=1), diagnostics=diagnostics)
        assert _order(positions) == uuids
        assert positions[-1].depth == 4999

    def test_hidden_flag_does_not_spread_to_children(self):
        positions = order_messages(chain("a", "b", "c"), hidden_uuids={"b"})
        assert [position.hidden for position in positions] == [False, True, False]


class TestCycles:
    """Cycle safety."""

    def test_self_parent(self, diagnostics: RecordingDiagnostics):
        messages = [user("root"), user("loop", parent="loop", ms=10)]

        positions = order_messages(messages, diagnostics=diagnostics)

        # Half the records unreachable: recovered as an orphan
        assert _order(positions) == ["root", "loop"]
        assert CYCLE in diagnostics.kinds()
        assert ORPHANS_RECOVERED in diagnostics.kinds()

    def test_self_parent_only(self, diagnostics: RecordingDiagnostics):
        positions = order_messages([user("A", parent="A")], diagnostics=diagnostics)
        assert _order(positions) == ["A"]
        assert diagnostics.kinds() == [CYCLE]

    def test_three_cycle_without_roots(self, diagnostics: RecordingDiagnostics):
        messages = [
            user("A", parent="C", ms=0),
            user("B", parent="A", ms=1),
            user("C", parent="B", ms=2),
        ]

        positions = order_messages(messages, diagnostics=diagnostics)

        assert sorted(_order(positions)) == ["A", "B", "C"]
        assert diagnostics.kinds() == [CYCLE]
        assert diagnostics.events[0].uuids == ("A", "B", "C")

    def test_find_cycle_members(self):
        messages = [
            user("root"),
            user("x", parent="z"),
            user("y", parent="x"),
            user("z", parent="y"),
            user("tail", parent="x"),
        ]
        assert find_cycle_members(messages) == ["x", "y", "z"]


class TestOrphans:
    """Orphan recovery threshold."""

    def test_orphans_recovered_below_threshold(self, diagnostics: RecordingDiagnostics):
        messages = [
            user("root", ms=0),
            user("orphan-late", parent="gone", ms=3000),
            user("orphan-early", parent="gone", ms=2000),
        ]

        positions = order_messages(messages, diagnostics=diagnostics)

        assert _order(positions) == ["root", "orphan-early", "orphan-late"]
        assert _depths(positions)["orphan-early"] == 0
        assert diagnostics.kinds() == [ORPHANS_RECOVERED]

    def test_orphans_dropped_above_threshold(self, diagnostics: RecordingDiagnostics):
        messages = chain(*[f"m{i}" for i in range(10)])
        messages.append(user("orphan", parent="gone", ms=50_000))

        positions = order_messages(messages, diagnostics=diagnostics)

        # 10 of 11 reachable is above 90%
        assert "orphan" not in _order(positions)
        assert len(positions) == 10
        assert diagnostics.kinds() == [ORPHANS_DROPPED]
        assert diagnostics.events[0].uuids == ("orphan",)

    def test_ratio_one_always_recovers(self, diagnostics: RecordingDiagnostics):
        messages = chain(*[f"m{i}" for i in range(10)])
        messages.append(user("orphan", parent="gone", ms=50_000))

        positions = order_messages(
            messages, diagnostics=diagnostics, orphan_recovery_ratio=1.0
        )

        assert len(positions) == 11
        assert _order(positions)[-1] == "orphan"
        assert diagnostics.kinds() == [ORPHANS_RECOVERED]
