"""
Tests for actions, traces and the action log.

Tests:
- Serialization of actions and traces
- Human-readable descriptions
- Action log filtering
"""

import pytest

from ..engine_core.action import Action, ActionType, ProgramTrace
from ..engine_core.state import ActionLog


class TestActionSerialization:
    """Tests for Action.to_dict / from_dict."""

    def test_to_dict_omits_unused_fields(self):
        """Only the fields an action uses are serialized."""
        assert Action.swap(0, 2).to_dict() == {"type": "swap", "first": 0, "second": 2}
        assert Action.collect_star().to_dict() == {"type": "collect_star"}

    def test_positions_become_lists(self):
        """Tuples serialize as JSON lists."""
        data = Action.place_block((1, 2, 3), "#e74c3c").to_dict()
        assert data["position"] == [1, 2, 3]

    def test_from_dict_restores_tuples(self):
        """Lists in the payload come back as tuples."""
        action = Action.from_dict({"type": "draw_pixel", "position": [2, 3], "color": "#ff0000"})
        assert action == Action.draw_pixel((2, 3), "#ff0000")

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError, match="Unknown action type"):
            Action.from_dict({"type": "teleport"})

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError, match="Unknown payload field"):
            Action.from_dict({"type": "move", "speed": 3})

    def test_trace_from_list(self):
        """A serialized trace loads back into an equal trace."""
        trace = ProgramTrace((Action.move(1, 0), Action.turn(-90), Action.say("hi")))
        assert ProgramTrace.from_list(trace.to_list()) == trace


class TestActionDescribe:
    """Tests for Action.describe."""

    def test_move(self):
        assert Action.move(1, 0).describe() == "move dx=+1"
        assert Action.move().describe() == "move nowhere"

    def test_swap(self):
        assert Action.swap(0, 1).describe() == "swap 0<->1"

    def test_detail_field(self):
        assert Action.play_note("C4").describe() == "play_note C4"
        assert Action.jump().describe() == "jump"


class TestProgramTrace:
    """Tests for ProgramTrace as a sequence."""

    def test_sequence_protocol(self):
        trace = ProgramTrace((Action.jump(), Action.say("a")))
        assert len(trace) == 2
        assert trace[1].action_type == ActionType.SAY
        assert [a.action_type for a in trace] == [ActionType.JUMP, ActionType.SAY]

    def test_empty_trace_is_falsy(self):
        assert not ProgramTrace()


class TestActionLog:
    """Tests for the goal-relevant action log."""

    def test_logs_everything_without_filter(self):
        log = ActionLog.of([Action.move(1), Action.wait(1)])
        assert len(log) == 2

    def test_filters_by_type(self):
        """Only declared types are logged."""
        log = ActionLog(logged_types=frozenset({ActionType.PLAY_NOTE}))
        assert log.record(Action.play_note("C4"))
        assert not log.record(Action.rest(1))
        assert log.notes() == ["C4"]

    def test_contains_and_of_type(self):
        log = ActionLog.of([Action.select_target("orc1"), Action.attack("orc1")])
        assert log.contains(ActionType.ATTACK)
        assert not log.contains(ActionType.SWAP)
        assert len(log.of_type(ActionType.SELECT_TARGET)) == 1
