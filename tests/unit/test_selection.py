"""Tests for viewer-side aircraft selection and CLI helpers"""
import pytest

from zonewatch.cli import build_message, control_url, VirtualViewer
from zonewatch.services.selection import next_selection_index, step_selection, zone_view_order


class TestNextSelectionIndex:
    """Tests for selection index stepping"""

    def test_forward_from_nothing_selects_first(self):
        assert next_selection_index(3, None, "forward") == 0

    def test_backward_from_nothing_selects_last(self):
        assert next_selection_index(3, None, "backward") == 2

    def test_forward_steps(self):
        assert next_selection_index(3, 0, "forward") == 1
        assert next_selection_index(3, 1, "forward") == 2

    def test_forward_past_end_deselects(self):
        assert next_selection_index(3, 2, "forward") is None

    def test_backward_past_start_deselects(self):
        assert next_selection_index(3, 0, "backward") is None

    def test_empty_list(self):
        assert next_selection_index(0, None, "forward") is None
        assert next_selection_index(0, 2, "backward") is None

    def test_stale_index_counts_as_nothing(self):
        assert next_selection_index(2, 5, "forward") == 0
        assert next_selection_index(2, -1, "backward") == 1


class TestStepSelection:
    """Tests for hex-based selection stepping"""

    def test_full_forward_pass(self):
        ordered = ["a1", "b2", "c3"]
        selected = None
        seen = []
        for _ in range(4):
            selected = step_selection(ordered, selected, "forward")
            seen.append(selected)
        assert seen == ["a1", "b2", "c3", None]

    def test_selected_aircraft_left_the_list(self):
        assert step_selection(["a1", "b2"], "ff9", "backward") == "b2"

    def test_zone_view_order(self):
        assert zone_view_order(["C3", "a1", "b2", "a1", ""]) == ["a1", "b2", "c3"]


class TestCliHelpers:
    """Tests for the control CLI message helpers"""

    def test_control_url(self):
        assert control_url("display.local", 3000) == "ws://display.local:3000/ws/control"

    def test_directed_action_defaults_forward(self):
        assert build_message("mode", "1234") == {"type": "MODE", "sessionId": "1234", "direction": "forward"}

    def test_directed_action(self):
        assert build_message("range", "1234", "backward")["direction"] == "backward"

    @pytest.mark.parametrize("action,msg_type", [("zones", "ZONES"), ("state", "STATE_REQUEST")])
    def test_undirected_actions(self, action, msg_type):
        assert build_message(action, "1234", "backward") == {"type": msg_type, "sessionId": "1234"}

    def test_virtual_viewer(self):
        viewer = VirtualViewer(["AE0123", "a1b2c3"])
        assert viewer.step("forward") == "a1b2c3"
        assert viewer.step("forward") == "ae0123"
        assert viewer.step("forward") is None
        assert viewer.step("backward") == "ae0123"
