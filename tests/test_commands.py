"""Tests for pyhanabi command encoder."""

import pytest

from pyhanabi import (
    HanabiActionError,
    ModelId,
    available_actions,
    bootstrap_command,
    encode_command,
    encode_command_strict,
)


class TestEncodeCommand:
    """Tests for encode_command."""

    @pytest.mark.parametrize(
        ("action_id", "params", "expected"),
        [
            ("get_state", None, "get_state"),
            ("key_on", {"me": 1, "key": 2}, "me_1_key_2:on"),
            ("key_off", {"me": 2, "key": 4}, "me_2_key_4:off"),
            ("key_toggle", {"me": 2, "key": 1}, "me_2_key_1:toggle"),
            ("event_recall", {"event": 7}, "event_recall:7"),
            ("cut", {"me": 1}, "me_1_cut"),
            ("auto", {"me": 2}, "me_2_auto"),
        ],
    )
    def test_actions(self, hvs100, action_id, params, expected):
        """Test the wire string of every action."""
        assert encode_command(hvs100, action_id, params) == expected

    def test_model_given_by_id(self):
        """Test the model can be given as ModelId or string."""
        assert encode_command(ModelId.HVS390, "cut", {"me": 1}) == "me_1_cut"
        assert encode_command("HVS2000", "cut", {"me": 1}) == "me_1_cut"

    def test_numeric_strings_accepted(self, hvs100):
        """Test parameters coming from text fields are converted."""
        assert encode_command(hvs100, "key_on", {"me": "1", "key": "3"}) == "me_1_key_3:on"

    def test_extra_params_ignored(self, hvs100):
        """Test parameters the action does not use are ignored."""
        assert encode_command(hvs100, "cut", {"me": 2, "key": 9}) == "me_2_cut"

    def test_deterministic(self, hvs100):
        """Test encoding is pure: same input, same output, params untouched."""
        params = {"me": "2", "key": 3}
        first = encode_command(hvs100, "key_toggle", params)
        second = encode_command(hvs100, "key_toggle", params)

        assert first == second == "me_2_key_3:toggle"
        assert params == {"me": "2", "key": 3}

    def test_unknown_action(self, hvs100):
        """Test unknown actions encode to None."""
        assert encode_command(hvs100, "fade_to_black") is None

    def test_unknown_model(self):
        """Test unknown models encode to None."""
        assert encode_command("HVS9999", "get_state") is None

    @pytest.mark.parametrize(
        ("action_id", "params"),
        [
            ("key_on", {"me": 1}),
            ("key_on", {"me": 3, "key": 1}),
            ("key_on", {"me": 1, "key": 5}),
            ("key_on", {"me": 0, "key": 1}),
            ("key_on", {"me": "one", "key": 1}),
            ("key_on", {"me": True, "key": 1}),
            ("event_recall", {"event": -1}),
            ("event_recall", {"event": 100}),
            ("event_recall", None),
        ],
    )
    def test_invalid_params(self, hvs100, action_id, params):
        """Test missing or out of range parameters encode to None."""
        assert encode_command(hvs100, action_id, params) is None


class TestEncodeCommandStrict:
    """Tests for encode_command_strict."""

    def test_raises_for_unknown_action(self, hvs100):
        """Test unknown actions raise HanabiActionError."""
        with pytest.raises(HanabiActionError) as exc_info:
            encode_command_strict(hvs100, "fade_to_black")

        assert exc_info.value.action_id == "fade_to_black"
        assert "HVS 100/110" in str(exc_info.value)

    def test_raises_for_missing_param(self, hvs100):
        """Test missing parameters raise HanabiActionError."""
        with pytest.raises(HanabiActionError, match="missing parameter 'key'"):
            encode_command_strict(hvs100, "key_on", {"me": 1})


class TestHelpers:
    """Tests for bootstrap_command and available_actions."""

    def test_bootstrap_command(self, hvs100, hvs2000):
        """Test the get-state bootstrap command."""
        assert bootstrap_command(hvs100) == "get_state"
        assert bootstrap_command(hvs2000) == hvs2000.bootstrap_command

    def test_available_actions(self):
        """Test the list of actions."""
        assert available_actions(ModelId.HVS100) == [
            "auto",
            "cut",
            "event_recall",
            "get_state",
            "key_off",
            "key_on",
            "key_toggle",
        ]
