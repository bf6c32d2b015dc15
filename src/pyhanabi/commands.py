"""Command encoder for Hanabi switchers.

Maps an action id and its parameters to the exact string sent on the
WebSocket for a given model. Encoding is pure: the same inputs always
produce the same string.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from .exceptions import HanabiActionError, HanabiConfigurationError
from .models import BOOTSTRAP_ACTION, MAX_EVENT, ModelId, SwitcherModel, get_model

_LOGGER = logging.getLogger(__name__)

# Inclusive range accepted for each action parameter
PARAM_RANGES: dict[str, Callable[[SwitcherModel], tuple[int, int]]] = {
    "me": lambda model: (1, model.me_banks),
    "key": lambda model: (1, model.keys_per_me),
    "event": lambda model: (0, MAX_EVENT),
}


def _coerce_param(model: SwitcherModel, action_id: str, name: str, value: Any) -> int:
    """Convert a parameter to an int and check it against its range."""
    if isinstance(value, bool):
        raise HanabiActionError(action_id, f"parameter {name!r} must be a number")
    try:
        number = int(value)
    except (TypeError, ValueError) as err:
        raise HanabiActionError(action_id, f"parameter {name!r} must be a number") from err

    low, high = PARAM_RANGES[name](model)
    if not low <= number <= high:
        raise HanabiActionError(
            action_id, f"parameter {name!r}={number} out of range {low}..{high} for {model}"
        )
    return number


def encode_command_strict(
    model: SwitcherModel | ModelId | str,
    action_id: str,
    params: Mapping[str, Any] | None = None,
) -> str:
    """Return the wire string for an action.

    Args:
        model: Model the command is meant for
        action_id: Action identifier (e.g. "key_on", "event_recall")
        params: Action parameters (e.g. {"me": 1, "key": 2})

    Raises:
        HanabiActionError: If the action is unknown for the model or a
            parameter is missing or invalid
        HanabiConfigurationError: If the model is not supported
    """
    switcher = get_model(model)
    action = switcher.actions.get(action_id)
    if action is None:
        raise HanabiActionError(action_id, f"not supported by {switcher}")

    params = params or {}
    values: dict[str, int] = {}
    for name in action.params:
        if name not in params:
            raise HanabiActionError(action_id, f"missing parameter {name!r}")
        values[name] = _coerce_param(switcher, action_id, name, params[name])

    return action.template.format(**values)


def encode_command(
    model: SwitcherModel | ModelId | str,
    action_id: str,
    params: Mapping[str, Any] | None = None,
) -> str | None:
    """Return the wire string for an action, or None if it cannot be encoded."""
    try:
        return encode_command_strict(model, action_id, params)
    except (HanabiActionError, HanabiConfigurationError) as err:
        _LOGGER.debug("%s", err)
        return None


def bootstrap_command(model: SwitcherModel | ModelId | str) -> str:
    """Return the "get current state" command sent right after connecting."""
    return encode_command_strict(model, BOOTSTRAP_ACTION)


def available_actions(model: SwitcherModel | ModelId | str) -> list[str]:
    """Return the action ids known for a model."""
    return sorted(get_model(model).actions)
