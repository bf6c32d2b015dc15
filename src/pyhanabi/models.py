"""Catalogue of supported Hanabi switcher models.

Each model is plain data: its label, WebSocket port, bank layout, the
variables it publishes, the variable sub-parser used by the decoder and
the table of actions the command encoder knows for it. Supporting a new
switcher means adding an entry to MODELS.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType

from .exceptions import HanabiConfigurationError
from .protocol import parse_key_value
from .variables import (
    DEFAULT_EVENT_VALUE,
    DEFAULT_KEY_VALUE,
    EVENT_RECALL_VAR,
    KEY_OFF,
    KEY_ON,
    KEY_TOGGLE,
    key_variables,
)

# All known models listen on the same WebSocket port
DEFAULT_PORT = 8621

BOOTSTRAP_ACTION = "get_state"

# Highest event number accepted by event_recall
MAX_EVENT = 99

VariableParser = Callable[[str], "tuple[str, str] | None"]


class ModelId(StrEnum):
    """Identifier of a supported switcher model."""

    HVS100 = "HVS100"
    HVS390 = "HVS390"
    HVS2000 = "HVS2000"


@dataclass(frozen=True)
class ActionSpec:
    """Wire template of an action and the parameters it takes."""

    template: str
    params: tuple[str, ...] = ()


STANDARD_ACTIONS: Mapping[str, ActionSpec] = MappingProxyType(
    {
        BOOTSTRAP_ACTION: ActionSpec("get_state"),
        "key_on": ActionSpec("me_{me}_key_{key}:" + KEY_ON, ("me", "key")),
        "key_off": ActionSpec("me_{me}_key_{key}:" + KEY_OFF, ("me", "key")),
        "key_toggle": ActionSpec("me_{me}_key_{key}:" + KEY_TOGGLE, ("me", "key")),
        "event_recall": ActionSpec(EVENT_RECALL_VAR + ":{event}", ("event",)),
        "cut": ActionSpec("me_{me}_cut", ("me",)),
        "auto": ActionSpec("me_{me}_auto", ("me",)),
    }
)


@dataclass(frozen=True)
class SwitcherModel:
    """Protocol description of one switcher model."""

    model_id: ModelId
    label: str
    default_port: int = DEFAULT_PORT
    me_banks: int = 2
    keys_per_me: int = 4
    variable_parser: VariableParser = parse_key_value
    actions: Mapping[str, ActionSpec] = field(default_factory=lambda: STANDARD_ACTIONS)

    def __str__(self) -> str:
        return self.label

    @property
    def declared_variables(self) -> tuple[str, ...]:
        """Return the variables this model is known to publish."""
        return (EVENT_RECALL_VAR, *key_variables(self.me_banks, self.keys_per_me))

    def default_values(self) -> dict[str, str]:
        """Return the value of every declared variable before the switcher reports it."""
        values = dict.fromkeys(key_variables(self.me_banks, self.keys_per_me), DEFAULT_KEY_VALUE)
        return {EVENT_RECALL_VAR: DEFAULT_EVENT_VALUE, **values}

    @property
    def bootstrap_command(self) -> str:
        """Return the command asking the switcher for its current state."""
        return self.actions[BOOTSTRAP_ACTION].template


MODELS: Mapping[ModelId, SwitcherModel] = MappingProxyType(
    {
        ModelId.HVS100: SwitcherModel(ModelId.HVS100, "HVS 100/110"),
        ModelId.HVS390: SwitcherModel(ModelId.HVS390, "HVS 390"),
        ModelId.HVS2000: SwitcherModel(ModelId.HVS2000, "HVS 2000"),
    }
)

DEFAULT_MODEL = ModelId.HVS100


def get_model(model: SwitcherModel | ModelId | str) -> SwitcherModel:
    """Return the registry entry for a model.

    Args:
        model: A SwitcherModel, a ModelId or its string value (e.g. "HVS390")

    Raises:
        HanabiConfigurationError: If the model is not supported
    """
    if isinstance(model, SwitcherModel):
        return model
    try:
        return MODELS[ModelId(model)]
    except ValueError as err:
        raise HanabiConfigurationError(f"Unsupported switcher model: {model!r}") from err


def model_choices() -> list[dict[str, str]]:
    """Return the supported models as id/label pairs, e.g. for a dropdown."""
    return [{"id": str(m.model_id), "label": m.label} for m in MODELS.values()]
