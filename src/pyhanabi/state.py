"""State store for the variables published by a switcher.

The SwitcherState keeps the last value reported for every variable and
notifies listeners when a value changes. Variables are never removed,
only overwritten.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import orjson

from .models import get_model

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

    from .models import ModelId, SwitcherModel

    # (key, old value or None when the key was unknown, new value)
    VariableListener = Callable[[str, str | None, str], None]

_LOGGER = logging.getLogger(__name__)


class SwitcherState:
    """Last known value of every switcher variable.

    Values are always strings; interpreting them is up to the caller.
    Keys reported by the switcher that the model does not declare are
    stored like any other.
    """

    def __init__(self, model: SwitcherModel | ModelId | str | None = None) -> None:
        """Initialize the store.

        Args:
            model: Optional model whose declared variables are seeded with
                their default values
        """
        self._values: dict[str, str] = {}
        self._listeners: list[VariableListener] = []
        if model is not None:
            self.initialize(model)

    def __repr__(self) -> str:
        return f"SwitcherState(variables={len(self._values)})"

    def __getitem__(self, key: str) -> str | None:
        """Return the value of a variable, or None if it was never set."""
        return self._values.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        """Iterate over variable names."""
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def get(self, key: str) -> str | None:
        """Return the value of a variable, or None if it was never set."""
        return self._values.get(key)

    def as_dict(self) -> dict[str, str]:
        """Return a copy of all variables."""
        return dict(self._values)

    def to_json(self) -> bytes:
        """Return a JSON snapshot of all variables, keys sorted."""
        return orjson.dumps(self._values, option=orjson.OPT_SORT_KEYS)

    def add_listener(self, listener: VariableListener) -> Callable[[], None]:
        """Register a callback for variable changes.

        Returns:
            A function removing the listener again
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def initialize(self, model: SwitcherModel | ModelId | str) -> dict[str, str]:
        """Seed the declared variables of a model with their default values.

        Existing values of declared variables are reset to the default,
        other variables are kept.

        Returns:
            Dictionary of the variables that actually changed
        """
        defaults = get_model(model).default_values()
        _LOGGER.debug("Initializing %d variables for %s", len(defaults), model)
        return self.update(defaults)

    def set(self, key: str, value: str) -> bool:
        """Set a variable and notify listeners if its value changed.

        Returns:
            True if the value changed
        """
        old_value = self._values.get(key)
        if key in self._values and old_value == value:
            # Ignore unchanged existing value
            return False

        self._values[key] = value
        self._notify(key, old_value, value)
        return True

    def update(self, values: Mapping[str, str]) -> dict[str, str]:
        """Set several variables.

        Returns:
            Dictionary of the variables that actually changed
        """
        return {key: value for key, value in values.items() if self.set(key, value)}

    def _notify(self, key: str, old_value: str | None, new_value: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(key, old_value, new_value)
            except Exception:  # noqa: BLE001 - a faulty listener must not stop the others
                _LOGGER.exception("Error in variable listener for %s", key)
