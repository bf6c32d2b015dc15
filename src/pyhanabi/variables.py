"""Variable names published by Hanabi switchers.

Every value is a string. Key indicators report ``on``/``off`` and the
last recalled event is reported as its number.
"""

from __future__ import annotations

import re

# Valid variable name
VARIABLE_NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")

EVENT_RECALL_VAR = "event_recall"

KEY_ON = "on"
KEY_OFF = "off"
KEY_TOGGLE = "toggle"

DEFAULT_KEY_VALUE = KEY_OFF
DEFAULT_EVENT_VALUE = "0"


def key_variable(me: int, key: int) -> str:
    """Return the variable name of keyer ``key`` on mix-effect bank ``me``.

    >>> key_variable(1, 3)
    'me_1_key_3'
    """
    return f"me_{me}_key_{key}"


def key_variables(me_banks: int, keys_per_me: int) -> list[str]:
    """Return every keyer variable for a bank layout, bank by bank."""
    return [
        key_variable(me, key)
        for me in range(1, me_banks + 1)
        for key in range(1, keys_per_me + 1)
    ]


def is_variable_name(name: str) -> bool:
    """Return True if ``name`` can be used as a variable name."""
    return bool(VARIABLE_NAME_RE.match(name))
