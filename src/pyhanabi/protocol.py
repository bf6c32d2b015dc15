"""Decoder for the Hanabi switcher notification protocol.

The switcher pushes UTF-8 text frames made of comma-separated tokens.
A token made only of ``[A-Za-z0-9_:]`` characters encodes a variable
(``me_1_key_1:on``); any other token is an opaque event that is handed
to the caller without being merged into the state.

Decoding is deliberately permissive: the decoder never raises, unknown
or malformed tokens are dropped or reported as opaque events.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .variables import is_variable_name

if TYPE_CHECKING:
    from .models import SwitcherModel

_LOGGER = logging.getLogger(__name__)

# Token grammar for variable tokens (an empty token matches too)
TOKEN_RE = re.compile(r"^[A-Za-z0-9_:]*$")

TOKEN_SEPARATOR = ","
KEY_VALUE_SEPARATOR = ":"


@dataclass(frozen=True)
class StateUpdate:
    """A variable reported by the switcher."""

    key: str
    value: str


@dataclass(frozen=True)
class OpaqueEvent:
    """A token that does not follow the variable grammar."""

    raw: str


DecodedItem = StateUpdate | OpaqueEvent


def parse_key_value(piece: str) -> tuple[str, str] | None:
    """Split a ``key:value`` token.

    Key and value are kept exactly as sent. Returns None when the token
    has no separator, an empty value or a key that is not a variable name.
    """
    key, sep, value = piece.partition(KEY_VALUE_SEPARATOR)
    if not sep or not value or not is_variable_name(key):
        return None
    return key, value


def parse_variable(model: SwitcherModel, piece: str) -> tuple[str, str] | None:
    """Run the model's variable sub-parser on a token.

    Returns the ``(key, value)`` pair or None when the token does not
    correspond to a variable encoding.
    """
    try:
        result = model.variable_parser(piece)
    except (ValueError, IndexError) as err:
        _LOGGER.debug("PROTOCOL: parser for %s rejected %r: %s", model.model_id, piece, err)
        return None
    if result is None:
        return None
    key, value = result
    if not key or not value:
        return None
    return key, value


def split_frame(frame: bytes | str) -> list[str]:
    """Return the trimmed tokens of a frame; an empty frame has no tokens."""
    if isinstance(frame, (bytes, bytearray, memoryview)):
        text = bytes(frame).decode("utf-8", errors="replace")
    else:
        text = frame
    if not text.strip():
        return []
    return [piece.strip() for piece in text.split(TOKEN_SEPARATOR)]


def decode_frame(frame: bytes | str, model: SwitcherModel) -> list[DecodedItem]:
    """Decode a frame into state updates and opaque events.

    Items are returned in the order the tokens appear in the frame, without
    reordering or de-duplication. Tokens matching the variable grammar that
    the model's parser does not understand are silently dropped.

    Args:
        frame: Raw frame as received from the WebSocket
        model: The switcher model whose variable sub-parser is used

    Returns:
        List of StateUpdate and OpaqueEvent items
    """
    items: list[DecodedItem] = []

    for piece in split_frame(frame):
        _LOGGER.debug("PROTOCOL: token received: %r", piece)
        if TOKEN_RE.match(piece):
            result = parse_variable(model, piece)
            if result is not None:
                items.append(StateUpdate(*result))
            elif piece:
                _LOGGER.debug("PROTOCOL: dropping unparseable token %r", piece)
        else:
            items.append(OpaqueEvent(piece))

    return items
