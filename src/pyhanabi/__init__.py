"""pyhanabi - Python client for For.A Hanabi video production switchers.

This library keeps a WebSocket connection to a Hanabi (HVS series)
switcher alive, sends commands and mirrors the switcher's variables
(keyer states, last recalled event, ...) as string values.

Example usage:
    ```python
    import asyncio
    from pyhanabi import HanabiConfig, HanabiController, ModelId

    async def main():
        controller = HanabiController(HanabiConfig("10.0.0.20", ModelId.HVS390))
        controller.on_variable_changed(lambda key, old, new: print(f"{key}: {new}"))
        async with controller:
            await controller.wait_connected()
            await controller.send_action("key_on", {"me": 1, "key": 1})
            await asyncio.sleep(10)

    asyncio.run(main())
    ```
"""

from .commands import available_actions, bootstrap_command, encode_command, encode_command_strict
from .config import HanabiConfig, is_valid_url
from .connection import HanabiConnection
from .controller import (
    ConnectionMetrics,
    ConnectionState,
    HanabiController,
    HanabiStatus,
    StatusLevel,
)
from .exceptions import (
    HanabiActionError,
    HanabiConfigurationError,
    HanabiConnectionError,
    HanabiError,
    HanabiStateError,
)
from .models import DEFAULT_MODEL, DEFAULT_PORT, MODELS, ModelId, SwitcherModel, get_model
from .protocol import OpaqueEvent, StateUpdate, decode_frame, parse_variable
from .state import SwitcherState
from .variables import EVENT_RECALL_VAR, KEY_OFF, KEY_ON, key_variable

__version__ = "1.0.0"

__all__ = [
    # Version
    "__version__",
    # Controller classes
    "ConnectionMetrics",
    "ConnectionState",
    "HanabiConnection",
    "HanabiController",
    "HanabiStatus",
    "StatusLevel",
    # Configuration
    "HanabiConfig",
    "is_valid_url",
    # Models
    "DEFAULT_MODEL",
    "DEFAULT_PORT",
    "MODELS",
    "ModelId",
    "SwitcherModel",
    "get_model",
    # Commands
    "available_actions",
    "bootstrap_command",
    "encode_command",
    "encode_command_strict",
    # Protocol
    "OpaqueEvent",
    "StateUpdate",
    "decode_frame",
    "parse_variable",
    # State
    "SwitcherState",
    # Variables
    "EVENT_RECALL_VAR",
    "KEY_OFF",
    "KEY_ON",
    "key_variable",
    # Exceptions
    "HanabiActionError",
    "HanabiConfigurationError",
    "HanabiConnectionError",
    "HanabiError",
    "HanabiStateError",
]
