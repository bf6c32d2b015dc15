#!/usr/bin/env python3
"""Send one action to a switcher.

Usage:
    send_action.py key_on me=1 key=2
    send_action.py event_recall event=5
"""

import asyncio
import os
import sys

from dotenv import load_dotenv

load_dotenv()

from pyhanabi import HanabiConfig, HanabiController, available_actions, get_model  # noqa: E402


async def main():
    host = os.getenv("HANABI_HOST", "192.168.0.10")
    model = get_model(os.getenv("HANABI_MODEL", "HVS100"))

    if len(sys.argv) < 2:
        print(__doc__)
        print(f"Actions for {model}: {', '.join(available_actions(model))}")
        return

    action_id = sys.argv[1]
    params = dict(arg.split("=", 1) for arg in sys.argv[2:])

    async with HanabiController(HanabiConfig(host, model)) as controller:
        await controller.wait_connected(timeout=30)
        sent = await controller.send_action(action_id, params)
        print(f"{action_id} {params}: {'sent' if sent else 'NOT sent'}")

        # Give the switcher a moment to echo the change
        await asyncio.sleep(1)
        for key, value in sorted(controller.state.as_dict().items()):
            print(f"  {key}: {value}")


if __name__ == "__main__":
    asyncio.run(main())
