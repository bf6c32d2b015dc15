#!/usr/bin/env python3
"""Monitor: Print every variable change reported by a switcher."""

import asyncio
import os

import orjson
from dotenv import load_dotenv

load_dotenv()

from pyhanabi import HanabiConfig, HanabiController  # noqa: E402


async def main():
    host = os.getenv("HANABI_HOST", "192.168.0.10")
    model = os.getenv("HANABI_MODEL", "HVS100")
    duration = float(os.getenv("HANABI_MONITOR_SECONDS", "60"))

    print(f"Connecting to {model} at {host}...")

    controller = HanabiController(HanabiConfig(host, model))
    controller.on_status_changed(lambda status: print(f"[status] {status}"))
    controller.on_variable_changed(lambda key, old, new: print(f"  {key}: {old} -> {new}"))
    controller.on_event(lambda event: print(f"[event] {event.raw}"))

    try:
        controller.connect()
        await controller.wait_connected(timeout=30)
        print(f"Connected, monitoring for {duration:.0f}s")
        await asyncio.sleep(duration)

        print("\n" + "=" * 70)
        print("STATE SNAPSHOT")
        print("=" * 70)
        print(controller.state.to_json().decode())
        print(orjson.dumps(controller.metrics.to_dict(), option=orjson.OPT_INDENT_2).decode())
    finally:
        await controller.stop()


if __name__ == "__main__":
    asyncio.run(main())
