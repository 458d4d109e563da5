"""Helpers shared by the tests."""

import asyncio
from datetime import datetime, timezone

UPSTREAM = "http://upstream.test/api"
NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


async def wait_for(predicate, timeout=1.0, step=0.005):
    """Let the event loop run until `predicate()` is true."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(step)
