"""
Pytest configuration and fixtures for HabiBot socket tests.

Runs a fake Elko server on localhost so the client can be exercised over a
real TCP connection.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Callable

import pytest

# Add project paths
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "habitat_client"))

from habibot import BotConfig, Deframer, HabiBot


class FakeElkoServer:
    """Accepts bot connections, records their frames and pushes messages back."""

    def __init__(self):
        self.server = None
        self.port = None
        self.connection_count = 0
        self.received: list[dict] = []
        self._writers: list[asyncio.StreamWriter] = []

    async def start(self) -> None:
        self.server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self.server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        self.drop()
        self.server.close()
        await self.server.wait_closed()

    @property
    def client_count(self) -> int:
        return len(self._writers)

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connection_count += 1
        self._writers.append(writer)
        deframer = Deframer()
        try:
            while True:
                data = await reader.read(4096)
                if not data:
                    break
                for frame in deframer.feed(data):
                    self.received.append(json.loads(frame))
        except ConnectionError:
            pass
        finally:
            if writer in self._writers:
                self._writers.remove(writer)
            writer.close()

    async def push_raw(self, data: bytes) -> None:
        for writer in list(self._writers):
            writer.write(data)
            await writer.drain()

    async def push(self, message: dict) -> None:
        await self.push_raw(json.dumps(message).encode("utf-8") + b"\n\n")

    def drop(self) -> None:
        """Close every client connection from the server side."""
        for writer in list(self._writers):
            writer.close()
        self._writers.clear()


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll until predicate() is true or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Timed out waiting for condition")
        await asyncio.sleep(0.01)


@pytest.fixture
def wait():
    """The wait_for polling helper."""
    return wait_for


@pytest.fixture
async def elko_server():
    """A running fake Elko server."""
    server = FakeElkoServer()
    await server.start()
    yield server
    await server.stop()


@pytest.fixture
async def make_bot(elko_server):
    """Factory for bots pointed at the fake server; closed on teardown."""
    bots: list[HabiBot] = []

    def factory(**config) -> HabiBot:
        config.setdefault("send_delay_millis", 0)
        bot = HabiBot("127.0.0.1", elko_server.port, "phil", BotConfig(**config))
        bots.append(bot)
        return bot

    yield factory

    for bot in bots:
        await bot.close()


@pytest.fixture
def avatar_make():
    """The make message for the bot's own avatar."""
    return {
        "to": "context-Downtown_5f",
        "op": "make",
        "you": True,
        "obj": {
            "type": "item",
            "ref": "user-phil-100",
            "name": "Phil",
            "mods": [{"type": "Avatar", "noid": 42, "x": 84, "y": 131, "amAGhost": False}],
        },
    }
