"""
Shared fixtures for HabiBot unit tests.
"""

import asyncio
import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from habibot import BotConfig, HabiBot, NotConnectedError


class FakeConnection:
    """Stands in for ElkoConnection; records writes with their loop time."""

    def __init__(self):
        self.connected = True
        self.writes: list[tuple[float, bytes]] = []

    @property
    def sent(self) -> list[dict]:
        return [json.loads(data) for _, data in self.writes]

    async def write(self, data: bytes) -> None:
        if not self.connected:
            raise NotConnectedError("fake is down")
        self.writes.append((asyncio.get_running_loop().time(), data))


def elko_frame(obj: dict) -> bytes:
    return json.dumps(obj).encode("utf-8") + b"\n\n"


def avatar_make(ref="user-phil-100", name="Phil", noid=42, you=True, ghost=False, x=40):
    return {
        "to": "context-Downtown_5f",
        "op": "make",
        "you": you,
        "obj": {
            "type": "item",
            "ref": ref,
            "name": name,
            "mods": [{"type": "Avatar", "noid": noid, "x": x, "y": 130, "amAGhost": ghost}],
        },
    }


@pytest.fixture
def make_bot():
    """Factory for a HabiBot wired to a FakeConnection."""
    def factory(**config):
        bot = HabiBot("127.0.0.1", 1337, "phil", BotConfig(**config))
        fake = FakeConnection()
        bot.connection = fake
        return bot, fake
    return factory


@pytest.fixture
def feed():
    """Deliver server messages to a bot as if read from the socket."""
    def deliver(bot: HabiBot, *messages: dict) -> None:
        for message in messages:
            bot._on_frame(elko_frame(message))
    return deliver


@pytest.fixture
def avatar_message():
    """Factory for a make message describing an avatar."""
    return avatar_make
