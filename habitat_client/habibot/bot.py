"""
HabiBot - Scriptable Neohabitat client.

Wires together:
- Elko connection (socket lifecycle, reconnection)
- World mirror (names, objects, noids, avatars)
- Action queue (one request in flight, paced)
- Event registry (lifecycle events and server messages)
"""

import asyncio
import logging
from typing import Any, Mapping, Optional, Union

from .config import BotConfig
from .connection import ElkoConnection
from .constants import (
    EVENT_CONNECTED,
    EVENT_DELETE,
    EVENT_DISCONNECTED,
    EVENT_ENTERED_REGION,
    EVENT_MSG,
    FORWARD,
    GHOST,
    LEFT,
    ME,
    RIGHT,
    UNKNOWN,
    AvatarPosture,
    FacingPose,
)
from .corporation import CorporationMachine
from .dispatch import ActionQueue
from .errors import NotConnectedError
from .events import EventRegistry
from .messages import ElkoMessage, HabitatObject, encode_elko
from .mirror import WorldMirror
from .substitution import prepare_command

logger = logging.getLogger(__name__)


class HabiBot:
    """
    A bot connected to a Neohabitat (Elko) server.

    Reactions are registered with :meth:`on` and receive the bot followed by
    the parsed message, if there is one::

        bot = HabiBot("127.0.0.1", 1337, "pcollins")

        @bot.on("APPEARING_$")
        def greet(bot, msg):
            avatar = bot.get_noid(msg["appearing"])
            if avatar is not None:
                bot.say(f"Hey {avatar.name}! I'm Phil Collins.")

        await bot.connect()

    Commands are queued and sent one at a time; every command method returns
    an ``asyncio.Future`` that completes once the command has been written.
    """

    def __init__(
        self,
        host: Optional[str],
        port: Optional[int],
        username: Optional[str] = None,
        config: Optional[Union[BotConfig, Mapping[str, Any]]] = None,
    ):
        self.host = host
        self.port = port
        self.username = username

        if isinstance(config, BotConfig):
            self.config = config
        elif config is not None:
            self.config = BotConfig.from_mapping(config)
        else:
            self.config = BotConfig()

        self.events = EventRegistry(builtins=(
            EVENT_CONNECTED,
            EVENT_DELETE,
            EVENT_DISCONNECTED,
            EVENT_ENTERED_REGION,
            EVENT_MSG,
        ))
        self.mirror = WorldMirror(on_entered_region=self._on_entered_region)
        # Ensures that only 1 Elko request is in flight at any given time.
        self.queue = ActionQueue(name=f"{host}:{port}")
        self.connection = ElkoConnection(
            host,
            port,
            config=self.config,
            on_connected=self._on_connected,
            on_frame=self._on_frame,
            on_disconnected=self._on_disconnected,
        )

        logger.debug(f"Constructed HabiBot @{self.address}: {self.config}")

    @classmethod
    def new_with_config(
        cls,
        host: Optional[str],
        port: Optional[int],
        username: Optional[str],
        config: Union[BotConfig, Mapping[str, Any]],
    ) -> "HabiBot":
        return cls(host, port, username, config)

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def connected(self) -> bool:
        return self.connection.connected

    # -- Lifecycle --

    async def connect(self) -> bool:
        """Connect to the Neohabitat server if not yet connected."""
        return await self.connection.connect()

    async def close(self) -> None:
        """Disconnect for good; no reconnection is attempted."""
        await self.connection.close()

    async def wait_closed(self) -> None:
        await self.connection.wait_closed()

    def on(self, event: str, reaction=None):
        """
        Register a reaction for an event type.

        Built-in events:
        - connected: the bot connected to the server (called with the bot)
        - disconnected: the bot lost its connection (called with the bot)
        - enteredRegion: the bot's own avatar arrived in a region
        - delete: an object in the current region was deleted
        - msg: any message from the server

        Any Elko server op, such as ``APPEARING_$`` or ``SPEAK$``, is also
        a valid event type.
        """
        return self.events.on(event, reaction)

    # -- Command queue --

    def send(self, command: dict) -> asyncio.Future:
        """Send an Elko message with the default pacing delay."""
        return self.send_with_delay(command, self.config.send_delay_millis)

    def send_with_delay(self, command: dict, delay_millis: int) -> asyncio.Future:
        return self._enqueue_command(command, delay_millis)

    def wait(self, millis: int) -> asyncio.Future:
        """Queue a pause; later commands go out after it."""
        async def unit():
            logger.debug(f"Bot @{self.address} waiting {millis} milliseconds")
            await asyncio.sleep(millis / 1000)

        return self.queue.add(unit)

    def _enqueue_command(self, command: dict, delay_millis: int, settle_millis: int = 0) -> asyncio.Future:
        # Substitution works on a copy so callers can reuse command templates
        command = dict(command)

        async def unit():
            if not self.connected:
                raise NotConnectedError(f"Not connected to {self.address}")
            prepare_command(self.mirror, command)
            data = encode_elko(command, self.config.encoding)

            await asyncio.sleep(delay_millis / 1000)
            if not self.connected:
                raise NotConnectedError(f"Not connected to {self.address}")

            logger.debug(f"{self.address}->: {data.decode(self.config.encoding).strip()}")
            await self.connection.write(data)

            if settle_millis:
                await asyncio.sleep(settle_millis / 1000)

        return self.queue.add(unit)

    # -- Avatar actions --

    def say(self, text: str) -> asyncio.Future:
        """Speak text in the current region."""
        return self.send({
            "op": "SPEAK",
            "to": ME,
            "esp": 0,
            "text": text,
        })

    def walk_to(self, x: int, y: int) -> asyncio.Future:
        return self.send_with_delay({
            "op": "WALK",
            "to": ME,
            "x": x,
            "y": y,
            "how": 1,
        }, self.config.walk_delay_millis)

    def do_posture(self, posture: str) -> asyncio.Future:
        """Run one of the AvatarPosture animations, e.g. ``"wave"``."""
        try:
            pose = AvatarPosture[posture.upper()]
        except KeyError:
            raise ValueError(f"Invalid posture: {posture}") from None

        logger.debug(f"Bot @{self.address} running posture animation: {pose.name}")
        return self._enqueue_command({
            "op": "POSTURE",
            "to": ME,
            "pose": int(pose),
        }, self.config.send_delay_millis, settle_millis=self.config.posture_settle_millis)

    def face_direction(self, direction: str) -> asyncio.Future:
        """Face LEFT, RIGHT, FORWARD or BEHIND."""
        try:
            pose = FacingPose[direction.upper()]
        except KeyError:
            raise ValueError(f"Invalid direction: {direction}") from None

        logger.debug(f"Bot @{self.address} facing direction: {pose.name}")
        return self.send({
            "op": "POSTURE",
            "to": ME,
            "pose": int(pose),
        })

    def goto_context(self, context: str) -> asyncio.Future:
        """Move the bot to the named context (region)."""
        return self.send({
            "op": "entercontext",
            "to": "session",
            "context": context,
            "user": f"user-{self.username}",
        })

    def corporate(self) -> asyncio.Future:
        """Turn the bot's ghost into an Avatar; no-op if it is not a ghost."""
        if not self.is_ghosted():
            future = asyncio.get_running_loop().create_future()
            future.set_result(None)
            return future
        return self._enqueue_command({
            "op": "CORPORATE",
            "to": GHOST,
        }, self.config.send_delay_millis, settle_millis=self.config.corporate_settle_millis)

    def discorporate(self) -> asyncio.Future:
        """Turn the bot's Avatar into a ghost, for bots that only watch a region."""
        return self.send({
            "op": "DISCORPORATE",
            "to": ME,
        })

    async def ensure_corporated(self) -> None:
        """Make sure the bot is corporated; useful in enteredRegion reactions."""
        await CorporationMachine(self).run()

    # -- Mirror accessors --

    def is_ghosted(self) -> bool:
        avatar = self.get_avatar()
        if avatar is not None and avatar.first_mod is not None:
            return bool(avatar.first_mod.get("amAGhost", False))
        return False

    def get_avatar(self) -> Optional[HabitatObject]:
        """The bot's own Avatar, or None before it has entered a region."""
        return self.mirror.get_object(ME) if ME in self.mirror.names else None

    def get_avatar_noid(self) -> int:
        avatar = self.get_avatar()
        if avatar is not None and avatar.noid is not None:
            return avatar.noid
        return -1

    def get_avatar_by_name(self, name: str) -> Optional[HabitatObject]:
        return self.mirror.get_avatar_by_name(name)

    def get_noid(self, noid: int) -> Optional[HabitatObject]:
        obj = self.mirror.get_noid(noid)
        if obj is None:
            logger.error(f"Could not find noid: {noid}")
            return None
        logger.debug(f"Object at noid {noid}: {obj.raw}")
        return obj

    def get_mod(self, noid: int) -> Optional[dict]:
        obj = self.get_noid(noid)
        return obj.first_mod if obj is not None else None

    def get_direction(self, obj: Optional[Union[HabitatObject, dict]]) -> str:
        """LEFT, RIGHT or FORWARD of the bot's avatar by x position, else UNKNOWN."""
        if isinstance(obj, dict):
            obj = HabitatObject.from_dict(obj)
        avatar = self.get_avatar()
        if avatar is None or obj is None:
            return UNKNOWN

        avatar_mod = avatar.first_mod
        mod = obj.first_mod
        if avatar_mod is None or mod is None or "x" not in mod or "x" not in avatar_mod:
            return UNKNOWN

        if mod["x"] < avatar_mod["x"]:
            return LEFT
        if mod["x"] == avatar_mod["x"]:
            return FORWARD
        return RIGHT

    def get_direction_of_noid(self, noid: int) -> str:
        return self.get_direction(self.get_noid(noid))

    # -- Connection callbacks --

    def _on_connected(self) -> None:
        # A fresh session starts with an empty mirror
        self.mirror.clear()
        self.events.emit(EVENT_CONNECTED, self)

    def _on_disconnected(self) -> None:
        self.events.emit(EVENT_DISCONNECTED, self)

    def _on_entered_region(self, message: ElkoMessage) -> None:
        self.events.emit(EVENT_ENTERED_REGION, self, message)

    def _on_frame(self, frame: bytes) -> None:
        message = self.mirror.process_frame(frame, self.config.encoding)
        if message is None:
            return
        if message.op:
            self.events.emit(message.op, self, message)
        self.events.emit(EVENT_MSG, self, message)
