"""
Elko Connection - Owns the TCP socket to the Neohabitat server.

Reads the stream, hands complete frames to its owner and reconnects once per
disconnect when configured to.
"""

import asyncio
import logging
from typing import Callable, Optional

from .config import BotConfig
from .deframer import Deframer
from .errors import ConfigurationError, NotConnectedError

logger = logging.getLogger(__name__)


class ElkoConnection:
    """Async TCP connection speaking the blank-line framed Elko protocol."""

    def __init__(
        self,
        host: Optional[str],
        port: Optional[int],
        config: Optional[BotConfig] = None,
        on_connected: Optional[Callable[[], None]] = None,
        on_frame: Optional[Callable[[bytes], None]] = None,
        on_disconnected: Optional[Callable[[], None]] = None,
    ):
        self.host = host
        self.port = port
        self.config = config or BotConfig()
        self.deframer = Deframer()

        self._on_connected = on_connected
        self._on_frame = on_frame
        self._on_disconnected = on_disconnected

        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._read_task: Optional[asyncio.Task] = None
        self._connected = False
        self._connecting = False
        self._closing = False
        self._closed = asyncio.Event()

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    async def connect(self) -> bool:
        """Connect to the server if not already connected."""
        if not self.host or self.port is None:
            logger.error(f"No host or port specified: {self.host}:{self.port}")
            raise ConfigurationError(f"No host or port specified: {self.host}:{self.port}")

        if self._connected:
            return True
        if self._connecting:
            logger.debug(f"Connection to {self.address} already in progress")
            return False

        self._connecting = True
        self._closing = False
        try:
            self._reader, self._writer = await asyncio.open_connection(self.host, self.port)
        except OSError as e:
            logger.error(f"Connection to {self.address} failed: {e}")
            self._closed.set()
            return False
        finally:
            self._connecting = False

        self._connected = True
        self._closed.clear()
        self.deframer.reset()
        logger.info(f"Connected to server @{self.address}")

        self._read_task = asyncio.get_running_loop().create_task(self._read_loop())
        if self._on_connected:
            self._on_connected()
        return True

    async def close(self) -> None:
        """Close the connection without reconnecting."""
        self._closing = True
        if self._writer is not None:
            self._writer.close()
        task = self._read_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            await task
        self._closed.set()

    async def wait_closed(self) -> None:
        """Wait until the connection is down for good."""
        await self._closed.wait()

    async def write(self, data: bytes) -> None:
        """Write raw bytes to the socket. Only the action queue calls this."""
        if not self._connected or self._writer is None:
            raise NotConnectedError(f"Not connected to {self.address}")
        self._writer.write(data)
        await self._writer.drain()

    async def _read_loop(self) -> None:
        try:
            while True:
                data = await self._reader.read(self.config.read_size)
                if not data:
                    break
                for frame in self.deframer.feed(data):
                    self._handle_frame(frame)
        except (ConnectionError, OSError) as e:
            logger.warning(f"Connection to {self.address} lost: {e}")

        # Best-effort delivery of a frame cut off by the end of the stream
        frame = self.deframer.flush()
        if frame is not None:
            self._handle_frame(frame)

        await self._handle_disconnect()

    def _handle_frame(self, frame: bytes) -> None:
        logger.debug(f"<-{self.address}: {frame.decode(self.config.encoding, errors='replace').strip()}")
        if self._on_frame is None:
            return
        try:
            self._on_frame(frame)
        except Exception:
            logger.exception(f"Error processing frame from {self.address}")

    async def _handle_disconnect(self) -> None:
        logger.info(f"Disconnected from server @{self.address}...")
        self._connected = False
        if self._writer is not None:
            self._writer.close()
        self._reader = None
        self._writer = None

        if self._on_disconnected:
            self._on_disconnected()

        if self.config.should_reconnect and not self._closing:
            logger.info(f"Reconnecting to {self.address}")
            await self.connect()
        else:
            self._closed.set()
