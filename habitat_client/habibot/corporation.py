"""
Corporation - Turns a ghosted bot back into a visible Avatar.

A bot that enters a region as a ghost has to wait for its Ghost object to
come down the wire before it can ask to be corporated.
"""

import asyncio
import logging
from enum import Enum, auto
from typing import TYPE_CHECKING, Awaitable, Callable

from .constants import GHOST
from .errors import CorporationError

if TYPE_CHECKING:
    from .bot import HabiBot

logger = logging.getLogger(__name__)


class CorporationState(Enum):
    GHOSTED_NO_GHOST_REF = auto()
    GHOSTED_HAS_GHOST_REF = auto()
    CORPORATED = auto()


class CorporationMachine:
    """Polls for the GHOST alias, then issues CORPORATE and waits for it to settle."""

    def __init__(self, bot: "HabiBot", sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.bot = bot
        self._sleep = sleep
        self.attempts = 0

    def state(self) -> CorporationState:
        if not self.bot.is_ghosted():
            return CorporationState.CORPORATED
        if GHOST in self.bot.mirror.names:
            return CorporationState.GHOSTED_HAS_GHOST_REF
        return CorporationState.GHOSTED_NO_GHOST_REF

    async def run(self) -> None:
        config = self.bot.config
        self.attempts = 0

        while self.state() == CorporationState.GHOSTED_NO_GHOST_REF:
            if self.attempts >= config.corporation_max_attempts:
                raise CorporationError(
                    f"Could not ensure corporation after {self.attempts} tries."
                )
            self.attempts += 1
            logger.debug(
                f"Bot @{self.bot.address} waiting for its Ghost "
                f"(attempt {self.attempts}/{config.corporation_max_attempts})"
            )
            await self._sleep(config.corporation_poll_millis / 1000)

        if self.state() == CorporationState.CORPORATED:
            return

        await self.bot.corporate()
        logger.info(f"Bot @{self.bot.address} corporated")
