"""
Greeter - A HabiBot that welcomes avatars arriving in its region.

Run with: habibot-greeter --context context-Downtown_5f --greeting-file greeting.txt
"""

import asyncio
import os
import argparse
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from rich.logging import RichHandler

from .bot import HabiBot
from .config import BotConfig
from .constants import AvatarPosture
from .messages import ElkoMessage

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 1337

# Where the greeter stands in the Fountain region
GREETER_X = 84
GREETER_Y = 131


def _log_failure(future: asyncio.Future) -> None:
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.warning(f"Greeter action failed: {error}")


class Greeter:
    """Reactions for a greeting bot, registered on an existing HabiBot."""

    def __init__(
        self,
        bot: HabiBot,
        context: Optional[str],
        greeting: list[str],
        wave_delay_millis: int = 5000,
    ):
        self.bot = bot
        self.context = context
        self.wave_delay_millis = wave_delay_millis
        self.greeting = [line for line in greeting if line.strip()]

        bot.on("connected", self.on_connected)
        bot.on("enteredRegion", self.on_entered_region)
        bot.on("APPEARING_$", self.on_appearing)

    @staticmethod
    def _watch(future: asyncio.Future) -> asyncio.Future:
        """Log a failed action instead of leaving its exception unretrieved."""
        future.add_done_callback(_log_failure)
        return future

    def on_connected(self, bot: HabiBot) -> None:
        logger.debug("Greeter connected.")
        if self.context:
            self._watch(bot.goto_context(self.context))

    def on_entered_region(self, bot: HabiBot, me: ElkoMessage) -> None:
        self._watch(bot.walk_to(GREETER_X, GREETER_Y))
        self._watch(bot.send_with_delay({
            "op": "POSTURE",
            "to": "ME",
            "pose": int(AvatarPosture.WAVE),
        }, self.wave_delay_millis))
        self._watch(bot.say("Hey there! I'm Phil, the greeting bot!"))

    def on_appearing(self, bot: HabiBot, msg: ElkoMessage) -> None:
        avatar = bot.get_noid(msg.get("appearing"))
        if avatar is None:
            logger.error(f"No avatar found at noid: {msg.get('appearing')}")
            return

        logger.info(f"Greeting {avatar.name}")
        self._watch(bot.send({
            "op": "POSTURE",
            "to": "ME",
            "pose": int(AvatarPosture.WAVE),
        }))
        for line in self.greeting:
            self._watch(bot.send({
                "op": "OBJECTSPEAK_$",
                "type": "private",
                "noid": avatar.noid,
                "text": line,
                "speaker": "$ME.noid",
            }))


def read_greeting(path: Optional[str]) -> list[str]:
    if not path:
        return []
    return Path(path).read_text(encoding="utf-8").split("\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Neohabitat greeting bot")
    parser.add_argument("--host", help="Host name or address of the Elko server",
                        default=os.getenv("HABIBOT_HOST", DEFAULT_HOST))
    parser.add_argument("--port", help="Port number for the Elko server", type=int,
                        default=int(os.getenv("HABIBOT_PORT", DEFAULT_PORT)))
    parser.add_argument("--context", help="Context to enter", default=os.getenv("HABIBOT_CONTEXT"))
    parser.add_argument("--greeting-file", help="File to be played as a greeting",
                        default=os.getenv("HABIBOT_GREETING_FILE"))
    parser.add_argument("--username", help="Username of this bot", default=os.getenv("HABIBOT_USERNAME"))
    parser.add_argument("--loglevel", help="Log level name", default=os.getenv("HABIBOT_LOGLEVEL", "INFO"))
    parser.add_argument("--no-reconnect", help="Do not reconnect on disconnection", action="store_true")
    return parser


async def run(args: argparse.Namespace) -> None:
    config = BotConfig.from_env()
    if args.no_reconnect:
        config.should_reconnect = False

    bot = HabiBot(args.host, args.port, args.username, config)
    Greeter(bot, args.context, read_greeting(args.greeting_file))

    if not await bot.connect():
        return
    await bot.wait_closed()


def main(argv: Optional[list[str]] = None) -> None:
    load_dotenv()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=args.loglevel.upper(),
        format="%(name)s - %(message)s",
        handlers=[RichHandler(rich_tracebacks=True)],
    )

    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Greeter stopped")


if __name__ == "__main__":
    main()
