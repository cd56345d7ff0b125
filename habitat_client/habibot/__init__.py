"""
HabiBot - Scriptable client for Neohabitat (Elko) servers.

A Python package for writing bots that live in a Habitat region.
"""

__version__ = "0.3.0"

from .bot import HabiBot
from .config import BotConfig
from .connection import ElkoConnection
from .corporation import CorporationMachine, CorporationState
from .deframer import Deframer
from .dispatch import ActionQueue
from .errors import (
    HabiBotError,
    ConfigurationError,
    NotConnectedError,
    CorporationError,
)
from .events import EventRegistry
from .messages import ElkoMessage, HabitatObject, MessageKind, parse_elko, encode_elko
from .mirror import WorldMirror, derive_aliases
from .substitution import substitute_name, substitute_state, prepare_command

__all__ = [
    # Client
    "HabiBot",
    "BotConfig",
    "ElkoConnection",
    # Protocol
    "Deframer",
    "ElkoMessage",
    "HabitatObject",
    "MessageKind",
    "parse_elko",
    "encode_elko",
    # State
    "WorldMirror",
    "derive_aliases",
    "substitute_name",
    "substitute_state",
    "prepare_command",
    # Scheduling
    "ActionQueue",
    "EventRegistry",
    "CorporationMachine",
    "CorporationState",
    # Errors
    "HabiBotError",
    "ConfigurationError",
    "NotConnectedError",
    "CorporationError",
]
