"""
HabiBot configuration.
"""

import os
import logging
from typing import Any, Mapping, Optional
from dataclasses import dataclass, fields, replace

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "HABIBOT_"

# Wire-style (camelCase) keys accepted by BotConfig.from_mapping()
_CAMEL_KEYS = {
    "shouldReconnect": "should_reconnect",
    "sendDelayMillis": "send_delay_millis",
    "walkDelayMillis": "walk_delay_millis",
    "postureSettleMillis": "posture_settle_millis",
    "corporateSettleMillis": "corporate_settle_millis",
    "corporationPollMillis": "corporation_poll_millis",
    "corporationMaxAttempts": "corporation_max_attempts",
    "readSize": "read_size",
}


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class BotConfig:
    """Configuration for a HabiBot connection."""
    should_reconnect: bool = True
    send_delay_millis: int = 500
    walk_delay_millis: int = 10000  # Walking animations are slow on the C64
    posture_settle_millis: int = 2000
    corporate_settle_millis: int = 10000  # Clients need time to load imagery
    corporation_poll_millis: int = 2000
    corporation_max_attempts: int = 5
    read_size: int = 4096
    encoding: str = "utf-8"

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], base: Optional["BotConfig"] = None) -> "BotConfig":
        """Build a config from a dict such as ``{"shouldReconnect": False}``."""
        known = {f.name for f in fields(cls)}
        overrides = {}
        for key, value in mapping.items():
            name = _CAMEL_KEYS.get(key, key)
            if name not in known:
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            overrides[name] = value
        return replace(base or cls(), **overrides)

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "BotConfig":
        """Build a config from HABIBOT_* environment variables (and .env)."""
        load_dotenv(dotenv_path)
        overrides: dict[str, Any] = {}
        for f in fields(cls):
            raw = os.getenv(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            if f.type in (bool, "bool"):
                overrides[f.name] = _parse_bool(raw)
            elif f.type in (int, "int"):
                overrides[f.name] = int(raw)
            else:
                overrides[f.name] = raw
        return cls(**overrides)
