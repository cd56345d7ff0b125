"""
World Mirror - Local copy of the region state pushed by the Elko server.

Tracks:
- names: alias -> canonical ref
- history: ref -> the message that introduced the object
- noids: numeric object id -> object
- avatars: avatar name -> object
"""

import logging
from typing import Callable, Optional

from .constants import GHOST, ME, MOD_TYPE_AVATAR, MOD_TYPE_GHOST, USER
from .messages import ElkoMessage, HabitatObject, MessageKind, parse_elko

logger = logging.getLogger(__name__)


def derive_aliases(ref: str) -> list[str]:
    """
    Every shorthand that refers to ``ref``.

    For ``user-randy.x-100`` that is each run of dash segments
    (``user``, ``randy.x``, ``user-randy.x``, ..., the full ref) plus the
    dot pieces of each segment (``randy``, ``x``).
    """
    segments = ref.split("-")
    aliases = []
    for start in range(len(segments)):
        for end in range(start + 1, len(segments) + 1):
            aliases.append("-".join(segments[start:end]))
    for segment in segments:
        aliases.extend(segment.split("."))
    # Preserve order, drop duplicates and empty pieces
    return [alias for alias in dict.fromkeys(aliases) if alias]


class WorldMirror:
    """Alias table and object records for one connection."""

    def __init__(self, on_entered_region: Optional[Callable[[ElkoMessage], None]] = None):
        self.names: dict[str, str] = {}
        self.history: dict[str, ElkoMessage] = {}
        self.noids: dict[int, HabitatObject] = {}
        self.avatars: dict[str, HabitatObject] = {}
        self._on_entered_region = on_entered_region

    def clear(self) -> None:
        """Forget all mirrored state."""
        self.names = {}
        self.history = {}
        self.noids = {}
        self.avatars = {}

    # -- Aliases --

    def add_names(self, ref: str) -> None:
        for alias in derive_aliases(ref):
            self.names[alias] = ref

    def clear_names(self, ref: str) -> None:
        """Release every alias that currently resolves to ``ref``."""
        for alias in [alias for alias, target in self.names.items() if target == ref]:
            del self.names[alias]

    def resolve(self, alias: str) -> Optional[str]:
        return self.names.get(alias)

    # -- Lookups --

    def lookup(self, alias: str) -> Optional[ElkoMessage]:
        """The introducing message for an alias or ref, if mirrored."""
        return self.history.get(self.names.get(alias, alias))

    def get_object(self, alias: str) -> Optional[HabitatObject]:
        record = self.lookup(alias)
        return record.obj if record is not None else None

    def get_noid(self, noid: int) -> Optional[HabitatObject]:
        return self.noids.get(noid)

    def get_avatar_by_name(self, name: str) -> Optional[HabitatObject]:
        return self.avatars.get(name)

    # -- Frame processing --

    def process_frame(self, frame: bytes, encoding: str = "utf-8") -> Optional[ElkoMessage]:
        """Parse a frame and fold it into the mirror. Returns None if unparseable."""
        try:
            message = parse_elko(frame.decode(encoding))
        except (UnicodeDecodeError, ValueError) as e:
            logger.warning(f"Dropping unparseable frame: {e}")
            return None

        self.apply(message)
        return message

    def apply(self, message: ElkoMessage) -> None:
        if message.to and message.kind != MessageKind.DELETE:
            self.add_names(message.to)

        if message.kind == MessageKind.INTRODUCE:
            self._introduce(message)
        elif message.kind == MessageKind.DELETE:
            self._delete(message)

    def _introduce(self, message: ElkoMessage) -> None:
        obj = message.obj
        ref = obj.ref
        self.add_names(ref)
        self.history[ref] = message
        if obj.noid is not None:
            self.noids[obj.noid] = obj

        if obj.mod_type == MOD_TYPE_GHOST:
            self.names[GHOST] = ref
        if obj.mod_type == MOD_TYPE_AVATAR:
            self.avatars[obj.name] = obj

        if message.you:
            segments = ref.split("-")
            self.names[ME] = ref
            self.names[USER] = "-".join(segments[:2])
            logger.debug("Running callbacks for enteredRegion")
            if self._on_entered_region:
                self._on_entered_region(message)

    def _delete(self, message: ElkoMessage) -> None:
        if not message.to:
            logger.warning("delete message without a target")
            return

        ref = self.names.get(message.to, message.to)
        record = self.history.pop(ref, None)
        self.clear_names(ref)

        if record is None:
            logger.debug(f"delete for unknown object: {ref}")
            return

        obj = record.obj
        if obj.mod_type == MOD_TYPE_AVATAR and self.avatars.get(obj.name) is obj:
            del self.avatars[obj.name]
        # noids are left in place; the server does not reuse them within a session
