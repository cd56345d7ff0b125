"""
Elko message model - parsed server messages and mirrored objects.
"""

import json
import logging
from typing import Any, Optional
from dataclasses import dataclass, field
from enum import Enum, auto

from .constants import FRAME_TERMINATOR, OP_DELETE, OP_HEREIS, OP_MAKE

logger = logging.getLogger(__name__)


class MessageKind(Enum):
    """How the mirror treats a message."""
    INTRODUCE = auto()  # make, HEREIS_$
    DELETE = auto()
    OTHER = auto()
    UNTAGGED = auto()  # no op at all


@dataclass
class HabitatObject:
    """An object described by an Elko make/HEREIS_$ message."""
    ref: str
    name: str = ""
    mods: list[dict] = field(default_factory=list)
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "HabitatObject":
        mods = data.get("mods")
        return cls(
            ref=data.get("ref", ""),
            name=data.get("name", ""),
            mods=mods if isinstance(mods, list) else [],
            raw=data,
        )

    @property
    def first_mod(self) -> Optional[dict]:
        """The mod carrying core state (position, noid, type)."""
        if self.mods and isinstance(self.mods[0], dict):
            return self.mods[0]
        return None

    @property
    def mod_type(self) -> Optional[str]:
        mod = self.first_mod
        return mod.get("type") if mod is not None else None

    @property
    def noid(self) -> Optional[int]:
        mod = self.first_mod
        return mod.get("noid") if mod is not None else None

    def has(self, key: str) -> bool:
        return key in ("ref", "name", "mods") or key in self.raw

    def get(self, key: str, default: Any = None) -> Any:
        if key == "ref":
            return self.ref
        if key == "name":
            return self.name
        if key == "mods":
            return self.mods
        return self.raw.get(key, default)


@dataclass
class ElkoMessage:
    """A parsed server message; free-form fields stay available in ``fields``."""
    kind: MessageKind
    op: Optional[str] = None
    to: Optional[str] = None
    you: bool = False
    obj: Optional[HabitatObject] = None
    fields: dict = field(default_factory=dict)

    def __getitem__(self, key: str) -> Any:
        return self.fields[key]

    def __contains__(self, key: str) -> bool:
        return key in self.fields

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)


def classify(op: Optional[str]) -> MessageKind:
    if not op:
        return MessageKind.UNTAGGED
    if op in (OP_MAKE, OP_HEREIS):
        return MessageKind.INTRODUCE
    if op == OP_DELETE:
        return MessageKind.DELETE
    return MessageKind.OTHER


def parse_elko(text: str) -> ElkoMessage:
    """Parse one frame of JSON text into an ElkoMessage."""
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Elko frame is not a JSON object: {text.strip()[:80]}")

    op = data.get("op")
    kind = classify(op)
    to = data.get("to")

    obj = None
    if kind == MessageKind.INTRODUCE:
        # HEREIS_$ carries its object under "object" rather than "obj"
        payload = data.get("object") if op == OP_HEREIS else data.get("obj")
        if isinstance(payload, dict):
            obj = HabitatObject.from_dict(payload)
            data["obj"] = payload
        else:
            logger.warning(f"{op} message without an object payload")
            kind = MessageKind.OTHER

    return ElkoMessage(
        kind=kind,
        op=op,
        to=to if isinstance(to, str) else None,
        you=bool(data.get("you", False)),
        obj=obj,
        fields=data,
    )


def encode_elko(command: dict, encoding: str = "utf-8") -> bytes:
    """Serialize an outbound command as a blank-line terminated frame."""
    return json.dumps(command).encode(encoding) + FRAME_TERMINATOR
