"""
State substitution for outbound commands.

Any string field containing ``$`` is rewritten from the mirror before it
goes on the wire. ``"$randy.x"`` looks up ``randy`` in the name table, finds
the object it refers to (say ``user-randy-1230958410291``) and substitutes
that object's first-mod ``x``. A field that is exactly one ``$`` path keeps the
type of the resolved value, so ``"$ME.noid"`` becomes an int. Anything else is
joined back into a string: ``"hello $ME.name!"`` becomes ``"hello Randy!"``.
"""

import re
import json
import logging
from typing import Any

from .messages import ElkoMessage, HabitatObject
from .mirror import WorldMirror

logger = logging.getLogger(__name__)

_PATH_PATTERN = re.compile(r"[A-Za-z0-9_-]+(?:\.[A-Za-z0-9_-]+)*")


def substitute_name(mirror: WorldMirror, name: str) -> str:
    """Resolve an alias to its full ref, or return it unchanged."""
    return mirror.names.get(name) or name


def _traverse(value: Any, key: str) -> Any:
    """Plain property access on an already-resolved value."""
    if isinstance(value, (ElkoMessage, HabitatObject)):
        return value.get(key)
    if isinstance(value, dict):
        return value.get(key)
    if isinstance(value, list):
        if key.isdigit() and int(key) < len(value):
            return value[int(key)]
        return None
    return getattr(value, key, None)


def _plain(value: Any) -> Any:
    """Turn mirror records into JSON-serializable data."""
    if isinstance(value, ElkoMessage):
        return value.fields
    if isinstance(value, HabitatObject):
        return value.raw
    return value


def resolve_path(mirror: WorldMirror, path: str) -> Any:
    """Resolve a dotted path such as ``ME.noid`` against the mirror."""
    keys = path.split(".")
    record = mirror.lookup(keys[0])
    if record is None:
        # No matching object, so substitute the alias value itself
        return mirror.names.get(keys[0]) or path

    obj = record.obj
    mod = obj.first_mod if obj is not None else None
    value: Any = record
    for key in keys[1:]:
        if mod is not None and key in mod:
            value = mod[key]
        elif obj is not None and obj.has(key):
            value = obj.get(key)
        else:
            value = _traverse(value, key)
        if value is None:
            logger.debug(f"Substitution path {path} has no value at {key}")
            break
    return _plain(value)


def _resolve_chunk(mirror: WorldMirror, chunk: str) -> tuple[Any, str]:
    """Split a chunk into its resolved path value and trailing literal text."""
    match = _PATH_PATTERN.match(chunk)
    if match is None:
        return "", chunk
    return resolve_path(mirror, match.group(0)), chunk[match.end():]


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def substitute_state(mirror: WorldMirror, command: dict) -> dict:
    """Rewrite every ``$`` field of ``command`` in place and return it."""
    for name, prop in list(command.items()):
        if not isinstance(prop, str) or "$" not in prop:
            continue

        chunks = prop.split("$")
        parts = [chunks[0]]
        resolved = []
        for chunk in chunks[1:]:
            value, suffix = _resolve_chunk(mirror, chunk)
            resolved.append((value, suffix))
            parts.append(_as_text(value) + suffix)

        lone_value, lone_suffix = resolved[0]
        if len(chunks) == 2 and chunks[0] == "" and not lone_suffix:
            # A lone path keeps the resolved value's type (e.g. an int noid)
            if lone_value is None:
                # Nothing to send, so the field is left out of the frame
                del command[name]
                logger.debug(f"Dropped {name}: {prop!r} has no value")
                continue
            command[name] = lone_value
        else:
            command[name] = "".join(parts)

        logger.debug(f"Substituted {name}: {prop!r} -> {command[name]!r}")
    return command


def prepare_command(mirror: WorldMirror, command: dict) -> dict:
    """Resolve the target alias and substitute state in ``command``."""
    if command.get("to"):
        command["to"] = substitute_name(mirror, command["to"])
    return substitute_state(mirror, command)
