"""
Protocol constants shared across the HabiBot client.
"""

from enum import IntEnum


# Reserved aliases in the name table
ME = "ME"
USER = "USER"
GHOST = "GHOST"

# Directions returned by HabiBot.get_direction()
LEFT = "LEFT"
RIGHT = "RIGHT"
FORWARD = "FORWARD"
UNKNOWN = "UNKNOWN"

# Elko operations the mirror interprets
OP_MAKE = "make"
OP_HEREIS = "HEREIS_$"
OP_DELETE = "delete"

# Mod types with special handling
MOD_TYPE_AVATAR = "Avatar"
MOD_TYPE_GHOST = "Ghost"

# Wire framing
LF = 0x0A
FRAME_START = 0x7B  # '{'
FRAME_TERMINATOR = b"\n\n"

# Built-in event keys
EVENT_CONNECTED = "connected"
EVENT_DISCONNECTED = "disconnected"
EVENT_ENTERED_REGION = "enteredRegion"
EVENT_DELETE = "delete"
EVENT_MSG = "msg"


class FacingPose(IntEnum):
    """Posture ids used to turn the avatar."""
    LEFT = 254
    RIGHT = 255
    FORWARD = 146
    BEHIND = 143


class AvatarPosture(IntEnum):
    """Posture animation ids."""
    WAVE = 141
    POINT = 136
    EXTEND_HAND = 148
    JUMP = 139
    BEND_OVER = 134
    STAND_UP = 135
    PUNCH = 140
    FROWN = 142
