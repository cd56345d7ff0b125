"""
Exceptions raised by the HabiBot client.
"""


class HabiBotError(Exception):
    """Base class for HabiBot errors."""


class ConfigurationError(HabiBotError):
    """Host or port missing when connecting."""


class NotConnectedError(HabiBotError, ConnectionError):
    """A queued command ran while the session was down."""


class CorporationError(HabiBotError):
    """The avatar could not be corporated within the retry budget."""
