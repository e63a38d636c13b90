class ProtocolError(ValueError):
    """Inbound message that is not valid JSON or not a recognized command."""


class TransportFailure(Exception):
    """Sending to a connection failed; the connection is treated as gone."""


class GameError(Exception):
    """A rejected move. The message is sent back to the player as-is."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TurnViolation(GameError):
    pass


class OutOfBounds(GameError):
    pass


class DuplicateShot(GameError):
    pass
