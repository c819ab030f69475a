# tactics/utils/errors.py
"""Error types raised by the decision engine.

Every error raised while deciding on a tick is contained by the protocol
state machine and replaced with the default command, so these never reach
the transport.
"""


class TacticsError(Exception):
    """Base class for decision engine failures."""
    pass


class InvariantViolation(TacticsError):
    """Input outside a closed enumeration or shape; a programming error."""
    pass


class GridShapeError(InvariantViolation):
    """Game map does not have the fixed battlefield dimensions."""
    pass


class InvalidVectorError(InvariantViolation):
    """Vector has no direction (zero length)."""
    pass


class OwnShipNotFoundError(TacticsError):
    """Our ship is not present in the game map."""

    def __init__(self, ship_id, turn_number=None):
        self.ship_id = ship_id
        self.turn_number = turn_number
        message = f"Own ship '{ship_id}' not found in game map"
        if turn_number is not None:
            message += f" (turn {turn_number})"
        super().__init__(message)


class TickAbandonedError(TacticsError):
    """The caller stopped waiting for this tick's decision."""
    pass
