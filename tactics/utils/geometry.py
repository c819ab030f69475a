# tactics/utils/geometry.py
"""Grid vector and compass direction utilities."""

import math
import logging
from types import MappingProxyType
from typing import Mapping, Tuple

from tactics.entities import CompassDirection, Coordinates
from tactics.utils.errors import InvalidVectorError

logger = logging.getLogger(__name__)

SECTOR_DEGREES = 45.0
HALF_SECTOR_DEGREES = SECTOR_DEGREES / 2

# Unit grid step for each direction (y grows downwards)
DIRECTION_VECTORS: Mapping[CompassDirection, Coordinates] = MappingProxyType({
    CompassDirection.NORTH: Coordinates(0, -1),
    CompassDirection.NORTH_EAST: Coordinates(1, -1),
    CompassDirection.EAST: Coordinates(1, 0),
    CompassDirection.SOUTH_EAST: Coordinates(1, 1),
    CompassDirection.SOUTH: Coordinates(0, 1),
    CompassDirection.SOUTH_WEST: Coordinates(-1, 1),
    CompassDirection.WEST: Coordinates(-1, 0),
    CompassDirection.NORTH_WEST: Coordinates(-1, -1),
})


def difference_vector(origin, target):
    """Vector pointing from origin to target.

    Args:
        origin (Coordinates): Start point
        target (Coordinates): End point

    Returns:
        Coordinates: target - origin, componentwise
    """
    return Coordinates(target.x - origin.x, target.y - origin.y)


def direction_vector(direction):
    """Unit grid step for a compass direction.

    Args:
        direction (CompassDirection): Direction to convert

    Returns:
        Coordinates: Step of length one (diagonals move one cell on both axes)
    """
    return DIRECTION_VECTORS[direction]


def bearing_degrees(vector):
    """Compass bearing of a vector, clockwise from north, in [0, 360).

    Args:
        vector (Coordinates): Nonzero vector

    Returns:
        float: Bearing in degrees

    Raises:
        InvalidVectorError: If the vector is zero
    """
    if vector.x == 0 and vector.y == 0:
        raise InvalidVectorError("Cannot determine direction of a zero vector")
    return math.degrees(math.atan2(vector.x, -vector.y)) % 360.0


def direction_from_bearing(degrees):
    """Compass direction whose sector contains the bearing.

    Sector k spans [k*45 - 22.5, k*45 + 22.5), wrapping around north.

    Args:
        degrees (float): Bearing clockwise from north

    Returns:
        CompassDirection: Direction of the containing sector
    """
    normalized = degrees % 360.0
    return CompassDirection(int((normalized + HALF_SECTOR_DEGREES) // SECTOR_DEGREES) % 8)


def approximate_direction(vector):
    """Compass direction closest to a vector.

    Args:
        vector (Coordinates): Nonzero vector

    Returns:
        CompassDirection: Nearest of the eight directions

    Raises:
        InvalidVectorError: If the vector is zero
    """
    return direction_from_bearing(bearing_degrees(vector))


def partial_turn(start, target, max_steps):
    """Furthest direction towards `target` reachable within the turn rate.

    A 180 degree turn always goes clockwise.

    Args:
        start (CompassDirection): Current heading
        target (CompassDirection): Desired heading
        max_steps (int): Turn rate in compass steps

    Returns:
        CompassDirection: Heading after turning at most max_steps towards target
    """
    turn = (int(target) - int(start)) % 8
    if turn <= 4:
        return start.rotate(min(turn, max_steps))
    return start.rotate(max(turn - 8, -max_steps))


def angle_between(a, b):
    """Unsigned angle between two nonzero vectors in radians."""
    length = a.length() * b.length()
    if length == 0:
        raise InvalidVectorError("Angle to a zero vector is undefined")
    cosine = (a.x * b.x + a.y * b.y) / length
    return math.acos(max(-1.0, min(1.0, cosine)))


def is_within_sector(vector, direction, tolerance):
    """Check whether a vector points along a compass direction.

    Args:
        vector (Coordinates): Vector to check
        direction (CompassDirection): Reference direction
        tolerance (float): Maximum angle difference in radians

    Returns:
        bool: True if the angle between them is at most tolerance
    """
    if vector.is_zero():
        return False
    angle = angle_between(vector, DIRECTION_VECTORS[direction])
    logger.debug(f"Angle to {direction.name}: {math.degrees(angle):.1f} deg")
    return angle <= tolerance


def is_aligned_step(vector):
    """True if a ship can travel the vector in a straight line (axis or diagonal)."""
    if vector.is_zero():
        return False
    return vector.x == 0 or vector.y == 0 or abs(vector.x) == abs(vector.y)


def orthogonal_directions(direction) -> Tuple[CompassDirection, CompassDirection]:
    """Left and right perpendiculars of a direction."""
    return direction.rotate(-2), direction.rotate(2)
