# tactics/entities.py
"""
Data model shared by the decision engine and the wire codec.

Coordinates double as 2D vectors. The origin is the top-left corner of the
map, x grows to the right and y grows downwards.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import ClassVar, Dict, List, Optional, Union

from tactics.utils.errors import InvariantViolation


@dataclass(frozen=True)
class Coordinates:
    """Integer point on the map, or the vector between two points."""
    x: int
    y: int

    def __add__(self, other: "Coordinates") -> "Coordinates":
        return Coordinates(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Coordinates") -> "Coordinates":
        return Coordinates(self.x - other.x, self.y - other.y)

    def __neg__(self) -> "Coordinates":
        return Coordinates(-self.x, -self.y)

    def __mul__(self, factor: int) -> "Coordinates":
        return Coordinates(self.x * factor, self.y * factor)

    __rmul__ = __mul__

    def is_zero(self) -> bool:
        return self.x == 0 and self.y == 0

    def length(self) -> float:
        return math.hypot(self.x, self.y)

    def distance_to(self, other: "Coordinates") -> float:
        """Euclidean distance."""
        return (other - self).length()

    def steps_to(self, other: "Coordinates") -> int:
        """Number of king-move steps (Chebyshev distance)."""
        return max(abs(other.x - self.x), abs(other.y - self.y))


class CompassDirection(IntEnum):
    """Eight compass directions, clockwise from north."""
    NORTH = 0
    NORTH_EAST = 1
    EAST = 2
    SOUTH_EAST = 3
    SOUTH = 4
    SOUTH_WEST = 5
    WEST = 6
    NORTH_WEST = 7

    def rotate(self, steps: int) -> "CompassDirection":
        """Direction `steps` eighth-turns clockwise (negative is counter-clockwise)."""
        return CompassDirection((int(self) + steps) % 8)


class CellType(Enum):
    """Kind of content in a game map cell."""
    EMPTY = "empty"
    OUT_OF_VISION = "outofvision"
    AUDIO_SIGNATURE = "audiosignature"
    HIT_BOX = "hitbox"
    SHIP = "ship"
    PROJECTILE = "projectile"


@dataclass(frozen=True)
class HitBoxData:
    """Cell covered by part of a ship's body."""
    entity_id: str


@dataclass(frozen=True)
class ShipData:
    id: str
    position: Coordinates
    direction: CompassDirection
    health: Optional[int] = None  # max 25
    heat: Optional[int] = None    # max 25, heat beyond that is taken as damage


@dataclass(frozen=True)
class ProjectileData:
    id: str
    position: Coordinates
    direction: CompassDirection
    speed: Optional[int] = None
    mass: Optional[int] = None


CellData = Union[HitBoxData, ShipData, ProjectileData]

_PAYLOAD_TYPES: Dict[CellType, type] = {
    CellType.HIT_BOX: HitBoxData,
    CellType.SHIP: ShipData,
    CellType.PROJECTILE: ProjectileData,
}


@dataclass(frozen=True)
class Cell:
    """
    One map cell. Only hitbox, ship and projectile cells carry data, and the
    data must match the cell type.
    """
    cell_type: CellType
    data: Optional[CellData] = None

    def __post_init__(self):
        expected = _PAYLOAD_TYPES.get(self.cell_type)
        if expected is None:
            if self.data is not None:
                raise InvariantViolation(f"{self.cell_type.name} cell cannot carry data")
        elif not isinstance(self.data, expected):
            raise InvariantViolation(
                f"{self.cell_type.name} cell requires {expected.__name__}, got {type(self.data).__name__}"
            )

    @classmethod
    def empty(cls) -> "Cell":
        return cls(CellType.EMPTY)

    @classmethod
    def out_of_vision(cls) -> "Cell":
        return cls(CellType.OUT_OF_VISION)

    @classmethod
    def audio_signature(cls) -> "Cell":
        return cls(CellType.AUDIO_SIGNATURE)

    @classmethod
    def hit_box(cls, entity_id: str) -> "Cell":
        return cls(CellType.HIT_BOX, HitBoxData(entity_id))

    @classmethod
    def ship(cls, ship: ShipData) -> "Cell":
        return cls(CellType.SHIP, ship)

    @classmethod
    def projectile(cls, projectile: ProjectileData) -> "Cell":
        return cls(CellType.PROJECTILE, projectile)


@dataclass
class GameState:
    """One tick's view of the battlefield; `game_map[y][x]`."""
    turn_number: int
    game_map: List[List[Cell]]

    @property
    def height(self) -> int:
        return len(self.game_map)

    @property
    def width(self) -> int:
        return len(self.game_map[0]) if self.game_map else 0

    def cell_at(self, x: int, y: int) -> Cell:
        return self.game_map[y][x]


@dataclass(frozen=True)
class TeamAiContext:
    """
    Per-match constants received on game start.

    Attributes:
        tick_length_ms: Server time budget of one tick in milliseconds
        turn_rate: Compass steps a ship may turn in one tick
    """
    tick_length_ms: int
    turn_rate: int


class ActionType(Enum):
    """Actions a ship can take in one tick."""
    MOVE = "move"
    TURN = "turn"
    SHOOT = "shoot"


@dataclass(frozen=True)
class MoveAction:
    """Move forward along the current heading."""
    action: ClassVar[ActionType] = ActionType.MOVE
    distance: int

    def payload(self) -> dict:
        return {"distance": self.distance}


@dataclass(frozen=True)
class TurnAction:
    """Turn to face `direction` (at most turn-rate steps away)."""
    action: ClassVar[ActionType] = ActionType.TURN
    direction: CompassDirection

    def payload(self) -> dict:
        return {"direction": self.direction}


@dataclass(frozen=True)
class ShootAction:
    """Fire a projectile along the current heading; costs speed * mass heat."""
    action: ClassVar[ActionType] = ActionType.SHOOT
    speed: int
    mass: int

    @property
    def heat(self) -> int:
        return self.speed * self.mass

    def payload(self) -> dict:
        return {"speed": self.speed, "mass": self.mass}


Command = Union[MoveAction, TurnAction, ShootAction]

# Sent whenever no decision is available in time.
DEFAULT_COMMAND: Command = MoveAction(distance=0)
