# tactics/safety_map.py
"""
Per-tick danger classification of the battlefield.

The builder scans the game map once, marks enemy and projectile danger
padded by one cell (the size of our hitbox) and projects projectile
trajectories, so that any cell left Safe can be moved to directly.
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Tuple

import numpy as np

from tactics.core.constants import DEFAULT_PROJECTILE_SPEED, MAP_HEIGHT, MAP_WIDTH
from tactics.entities import CellType, Coordinates, GameState, ProjectileData, ShipData
from tactics.utils.errors import GridShapeError, InvariantViolation
from tactics.utils.geometry import direction_vector

logger = logging.getLogger(__name__)


class SafetyValue(IntEnum):
    """Classification of a single cell."""
    UNKNOWN = 0
    SAFE = 1
    INSTANT_DANGER = 2
    FUTURE_DANGER = 3
    ENEMY = 4
    MY_SHIP = 5
    SOUND = 6

    @property
    def glyph(self) -> str:
        return _GLYPHS[self]


_GLYPHS = {
    SafetyValue.UNKNOWN: "?",
    SafetyValue.SAFE: "0",
    SafetyValue.INSTANT_DANGER: "X",
    SafetyValue.FUTURE_DANGER: "x",
    SafetyValue.ENEMY: "E",
    SafetyValue.MY_SHIP: "M",
    SafetyValue.SOUND: "S",
}

# Projectile danger never replaces what we know about the enemy.
PROJECTION_PROTECTED = frozenset({SafetyValue.ENEMY, SafetyValue.SOUND})

# 3x3 neighbourhood including the centre
HALO_OFFSETS: Tuple[Coordinates, ...] = tuple(
    Coordinates(dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1)
)


class SafetyMap:
    """
    Safety values plus the round each cell was last stamped in.

    Both grids are indexed [y, x]. Border cells are InstantDanger from
    construction on and are never written again.
    """

    def __init__(self, width: int = MAP_WIDTH, height: int = MAP_HEIGHT):
        self.width = width
        self.height = height
        self.values = np.full((height, width), SafetyValue.UNKNOWN, dtype=np.int8)
        self.stamped_round = np.zeros((height, width), dtype=np.int64)
        self.values[0, :] = SafetyValue.INSTANT_DANGER
        self.values[-1, :] = SafetyValue.INSTANT_DANGER
        self.values[:, 0] = SafetyValue.INSTANT_DANGER
        self.values[:, -1] = SafetyValue.INSTANT_DANGER

    def __getitem__(self, coords: Coordinates) -> SafetyValue:
        return SafetyValue(int(self.values[coords.y, coords.x]))

    def contains(self, coords: Coordinates) -> bool:
        return 0 <= coords.x < self.width and 0 <= coords.y < self.height

    def is_border(self, coords: Coordinates) -> bool:
        return coords.x in (0, self.width - 1) or coords.y in (0, self.height - 1)

    def is_writable(self, coords: Coordinates) -> bool:
        return self.contains(coords) and not self.is_border(coords)

    def set(self, coords: Coordinates, value: SafetyValue) -> bool:
        """Write a value to an interior cell. Returns False if nothing was written."""
        if not self.is_writable(coords):
            return False
        self.values[coords.y, coords.x] = value
        return True

    def set_unless(self, coords: Coordinates, value: SafetyValue, protected) -> bool:
        """Write a value unless the cell currently holds one of `protected`."""
        if not self.is_writable(coords) or self[coords] in protected:
            return False
        self.values[coords.y, coords.x] = value
        return True

    def stamp(self, coords: Coordinates, round_number: int) -> None:
        if self.contains(coords):
            self.stamped_round[coords.y, coords.x] = round_number

    def is_stamped(self, coords: Coordinates, round_number: int) -> bool:
        return int(self.stamped_round[coords.y, coords.x]) == round_number

    def count(self, value: SafetyValue) -> int:
        return int(np.count_nonzero(self.values == value))

    def render(self) -> str:
        """Text picture of the map, one row per line."""
        return "\n".join(
            "".join(SafetyValue(int(v)).glyph for v in row) for row in self.values
        )


@dataclass
class ScanResult:
    """Everything the tactical policy needs from one scan of the map."""
    safety_map: SafetyMap
    projectiles: List[ProjectileData] = field(default_factory=list)
    own_hit_boxes: List[Coordinates] = field(default_factory=list)
    enemy_hit_boxes: List[Coordinates] = field(default_factory=list)
    own_ship: Optional[ShipData] = None
    own_position: Optional[Coordinates] = None
    enemy_ship: Optional[ShipData] = None
    enemy_position: Optional[Coordinates] = None
    enemy_visible: bool = False
    sound_position: Optional[Coordinates] = None
    in_danger: bool = False
    in_future_danger: bool = False


class SafetyMapBuilder:
    """
    Builds the safety map for each tick.

    The builder exclusively owns its map buffers; they are overwritten in
    place every tick and only replaced by reset().
    """

    def __init__(self, own_ship_id: str, width: int = MAP_WIDTH, height: int = MAP_HEIGHT):
        self.own_ship_id = own_ship_id
        self.width = width
        self.height = height
        self.round = 0
        self.safety_map = SafetyMap(width, height)

    def reset(self) -> None:
        """Forget all state, e.g. between matches."""
        self.round = 0
        self.safety_map = SafetyMap(self.width, self.height)

    def is_own(self, entity_id: str) -> bool:
        return entity_id.casefold() == self.own_ship_id.casefold()

    def build(self, game_state: GameState) -> ScanResult:
        """Classify every cell of the game state and assess our danger.

        Args:
            game_state: Current tick's game state

        Returns:
            ScanResult for this tick

        Raises:
            GridShapeError: If the map is not width x height
            InvariantViolation: On a cell type outside the known set
        """
        self._check_shape(game_state)
        self.round += 1
        result = ScanResult(safety_map=self.safety_map)

        self._scan(game_state, result)
        for projectile in result.projectiles:
            self._project(projectile)
        self._assess_threat(result)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Safety map for turn {game_state.turn_number}:\n{self.safety_map.render()}")
        return result

    def _check_shape(self, game_state: GameState) -> None:
        rows = game_state.game_map
        if len(rows) != self.height or any(len(row) != self.width for row in rows):
            widths = sorted({len(row) for row in rows})
            raise GridShapeError(
                f"Expected a {self.width}x{self.height} map, got {len(rows)} rows of widths {widths}"
            )

    def _scan(self, game_state: GameState, result: ScanResult) -> None:
        safety_map = self.safety_map
        for x in range(1, self.width - 1):
            for y in range(1, self.height - 1):
                cell = game_state.game_map[y][x]
                coords = Coordinates(x, y)
                cell_type = cell.cell_type

                if cell_type is CellType.AUDIO_SIGNATURE:
                    result.sound_position = coords
                    safety_map.set(coords, SafetyValue.SOUND)
                elif cell_type is CellType.HIT_BOX:
                    if self.is_own(cell.data.entity_id):
                        result.own_hit_boxes.append(coords)
                        safety_map.set(coords, SafetyValue.MY_SHIP)
                    else:
                        result.enemy_hit_boxes.append(coords)
                        self._pad_enemy(coords)
                elif cell_type is CellType.PROJECTILE:
                    safety_map.set(coords, SafetyValue.INSTANT_DANGER)
                    result.projectiles.append(cell.data)
                elif cell_type is CellType.SHIP:
                    ship = cell.data
                    if self.is_own(ship.id):
                        result.own_ship = ship
                        result.own_position = coords
                        result.own_hit_boxes.append(coords)
                        safety_map.set(coords, SafetyValue.MY_SHIP)
                    else:
                        result.enemy_ship = ship
                        result.enemy_position = coords
                        result.enemy_hit_boxes.append(coords)
                        result.enemy_visible = True
                        safety_map.set(coords, SafetyValue.ENEMY)
                elif cell_type is CellType.EMPTY:
                    if not safety_map.is_stamped(coords, self.round):
                        safety_map.set(coords, SafetyValue.SAFE)
                elif cell_type is CellType.OUT_OF_VISION:
                    if not safety_map.is_stamped(coords, self.round):
                        safety_map.set(coords, SafetyValue.UNKNOWN)
                else:
                    raise InvariantViolation(f"Unhandled cell type {cell_type!r} at ({x}, {y})")

    def _pad_enemy(self, center: Coordinates) -> None:
        # Stamped cells keep the Enemy marking when the scan reaches them later.
        for offset in HALO_OFFSETS:
            coords = center + offset
            self.safety_map.set(coords, SafetyValue.ENEMY)
            self.safety_map.stamp(coords, self.round)

    def _pad_danger(self, center: Coordinates) -> None:
        for offset in HALO_OFFSETS:
            self.safety_map.set_unless(center + offset, SafetyValue.INSTANT_DANGER, PROJECTION_PROTECTED)

    def _project(self, projectile: ProjectileData) -> None:
        """Mark a projectile's reach this tick and its path beyond until it leaves the map.

        Cells past the reported speed are only reachable on later ticks but
        are marked the same way as guaranteed-reach cells.
        """
        step = direction_vector(projectile.direction)
        speed = projectile.speed if projectile.speed is not None else DEFAULT_PROJECTILE_SPEED

        for i in range(speed + 1):
            self._pad_danger(projectile.position + step * i)

        coords = projectile.position + step * (speed + 1)
        while self.safety_map.contains(coords):
            self._pad_danger(coords)
            coords = coords + step

    def _assess_threat(self, result: ScanResult) -> None:
        for coords in result.own_hit_boxes:
            value = self.safety_map[coords]
            if value is SafetyValue.INSTANT_DANGER:
                result.in_danger = True
            elif value is SafetyValue.FUTURE_DANGER:
                result.in_future_danger = True
