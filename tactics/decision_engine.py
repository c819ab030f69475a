# tactics/decision_engine.py
"""
Tactical decision engine.

Turns one tick's game state into exactly one command using a fixed
priority policy:

1. Escape when our hitbox overlaps danger.
2. Fight a visible enemy: shoot from range, back off when close.
3. Hunt an enemy we only hear: shoot at the sound, flank it or retreat.
4. Otherwise act randomly.
"""

import logging
import random
import threading
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from tactics.armament import ArmamentPlanner
from tactics.core.constants import (
    AIM_TOLERANCE_RADIANS,
    DEFAULT_TURN_RATE,
    ENGAGE_DISTANCE,
    MAP_HEIGHT,
    MAP_WIDTH,
    MAX_MOVE_DISTANCE,
    SCAN_RADIUS,
)
from tactics.entities import (
    DEFAULT_COMMAND,
    Command,
    CompassDirection,
    Coordinates,
    GameState,
    MoveAction,
    TeamAiContext,
    TurnAction,
)
from tactics.safety_map import SafetyMapBuilder, SafetyValue, ScanResult
from tactics.utils.errors import OwnShipNotFoundError, TickAbandonedError
from tactics.utils.geometry import (
    approximate_direction,
    difference_vector,
    direction_vector,
    is_aligned_step,
    is_within_sector,
    orthogonal_directions,
    partial_turn,
)

logger = logging.getLogger(__name__)

RETREAT_VALUES = (SafetyValue.SAFE, SafetyValue.FUTURE_DANGER)


@dataclass
class TickView:
    """Our ship's situation for the tick being decided."""
    scan: ScanResult
    position: Coordinates
    heading: CompassDirection
    heat: int
    turn_rate: int
    too_hot: bool
    sound_position: Optional[Coordinates] = None

    @property
    def enemy_target(self) -> Optional[Coordinates]:
        return self.scan.enemy_position if self.scan.enemy_visible else None


class TacticalDecisionEngine:
    """
    Picks one command per tick for our ship.

    State carried between ticks of a match: the safety map buffers and the
    last position the enemy was heard at. Call reset() when a match starts
    or ends.

    A tick checks the builder out for its whole run. If a tick abandoned by
    its caller still holds it, the next tick gets a fresh builder, so two
    threads never share buffers and reset() never waits for a stale tick.
    """

    def __init__(self, own_ship_id: str, planner: ArmamentPlanner,
                 max_heat: Optional[int] = None, heat_limit: Optional[int] = None,
                 rng: Optional[random.Random] = None,
                 width: int = MAP_WIDTH, height: int = MAP_HEIGHT):
        """
        Initialize the engine.

        Args:
            own_ship_id: Entity id of our ship in the game map
            planner: Shot planner over a prebuilt heat lattice
            max_heat: Heat ceiling, defaults to the planner's
            heat_limit: "Too hot" threshold, defaults to the planner's
            rng: Random source for retreat shuffling and random actions
        """
        self.own_ship_id = own_ship_id
        self.planner = planner
        self.max_heat = planner.max_heat if max_heat is None else max_heat
        self.heat_limit = planner.heat_limit if heat_limit is None else heat_limit
        self.rng = rng or random.Random()
        self.width = width
        self.height = height
        self.builder = SafetyMapBuilder(own_ship_id, width, height)
        self.last_sound_position: Optional[Coordinates] = None
        self._lock = threading.Lock()
        self._builder_in_use = False

    def reset(self) -> None:
        """Drop all per-match state without waiting for a running tick."""
        with self._lock:
            self.builder = SafetyMapBuilder(self.own_ship_id, self.width, self.height)
            self._builder_in_use = False
            self.last_sound_position = None
        logger.debug("Decision engine reset")

    def _checkout_builder(self) -> SafetyMapBuilder:
        with self._lock:
            if self._builder_in_use:
                logger.warning("Previous tick still running, scanning with fresh buffers")
                self.builder = SafetyMapBuilder(self.own_ship_id, self.width, self.height)
            self._builder_in_use = True
            return self.builder

    def _release_builder(self, builder: SafetyMapBuilder, sound_position: Optional[Coordinates]) -> None:
        with self._lock:
            if builder is not self.builder:
                # reset or superseded while we ran
                return
            self._builder_in_use = False
            if sound_position is not None:
                self.last_sound_position = sound_position

    def process_tick(self, game_state: GameState, context: Optional[TeamAiContext] = None,
                     cancel_event: Optional[threading.Event] = None) -> Command:
        """
        Decide on this tick's command.

        Args:
            game_state: Current tick's game state
            context: Match constants, if a match was started
            cancel_event: Set by the caller when it stops waiting for the result

        Returns:
            The command to send

        Raises:
            OwnShipNotFoundError: If our ship is not on the map
            TickAbandonedError: If cancel_event was set mid-decision
            InvariantViolation: On malformed game state
        """
        builder = self._checkout_builder()
        heard = None
        try:
            scan = builder.build(game_state)
            heard = scan.sound_position
            if scan.own_ship is None:
                raise OwnShipNotFoundError(self.own_ship_id, game_state.turn_number)
            tick = self._make_view(scan, context, heard or self.last_sound_position)
            command = self._decide(tick, game_state.turn_number, cancel_event)
        finally:
            self._release_builder(builder, heard)

        logger.info(f"Turn {game_state.turn_number}: {command.action.value} {command.payload()}")
        return command

    def _make_view(self, scan: ScanResult, context: Optional[TeamAiContext],
                   sound_position: Optional[Coordinates]) -> TickView:
        heat = scan.own_ship.heat or 0
        return TickView(
            scan=scan,
            position=scan.own_position,
            heading=scan.own_ship.direction,
            heat=heat,
            turn_rate=context.turn_rate if context is not None else DEFAULT_TURN_RATE,
            too_hot=heat >= self.heat_limit,
            sound_position=sound_position,
        )

    def _decide(self, tick: TickView, turn_number: int,
                cancel_event: Optional[threading.Event]) -> Command:
        self._check_cancel(cancel_event)
        scan = tick.scan

        if scan.in_danger or scan.in_future_danger:
            logger.debug(f"Turn {turn_number}: in danger at {tick.position}")
            command = self._evade(tick)
        elif scan.enemy_visible:
            logger.debug(f"Turn {turn_number}: enemy visible at {scan.enemy_position}")
            command = self._engage(tick)
        elif tick.sound_position is not None:
            logger.debug(f"Turn {turn_number}: enemy heard at {tick.sound_position}")
            command = self._hunt(tick)
        else:
            command = None

        self._check_cancel(cancel_event)
        if command is None:
            command = self._random_command(tick)
        return command

    @staticmethod
    def _check_cancel(cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise TickAbandonedError("Decision abandoned by caller")

    # Policy phases

    def _evade(self, tick: TickView) -> Optional[Command]:
        safe, fallback = self._ring_candidates(tick)
        candidates = safe or fallback
        if not candidates:
            target = tick.enemy_target or tick.sound_position
            return self._fire_at(tick, target)
        return self._first_move(tick, candidates, farthest_first=tick.too_hot)

    def _engage(self, tick: TickView) -> Optional[Command]:
        enemy = tick.scan.enemy_position
        if int(tick.position.distance_to(enemy)) > ENGAGE_DISTANCE:
            command = self._fire_at(tick, enemy)
            if command is not None:
                return command
        return self._retreat_safely(tick, enemy) or self._retreat_anywhere(tick, enemy)

    def _hunt(self, tick: TickView) -> Optional[Command]:
        sound = tick.sound_position
        command = self._fire_at(tick, sound) or self._flank(tick, sound)
        if command is not None:
            return command

        safe, fallback = self._ring_candidates(tick)
        candidates = safe or fallback
        if not candidates:
            return self._retreat_anywhere(tick, sound)
        return self._first_move(tick, candidates, farthest_first=tick.too_hot)

    def _random_command(self, tick: TickView) -> Command:
        choice = self.rng.randrange(3)
        if choice == 0:
            return DEFAULT_COMMAND
        if choice == 1:
            direction = CompassDirection(self.rng.randrange(8))
            return TurnAction(partial_turn(tick.heading, direction, tick.turn_rate))

        target = tick.enemy_target or tick.sound_position
        if target is None or target == tick.position:
            return DEFAULT_COMMAND
        shot = self.planner.best_shot(tick.heat, self.max_heat, self.heat_limit)
        if shot is None:
            return DEFAULT_COMMAND
        # Shoot when roughly facing the target, whether or not it sits on a firing line
        vector = difference_vector(tick.position, target)
        if is_within_sector(vector, tick.heading, AIM_TOLERANCE_RADIANS):
            return shot
        return TurnAction(partial_turn(tick.heading, approximate_direction(vector), tick.turn_rate))

    # Building blocks

    def _fire_at(self, tick: TickView, target: Optional[Coordinates]) -> Optional[Command]:
        """Shoot at a target, or turn towards it when not facing it.

        Returns None if the target is unknown, too hot to shoot, or the
        target lies off every compass line.
        """
        if target is None or target == tick.position:
            return None
        shot = self.planner.best_shot(tick.heat, self.max_heat, self.heat_limit)
        if shot is None:
            return None

        vector = difference_vector(tick.position, target)
        direction = approximate_direction(vector)
        if not is_within_sector(vector, direction, AIM_TOLERANCE_RADIANS):
            logger.debug(f"Target {target} is off the {direction.name} firing line")
            return None
        if direction == tick.heading:
            return shot
        return TurnAction(partial_turn(tick.heading, direction, tick.turn_rate))

    def _move_towards(self, tick: TickView, target: Coordinates) -> Optional[Command]:
        """Move to a target cell, or turn towards it first.

        Returns None if the target is not on a straight or diagonal line.
        """
        vector = difference_vector(tick.position, target)
        if not is_aligned_step(vector):
            return None
        direction = approximate_direction(vector)
        if direction == tick.heading:
            return MoveAction(min(MAX_MOVE_DISTANCE, tick.position.steps_to(target)))
        return TurnAction(partial_turn(tick.heading, direction, tick.turn_rate))

    def _first_move(self, tick: TickView, candidates: Sequence[Coordinates],
                    farthest_first: bool = False) -> Optional[Command]:
        ordered = reversed(candidates) if farthest_first else candidates
        for coords in ordered:
            command = self._move_towards(tick, coords)
            logger.debug(f"Considered move to {coords}: {command}")
            if command is not None:
                return command
        return None

    def _is_ahead(self, tick: TickView, coords: Coordinates) -> bool:
        vector = difference_vector(tick.position, coords)
        return is_aligned_step(vector) and approximate_direction(vector) == tick.heading

    def _ring_candidates(self, tick: TickView) -> Tuple[List[Coordinates], List[Coordinates]]:
        """Safe and FutureDanger cells within move range, nearest ring first.

        Cells straight ahead go to the front of their list.
        """
        safety_map = tick.scan.safety_map
        safe, future = [], []
        for radius in range(1, SCAN_RADIUS + 1):
            for coords in _ring(tick.position, radius):
                if not safety_map.contains(coords):
                    continue
                value = safety_map[coords]
                if value is SafetyValue.SAFE:
                    bucket = safe
                elif value is SafetyValue.FUTURE_DANGER:
                    bucket = future
                else:
                    continue
                if self._is_ahead(tick, coords):
                    bucket.insert(0, coords)
                else:
                    bucket.append(coords)
        return safe, future

    def _retreat_safely(self, tick: TickView, threat: Coordinates) -> Optional[Command]:
        """Move to a Safe cell no closer to the threat, else to any Safe or FutureDanger cell."""
        safety_map = tick.scan.safety_map
        current = tick.position.distance_to(threat)
        away, fallback = [], []
        for coords in _square(tick.position, MAX_MOVE_DISTANCE):
            if not safety_map.contains(coords):
                continue
            value = safety_map[coords]
            if value is SafetyValue.SAFE and coords.distance_to(threat) >= current:
                away.append(coords)
            elif value in RETREAT_VALUES:
                fallback.append(coords)
        self.rng.shuffle(away)
        self.rng.shuffle(fallback)
        return self._first_move(tick, away + fallback)

    def _retreat_anywhere(self, tick: TickView, threat: Coordinates) -> Optional[Command]:
        """Move away from the threat through any interior cell, safe or not."""
        safety_map = tick.scan.safety_map
        current = tick.position.distance_to(threat)
        away, closer = [], []
        for coords in _square(tick.position, MAX_MOVE_DISTANCE):
            if not safety_map.contains(coords) or safety_map.is_border(coords):
                continue
            if coords.distance_to(threat) >= current:
                away.append(coords)
            else:
                closer.append(coords)
        self.rng.shuffle(away)
        return self._first_move(tick, away + closer)

    def _flank(self, tick: TickView, threat: Coordinates) -> Optional[Command]:
        """Sidestep perpendicular to the threat's bearing through Safe cells."""
        vector = difference_vector(tick.position, threat)
        if vector.is_zero():
            return None
        safety_map = tick.scan.safety_map
        left, right = orthogonal_directions(approximate_direction(vector))
        candidates = []
        for distance in range(MAX_MOVE_DISTANCE, 0, -1):
            for side in (left, right):
                coords = tick.position + direction_vector(side) * distance
                if safety_map.contains(coords) and safety_map[coords] is SafetyValue.SAFE:
                    candidates.append(coords)
        return self._first_move(tick, candidates)


def _ring(center: Coordinates, radius: int) -> Iterator[Coordinates]:
    """Cells exactly `radius` king-moves away from center."""
    for dx in range(-radius, radius + 1):
        for dy in range(-radius, radius + 1):
            if max(abs(dx), abs(dy)) == radius:
                yield Coordinates(center.x + dx, center.y + dy)


def _square(center: Coordinates, radius: int) -> Iterator[Coordinates]:
    """Cells within `radius` king-moves of center, excluding center."""
    for radius_step in range(1, radius + 1):
        yield from _ring(center, radius_step)
