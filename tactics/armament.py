# tactics/armament.py
"""
Heat lattice and shot selection.

Every (speed, mass) shot costs speed * mass heat. The lattice of achievable
costs is computed once at startup and shared read-only with the planner.
"""

import bisect
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

import numpy as np

from tactics.core.constants import (
    DEFAULT_HEAT_LIMIT,
    DEFAULT_MAX_HEAT,
    DEFAULT_MAX_SHOT_MASS,
    DEFAULT_MAX_SHOT_SPEED,
)
from tactics.entities import ShootAction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeatLattice:
    """
    Immutable table of shot costs.

    Attributes:
        costs: Distinct achievable heat costs in ascending order
        shots: Heat cost -> the shot with the highest speed at that cost
    """
    costs: Tuple[int, ...]
    shots: Mapping[int, ShootAction]

    @classmethod
    def build(cls, max_speed: int = DEFAULT_MAX_SHOT_SPEED,
              max_mass: int = DEFAULT_MAX_SHOT_MASS) -> "HeatLattice":
        """Compute the lattice for speeds in [0, max_speed) and masses in [0, max_mass).

        Args:
            max_speed: Exclusive upper bound of shot speed
            max_mass: Exclusive upper bound of shot mass

        Returns:
            HeatLattice: The cost table
        """
        if max_speed <= 0 or max_mass <= 0:
            raise ValueError(f"Lattice bounds must be positive, got {max_speed}x{max_mass}")

        heat = np.outer(np.arange(max_speed), np.arange(max_mass))
        costs = tuple(int(c) for c in np.unique(heat))

        shots = {}
        # Iterating speed ascending lets the faster shot overwrite ties.
        for speed in range(max_speed):
            for mass in range(max_mass):
                shots[int(heat[speed, mass])] = ShootAction(speed=speed, mass=mass)

        logger.debug(f"Heat lattice {max_speed}x{max_mass}: costs {costs}")
        return cls(costs=costs, shots=MappingProxyType(shots))


class ArmamentPlanner:
    """Answers "best affordable shot" queries against a prebuilt lattice."""

    def __init__(self, lattice: HeatLattice, max_heat: int = DEFAULT_MAX_HEAT,
                 heat_limit: int = DEFAULT_HEAT_LIMIT):
        self.lattice = lattice
        self.max_heat = max_heat
        self.heat_limit = heat_limit

    def best_shot(self, current_heat: int, max_heat: Optional[int] = None,
                  heat_limit: Optional[int] = None) -> Optional[ShootAction]:
        """Strongest shot that fits into the remaining heat budget.

        Args:
            current_heat: Ship's heat this tick
            max_heat: Heat ceiling, defaults to the planner's
            heat_limit: "Too hot" threshold, defaults to the planner's

        Returns:
            ShootAction or None when the ship is too hot or nothing
            worth firing is affordable
        """
        max_heat = self.max_heat if max_heat is None else max_heat
        heat_limit = self.heat_limit if heat_limit is None else heat_limit

        if current_heat >= heat_limit:
            logger.debug(f"Too hot to shoot: heat {current_heat} >= limit {heat_limit}")
            return None

        budget = max_heat - current_heat
        index = bisect.bisect_right(self.lattice.costs, budget) - 1
        if index < 0:
            return None

        cost = self.lattice.costs[index]
        if cost == 0:
            return None
        return self.lattice.shots[cost]
