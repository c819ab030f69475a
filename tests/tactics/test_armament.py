"""Tests for the heat lattice and shot planner"""

import pytest

from tactics.armament import ArmamentPlanner, HeatLattice
from tactics.entities import ShootAction


@pytest.fixture
def lattice():
    return HeatLattice.build(3, 4)


@pytest.fixture
def planner(lattice):
    return ArmamentPlanner(lattice, max_heat=25, heat_limit=20)


def test_lattice_costs_are_sorted_and_distinct(lattice):
    assert lattice.costs == (0, 1, 2, 3, 4, 6)


def test_lattice_prefers_highest_speed_per_cost(lattice):
    assert lattice.shots[2] == ShootAction(speed=2, mass=1)
    assert lattice.shots[3] == ShootAction(speed=1, mass=3)
    assert lattice.shots[4] == ShootAction(speed=2, mass=2)
    assert lattice.shots[6] == ShootAction(speed=2, mass=3)
    # every zero-cost pair collapses onto the fastest one
    assert lattice.shots[0].speed == 2


def test_lattice_is_read_only(lattice):
    with pytest.raises(TypeError):
        lattice.shots[9] = ShootAction(3, 3)


def test_invalid_bounds_rejected():
    with pytest.raises(ValueError):
        HeatLattice.build(0, 4)


def test_too_hot_to_fire(planner):
    """Heat 24 with limit 20 and ceiling 25 allows no shot"""
    assert planner.best_shot(24, max_heat=25, heat_limit=20) is None
    assert planner.best_shot(20) is None


def test_best_shot_uses_largest_affordable_cost(planner):
    assert planner.best_shot(0) == ShootAction(speed=2, mass=3)
    assert planner.best_shot(19) == ShootAction(speed=2, mass=3)


def test_budget_between_costs_rounds_down(lattice):
    planner = ArmamentPlanner(lattice, max_heat=5, heat_limit=5)
    # budget 5 is not achievable, 4 is
    assert planner.best_shot(0) == ShootAction(speed=2, mass=2)
    # budget 1
    assert planner.best_shot(4) == ShootAction(speed=1, mass=1)


def test_no_shot_when_only_zero_cost_fits(lattice):
    planner = ArmamentPlanner(lattice, max_heat=10, heat_limit=30)
    assert planner.best_shot(10) is None
    assert planner.best_shot(12) is None
