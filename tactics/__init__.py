# tactics/__init__.py
"""
Tick decision engine for the grid combat bot.
Pure computation: game state in, one command out.
"""

from tactics.entities import Command, GameState, TeamAiContext
from tactics.armament import ArmamentPlanner, HeatLattice
from tactics.safety_map import SafetyMapBuilder, SafetyValue
from tactics.decision_engine import TacticalDecisionEngine

__all__ = [
    'ArmamentPlanner', 'Command', 'GameState', 'HeatLattice',
    'SafetyMapBuilder', 'SafetyValue', 'TacticalDecisionEngine', 'TeamAiContext',
]
